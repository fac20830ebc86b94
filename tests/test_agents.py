"""
Tests for the spending advisory.

The generative model is replaced by a fake; no test reaches the network.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from khata.agents import (
    FALLBACK_MESSAGE,
    AdvisoryAgent,
    AdvisoryLockedError,
    AdvisoryService,
    build_prompt,
    unlock_progress,
)
from khata.agents.advisory import EMPTY_RESPONSE_MESSAGE
from khata.config import GeminiSettings
from khata.derive import DEFAULT_WEEKEND_DAYS, analyze_spending
from khata.models import AuditEventType, CurrencyConfig, Transaction, TransactionType


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text="খরচ কমান।", error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.prompts = []

    @property
    def calls(self):
        return len(self.prompts)

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.text)


def _transactions(count):
    rows = []
    for day in range(1, count + 1):
        rows.append(Transaction(
            profile_id="p1",
            type=TransactionType.EXPENSE,
            category="খাদ্য" if day % 2 else "বাজার",
            amount=Decimal(100 * day),
            date=date(2024, 5, day),
            note=f"নোট {day}",
        ))
    return rows


@pytest.fixture
def gemini_settings():
    return GeminiSettings(api_key="test-key", timeout_seconds=0.05)


def _service(model, gemini_settings, audit_logger, app_settings):
    agent = AdvisoryAgent(settings=gemini_settings, model=model)
    return AdvisoryService(agent=agent, audit_logger=audit_logger, settings=app_settings)


class TestUnlock:
    def test_progress(self):
        assert unlock_progress(0) == (5, 0.0)
        assert unlock_progress(2) == (3, 40.0)
        assert unlock_progress(5) == (0, 100.0)
        assert unlock_progress(9) == (0, 100.0)
        assert unlock_progress(3, required=0) == (0, 100.0)

    @pytest.mark.asyncio
    async def test_locked_below_threshold(self, gemini_settings, audit_logger, app_settings):
        model = FakeModel()
        service = _service(model, gemini_settings, audit_logger, app_settings)

        with pytest.raises(AdvisoryLockedError) as exc_info:
            await service.request_advice(_transactions(4), CurrencyConfig())

        assert exc_info.value.remaining == 1
        assert model.calls == 0
        assert not service.is_unlocked(_transactions(4))
        assert service.is_unlocked(_transactions(5))


class TestPrompt:
    def test_contains_transactions_and_weekend(self):
        rows = _transactions(5)
        analysis = analyze_spending(rows)
        prompt = build_prompt(rows, CurrencyConfig(), analysis, DEFAULT_WEEKEND_DAYS)

        assert "শুক্রবার ও শনিবার" in prompt
        assert "নোট 3" in prompt
        assert "2024-05-03 (Friday)" in prompt
        assert "'৳'" in prompt
        assert "সবচেয়ে বেশি খরচ: খাদ্য" in prompt

    def test_without_analysis(self):
        prompt = build_prompt(_transactions(1), CurrencyConfig(), None, frozenset({5, 6}))
        assert "শনিবার ও রবিবার" in prompt
        assert "মোট খরচ" not in prompt


class TestRequestAdvice:
    @pytest.mark.asyncio
    async def test_success(self, gemini_settings, audit_logger, audit_storage, app_settings):
        model = FakeModel(text="  বাজারে কম খরচ করুন।  ")
        service = _service(model, gemini_settings, audit_logger, app_settings)

        result = await service.request_advice(_transactions(5), CurrencyConfig())

        assert result.ok
        assert result.text == "বাজারে কম খরচ করুন।"
        assert result.analysis.total_expenses == Decimal("1500")
        assert model.calls == 1

        events = audit_storage.get_recent_events()
        assert any(e.event_type == AuditEventType.ADVISORY_REQUESTED for e in events)

    @pytest.mark.asyncio
    async def test_empty_answer(self, gemini_settings, audit_logger, app_settings):
        service = _service(FakeModel(text=""), gemini_settings, audit_logger, app_settings)
        result = await service.request_advice(_transactions(5), CurrencyConfig())
        assert result.ok
        assert result.text == EMPTY_RESPONSE_MESSAGE

    @pytest.mark.asyncio
    async def test_failure_retries_once_then_falls_back(
        self, gemini_settings, audit_logger, audit_storage, app_settings,
    ):
        model = FakeModel(error=RuntimeError("quota exceeded"))
        service = _service(model, gemini_settings, audit_logger, app_settings)

        result = await service.request_advice(_transactions(5), CurrencyConfig())

        assert not result.ok
        assert result.text == FALLBACK_MESSAGE
        assert result.analysis is None
        assert model.calls == 2

        [failed] = [e for e in audit_storage.get_recent_events()
                    if e.event_type == AuditEventType.ADVISORY_FAILED]
        assert "quota exceeded" in failed.error_message

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, gemini_settings, audit_logger, app_settings):
        model = FakeModel(delay=1.0)
        service = _service(model, gemini_settings, audit_logger, app_settings)

        result = await service.request_advice(_transactions(5), CurrencyConfig())

        assert not result.ok
        assert result.text == FALLBACK_MESSAGE

    @pytest.mark.asyncio
    async def test_input_is_not_modified(self, gemini_settings, audit_logger, app_settings):
        rows = _transactions(5)
        before = [t.model_copy() for t in rows]
        service = _service(FakeModel(), gemini_settings, audit_logger, app_settings)

        await service.request_advice(rows, CurrencyConfig())

        assert rows == before
