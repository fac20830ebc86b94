"""
Spending Advisory

DESIGN DECISION: The advisory is an opaque collaborator. It receives a
snapshot of the active profile's transactions and the currency config and
returns free text, or fails.

CRITICAL BOUNDARIES:

1. ADVISORY AGENT:
   - CAN: Turn transactions + a computed analysis into Bengali advice
   - CANNOT: Read or write the state store
   - MUST: Give up after the configured timeout

2. ADVISORY SERVICE:
   - MUST: Refuse to call the model below the transaction threshold
   - MUST: Replace any model failure with a friendly fallback message
   - NEVER: Let a model failure reach the caller as an exception

The numbers in the analysis are computed locally (khata.derive). The model
only comments on them.
"""

import asyncio
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from khata.agents.errors import AdvisoryLockedError, AdvisoryUnavailableError
from khata.audit import AuditLogger
from khata.config import AppSettings, GeminiSettings, get_settings
from khata.derive import SpendingAnalysis, analyze_spending, format_amount
from khata.models.audit import AuditEventType
from khata.models.state import CurrencyConfig, Transaction, TransactionType


logger = structlog.get_logger(__name__)

SYSTEM_INSTRUCTION = (
    "You are an expert financial strategist and behavior analyst for "
    "Bangladeshi families. You analyze spending patterns to identify "
    "psychological triggers and wastage. Your advice is culturally relevant "
    "(e.g., mentioning bazaar, snacks/nasta, or family responsibilities). "
    "Speak exclusively in Bengali."
)

FALLBACK_MESSAGE = (
    "দুঃখিত, বর্তমানে AI পরামর্শ পাওয়া যাচ্ছে না। অনুগ্রহ করে পরে চেষ্টা করুন।"
)
EMPTY_RESPONSE_MESSAGE = "কোনো পরামর্শ পাওয়া যায়নি।"

_WEEKDAY_NAMES_EN = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)
_WEEKDAY_NAMES_BN = (
    "সোমবার", "মঙ্গলবার", "বুধবার", "বৃহস্পতিবার", "শুক্রবার", "শনিবার", "রবিবার",
)


class AdvisoryResult(BaseModel):
    """What the advice screen shows."""

    text: str
    analysis: Optional[SpendingAnalysis] = None
    ok: bool = Field(
        default=True,
        description="False when text is the fallback message"
    )


def unlock_progress(count: int, required: int = 5) -> tuple[int, float]:
    """(transactions still needed, percent of the way there)."""
    if required <= 0:
        return 0, 100.0
    remaining = max(required - count, 0)
    percent = min(count / required * 100, 100.0)
    return remaining, percent


def _describe_transaction(t: Transaction, currency: CurrencyConfig) -> str:
    weekday = _WEEKDAY_NAMES_EN[t.date.weekday()]
    return (
        f"{t.date.isoformat()} ({weekday}): {t.type.value} of "
        f"{format_amount(t.amount, currency)} for {t.category} ({t.note})"
    )


def build_prompt(
    transactions: list[Transaction],
    currency: CurrencyConfig,
    analysis: Optional[SpendingAnalysis],
    weekend_days: frozenset[int],
) -> str:
    """The Bengali request text: transaction lines, analysis, questions."""
    summary = "\n".join(_describe_transaction(t, currency) for t in transactions)
    weekend = " ও ".join(_WEEKDAY_NAMES_BN[d] for d in sorted(weekend_days))

    analysis_lines = ""
    if analysis is not None:
        analysis_lines = (
            "\nহিসাবের সারসংক্ষেপ:\n"
            f"- মোট খরচ: {format_amount(analysis.total_expenses, currency)}\n"
            f"- ছুটির দিনের খরচ: {format_amount(analysis.weekend_spending, currency)}\n"
            f"- অন্যান্য দিনের খরচ: {format_amount(analysis.weekday_spending, currency)}\n"
            f"- দৈনিক গড় খরচ: {format_amount(analysis.daily_average, currency)}\n"
        )
        if analysis.top_category:
            analysis_lines += (
                f"- সবচেয়ে বেশি খরচ: {analysis.top_category} "
                f"({format_amount(analysis.top_category_total, currency)})\n"
            )

    return f"""এখানে আমার সাম্প্রতিক আর্থিক লেনদেনের তথ্য দেওয়া হলো:
{summary}
{analysis_lines}
আমার খরচের ধরণ বিশ্লেষণ করে নিচের বিষয়গুলো সম্পর্কে বিস্তারিত বাংলা পরামর্শ দিন:
১. সাপ্তাহিক ছুটির দিন ({weekend}) বনাম সপ্তাহের অন্য দিনগুলোর খরচের তুলনা এবং প্যাটার্ন।
২. কোন ক্যাটাগরিতে সবচেয়ে বেশি অপচয় হচ্ছে এবং কেন।
৩. খরচ কমানোর জন্য ৩টি সুনির্দিষ্ট এবং বাস্তবমুখী পদক্ষেপ।

উত্তরটি বন্ধুত্বপূর্ণ এবং প্রেরণাদায়ক ভাষায় লিখুন। কারেন্সি হিসেবে '{currency.symbol}' ব্যবহার করুন।"""


class AdvisoryAgent:
    """
    Gemini client for the spending advice.

    RESPONSIBILITIES:
    - Build the request from transactions and the local analysis
    - Call the model with a timeout, retrying once

    BOUNDARIES:
    - NEVER touches the store
    - Raises AdvisoryUnavailableError for every model failure
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        """
        Args:
            settings: Gemini settings (loaded from the environment if None)
            model: Anything with an async generate_content_async(prompt).
                   Built from settings if None.
        """
        self._settings = settings or get_settings().gemini
        self._model = model or self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=SYSTEM_INSTRUCTION,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    @retry(
        retry=retry_if_exception_type(AdvisoryUnavailableError),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        reraise=True,
    )
    async def _generate(self, prompt: str) -> str:
        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._settings.timeout_seconds,
            )
            return (response.text or "").strip()
        except asyncio.TimeoutError as e:
            raise AdvisoryUnavailableError(
                f"No answer within {self._settings.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise AdvisoryUnavailableError(str(e)) from e

    async def generate_advice(
        self,
        transactions: list[Transaction],
        currency: CurrencyConfig,
        analysis: Optional[SpendingAnalysis],
        weekend_days: frozenset[int],
    ) -> str:
        prompt = build_prompt(transactions, currency, analysis, weekend_days)
        text = await self._generate(prompt)
        return text or EMPTY_RESPONSE_MESSAGE


class AdvisoryService:
    """
    Gatekeeper in front of the advisory agent.

    The agent is created on first use, so the app starts without a
    Gemini key and only the advice screen reports it missing.
    """

    def __init__(
        self,
        agent: Optional[AdvisoryAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._agent = agent
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app

    @property
    def required_transactions(self) -> int:
        return self._settings.advisory_min_transactions

    def is_unlocked(self, transactions: list[Transaction]) -> bool:
        return len(transactions) >= self.required_transactions

    def unlock_progress(self, transactions: list[Transaction]) -> tuple[int, float]:
        return unlock_progress(len(transactions), self.required_transactions)

    def _get_agent(self) -> AdvisoryAgent:
        if self._agent is None:
            try:
                self._agent = AdvisoryAgent()
            except Exception as e:
                raise AdvisoryUnavailableError(
                    f"Advisory agent could not be configured: {e}"
                ) from e
        return self._agent

    async def request_advice(
        self,
        transactions: list[Transaction],
        currency: CurrencyConfig,
    ) -> AdvisoryResult:
        """
        Ask for advice on the given transactions.

        Raises:
            AdvisoryLockedError: below the transaction threshold (no call made)

        Any model failure comes back as the fallback text with ok=False.
        """
        if not self.is_unlocked(transactions):
            raise AdvisoryLockedError(len(transactions), self.required_transactions)

        snapshot = [t.model_copy() for t in transactions]
        weekend = self._settings.weekend_day_set
        analysis = analyze_spending(snapshot, weekend)

        self._audit.log_change(
            AuditEventType.ADVISORY_REQUESTED, "advisory", None,
            {
                "transactions": len(snapshot),
                "expenses": sum(1 for t in snapshot if t.type == TransactionType.EXPENSE),
            },
        )

        try:
            agent = self._get_agent()
            text = await agent.generate_advice(snapshot, currency, analysis, weekend)
        except AdvisoryUnavailableError as e:
            logger.warning("advisory_unavailable", error=str(e))
            self._audit.log_advisory_failed(str(e))
            return AdvisoryResult(text=FALLBACK_MESSAGE, analysis=None, ok=False)

        return AdvisoryResult(text=text, analysis=analysis, ok=True)
