"""Integration tests for the wired application components."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from khata.auth import AuthMode, hash_password
from khata.models import DateFilterType, DateRange, PaymentMethod, TransactionType
from khata.orchestrator import DashboardFlow, TransactionFlow, create_app_components
from khata.services.storage import InMemoryStorage, JsonFileStorage


class TestCreateAppComponents:
    def test_in_memory(self):
        components = create_app_components(in_memory=True)

        assert isinstance(components.storage, InMemoryStorage)
        assert components.store.state.profiles == []
        assert components.new_auth_gate().mode == AuthMode.LOGGED_OUT
        assert not components.reminders.is_running

    def test_components_share_one_store(self):
        components = create_app_components(in_memory=True)
        components.store.add_profile("রহিম")

        assert "রহিম" in components.portability.export_backup()
        assert components.dashboard.summarize(DateRange(type=DateFilterType.ALL)).totals.expense == 0

    def test_file_storage_survives_restart(self, tmp_path, today):
        first = create_app_components(data_dir=tmp_path)
        assert isinstance(first.storage, JsonFileStorage)
        first.store.add_profile("রহিম")
        first.store.add_transaction(TransactionType.EXPENSE, "খাদ্য", 500, today, note="চা ও নাস্তা")

        second = create_app_components(data_dir=tmp_path)
        assert second.store.state == first.store.state


class TestSessions:
    """Each UI session has its own login state over one shared store."""

    def _components_with_account(self):
        components = create_app_components(in_memory=True)
        components.store.add_profile(
            "রহিম", email="rahim@example.com", password=hash_password("secret1"),
        )
        return components

    def test_gates_are_independent(self):
        components = self._components_with_account()
        first = components.new_auth_gate()
        second = components.new_auth_gate()

        first.choose(AuthMode.LOGIN)
        first.submit_login("rahim@example.com", "secret1")

        assert first.is_logged_in
        assert second.mode == AuthMode.LOGGED_OUT

    def test_reminders_swept_only_while_logged_in(self):
        components = self._components_with_account()
        components.store.add_reminder("বিল দাও", date(2024, 5, 15), "09:30")
        components.store.add_reminder("ডিপিএস জমা", date(2024, 5, 16), "09:30")
        gate = components.new_auth_gate()
        due = datetime(2024, 5, 15, 9, 30)

        assert components.sweep_reminders(gate, due) == []

        gate.choose(AuthMode.LOGIN)
        gate.submit_login("rahim@example.com", "secret1")
        assert [r.task for r in components.sweep_reminders(gate, due)] == ["বিল দাও"]

        gate.logout()
        assert components.sweep_reminders(gate, due.replace(day=16)) == []


class TestDashboardFlow:
    def test_no_profile(self, store):
        summary = DashboardFlow(store).summarize(DateRange())
        assert summary.transactions == []
        assert summary.budgets == []

    def test_summary(self, profile_store, add_expense, today):
        profile_store.set_budget("বাজার", 1000)
        add_expense("বাজার", 400, today)
        add_expense("বাজার", 300, date(2024, 4, 20))
        profile_store.add_transaction(TransactionType.INCOME, "বেতন", 20000, today)

        flow = DashboardFlow(profile_store)
        summary = flow.summarize(DateRange(type=DateFilterType.ALL), today)

        assert len(summary.transactions) == 3
        assert summary.totals.income == Decimal("20000")
        assert summary.totals.expense == Decimal("700")
        assert [(c.category, c.total) for c in summary.breakdown] == [("বাজার", Decimal("700"))]

        # Budgets always use the current month, whatever the range
        [budget] = summary.budgets
        assert budget.spent == Decimal("400")
        assert budget.percent == Decimal("40")

    def test_range_applies(self, profile_store, add_expense, today):
        add_expense("খাদ্য", 100, today)
        add_expense("খাদ্য", 200, date(2024, 4, 20))

        flow = DashboardFlow(profile_store)
        rows = flow.transactions(DateRange(type=DateFilterType.LAST_MONTH), today)
        assert [t.amount for t in rows] == [Decimal("200")]


class TestTransactionFlow:
    def test_keyword_suggestion_then_save(self, profile_store, today):
        flow = TransactionFlow(profile_store)
        lookup = flow.start_entry()
        lookup.on_note_changed("বাস ভাড়া ৫০ টাকা")
        lookup.payment_method = PaymentMethod.NAGAD

        saved = flow.save_entry(lookup, 50, today)

        assert saved.category == "পরিবহন"
        assert saved.note == "বাস ভাড়া ৫০ টাকা"
        assert saved.payment_method == PaymentMethod.NAGAD
        assert profile_store.state.transactions[0].id == saved.id

    def test_history_is_per_profile(self, profile_store, add_expense, today):
        add_expense("খাদ্য", 250, today, note="দুপুরের খাবার")
        profile_store.add_profile("করিম")

        lookup = TransactionFlow(profile_store).start_entry()
        lookup.on_note_changed("দুপুরের")
        assert lookup.historical_match is None

    def test_apply_history_then_save(self, profile_store, add_expense, today):
        add_expense("খাদ্য", 250, today, note="দুপুরের খাবার")
        flow = TransactionFlow(profile_store)

        lookup = flow.start_entry()
        lookup.on_note_changed("দুপুরের")
        assert lookup.apply_historical_match()
        saved = flow.save_entry(lookup, lookup.amount, today)

        assert saved.category == "খাদ্য"
        assert saved.amount == Decimal("250")
        assert len(profile_store.state.transactions) == 2

    def test_category_required(self, profile_store, today):
        flow = TransactionFlow(profile_store)
        lookup = flow.start_entry()
        lookup.on_note_changed("xyz")
        with pytest.raises(ValueError):
            flow.save_entry(lookup, 10, today)
        assert profile_store.state.transactions == []

    def test_quick_payment_keeps_its_category(self, profile_store, today):
        flow = TransactionFlow(profile_store)
        lookup = flow.quick_payment("বিল")
        lookup.on_note_changed("বাস")
        assert flow.save_entry(lookup, 1200, today).category == "বিল"

    def test_edit_existing(self, profile_store, add_expense, today):
        original = add_expense("খাদ্য", 100, today, note="চা")
        flow = TransactionFlow(profile_store)

        lookup = flow.start_entry(original.type, original.category)
        lookup.on_note_changed("চা ও নাস্তা")
        updated = flow.save_entry(lookup, "150.5", today, transaction_id=original.id)

        assert updated.id == original.id
        assert updated.amount == Decimal("150.5")
        assert updated.note == "চা ও নাস্তা"
        assert len(profile_store.state.transactions) == 1
