"""Tests for the State Store: load recovery, mutation and domain operations."""

import base64
import json
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from khata.config import AppSettings
from khata.models import (
    AppState,
    AuditEventType,
    CurrencyPosition,
    SoundKind,
    Theme,
    TransactionType,
    default_state,
)
from khata.services.storage import InMemoryStorage, JsonFileStorage
from khata.store import (
    CategoryExistsError,
    CategoryNotFoundError,
    InvalidSettingError,
    ProfileNotFoundError,
    StateStore,
    TransactionNotFoundError,
)


def _profile_doc(pid="p1", name="রহিম", **extra):
    return {"id": pid, "name": name, "avatar": "😊", "color": "99, 102, 241",
            "budgets": {}, **extra}


class TestLoad:
    """load() never fails on bad content."""

    def test_absent_document_gives_defaults(self, storage, audit_logger):
        store = StateStore(storage, audit_logger)
        assert store.load() == default_state()
        assert storage.write_count == 0

    @pytest.mark.parametrize("text", ["not json {", "[1, 2, 3]", "\"hello\"", "null"])
    def test_unusable_document_gives_defaults(self, audit_logger, text):
        store = StateStore(InMemoryStorage(text), audit_logger)
        assert store.load() == default_state()

    def test_readable_keys_merged_over_defaults(self, audit_logger, audit_storage):
        doc = {
            "profiles": [_profile_doc()],
            "activeProfileId": "p1",
            "theme": "purple",
            "currency": {"symbol": "$", "position": "suffix"},
        }
        store = StateStore(InMemoryStorage(json.dumps(doc)), audit_logger)
        state = store.load()

        assert state.profiles[0].name == "রহিম"
        assert state.theme == Theme.DARK
        assert state.currency.symbol == "$"
        assert state.currency.position == CurrencyPosition.SUFFIX

        recovered = [e for e in audit_storage.get_recent_events()
                     if e.event_type == AuditEventType.STATE_RECOVERED]
        assert recovered
        assert recovered[0].details["dropped_keys"] == ["theme"]

    def test_old_document_without_newer_fields(self, audit_logger):
        """Missing optional top-level keys take their defaults."""
        doc = {"profiles": [_profile_doc()], "transactions": []}
        store = StateStore(InMemoryStorage(json.dumps(doc)), audit_logger)
        state = store.load()

        assert state.active_profile_id == "p1"
        assert state.notification_settings.enable_reminders is True
        assert len(state.categories.expense) == 10

    def test_malformed_list_falls_back_as_a_whole(self, audit_logger):
        doc = {
            "profiles": [_profile_doc()],
            "transactions": [{"id": "t1", "amount": "lots"}],
        }
        store = StateStore(InMemoryStorage(json.dumps(doc)), audit_logger)
        state = store.load()
        assert state.transactions == []
        assert len(state.profiles) == 1

    def test_broken_invariant_drops_only_profiles(self, audit_logger, audit_storage):
        doc = {
            "profiles": [_profile_doc("same"), _profile_doc("same", "করিম")],
            "activeProfileId": "same",
            "transactions": [{
                "id": "t1", "profileId": "same", "type": "expense",
                "category": "খাদ্য", "amount": 120, "date": "2024-05-01",
            }],
            "reminders": [{"id": "r1", "profileId": "same", "task": "বিল দাও",
                           "date": "2024-05-20"}],
            "theme": "light",
            "currency": {"symbol": "$", "position": "suffix"},
        }
        store = StateStore(InMemoryStorage(json.dumps(doc)), audit_logger)
        state = store.load()

        assert state.profiles == []
        assert state.active_profile_id == ""
        assert [t.id for t in state.transactions] == ["t1"]
        assert [r.id for r in state.reminders] == ["r1"]
        assert state.theme == Theme.LIGHT
        assert state.currency.symbol == "$"

        recovered = [e for e in audit_storage.get_recent_events()
                     if e.event_type == AuditEventType.STATE_RECOVERED]
        assert recovered[0].details["dropped_keys"] == ["profiles"]

    def test_email_case_variants_are_separate_profiles(self, audit_logger):
        doc = {
            "profiles": [
                _profile_doc("p1", email="Rahim@x.com"),
                _profile_doc("p2", "করিম", email="rahim@x.com"),
            ],
            "transactions": [{
                "id": "t1", "profileId": "p2", "type": "expense",
                "category": "খাদ্য", "amount": 120, "date": "2024-05-01",
            }],
        }
        store = StateStore(InMemoryStorage(json.dumps(doc)), audit_logger)
        state = store.load()

        assert [p.id for p in state.profiles] == ["p1", "p2"]
        assert len(state.transactions) == 1

    def test_cleared_reminder_time_is_kept_as_untimed(self, audit_logger):
        doc = {
            "profiles": [_profile_doc()],
            "reminders": [{"id": "r1", "profileId": "p1", "task": "বিল দাও",
                           "date": "2024-05-20", "remindTime": "",
                           "isCompleted": False}],
        }
        store = StateStore(InMemoryStorage(json.dumps(doc)), audit_logger)
        state = store.load()

        [reminder] = state.reminders
        assert reminder.remind_time is None
        assert reminder.task == "বিল দাও"


class TestMutate:
    """mutate(): copy, validate, persist, swap."""

    def test_every_mutation_is_persisted(self, store, storage):
        store.add_profile("রহিম")
        assert storage.write_count == 1

        persisted = AppState.model_validate_json(storage.read())
        assert persisted == store.state

    def test_noop_mutation_still_writes(self, store, storage):
        store.mutate(lambda state: None)
        assert storage.write_count == 1

    def test_failing_transform_leaves_state_unchanged(self, profile_store, storage):
        before = profile_store.state
        writes = storage.write_count

        def boom(state):
            state.profiles.clear()
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            profile_store.mutate(boom)

        assert profile_store.state == before
        assert len(profile_store.state.profiles) == 1
        assert storage.write_count == writes

    def test_invalid_result_rejected(self, profile_store):
        before = profile_store.state

        def rename_empty(state):
            state.profiles[0].name = ""

        with pytest.raises(ValidationError):
            profile_store.mutate(rename_empty)
        assert profile_store.state == before

    def test_snapshots_are_not_mutated(self, profile_store):
        snapshot = profile_store.state
        profile_store.add_profile("করিম")
        assert len(snapshot.profiles) == 1

    def test_replace_is_wholesale(self, profile_store):
        profile_store.replace(default_state())
        assert profile_store.state.profiles == []

    def test_json_file_round_trip(self, tmp_path, audit_logger):
        path = tmp_path / "data" / "khoroch_khata_data.json"
        first = StateStore(JsonFileStorage(path), audit_logger)
        first.load()
        first.add_profile("রহিম")
        first.add_transaction(TransactionType.EXPENSE, "খাদ্য", 500, date(2024, 5, 1),
                              note="চা ও নাস্তা")

        second = StateStore(JsonFileStorage(path), audit_logger)
        assert second.load() == first.state
        assert not list(path.parent.glob("*.tmp"))


class TestProfiles:
    """Profile operations."""

    def test_add_profile_becomes_active(self, profile_store):
        second = profile_store.add_profile("করিম")
        assert profile_store.state.active_profile_id == second.id

    def test_update_profile(self, profile_store):
        pid = profile_store.state.active_profile_id
        updated = profile_store.update_profile(pid, name="রহিম উদ্দিন", avatar="😎")
        assert updated.name == "রহিম উদ্দিন"
        assert updated.avatar == "😎"

    def test_update_profile_rejects_other_fields(self, profile_store):
        pid = profile_store.state.active_profile_id
        with pytest.raises(InvalidSettingError):
            profile_store.update_profile(pid, password="secret")

    def test_delete_profile_cascades(self, profile_store, today):
        first = profile_store.state.active_profile_id
        profile_store.add_transaction(TransactionType.EXPENSE, "বিল", 100, today)
        profile_store.add_reminder("বিল দাও", today)
        second = profile_store.add_profile("করিম")
        profile_store.add_transaction(TransactionType.EXPENSE, "বিল", 50, today)

        profile_store.delete_profile(first)

        state = profile_store.state
        assert [p.id for p in state.profiles] == [second.id]
        assert all(t.profile_id == second.id for t in state.transactions)
        assert state.reminders == []

    def test_deleting_active_falls_to_first_remaining(self, profile_store):
        first = profile_store.state.active_profile_id
        second = profile_store.add_profile("করিম")
        third = profile_store.add_profile("সালমা")

        profile_store.delete_profile(third.id)
        assert profile_store.state.active_profile_id == first

        profile_store.switch_profile(second.id)
        profile_store.delete_profile(first)
        assert profile_store.state.active_profile_id == second.id

    def test_deleting_last_profile(self, profile_store):
        profile_store.delete_profile(profile_store.state.active_profile_id)
        assert profile_store.state.active_profile_id == ""
        assert profile_store.active_profile is None

    def test_switch_unknown_profile(self, profile_store):
        with pytest.raises(ProfileNotFoundError):
            profile_store.switch_profile("ghost")

    def test_set_budget_and_remove(self, profile_store):
        profile_store.set_budget("বাজার", 1000)
        assert profile_store.active_profile.budgets == {"বাজার": Decimal("1000")}

        profile_store.set_budget("বাজার", 0)
        assert profile_store.active_profile.budgets == {}

    def test_negative_budget_rejected(self, profile_store):
        with pytest.raises(InvalidSettingError):
            profile_store.set_budget("বাজার", -5)

    def test_reset_password(self, profile_store):
        profile = profile_store.reset_password(" RAHIM@example.com ", "new-credential")
        assert profile.password == "new-credential"

    def test_reset_password_unknown_email(self, profile_store):
        with pytest.raises(ProfileNotFoundError):
            profile_store.reset_password("nobody@example.com", "x")


class TestTransactions:
    """Transaction operations."""

    def test_requires_active_profile(self, store, today):
        with pytest.raises(ProfileNotFoundError):
            store.add_transaction(TransactionType.EXPENSE, "খাদ্য", 500, today)

    def test_new_transactions_are_prepended(self, add_expense, profile_store, today):
        first = add_expense("খাদ্য", 100, today)
        second = add_expense("বিল", 200, today)
        ids = [t.id for t in profile_store.state.transactions]
        assert ids == [second.id, first.id]
        assert first.profile_id == profile_store.state.active_profile_id

    def test_update_preserves_identity(self, add_expense, profile_store, today):
        original = add_expense("খাদ্য", 100, today)
        profile_store.add_profile("করিম")

        updated = profile_store.update_transaction(
            original.id, amount=Decimal("150"), note="দুপুরের খাবার",
        )
        assert updated.id == original.id
        assert updated.profile_id == original.profile_id
        assert updated.amount == Decimal("150")

    def test_update_cannot_change_owner(self, add_expense, profile_store, today):
        original = add_expense("খাদ্য", 100, today)
        with pytest.raises(InvalidSettingError):
            profile_store.update_transaction(original.id, profile_id="other")

    def test_delete_transaction(self, add_expense, profile_store, today):
        t = add_expense("খাদ্য", 100, today)
        profile_store.delete_transaction(t.id)
        assert profile_store.state.transactions == []
        with pytest.raises(TransactionNotFoundError):
            profile_store.delete_transaction(t.id)


class TestReminders:
    def test_add_toggle_delete(self, profile_store, today):
        reminder = profile_store.add_reminder("ডিপিএস জমা", today, "10:00")
        assert reminder.is_completed is False

        assert profile_store.toggle_reminder(reminder.id).is_completed is True
        assert profile_store.toggle_reminder(reminder.id).is_completed is False

        profile_store.delete_reminder(reminder.id)
        assert profile_store.state.reminders == []


class TestCategories:
    """Category operations never touch transactions."""

    def test_add_category_trims(self, store):
        category = store.add_category(TransactionType.EXPENSE, "  ভাড়া বাসা  ", "fa-house")
        assert category.name == "ভাড়া বাসা"
        assert "ভাড়া বাসা" in store.state.categories.names(TransactionType.EXPENSE)

    def test_collision_is_case_insensitive(self, store):
        store.add_category(TransactionType.EXPENSE, "Rent")
        before = store.state
        with pytest.raises(CategoryExistsError):
            store.add_category(TransactionType.EXPENSE, " rent ")
        assert store.state == before

    def test_same_name_in_other_type_is_fine(self, store):
        store.add_category(TransactionType.INCOME, "বাজার")
        assert "বাজার" in store.state.categories.names(TransactionType.INCOME)

    def test_delete_keeps_transactions(self, add_expense, profile_store, today):
        t = add_expense("খাদ্য", 100, today)
        profile_store.delete_category(TransactionType.EXPENSE, "খাদ্য")

        assert "খাদ্য" not in profile_store.state.categories.names(TransactionType.EXPENSE)
        assert profile_store.state.transactions[0].category == "খাদ্য"
        assert profile_store.state.transactions[0].id == t.id

    def test_rename_keeps_transactions(self, add_expense, profile_store, today):
        add_expense("খাদ্য", 100, today)
        profile_store.update_category(TransactionType.EXPENSE, "খাদ্য", name="খাবার")

        assert "খাবার" in profile_store.state.categories.names(TransactionType.EXPENSE)
        assert profile_store.state.transactions[0].category == "খাদ্য"

    def test_rename_into_existing_name(self, store):
        with pytest.raises(CategoryExistsError):
            store.update_category(TransactionType.EXPENSE, "খাদ্য", name="বিল")

    def test_delete_unknown(self, store):
        with pytest.raises(CategoryNotFoundError):
            store.delete_category(TransactionType.INCOME, "লটারি")


class TestSettings:
    def test_currency(self, store):
        store.set_currency("$", CurrencyPosition.SUFFIX)
        assert store.state.currency.symbol == "$"
        assert store.state.currency.position == CurrencyPosition.SUFFIX

    def test_toggle_theme(self, store):
        assert store.toggle_theme() == Theme.LIGHT
        assert store.toggle_theme() == Theme.DARK

    def test_accent_color(self, store):
        store.set_accent_color("16, 185, 129")
        assert store.state.accent_color == "16, 185, 129"
        with pytest.raises(InvalidSettingError):
            store.set_accent_color("#10b981")
        with pytest.raises(InvalidSettingError):
            store.set_accent_color("300, 0, 0")

    def test_toggle_notification_preference(self, store):
        assert store.toggle_notification_preference("enableReminders") is False
        assert store.state.notification_settings.enable_reminders is False
        with pytest.raises(InvalidSettingError):
            store.toggle_notification_preference("enableFireworks")

    def test_notification_sound_size_limit(self, storage, audit_logger):
        store = StateStore(storage, audit_logger, settings=AppSettings(max_sound_size_mb=0.001))
        small = "data:audio/mpeg;base64," + base64.b64encode(b"x" * 100).decode()
        large = "data:audio/mpeg;base64," + base64.b64encode(b"x" * 5000).decode()

        store.set_notification_sound(SoundKind.REMINDER, small)
        assert store.state.notification_settings.sounds.reminder == small

        with pytest.raises(InvalidSettingError):
            store.set_notification_sound(SoundKind.BUDGET, large)
        assert store.state.notification_settings.sounds.budget is None

        store.set_notification_sound(SoundKind.REMINDER, None)
        assert store.state.notification_settings.sounds.reminder is None
