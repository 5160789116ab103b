"""Tests for the ledger state controller."""

import pytest

from voice_ledger.controller import LedgerNotLoadedError, LedgerStateController
from voice_ledger.models.events import LedgerEventType
from voice_ledger.models.ledger import (
    CaptureTarget,
    LedgerDocument,
    TaxPayerInfo,
    Transaction,
    default_document,
)


class TestLoading:
    """Tests for the load-before-mutate gate."""

    def test_mutations_rejected_before_load(self):
        controller = LedgerStateController()
        with pytest.raises(LedgerNotLoadedError):
            controller.add_transaction()
        with pytest.raises(LedgerNotLoadedError):
            controller.update_info_field("name", "X")
        with pytest.raises(LedgerNotLoadedError):
            controller.reset()

    def test_sample_visible_before_load(self):
        controller = LedgerStateController()
        assert not controller.is_loaded
        assert controller.snapshot() == default_document()

    def test_nothing_stored_keeps_sample(self):
        controller = LedgerStateController()
        controller.finish_loading(None)
        assert controller.is_loaded
        assert controller.generation == 0
        assert controller.transaction_ids() == ["1", "2"]

    def test_stored_document_replaces_sample(self):
        stored = LedgerDocument(
            info=TaxPayerInfo(name="Trần Thị B"),
            transactions=[Transaction(id="x", amount=7)],
        )
        controller = LedgerStateController()
        controller.finish_loading(stored)

        assert controller.generation == 1
        assert controller.snapshot().info.name == "Trần Thị B"

        # The controller keeps its own copy
        stored.info.name = "Changed"
        assert controller.snapshot().info.name == "Trần Thị B"

    def test_load_event(self):
        controller = LedgerStateController()
        recorded = []
        controller.subscribe(recorded.append)
        controller.finish_loading(None)
        assert recorded[0].event_type == LedgerEventType.LEDGER_LOADED
        assert recorded[0].details["from_storage"] is False


class TestTransactions:
    """Tests for transaction mutations."""

    def test_add_uses_defaults(self, controller, today_string):
        transaction_id = controller.add_transaction()
        transaction = controller.get_transaction(transaction_id)
        assert transaction.date == today_string
        assert transaction.description == ""
        assert transaction.amount == 0

    def test_add_appends_in_order(self, controller):
        first = controller.add_transaction(description="a")
        second = controller.add_transaction(description="b")
        assert controller.transaction_ids() == ["1", "2", first, second]

    def test_add_generates_unique_ids(self, controller):
        ids = {controller.add_transaction() for _ in range(20)}
        assert len(ids) == 20
        assert not ids & {"1", "2"}

    def test_add_spoken_sale(self, controller, today_string):
        """Test the sample ledger plus one dictated sale."""
        controller.add_transaction(
            date=today_string,
            description="Bán hàng tạp hóa",
            amount=5000000,
        )
        document = controller.snapshot()
        assert len(document.transactions) == 3
        assert document.transactions[-1].amount == 5000000
        assert document.total_amount == 8000000

    def test_add_coerces_amount(self, controller):
        transaction_id = controller.add_transaction(amount="1.500.000")
        assert controller.get_transaction(transaction_id).amount == 1500000

    @pytest.mark.parametrize(
        "typed,expected",
        [("1.234.567", 1234567), ("abc", 0), ("", 0), (42, 42), (None, 0)],
    )
    def test_update_amount_is_sanitized(self, controller, typed, expected):
        assert controller.update_transaction("1", "amount", typed)
        assert controller.get_transaction("1").amount == expected

    def test_update_text_fields(self, controller):
        controller.update_transaction("1", "description", "Bán rau")
        controller.update_transaction("1", "date", "03/10/2023")
        transaction = controller.get_transaction("1")
        assert transaction.description == "Bán rau"
        assert transaction.date == "03/10/2023"

    def test_update_unknown_id_changes_nothing(self, controller, events):
        before = controller.snapshot()
        assert controller.update_transaction("missing", "amount", "5") is False
        assert controller.snapshot() == before
        assert events == []

    def test_update_unknown_field_rejected(self, controller):
        with pytest.raises(ValueError):
            controller.update_transaction("1", "id", "9")

    def test_remove(self, controller):
        assert controller.remove_transaction("1") is True
        assert controller.transaction_ids() == ["2"]
        assert controller.remove_transaction("1") is False

    def test_ids_survive_removal_and_add(self, controller):
        """Test that a new id never reuses one still in the ledger."""
        controller.remove_transaction("1")
        new_id = controller.add_transaction()
        assert len(set(controller.transaction_ids())) == 2
        assert new_id != "2"


class TestInfoAndReset:
    def test_update_info_field(self, controller, events):
        controller.update_info_field("tax_id", "0101234567")
        assert controller.snapshot().info.tax_id == "0101234567"
        assert events[-1].event_type == LedgerEventType.INFO_UPDATED
        assert events[-1].target == "tax_id"

    def test_unknown_info_field_rejected(self, controller):
        with pytest.raises(ValueError):
            controller.update_info_field("phone", "0900")

    def test_reset_restores_sample(self, controller, events):
        controller.update_info_field("name", "X")
        controller.add_transaction(amount=1)
        generation = controller.generation

        controller.reset()

        assert controller.snapshot() == default_document()
        assert controller.generation == generation + 1
        assert events[-1].event_type == LedgerEventType.LEDGER_RESET


class TestSnapshotsAndEvents:
    def test_snapshot_is_isolated(self, controller):
        snapshot = controller.snapshot()
        snapshot.transactions.clear()
        snapshot.info.name = "Changed"
        assert len(controller.snapshot().transactions) == 2
        assert controller.snapshot().info.name == "Nguyễn Văn A"

    def test_every_mutation_emits_one_event(self, controller, events):
        transaction_id = controller.add_transaction()
        controller.update_transaction(transaction_id, "amount", "10")
        controller.remove_transaction(transaction_id)
        assert [e.event_type for e in events] == [
            LedgerEventType.TRANSACTION_ADDED,
            LedgerEventType.TRANSACTION_UPDATED,
            LedgerEventType.TRANSACTION_REMOVED,
        ]

    def test_failing_listener_does_not_block_others(self, controller, events):
        def broken(event):
            raise RuntimeError("listener bug")

        controller.subscribe(broken)
        controller.add_transaction()
        assert events[-1].event_type == LedgerEventType.TRANSACTION_ADDED

    def test_unsubscribe(self, controller):
        recorded = []
        unsubscribe = controller.subscribe(recorded.append)
        unsubscribe()
        controller.add_transaction()
        assert recorded == []


class TestBusySetAndAvailability:
    def test_acquire_is_exclusive(self, controller):
        target = CaptureTarget.transaction("1")
        assert controller.try_acquire(target)
        assert not controller.try_acquire(target)
        assert controller.is_busy(target)

        controller.release(target)
        assert not controller.is_busy(target)
        assert controller.try_acquire(target)

    def test_targets_are_independent(self, controller):
        assert controller.try_acquire(CaptureTarget.info_field("name"))
        assert controller.try_acquire(CaptureTarget.info_field("address"))
        assert len(controller.busy_targets()) == 2

    def test_mark_ai_unavailable(self, controller):
        assert controller.ai_available
        controller.mark_ai_unavailable()
        assert not controller.ai_available

    def test_starts_unavailable_without_credential(self):
        assert not LedgerStateController(ai_available=False).ai_available
