"""
Tests for the approvable item boundary and the status mapper strategy.

Covers:
- ApprovableItem.ref
- TableStatusMapper: lookup-table outcomes, None meaning "leave alone"
- StatusMapperRegistry: case-insensitive dispatch, from_table()
"""

from decimal import Decimal

from approval_kernel.domain.approvable import (
    ApprovableItem,
    ApprovableRef,
    StatusMapperRegistry,
    TableStatusMapper,
)


class RecordingUpdater:
    """Collects (ref, status) pairs written by a TableStatusMapper."""

    def __init__(self):
        self.calls = []

    def __call__(self, ref, new_status):
        self.calls.append((ref, new_status))


class TestApprovableItem:

    def test_ref_carries_type_and_id(self):
        item = ApprovableItem("Invoice", "INV-9", Decimal("10"), "USD")
        assert item.ref == ApprovableRef("Invoice", "INV-9")


class TestTableStatusMapper:
    """Tests for the lookup-table mapper."""

    def test_invoice_table_sends_on_approval(self):
        updater = RecordingUpdater()
        mapper = TableStatusMapper({"approved": "sent", "rejected": None}, updater)
        ref = ApprovableRef("invoice", "INV-1")

        mapper.on_approved(ref)
        mapper.on_rejected(ref)

        assert updater.calls == [(ref, "sent")]

    def test_quotation_table_both_outcomes(self):
        updater = RecordingUpdater()
        mapper = TableStatusMapper({"approved": "approved", "rejected": "rejected"}, updater)
        ref = ApprovableRef("quotation", "Q-1")

        mapper.on_rejected(ref)
        mapper.on_approved(ref)

        assert updater.calls == [(ref, "rejected"), (ref, "approved")]

    def test_missing_outcome_is_noop(self):
        updater = RecordingUpdater()
        TableStatusMapper({}, updater).on_approved(ApprovableRef("x", "1"))
        assert updater.calls == []


class TestStatusMapperRegistry:
    """Tests for mapper dispatch."""

    def test_lookup_is_case_insensitive(self):
        mapper = TableStatusMapper({"approved": "sent"}, RecordingUpdater())
        registry = StatusMapperRegistry({"Invoice": mapper})

        assert registry.get("invoice") is mapper
        assert registry.get("INVOICE") is mapper
        assert "invoice" in registry

    def test_unregistered_type_returns_none(self):
        registry = StatusMapperRegistry()
        assert registry.get("quotation") is None
        assert "quotation" not in registry

    def test_register_replaces_existing(self):
        first = TableStatusMapper({}, RecordingUpdater())
        second = TableStatusMapper({}, RecordingUpdater())
        registry = StatusMapperRegistry({"invoice": first})

        registry.register("Invoice", second)

        assert registry.get("invoice") is second

    def test_from_table(self):
        updater = RecordingUpdater()
        registry = StatusMapperRegistry.from_table(
            {
                "quotation": {"approved": "approved", "rejected": "rejected"},
                "invoice": {"approved": "sent", "rejected": None},
            },
            updater,
        )

        registry.get("invoice").on_rejected(ApprovableRef("invoice", "INV-1"))
        registry.get("quotation").on_rejected(ApprovableRef("quotation", "Q-1"))

        assert updater.calls == [(ApprovableRef("quotation", "Q-1"), "rejected")]
