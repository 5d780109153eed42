"""Tests for the audit sinks and notifications."""

import pytest

from abathwa.client.audit import AuditEntry, GatewayAuditSink, MemoryAuditSink
from abathwa.client.notifications import (
    ADMIN_AUDIENCE,
    Notification,
    NotificationPriority,
    NotificationType,
    Notifier,
)
from abathwa.core.types import AuditAction, Collection


class TestAuditEntry:
    """Tests for AuditEntry."""

    def test_to_row(self) -> None:
        entry = AuditEntry(
            action_type=AuditAction.CREATE,
            resource_type="milestone",
            resource_id="m1",
            details={"riskLevel": "high"},
        )

        assert entry.to_row() == {
            "action_type": "create",
            "resource_type": "milestone",
            "resource_id": "m1",
            "user_id": None,
            "details_jsonb": {"riskLevel": "high"},
        }


class TestMemoryAuditSink:
    """Tests for MemoryAuditSink."""

    def test_keeps_append_order(self) -> None:
        sink = MemoryAuditSink()
        sink.append(AuditAction.CREATE, "payment", "p1")
        sink.append(AuditAction.UPDATE, "milestone", "m1")
        sink.append(AuditAction.CREATE, "payment", "p2")

        assert [e.resource_id for e in sink.entries] == ["p1", "m1", "p2"]
        assert [e.resource_id for e in sink.by_resource("payment")] == ["p1", "p2"]

    def test_entries_is_a_snapshot(self) -> None:
        sink = MemoryAuditSink()
        sink.append(AuditAction.CREATE, "payment")
        snapshot = sink.entries
        sink.append(AuditAction.CREATE, "payment")

        assert len(snapshot) == 1


class TestGatewayAuditSink:
    """Tests for GatewayAuditSink."""

    def test_inserts_audit_rows(self, gateway) -> None:  # type: ignore[no-untyped-def]
        sink = GatewayAuditSink(gateway)
        sink.append(AuditAction.CREATE, "payment", "p1", details={"amount": 10})

        assert gateway.tables[Collection.AUDIT_LOG][0]["details_jsonb"] == {"amount": 10}
        assert gateway.tables[Collection.AUDIT_LOG][0]["action_type"] == "create"

    def test_failed_append_is_dropped(self, gateway) -> None:  # type: ignore[no-untyped-def]
        """A failing remote append is logged, not raised."""
        gateway.failing.add("insert")
        sink = GatewayAuditSink(gateway)

        sink.append(AuditAction.CREATE, "payment", "p1")

        assert gateway.tables[Collection.AUDIT_LOG] == []

    def test_unexpected_error_propagates(self, gateway, monkeypatch) -> None:  # type: ignore[no-untyped-def]
        """Only gateway failures are swallowed."""
        def broken(*args, **kwargs):  # type: ignore[no-untyped-def]
            raise RuntimeError("bug")

        monkeypatch.setattr(gateway, "insert", broken)
        sink = GatewayAuditSink(gateway)

        with pytest.raises(RuntimeError):
            sink.append(AuditAction.CREATE, "payment")


class TestNotifier:
    """Tests for Notifier."""

    def test_notify_admins(self, audit: MemoryAuditSink) -> None:
        Notifier(audit).notify_admins(
            "Payment verification required",
            "Please verify",
            resource_type="payment",
            resource_id="p1",
            details={"amount": 500},
        )

        (entry,) = audit.entries
        assert entry.resource_type == "payment"
        assert entry.resource_id == "p1"
        assert entry.user_id is None
        assert entry.details["audience"] == ADMIN_AUDIENCE
        assert entry.details["priority"] == "high"
        assert entry.details["notification_type"] == "warning"
        assert entry.details["amount"] == 500

    def test_notify_user(self, audit: MemoryAuditSink) -> None:
        Notifier(audit).notify_user(
            "inv-1",
            "Milestone skipped",
            "A milestone was skipped",
            resource_type="milestone",
            resource_id="m1",
            type=NotificationType.MILESTONE,
        )

        (entry,) = audit.entries
        assert entry.user_id == "inv-1"
        assert entry.details["audience"] == "inv-1"
        assert entry.details["notification_type"] == "milestone"
        assert entry.details["priority"] == "medium"

    def test_payload_keeps_reserved_keys(self) -> None:
        """Notification fields win over same-named detail keys."""
        notification = Notification(
            title="T",
            message="M",
            resource_type="agreement",
            priority=NotificationPriority.URGENT,
            details={"title": "overridden?"},
        )

        assert notification.payload()["title"] == "T"
        assert notification.payload()["priority"] == "urgent"
