"""User and admin notifications for marketplace events.

This module provides:
- Notification: a message addressed to a user or to the admin reviewers
- Notifier: records notifications through the audit sink

Notifications are persisted as audit entries about the resource they
concern. Delivery (push, email, in-app) is handled by whoever consumes the
audit log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from abathwa.core.types import AuditAction

if TYPE_CHECKING:
    from abathwa.client.audit import AuditSink

logger = logging.getLogger(__name__)

ADMIN_AUDIENCE = "admins"


class NotificationType(str, Enum):
    """Type of notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    PAYMENT = "payment"
    MILESTONE = "milestone"
    OPPORTUNITY = "opportunity"
    AGREEMENT = "agreement"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass
class Notification:
    """Represents a notification to record.

    Attributes:
        title: Short headline.
        message: Body text.
        resource_type: Kind of resource concerned ("payment", "milestone"...).
        resource_id: Id of the resource concerned.
        user_id: Recipient, or None for the admin reviewers.
        details: Extra structured data stored with the notification.
    """

    title: str
    message: str
    resource_type: str
    resource_id: str | None = None
    user_id: str | None = None
    type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.MEDIUM
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def audience(self) -> str:
        return self.user_id or ADMIN_AUDIENCE

    def payload(self) -> dict[str, Any]:
        """Audit details for this notification."""
        return {
            **self.details,
            "title": self.title,
            "message": self.message,
            "notification_type": self.type.value,
            "priority": self.priority.value,
            "audience": self.audience,
        }


class Notifier:
    """Records notifications in the audit log."""

    def __init__(self, audit: AuditSink) -> None:
        self._audit = audit

    def send(self, notification: Notification) -> None:
        """Record one notification."""
        self._audit.append(
            AuditAction.CREATE,
            notification.resource_type,
            resource_id=notification.resource_id,
            user_id=notification.user_id,
            details=notification.payload(),
        )
        logger.info(
            f"Notified {notification.audience}: {notification.title} "
            f"({notification.resource_type}/{notification.resource_id})"
        )

    def notify_admins(
        self,
        title: str,
        message: str,
        *,
        resource_type: str,
        resource_id: str | None,
        priority: NotificationPriority = NotificationPriority.HIGH,
        type: NotificationType = NotificationType.WARNING,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Notify the admin reviewers."""
        self.send(Notification(
            title=title,
            message=message,
            resource_type=resource_type,
            resource_id=resource_id,
            type=type,
            priority=priority,
            details=details or {},
        ))

    def notify_user(
        self,
        user_id: str,
        title: str,
        message: str,
        *,
        resource_type: str,
        resource_id: str | None,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        type: NotificationType = NotificationType.INFO,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Notify a single user."""
        self.send(Notification(
            title=title,
            message=message,
            resource_type=resource_type,
            resource_id=resource_id,
            user_id=user_id,
            type=type,
            priority=priority,
            details=details or {},
        ))
