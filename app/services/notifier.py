# app/services/notifier.py
"""
Outbound notifications for committed transitions.

Delivery (email, push) lives in another service. This module only publishes
``{event_type, entity_id, recipient_id}`` facts. Notifier failures are logged
and never propagate into the transition that triggered them.
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


class NotificationEvent(str, Enum):
    OFFER_CREATED = "offer.created"
    OFFER_COUNTERED = "offer.countered"
    OFFER_RE_COUNTERED = "offer.re_countered"
    OFFER_ACCEPTED = "offer.accepted"
    OFFER_DECLINED = "offer.declined"
    OFFER_WITHDRAWN = "offer.withdrawn"
    OFFER_EXPIRED = "offer.expired"
    OFFER_EXPIRING_SOON = "offer.expiring_soon"
    OFFER_RESENT = "offer.resent"
    COLLABORATION_REQUESTED = "collaboration.requested"
    COLLABORATION_ACTIVATED = "collaboration.activated"
    AGREEMENT_SIGNED = "agreement.signed"
    AGREEMENT_EXECUTED = "agreement.executed"
    AGREEMENT_REDRAFTED = "agreement.redrafted"
    PLATFORM_FEE_PAID = "platform_fee.paid"
    CONTENT_SUBMITTED = "content.submitted"
    CONTENT_APPROVED = "content.approved"
    CONTENT_CHANGES_REQUESTED = "content.changes_requested"
    CONTENT_DEADLINE_APPROACHING = "content.deadline_approaching"
    CONTENT_DEADLINE_TODAY = "content.deadline_today"
    CONTENT_DEADLINE_PASSED = "content.deadline_passed"
    PAYMENT_COMPLETED = "payment.completed"
    COLLABORATION_COMPLETED = "collaboration.completed"
    TRAFFIC_BONUS_EARNED = "traffic_bonus.earned"
    TRAFFIC_BONUS_PAID = "traffic_bonus.paid"
    CANCELLATION_REQUESTED = "cancellation.requested"
    CANCELLATION_ACCEPTED = "cancellation.accepted"
    CANCELLATION_DECLINED = "cancellation.declined"


class Notifier(ABC):
    @abstractmethod
    def notify(self, event_type: NotificationEvent, entity_id: str, recipient_id: str) -> None:
        """Publish one notification. May raise; callers use dispatch_notification."""
        pass


class LoggingNotifier(Notifier):
    """Used when no broker is configured (local runs)."""

    def notify(self, event_type: NotificationEvent, entity_id: str, recipient_id: str) -> None:
        logger.info(
            f"Notification {event_type.value} for {entity_id} -> {recipient_id}"
        )


class KafkaNotifier(Notifier):
    def __init__(self, producer, topic: str):
        self._producer = producer
        self._topic = topic

    def notify(self, event_type: NotificationEvent, entity_id: str, recipient_id: str) -> None:
        payload = {
            "event_type": event_type.value,
            "entity_id": entity_id,
            "recipient_id": recipient_id,
            "occurred_at": datetime.now(timezone.utc).isoformat(),
        }
        # send() is asynchronous; the producer batches in its own thread
        self._producer.send(self._topic, key=entity_id, value=payload)


def dispatch_notification(
    notifier: Optional[Notifier],
    event_type: NotificationEvent,
    entity_id: str,
    recipient_id: Optional[str],
) -> None:
    """Fire-and-forget wrapper. Must only be called after the transition committed."""
    if notifier is None or not recipient_id:
        return
    try:
        notifier.notify(event_type, entity_id, recipient_id)
    except Exception:
        logger.error(
            f"Failed to send {event_type.value} notification for {entity_id}",
            exc_info=True,
        )


class NotificationOutbox:
    """
    Collects notifications staged inside a transaction and sends them once
    it has committed. Shared by the engines taking part in one request.
    """

    def __init__(self, notifier: Optional[Notifier]):
        self.notifier = notifier
        self._pending = []

    def stage(self, event_type: NotificationEvent, entity_id: str, *recipient_ids: Optional[str]) -> None:
        for recipient_id in recipient_ids:
            self._pending.append((event_type, entity_id, recipient_id))

    def discard(self) -> None:
        self._pending.clear()

    def flush(self) -> None:
        pending, self._pending = self._pending, []
        for event_type, entity_id, recipient_id in pending:
            dispatch_notification(self.notifier, event_type, entity_id, recipient_id)


_notifier: Optional[Notifier] = None
_notifier_lock = threading.Lock()


def get_notifier() -> Notifier:
    """Process-wide notifier: Kafka when a broker is configured, logging otherwise."""
    global _notifier
    if _notifier is not None:
        return _notifier
    with _notifier_lock:
        if _notifier is None:
            if settings.KAFKA_BOOTSTRAP_SERVERS:
                try:
                    from app.core.kafka_producer import create_kafka_producer

                    _notifier = KafkaNotifier(create_kafka_producer(), settings.NOTIFICATIONS_TOPIC)
                    logger.info("Kafka notifier initialized")
                except Exception:
                    logger.error(
                        "Kafka unavailable, falling back to logging notifier",
                        exc_info=True,
                    )
                    _notifier = LoggingNotifier()
            else:
                _notifier = LoggingNotifier()
    return _notifier
