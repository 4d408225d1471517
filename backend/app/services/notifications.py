"""Best-effort quiz event notifications.

The engine hands events to a sink and never waits on delivery. The queue-backed
sink enqueues :func:`deliver_quiz_notification` for the RQ worker, which stores
one notification row per event. Sink failures are logged and dropped.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Protocol

from app.core.config import settings
from app.core.queue import get_queue

log = logging.getLogger(__name__)

SUBMISSION_RECORDED = "submission.recorded"
QUIZ_ENDED = "quiz.ended"
QUIZ_ACTIVATED = "quiz.activated"


@dataclass(frozen=True)
class QuizEvent:
    event_type: str
    quiz_id: str
    recipient_id: str
    message: str
    meta: dict = field(default_factory=dict)


class NotificationSink(Protocol):
    def notify(self, event: QuizEvent) -> None: ...


class NullNotificationSink:
    def notify(self, event: QuizEvent) -> None:
        return None


class QueueNotificationSink:
    def __init__(self, queue_name: str | None = None) -> None:
        self.queue_name = queue_name or settings.rq_queue_default

    def notify(self, event: QuizEvent) -> None:
        try:
            q = get_queue(self.queue_name)
            q.enqueue(
                deliver_quiz_notification,
                event_type=event.event_type,
                quiz_id=event.quiz_id,
                recipient_id=event.recipient_id,
                message=event.message,
                job_timeout=60,
                result_ttl=60 * 60,
                failure_ttl=60 * 60 * 24,
            )
        except Exception:
            log.warning("notification enqueue failed event=%s quiz_id=%s", event.event_type, event.quiz_id, exc_info=True)


def get_notification_sink() -> NotificationSink:
    if not settings.notifications_enabled:
        return NullNotificationSink()
    return QueueNotificationSink()


def safe_notify(sink: NotificationSink | None, event: QuizEvent) -> None:
    if sink is None:
        return
    try:
        sink.notify(event)
    except Exception:
        log.warning("notification sink failed event=%s quiz_id=%s", event.event_type, event.quiz_id, exc_info=True)


def deliver_quiz_notification(*, event_type: str, quiz_id: str, recipient_id: str, message: str) -> dict:
    """RQ job: persist a notification for the recipient."""
    from app.db.session import SessionLocal
    from app.models.notification import QuizNotification

    try:
        qid = uuid.UUID(str(quiz_id))
    except ValueError:
        qid = None

    with SessionLocal() as db:
        row = QuizNotification(recipient_id=str(recipient_id), quiz_id=qid, event_type=str(event_type), message=str(message))
        db.add(row)
        db.commit()
        log.info("notification stored event=%s recipient=%s", event_type, recipient_id)
        return {"ok": True, "notification_id": str(row.id)}
