import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Optional
from uuid import uuid4

from servicematch.models import Booking, NotificationRecord
from servicematch.services.push_sender import PushSender, push_sender

logger = logging.getLogger(__name__)


class NotificationStore:
    """In-app notification inbox with best-effort push delivery."""

    def __init__(self, sender: Optional[PushSender] = None) -> None:
        self._lock = Lock()
        self._sender = sender or push_sender
        self._notifications: List[NotificationRecord] = []
        self._device_tokens: Dict[str, set[str]] = {}

    def register_device_token(self, user_id: str, device_token: str) -> None:
        token = device_token.strip()
        if not token:
            return
        with self._lock:
            self._device_tokens.setdefault(user_id, set()).add(token)

    def create(
        self,
        user_id: str,
        title: str,
        body: str,
        category: str = "system",
        deep_link: Optional[str] = None,
    ) -> NotificationRecord:
        record = NotificationRecord(
            id=f"ntf_{uuid4().hex[:10]}",
            user_id=user_id,
            title=title,
            body=body,
            category=category,  # type: ignore[arg-type]
            created_at=datetime.now(timezone.utc).isoformat(),
            deep_link=deep_link,
        )
        with self._lock:
            self._notifications.insert(0, record)
            tokens = sorted(self._device_tokens.get(user_id, set()))
        invalid = self._sender.send(
            tokens=tokens,
            title=title,
            body=body,
            data={"notification_id": record.id, "category": category, "deep_link": deep_link or ""},
        )
        if invalid:
            with self._lock:
                self._device_tokens.get(user_id, set()).difference_update(invalid)
        return record

    def notify_booking_created(self, booking: Booking) -> None:
        """Fire-and-forget hook run after a booking commit; failures are logged only."""
        try:
            self.create(
                user_id=booking.provider_id,
                title="New booking request",
                body=f"{booking.category.title()} on {booking.scheduled_date} at {booking.start_time} "
                f"in {booking.location.area}",
                category="booking",
                deep_link=f"booking:{booking.id}",
            )
            self.create(
                user_id=booking.client_id,
                title="Booking received",
                body=f"Booking {booking.booking_number} is pending provider confirmation",
                category="booking",
                deep_link=f"booking:{booking.id}",
            )
        except Exception:
            logger.exception("Booking notification failed for %s", booking.id)

    def notify_status_changed(self, booking: Booking, actor_user_id: str) -> None:
        try:
            for user_id in {booking.client_id, booking.provider_id}:
                if user_id and user_id != actor_user_id:
                    self.create(
                        user_id=user_id,
                        title="Booking updated",
                        body=f"Booking {booking.booking_number} is now {booking.status}",
                        category="booking",
                        deep_link=f"booking:{booking.id}",
                    )
        except Exception:
            logger.exception("Status notification failed for %s", booking.id)

    def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        category: Optional[str] = None,
        limit: int = 100,
    ) -> List[NotificationRecord]:
        with self._lock:
            rows = [n for n in self._notifications if n.user_id == user_id]
        if unread_only:
            rows = [n for n in rows if not n.read]
        if category:
            rows = [n for n in rows if n.category == category]
        return rows[:limit]

    def unread_count(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for n in self._notifications if n.user_id == user_id and not n.read)

    def mark_all_read(self, user_id: str) -> int:
        updated = 0
        with self._lock:
            for idx, row in enumerate(self._notifications):
                if row.user_id == user_id and not row.read:
                    self._notifications[idx] = row.model_copy(update={"read": True})
                    updated += 1
        return updated

    def mark_read(self, user_id: str, notification_id: str) -> Optional[NotificationRecord]:
        with self._lock:
            for idx, row in enumerate(self._notifications):
                if row.id == notification_id and row.user_id == user_id:
                    updated = row.model_copy(update={"read": True})
                    self._notifications[idx] = updated
                    return updated
        return None


notification_store = NotificationStore()
