import logging
import os
from threading import Lock
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

INVALID_TOKEN_MARKERS = ("registration token", "invalid argument", "not found")


class PushSender:
    """Firebase Cloud Messaging fan-out; disabled unless FIREBASE_CREDENTIALS_PATH is set."""

    def __init__(self, credentials_path: Optional[str] = None) -> None:
        self._lock = Lock()
        self._credentials_path = credentials_path
        self._initialized = False
        self._messaging: Any = None

    @property
    def enabled(self) -> bool:
        self._ensure_initialized()
        return self._messaging is not None

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            self._initialized = True
            path = (self._credentials_path or os.getenv("FIREBASE_CREDENTIALS_PATH", "")).strip()
            if not path:
                logger.info("Push sender disabled: FIREBASE_CREDENTIALS_PATH not set")
                return
            try:
                import firebase_admin
                from firebase_admin import credentials, messaging

                if not firebase_admin._apps:  # pylint: disable=protected-access
                    firebase_admin.initialize_app(credentials.Certificate(path))
                self._messaging = messaging
                logger.info("Push sender initialized")
            except Exception:
                logger.exception("Push sender disabled: Firebase init failed")

    def send(self, tokens: List[str], title: str, body: str, data: Dict[str, str]) -> List[str]:
        """Returns the tokens Firebase rejected as invalid so callers can forget them."""
        if not tokens or not self.enabled:
            return []
        # Booking alerts wake the provider app; everything else rides normal priority.
        priority = "high" if data.get("category") == "booking" else "normal"
        try:
            batch = self._messaging.send_each_for_multicast(
                self._messaging.MulticastMessage(
                    notification=self._messaging.Notification(title=title, body=body),
                    android=self._messaging.AndroidConfig(priority=priority),
                    tokens=tokens,
                    data=data,
                )
            )
        except Exception:
            logger.exception("Push send failed")
            return []
        invalid: List[str] = []
        for token, response in zip(tokens, batch.responses):
            if response.success:
                continue
            error_text = str(response.exception).lower() if response.exception else ""
            if any(marker in error_text for marker in INVALID_TOKEN_MARKERS):
                invalid.append(token)
        return invalid


push_sender = PushSender()
