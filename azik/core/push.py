import json
import logging
from typing import Dict, Optional
import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError
from .config import Settings

logger = logging.getLogger(__name__)


class PushSender:
    """Firebase Cloud Messaging client with its own named Firebase app."""

    APP_NAME = "azik-push"

    def __init__(self, service_account: Optional[Dict] = None, timeout: float = 10.0):
        self.app = None
        if service_account:
            cred = credentials.Certificate(service_account)
            self.app = firebase_admin.initialize_app(cred, {"httpTimeout": timeout}, name=self.APP_NAME)
            logger.info("Firebase push messaging initialized")
        else:
            logger.info("Firebase service account not set - push notifications disabled")

    @classmethod
    def from_settings(cls, settings: Settings) -> "PushSender":
        service_account = None
        if settings.firebase_service_account:
            try:
                service_account = json.loads(settings.firebase_service_account)
            except ValueError as e:
                logger.error("Error parsing Firebase service account: %s", e)
        return cls(service_account, timeout=settings.push_timeout_seconds)

    @property
    def enabled(self) -> bool:
        return self.app is not None

    def send(self, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> bool:
        """Send one push message to a device token. Returns False on failure."""
        if not self.enabled:
            return False

        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data={key: str(value) for key, value in (data or {}).items()},
            token=token,
        )
        try:
            message_id = messaging.send(message, app=self.app)
        except (FirebaseError, ValueError) as e:
            logger.error("Error sending push notification: %s", e)
            return False

        logger.info("Push notification sent: %s", message_id)
        return True

    def close(self) -> None:
        if self.app is not None:
            firebase_admin.delete_app(self.app)
            self.app = None
