import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Set
from ..core.database import Database
from ..core.exceptions import NotFoundError
from ..core.mailer import EmailSender, notification_email
from ..core.push import PushSender
from ..schemas.notification import NotificationType

logger = logging.getLogger(__name__)


class DeliveryDispatcher:
    """
    Delivers push and email copies of notifications on detached asyncio tasks.

    Delivery is best-effort: nothing is retried and failures are only logged.
    The blocking SMTP and FCM clients run in worker threads so the request that
    triggered the notification never waits on them.
    """

    def __init__(self, email_sender: EmailSender, push_sender: PushSender):
        self.email_sender = email_sender
        self.push_sender = push_sender
        self._tasks: Set[asyncio.Task] = set()

    def submit(
        self,
        title: str,
        message: str,
        email: Optional[str] = None,
        push_token: Optional[str] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> None:
        task = asyncio.create_task(self._deliver(title, message, email, push_token, data or {}))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(
        self,
        title: str,
        message: str,
        email: Optional[str],
        push_token: Optional[str],
        data: Dict[str, str],
    ) -> None:
        if push_token:
            try:
                await asyncio.to_thread(self.push_sender.send, push_token, title, message, data)
            except Exception:
                logger.exception("Push delivery failed")
        if email:
            try:
                await asyncio.to_thread(self.email_sender.send, email, title, notification_email(title, message))
            except Exception:
                logger.exception("Email delivery failed")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight delivery to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        self.push_sender.close()


class NotificationService:
    def __init__(self, db: Database, dispatcher: DeliveryDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    async def notify(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        related_id: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Record a notification for a user and hand push/email copies to the dispatcher.

        The database row is the source of truth for the in-app list and unread
        count. A failure to write it is logged and does not propagate, so the
        state change that triggered the notification still succeeds.
        """
        notification_data = {
            "user_id": user_id,
            "type": type.value,
            "title": title,
            "message": message,
            "related_id": related_id,
            "is_read": False,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            notification = (await self.db.execute_query(
                table="notifications",
                query_type="insert",
                data=notification_data
            ))[0]
            recipient = await self.db.execute_query(
                table="users",
                query_type="select",
                filters={"id": user_id}
            )
        except Exception:
            logger.exception("Error creating %s notification for user %s", type.value, user_id)
            return None

        if recipient:
            self.dispatcher.submit(
                title,
                message,
                email=recipient[0].get("email"),
                push_token=recipient[0].get("push_token"),
                data={"type": type.value, "relatedId": related_id or ""},
            )
        return notification

    async def list_for_user(self, user_id: str, skip: int = 0, limit: int = 50) -> List[Dict[str, Any]]:
        return await self.db.execute_query(
            table="notifications",
            query_type="select",
            filters={"user_id": user_id},
            order_by={"created_at": "desc"},
            limit=limit,
            offset=skip
        )

    async def unread_count(self, user_id: str) -> int:
        unread = await self.db.execute_query(
            table="notifications",
            query_type="select",
            filters={"user_id": user_id, "is_read": False}
        )
        return len(unread)

    async def mark_read(self, notification_id: str, user_id: str) -> Dict[str, Any]:
        # Filtering on the recipient hides other users' notifications behind a 404
        updated = await self.db.execute_query(
            table="notifications",
            query_type="update",
            filters={"id": notification_id, "user_id": user_id},
            data={"is_read": True}
        )
        if not updated:
            raise NotFoundError("Notification not found")
        return updated[0]

    async def mark_all_read(self, user_id: str) -> int:
        updated = await self.db.execute_query(
            table="notifications",
            query_type="update",
            filters={"user_id": user_id, "is_read": False},
            data={"is_read": True}
        )
        return len(updated)

    async def cleanup(self, retention: timedelta) -> Dict[str, Any]:
        """Delete every notification older than the retention window in one batch."""
        cutoff = datetime.now(timezone.utc) - retention
        deleted = await self.db.execute_query(
            table="notifications",
            query_type="delete",
            filters={"created_at": {"lt": cutoff.isoformat()}}
        )
        logger.info("Deleted %d notifications older than %s", len(deleted), cutoff.isoformat())
        return {"deleted_count": len(deleted), "cutoff": cutoff}
