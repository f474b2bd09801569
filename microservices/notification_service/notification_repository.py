"""
Notification Repository

Data access layer for in-app notifications.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.datastore import DatastoreProtocol

from .models import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationRepository:
    """通知数据访问层"""

    def __init__(self, datastore: DatastoreProtocol):
        self.db = datastore
        self.table = "notifications"

    async def create_notification(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> Notification:
        row = await self.db.insert(self.table, {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "type": NotificationType(type).value,
            "title": title,
            "message": message,
            "link": link,
            "is_read": False,
            "created_at": datetime.now(timezone.utc),
        })
        return self._row_to_notification(row)

    async def list_user_notifications(self, user_id: str, limit: int = 50) -> List[Notification]:
        rows = await self.db.select(
            self.table,
            {"user_id": user_id},
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [self._row_to_notification(r) for r in rows]

    async def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        rows = await self.db.update(
            self.table,
            {"id": notification_id, "user_id": user_id},
            {"is_read": True},
        )
        return bool(rows)

    async def mark_all_as_read(self, user_id: str) -> int:
        rows = await self.db.update(
            self.table,
            {"user_id": user_id, "is_read": False},
            {"is_read": True},
        )
        return len(rows)

    async def get_unread_count(self, user_id: str) -> int:
        rows = await self.db.select(self.table, {"user_id": user_id, "is_read": False}, columns=["id"])
        return len(rows)

    @staticmethod
    def _row_to_notification(row: Dict[str, Any]) -> Notification:
        return Notification(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            type=NotificationType(row["type"]),
            title=row["title"],
            message=row["message"],
            link=row.get("link"),
            is_read=bool(row.get("is_read", False)),
            created_at=row.get("created_at"),
        )


__all__ = ["NotificationRepository"]
