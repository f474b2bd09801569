"""
Notification Service Data Models

定义通知服务的数据模型：应用内通知、邮件内容、分发结果
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ====================
# 枚举类型定义
# ====================

class NotificationType(str, Enum):
    """通知类型"""
    SHIPMENT_UPDATE = "shipment_update"
    TICKET_REPLY = "ticket_reply"
    SYSTEM = "system"


class ShipmentChangeKind(str, Enum):
    """Kind of shipment mutation being announced"""
    STATUS_CHANGED = "status_changed"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_REVERTED = "payment_reverted"
    MOVEMENT = "movement"


# ====================
# 核心数据模型
# ====================

class Notification(BaseModel):
    """应用内通知"""
    id: str
    user_id: str = Field(..., description="Recipient user ID")
    type: NotificationType
    title: str
    message: str
    link: Optional[str] = Field(None, description="In-app deep link, e.g. /track/PFX-12345678")
    is_read: bool = False
    created_at: Optional[datetime] = None


class EmailContent(BaseModel):
    """Rendered email"""
    subject: str
    text: str
    html: Optional[str] = None


class DispatchResult(BaseModel):
    """Outcome of one dispatcher call; never carries an exception"""
    notified_user_ids: List[str] = Field(default_factory=list)
    emails_queued: int = 0
    suppressed: bool = False
    failed_paths: List[str] = Field(default_factory=list)

    @property
    def notification_count(self) -> int:
        return len(self.notified_user_ids)

    def merge(self, other: "DispatchResult") -> "DispatchResult":
        self.notified_user_ids.extend(other.notified_user_ids)
        self.emails_queued += other.emails_queued
        self.suppressed = self.suppressed or other.suppressed
        self.failed_paths.extend(other.failed_paths)
        return self


# ====================
# 响应模型
# ====================

class NotificationListResponse(BaseModel):
    """Notification list for the effective user"""
    notifications: List[Notification] = Field(default_factory=list)
    count: int = 0
    unread_count: int = 0


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkReadResponse(BaseModel):
    success: bool
    updated: int = 0


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    dependencies: Dict[str, str] = Field(default_factory=dict)


class ServiceInfo(BaseModel):
    """Service information"""
    service: str
    version: str
    description: str
    capabilities: List[str] = Field(default_factory=list)
    routes: List[str] = Field(default_factory=list)
