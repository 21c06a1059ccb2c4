from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class MessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)
    receiver_id: Optional[str] = Field(None, description="Required when an admin writes to a vendor")
    thread_id: Optional[str] = None


class AnnouncementCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)


class MessageOut(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    sender_type: str
    receiver_type: str
    message: str
    is_read: bool = False
    is_announcement: bool = False
    vendor_id: Optional[str] = None
    thread_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AnnouncementResult(BaseModel):
    recipients: int


class UnreadCount(BaseModel):
    unread: int
    announcements: int
