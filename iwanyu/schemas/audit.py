from datetime import datetime
from enum import Enum
from pydantic import BaseModel


class AuditResource(str, Enum):
    VENDOR = "vendor"
    PRODUCT = "product"
    ORDER = "order"
    PAYOUT = "payout"
    MESSAGE = "message"


class AuditLogOut(BaseModel):
    id: str
    action: str
    resource_type: AuditResource
    resource_id: str | None = None
    user_id: str | None = None
    user_name: str | None = None
    user_role: str | None = None
    details: dict | list | None = None
    created_at: datetime
