from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum

from config.constants import META_VALUE_MAX_LENGTH


class OrderStatus(str, Enum):
    REQUESTED = "requested"
    IN_PROGRESS = "inProgress"
    ADVERTISER_APPROVAL = "advertiserApproval"
    COMPLETED = "completed"
    REJECTED = "rejected"


class OrderType(str, Enum):
    GUEST_POST = "guestPost"
    LINK_INSERTION = "linkInsertion"
    WRITING_GUEST_POST = "writingGuestPost"


class CartItem(BaseModel):
    website_id: str
    type: OrderType
    price: Optional[float] = Field(None, gt=0)
    selected_post_id: Optional[str] = None


class PlaceOrdersRequest(BaseModel):
    items: List[CartItem] = Field(default_factory=list)
    idempotency_key: Optional[str] = None


class StatusUpdate(BaseModel):
    status: OrderStatus
    note: Optional[str] = Field(None, max_length=META_VALUE_MAX_LENGTH)
    rejection_reason: Optional[str] = Field(None, max_length=META_VALUE_MAX_LENGTH)


class RejectionReasonPatch(BaseModel):
    rejection_reason: str = Field(..., min_length=1, max_length=META_VALUE_MAX_LENGTH)
