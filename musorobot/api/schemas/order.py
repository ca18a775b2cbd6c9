from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

OrderStatus = Literal["new", "in_progress", "completed", "cancelled"]


class OrderRead(BaseModel):
    id: str
    user_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: str
    size_option: str
    bags: list[str] = []
    time_option: str
    custom_time: Optional[str] = None
    amount: int
    status: OrderStatus
    performer_id: Optional[int] = None
    photo_door: Optional[str] = None
    photo_bin: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class DashboardStats(BaseModel):
    total_orders: int
    orders_new: int
    orders_in_progress: int
    orders_completed: int
    orders_cancelled: int
