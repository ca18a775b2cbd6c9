"""Admin dashboard API — order list, status corrections and counters."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from musorobot.api.db.database import get_db
from musorobot.api.schemas import DashboardStats, OrderRead, OrderStatus, OrderStatusUpdate
from musorobot.api.services import order_store

logger = logging.getLogger(__name__)

router = APIRouter()

# Transitions the dashboard may apply. Completion only happens in the bot.
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "new": {"cancelled"},
    "in_progress": {"cancelled"},
    "completed": {"new"},
    "cancelled": {"new"},
}


@router.get("/orders", response_model=list[OrderRead])
async def list_orders(
    status: OrderStatus | None = None,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """Orders, newest activity first, optionally filtered by status."""
    return await order_store.list_orders(db, status=status, limit=limit, newest_first=True)


@router.get("/orders/{order_id}", response_model=OrderRead)
async def get_order(order_id: str, db: AsyncSession = Depends(get_db)):
    order = await order_store.get_order(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.patch("/orders/{order_id}/status", response_model=OrderRead)
async def update_order_status(
    order_id: str,
    body: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Cancel an order or put it back in the queue (clears the performer)."""
    order = await order_store.get_order(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    if body.status not in ALLOWED_TRANSITIONS.get(order.status, set()):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot change status from {order.status} to {body.status}",
        )

    fields = {"status": body.status}
    if body.status == "new":
        fields["performer_id"] = None
    if not await order_store.update_order(db, order_id, **fields):
        raise HTTPException(status_code=500, detail="Failed to update order")

    logger.info("Dashboard status change: order_id=%s, %s -> %s", order_id, order.status, body.status)
    return await order_store.get_order(db, order_id)


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(db: AsyncSession = Depends(get_db)):
    counts = await order_store.count_by_status(db)
    return DashboardStats(
        total_orders=sum(counts.values()),
        orders_new=counts.get("new", 0),
        orders_in_progress=counts.get("in_progress", 0),
        orders_completed=counts.get("completed", 0),
        orders_cancelled=counts.get("cancelled", 0),
    )
