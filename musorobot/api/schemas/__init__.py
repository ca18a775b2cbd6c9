from musorobot.api.schemas.order import DashboardStats, OrderRead, OrderStatus, OrderStatusUpdate

__all__ = ["DashboardStats", "OrderRead", "OrderStatus", "OrderStatusUpdate"]
