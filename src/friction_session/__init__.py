"""
Friction Session.

Client-side engine for the Friction Log: keeps a local cache of friction
items consistent with the backend and raises daily threshold alerts as
today's friction approaches the user's limit.
"""

from .alert_queue import AlertQueue
from .config import Settings, get_settings
from .controller import FrictionSessionController
from .gateway import (
    FrictionGateway,
    GatewayConnectionError,
    GatewayDecodeError,
    GatewayError,
    GatewayStatusError,
)
from .item_cache import ItemCache
from .models import (
    AggregateScore,
    Category,
    CategoryBreakdown,
    FrictionItem,
    FrictionItemCreate,
    FrictionItemUpdate,
    GlobalLimit,
    MostAnnoyingItem,
    Status,
    TrendDataPoint,
)
from .notifications import (
    AlertKind,
    NotificationState,
    ThresholdAlert,
    ThresholdNotifier,
    evaluate,
    evaluate_item,
)

__all__ = [
    "AlertQueue",
    "Settings",
    "get_settings",
    "FrictionSessionController",
    "FrictionGateway",
    "GatewayError",
    "GatewayConnectionError",
    "GatewayStatusError",
    "GatewayDecodeError",
    "ItemCache",
    "AggregateScore",
    "Category",
    "CategoryBreakdown",
    "FrictionItem",
    "FrictionItemCreate",
    "FrictionItemUpdate",
    "GlobalLimit",
    "MostAnnoyingItem",
    "Status",
    "TrendDataPoint",
    "AlertKind",
    "NotificationState",
    "ThresholdAlert",
    "ThresholdNotifier",
    "evaluate",
    "evaluate_item",
]
