from .cancellation_service import CancellationService
from .dispatcher import NotificationIntent, SideEffectDispatcher, call_best_effort, call_critical
from .placement_service import PlacementResult, PlacementService, validate_placement
from .query_service import OrderQueryService
from .status_service import StatusTransitionService

__all__ = [
    "CancellationService",
    "NotificationIntent",
    "OrderQueryService",
    "PlacementResult",
    "PlacementService",
    "SideEffectDispatcher",
    "StatusTransitionService",
    "call_best_effort",
    "call_critical",
    "validate_placement",
]
