# Python client for the EduKeeper API
from .api import EduKeeperClient, ClientError
from .toasts import Toast, ToastKind, ToastQueue
from .xp_store import XPStore, XPState, AwardResult, award_xp, hydrate
from .document_grid import DocumentGrid, CategoryGrid, GridFilters
from .navigation import ROUTES, Route, RouteDecision, guard, nav_items, find_route
