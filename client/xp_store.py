"""
Client-side XP state.

The store is the only writer of XP state. Every change goes through
``dispatch`` with one of four actions:

- ``Hydrated``: authoritative values loaded from the server
- ``DeltaApplied``: an optimistic increment, kept as pending
- ``DeltaConfirmed``: the server accepted it; the delta moves into the base
- ``DeltaReverted``: the server refused it; the pending increment is dropped

Displayed XP is the base plus the deltas still pending. The server total is
only adopted once nothing is pending, since a refetch made while another
award is in flight may or may not include it. XP only ever grows on the
server, so a confirmation never moves the base backwards.
"""
import uuid
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Union

from core.logging import get_logger
from services.gamification import XPAction, xp_for, level_for_xp, xp_in_level, motivational_message
from client.api import ClientError, EduKeeperClient
from client.toasts import ToastQueue

logger = get_logger("client.xp")


@dataclass(frozen=True)
class XPState:
    base_xp: int = 0
    pending: Dict[str, int] = field(default_factory=dict)
    hydrated: bool = False

    @property
    def xp(self) -> int:
        return self.base_xp + sum(self.pending.values())

    @property
    def level(self) -> int:
        return level_for_xp(self.xp)

    @property
    def progress(self) -> int:
        return xp_in_level(self.xp)

    @property
    def message(self) -> str:
        return motivational_message(self.xp)

    @property
    def has_pending(self) -> bool:
        return bool(self.pending)


@dataclass(frozen=True)
class Hydrated:
    xp: int


@dataclass(frozen=True)
class DeltaApplied:
    delta_id: str
    amount: int


@dataclass(frozen=True)
class DeltaConfirmed:
    delta_id: str
    xp: int


@dataclass(frozen=True)
class DeltaReverted:
    delta_id: str


XPStoreAction = Union[Hydrated, DeltaApplied, DeltaConfirmed, DeltaReverted]


def reduce(state: XPState, action: XPStoreAction) -> XPState:
    """Pure transition function."""
    if isinstance(action, Hydrated):
        return replace(state, base_xp=action.xp, hydrated=True)
    if isinstance(action, DeltaApplied):
        return replace(state, pending={**state.pending, action.delta_id: action.amount})
    if isinstance(action, DeltaConfirmed):
        if action.delta_id not in state.pending:
            return state
        pending = {k: v for k, v in state.pending.items() if k != action.delta_id}
        base_xp = state.base_xp + state.pending[action.delta_id]
        if not pending:
            base_xp = max(base_xp, action.xp)
        return replace(state, base_xp=base_xp, pending=pending, hydrated=True)
    if isinstance(action, DeltaReverted):
        return replace(state, pending={k: v for k, v in state.pending.items() if k != action.delta_id})
    raise TypeError(f"Unknown XP store action: {action!r}")


class XPStore:
    def __init__(self, state: Optional[XPState] = None):
        self._state = state or XPState()
        self._listeners: List[Callable[[XPState], None]] = []

    @property
    def state(self) -> XPState:
        return self._state

    def subscribe(self, listener: Callable[[XPState], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, action: XPStoreAction) -> XPState:
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state


@dataclass(frozen=True)
class AwardResult:
    success: bool
    message: str = ""
    xp_gained: int = 0


async def hydrate(store: XPStore, api: EduKeeperClient) -> XPState:
    status = await api.get_xp()
    return store.dispatch(Hydrated(xp=status["xp"]))


async def award_xp(
    store: XPStore,
    api: EduKeeperClient,
    action: Union[XPAction, str],
    document_name: Optional[str] = None,
    toasts: Optional[ToastQueue] = None,
) -> AwardResult:
    """
    Optimistically grant the XP of ``action`` and reconcile with the server.

    The local total moves immediately. It is confirmed from a fresh
    ``GET /xp/me`` when the award succeeds and rolled back when it fails.
    """
    try:
        action = XPAction(action)
    except ValueError:
        return AwardResult(False, f"Action inconnue : {action}")

    amount = xp_for(action)
    level_before = store.state.level
    delta_id = uuid.uuid4().hex
    store.dispatch(DeltaApplied(delta_id=delta_id, amount=amount))

    try:
        awarded = await api.award_xp(action.value, document_name)
    except ClientError as e:
        store.dispatch(DeltaReverted(delta_id=delta_id))
        logger.warning("XP award failed, reverted", action=action.value, error=e.message)
        if toasts is not None:
            toasts.error("Impossible d'ajouter les points d'expérience", e.message)
        return AwardResult(False, e.message)

    try:
        authoritative_xp = (await api.get_xp())["xp"]
    except ClientError as e:
        # the award itself committed; its response carries the new total
        logger.warning("XP refetch failed, using award response", error=e.message)
        authoritative_xp = awarded["xp"]

    state = store.dispatch(DeltaConfirmed(delta_id=delta_id, xp=authoritative_xp))
    if toasts is not None:
        toasts.success(f"+{amount} XP", state.message)
        if state.level > level_before:
            toasts.success("Niveau supérieur !", f"Vous êtes maintenant niveau {state.level}")
    return AwardResult(True, state.message, amount)
