"""
Optimistic reconciler for one action lane (care or emergency).

Phases:
- IDLE: nothing in flight
- PENDING: a dispatch is in flight and the action shows as processing
- RECONCILING: a dispatch is in flight but an externally observed version
  change has superseded it; its response will be discarded

Authoritative state only moves through `observe()` and only forward in
version. Responses never write state locally.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set, Union

from carebrain.core.action_catalog import (action_label, care_locked_by,
                                           optimistic_target,
                                           valid_care_actions,
                                           valid_emergency_actions)
from carebrain.core.dispatch_errors import DispatchErrorKind
from carebrain.core.logging_config import LoggingConfig
from carebrain.models.care import Action, ActionLane, BrainStateValue, LaneState
from carebrain.models.dispatch import (Accepted, DispatchContext,
                                       DispatchResult, Failed, PolicyBlocked)
from carebrain.services.action_dispatcher import ActionDispatcher
from carebrain.services.block_presentation import BlockPresentation

logger = LoggingConfig.get_logger(__name__)


class ReconcilerPhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    RECONCILING = "reconciling"


@dataclass(frozen=True)
class InlineError:
    """Dismissible error shown next to the action buttons"""
    code: str
    message: str
    kind: DispatchErrorKind = DispatchErrorKind.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "kind": self.kind.value}


@dataclass(frozen=True)
class Superseded:
    """Response that arrived after a newer observed state replaced the action"""
    action: Action
    result: DispatchResult

    outcome = "superseded"


ReconcileResult = Union[Accepted, PolicyBlocked, Failed, Superseded]


@dataclass(frozen=True)
class ReconcilerView:
    lane: ActionLane
    phase: ReconcilerPhase
    authoritative_state: Optional[BrainStateValue]
    displayed_state: Optional[BrainStateValue]
    version: int
    pending_action: Optional[Action] = None
    optimistic_state: Optional[BrainStateValue] = None
    error: Optional[InlineError] = None
    locked: bool = False
    available_actions: List[Action] = field(default_factory=list)

    @property
    def is_pending(self) -> bool:
        return self.phase == ReconcilerPhase.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lane": self.lane.value,
            "phase": self.phase.value,
            "is_pending": self.is_pending,
            "authoritative_state": self.authoritative_state.value if self.authoritative_state else None,
            "displayed_state": self.displayed_state.value if self.displayed_state else None,
            "version": self.version,
            "pending_action": self.pending_action.value if self.pending_action else None,
            "optimistic_state": self.optimistic_state.value if self.optimistic_state else None,
            "error": self.error.to_dict() if self.error else None,
            "locked": self.locked,
            "available_actions": [
                {"action": a.value, "label": action_label(a)} for a in self.available_actions
            ],
        }


class ActionReconciler:
    """Reflects an anticipated transition, then reconciles with the brain's answer"""

    def __init__(
        self,
        lane: ActionLane,
        dispatcher: ActionDispatcher,
        context: DispatchContext,
        block_presentation: Optional[BlockPresentation] = None,
        emergency_state: Optional[Callable[[], Optional[BrainStateValue]]] = None,
        initial: Optional[LaneState] = None,
    ):
        self.lane = lane
        self.dispatcher = dispatcher
        self.context = context
        self.block_presentation = block_presentation or BlockPresentation()
        # care lane only: current emergency state of the same record
        self._emergency_state = emergency_state
        self._authoritative = initial or LaneState(lane=lane)
        self._phase = ReconcilerPhase.IDLE
        self._next_ticket = 0
        self._pending_ticket: Optional[int] = None
        self._pending_action: Optional[Action] = None
        self._superseded: Set[int] = set()
        self._optimistic: Optional[BrainStateValue] = None
        self._error: Optional[InlineError] = None
        self._closed = False

    @property
    def phase(self) -> ReconcilerPhase:
        return self._phase

    @property
    def is_pending(self) -> bool:
        return self._phase == ReconcilerPhase.PENDING

    @property
    def authoritative(self) -> LaneState:
        return self._authoritative

    @property
    def displayed_state(self) -> Optional[BrainStateValue]:
        if self._optimistic is not None:
            return self._optimistic
        return self._authoritative.state

    @property
    def error(self) -> Optional[InlineError]:
        return self._error

    def _current_emergency_state(self) -> Optional[BrainStateValue]:
        if self._emergency_state is None:
            return None
        return self._emergency_state()

    @property
    def is_locked(self) -> bool:
        return self.lane == ActionLane.CARE and care_locked_by(self._current_emergency_state())

    def available_actions(self) -> FrozenSet[Action]:
        if self._closed:
            return frozenset()
        if self.lane == ActionLane.CARE:
            return valid_care_actions(self.displayed_state, self._current_emergency_state())
        return valid_emergency_actions(self.displayed_state)

    def _settle_phase(self) -> None:
        if self._pending_ticket is not None:
            self._phase = ReconcilerPhase.PENDING
        elif self._superseded:
            self._phase = ReconcilerPhase.RECONCILING
        else:
            self._phase = ReconcilerPhase.IDLE

    def observe(self, lane_state: LaneState) -> bool:
        """
        Take an externally observed state for this lane.

        Returns True when the version moved. A version change while a
        dispatch is pending supersedes that dispatch so the action does not
        stay stuck in processing.
        """
        if lane_state.lane != self.lane:
            raise ValueError(f"Expected {self.lane.value} state, got {lane_state.lane.value}")
        if lane_state.version < self._authoritative.version:
            logger.debug(
                "Ignoring older brain state",
                extra={"lane": self.lane.value, "observed": lane_state.version, "cached": self._authoritative.version}
            )
            return False

        moved = lane_state.version != self._authoritative.version
        self._authoritative = lane_state
        if not moved:
            return False

        self._optimistic = None
        if self._pending_ticket is not None:
            logger.info(
                "Pending action superseded by newer state",
                extra={
                    "lane": self.lane.value,
                    "action": self._pending_action.value if self._pending_action else None,
                    "version": lane_state.version,
                }
            )
            self._superseded.add(self._pending_ticket)
            self._pending_ticket = None
            self._pending_action = None
        self._settle_phase()
        return True

    def dismiss_error(self) -> None:
        self._error = None

    def close(self) -> None:
        """View went away; later responses are dropped"""
        self._closed = True

    async def perform(self, action: Action) -> Optional[ReconcileResult]:
        """
        Dispatch an action the way a button click does.

        Returns None when the click is ignored (already pending, locked, not
        offered, closed) or the view closed before the response arrived.
        A response that lost the race to a newer observed state comes back
        wrapped in Superseded and changes nothing.
        """
        if self._closed:
            return None
        if self.is_pending:
            logger.debug("Ignoring action while another is pending", extra={"action": action.value})
            return None
        if self.is_locked:
            logger.info("Ignoring action while lane is locked", extra={"lane": self.lane.value, "action": action.value})
            return None
        if action not in self.available_actions():
            logger.info(
                "Ignoring action not offered from current state",
                extra={"action": action.value, "state": getattr(self.displayed_state, "value", None)}
            )
            return None

        self._next_ticket += 1
        ticket = self._next_ticket
        self._pending_ticket = ticket
        self._pending_action = action
        self._error = None
        self._optimistic = optimistic_target(action)
        self._settle_phase()

        state = self._authoritative.state
        version = self._authoritative.version
        try:
            result = await self.dispatcher.dispatch(action, state, version, self.context)
        except BaseException:
            if self._pending_ticket == ticket:
                self._pending_ticket = None
                self._pending_action = None
                self._optimistic = None
            self._superseded.discard(ticket)
            self._settle_phase()
            raise

        return self._reconcile(ticket, result)

    def _reconcile(self, ticket: int, result: DispatchResult) -> Optional[ReconcileResult]:
        if ticket in self._superseded:
            self._superseded.discard(ticket)
            self._settle_phase()
            logger.info(
                "Discarding response for superseded action",
                extra={"lane": self.lane.value, "action": result.action.value, "outcome": result.outcome}
            )
            return Superseded(action=result.action, result=result)

        if self._closed:
            logger.debug("Dropping response after close", extra={"action": result.action.value})
            self._pending_ticket = None
            self._pending_action = None
            self._optimistic = None
            self._settle_phase()
            return None

        self._pending_ticket = None
        self._pending_action = None
        self._optimistic = None
        self._settle_phase()

        if isinstance(result, PolicyBlocked):
            self.block_presentation.show(result.rule)
        elif isinstance(result, Failed):
            self._error = InlineError(code=result.error_code, message=result.message, kind=result.kind)
        elif isinstance(result, Accepted):
            logger.debug("Waiting for observed state", extra={"new_version": result.new_version})
        return result

    def view(self) -> ReconcilerView:
        return ReconcilerView(
            lane=self.lane,
            phase=self._phase,
            authoritative_state=self._authoritative.state,
            displayed_state=self.displayed_state,
            version=self._authoritative.version,
            pending_action=self._pending_action,
            optimistic_state=self._optimistic,
            error=self._error,
            locked=self.is_locked,
            available_actions=sorted(self.available_actions(), key=lambda a: a.value),
        )
