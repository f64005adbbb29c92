"""
Care session: one open care/emergency action panel for an actor.

Bundles the brain state cache, the care and emergency reconcilers and the
block presentation. Sessions live only in memory and are torn down on close.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from carebrain.core.action_catalog import lane_for_action, state_label
from carebrain.core.backend import get_brain_transport
from carebrain.core.config import Settings, get_settings
from carebrain.core.logging_config import LoggingConfig
from carebrain.core.transport import BrainTransport, SupabaseError
from carebrain.models.care import (Action, ActionLane, BrainStateSnapshot,
                                   BrainStateTransition)
from carebrain.models.dispatch import Accepted, DispatchContext
from carebrain.services.action_dispatcher import ActionDispatcher
from carebrain.services.action_reconciler import (ActionReconciler,
                                                  ReconcileResult)
from carebrain.services.block_presentation import BlockPresentation
from carebrain.services.brain_state_service import (BrainStateService,
                                                    BrainStateWatcher)

logger = LoggingConfig.get_logger(__name__)


class CareSessionNotFound(Exception):
    """Raised when a session id is unknown or already closed"""


class CareSession:
    """Care and emergency action panel for one actor and agency"""

    def __init__(
        self,
        context: DispatchContext,
        transport: BrainTransport,
        settings: Optional[Settings] = None,
        on_navigate: Optional[Callable[[str], None]] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or str(uuid4())
        self.context = context
        self.settings = settings or get_settings()
        self.created_at = datetime.now(timezone.utc)
        self.snapshot: Optional[BrainStateSnapshot] = None

        self.state_service = BrainStateService(transport, self.settings)
        dispatcher = ActionDispatcher(transport, self.settings)
        self.block_presentation = BlockPresentation(on_navigate=on_navigate)
        self.emergency = ActionReconciler(
            ActionLane.EMERGENCY, dispatcher, context, self.block_presentation
        )
        # Emergency actions take priority: care is locked while one is ACTIVE
        self.care = ActionReconciler(
            ActionLane.CARE, dispatcher, context, self.block_presentation,
            emergency_state=lambda: self.emergency.authoritative.state,
        )
        self.watcher = BrainStateWatcher(
            self.state_service,
            context.agency_id,
            self.apply_snapshot,
            self.settings.state_poll_interval_seconds,
        )
        self.closed = False

    def reconciler(self, lane: ActionLane) -> ActionReconciler:
        return self.care if lane == ActionLane.CARE else self.emergency

    def apply_snapshot(self, snapshot: BrainStateSnapshot) -> None:
        if snapshot.agency_id and snapshot.agency_id != self.context.agency_id:
            logger.warning(
                "Ignoring brain state for another agency",
                extra={"session_id": self.session_id, "snapshot_agency": snapshot.agency_id}
            )
            return
        self.snapshot = snapshot
        self.emergency.observe(snapshot.emergency)
        self.care.observe(snapshot.care)

    async def refresh(self) -> Optional[BrainStateSnapshot]:
        """Fetch and apply the current brain state"""
        snapshot = await self.state_service.fetch_state(self.context.agency_id)
        if snapshot is not None:
            self.apply_snapshot(snapshot)
        return snapshot

    async def perform(self, action: Action) -> Optional[ReconcileResult]:
        result = await self.reconciler(lane_for_action(action)).perform(action)
        if isinstance(result, Accepted) and not self.closed:
            try:
                await self.refresh()
            except SupabaseError as e:
                # the watcher picks the new state up on its next poll
                logger.warning(f"Refresh after accepted action failed: {e}", extra={"session_id": self.session_id})
        return result

    async def history(self, limit: int = 50) -> List[BrainStateTransition]:
        return await self.state_service.fetch_history(self.context.agency_id, limit=limit)

    async def open(self) -> None:
        await self.refresh()
        await self.watcher.start()

    async def close(self) -> None:
        self.closed = True
        self.care.close()
        self.emergency.close()
        await self.watcher.stop()

    def view(self) -> Dict[str, Any]:
        care_view = self.care.view()
        emergency_view = self.emergency.view()
        return {
            "session_id": self.session_id,
            "context": self.context.model_dump(mode="json"),
            "care": {
                **care_view.to_dict(),
                "label": state_label(care_view.displayed_state) if care_view.displayed_state else None,
            },
            "emergency": {
                **emergency_view.to_dict(),
                "label": state_label(emergency_view.displayed_state) if emergency_view.displayed_state else None,
            },
            "block": self.block_presentation.to_dict(),
            "updated_at": self.snapshot.updated_at.isoformat() if self.snapshot and self.snapshot.updated_at else None,
        }


class CareSessionRegistry:
    """In-memory registry of open sessions"""

    def __init__(self, transport_factory: Callable[[], BrainTransport] = get_brain_transport):
        self._transport_factory = transport_factory
        self._sessions: Dict[str, CareSession] = {}

    async def create(self, context: DispatchContext) -> CareSession:
        session = CareSession(context, self._transport_factory())
        await session.open()
        self._sessions[session.session_id] = session
        logger.info(
            "Opened care session",
            extra={"session_id": session.session_id, "agency_id": context.agency_id, "mode": context.mode.value}
        )
        return session

    def get(self, session_id: str) -> CareSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise CareSessionNotFound(session_id)
        return session

    async def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise CareSessionNotFound(session_id)
        await session.close()
        logger.info("Closed care session", extra={"session_id": session_id})

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)

    def __len__(self) -> int:
        return len(self._sessions)


_registry: Optional[CareSessionRegistry] = None


def get_session_registry() -> CareSessionRegistry:
    """Get or create the session registry"""
    global _registry
    if _registry is None:
        _registry = CareSessionRegistry()
    return _registry
