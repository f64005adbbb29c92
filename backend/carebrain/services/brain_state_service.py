"""
Reads of the brain state record and a fixed-interval watcher
"""
import asyncio
from typing import Callable, List, Optional

from carebrain.core.config import Settings, get_settings
from carebrain.core.logging_config import LoggingConfig
from carebrain.core.transport import BrainTransport
from carebrain.models.care import BrainStateSnapshot, BrainStateTransition

logger = LoggingConfig.get_logger(__name__)


class BrainStateService:
    """Service for reading brain state and its history"""

    def __init__(self, transport: BrainTransport, settings: Optional[Settings] = None):
        self.transport = transport
        self._settings = settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    async def fetch_state(self, agency_id: str) -> Optional[BrainStateSnapshot]:
        """Current brain state for an agency, None when there is no row"""
        rows = await self.transport.select(
            self.settings.brain_state_table,
            filters={"agency_id": agency_id},
            limit=1,
        )
        if not rows:
            logger.info("No brain state found", extra={"agency_id": agency_id})
            return None
        return BrainStateSnapshot.from_row(rows[0])

    async def fetch_history(self, agency_id: str, limit: int = 50) -> List[BrainStateTransition]:
        """Brain state transitions, newest first"""
        rows = await self.transport.select(
            self.settings.brain_history_table,
            filters={"agency_id": agency_id},
            order="created_at.desc",
            limit=limit,
        )
        return [BrainStateTransition.model_validate(row) for row in rows]


class BrainStateWatcher:
    """Polls brain state at a fixed interval and hands snapshots to a callback"""

    def __init__(
        self,
        service: BrainStateService,
        agency_id: str,
        on_snapshot: Callable[[BrainStateSnapshot], None],
        interval_seconds: float,
    ):
        self.service = service
        self.agency_id = agency_id
        self.on_snapshot = on_snapshot
        self.interval_seconds = interval_seconds
        self.running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        """Start polling; an interval of 0 leaves the watcher stopped"""
        if self.running:
            logger.warning("Brain state watcher is already running")
            return
        if self.interval_seconds <= 0:
            logger.debug("Brain state polling disabled", extra={"agency_id": self.agency_id})
            return

        self.running = True
        logger.info(
            "Starting brain state watcher",
            extra={"agency_id": self.agency_id, "interval_seconds": self.interval_seconds}
        )
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self):
        """Stop polling"""
        self.running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.debug("Stopped brain state watcher", extra={"agency_id": self.agency_id})

    async def _poll_loop(self):
        while self.running:
            try:
                snapshot = await self.service.fetch_state(self.agency_id)
                if snapshot is not None:
                    self.on_snapshot(snapshot)
            except Exception as e:
                logger.error(f"Error polling brain state: {e}", exc_info=True)
            await asyncio.sleep(self.interval_seconds)
