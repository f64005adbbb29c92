"""
In-memory brain backend for showcase (demonstration) mode

Answers the same RPCs and table reads as the live backend, with nothing
persisted beyond the process.
"""
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from carebrain.core.action_catalog import lane_for_action, next_state
from carebrain.core.config import Settings, get_settings
from carebrain.core.dispatch_errors import ErrorCode
from carebrain.core.logging_config import LoggingConfig
from carebrain.core.transport import BrainTransport, SupabaseError
from carebrain.models.blocking import BlockingRule
from carebrain.models.care import (ActionLane, CareState, EmergencyState,
                                   parse_action, parse_care_state,
                                   parse_emergency_state)

logger = LoggingConfig.get_logger(__name__)


def _failure(code: str, message: str) -> Dict[str, Any]:
    return {"success": False, "errorCode": code, "message": message}


class ShowcaseBrainBackend(BrainTransport):
    """Simulated brain: version check, transition table, optional policy blocks"""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._history: List[Dict[str, Any]] = []
        self._blocks: Dict[str, BlockingRule] = {}

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def reset(self) -> None:
        self._rows.clear()
        self._history.clear()
        self._blocks.clear()

    def _row(self, agency_id: str) -> Dict[str, Any]:
        if agency_id not in self._rows:
            self._rows[agency_id] = {
                "id": str(uuid4()),
                "agency_id": agency_id,
                "care_state": CareState.NOT_STARTED.value,
                "care_state_version": 0,
                "emergency_state": EmergencyState.NONE.value,
                "emergency_state_version": 0,
                "state_version": 0,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
        return self._rows[agency_id]

    def seed(
        self,
        agency_id: str,
        care_state: Optional[CareState] = None,
        emergency_state: Optional[EmergencyState] = None,
        care_version: Optional[int] = None,
        emergency_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Set the brain row for an agency directly"""
        row = self._row(agency_id)
        if care_state is not None:
            row["care_state"] = care_state.value
        if emergency_state is not None:
            row["emergency_state"] = emergency_state.value
        if care_version is not None:
            row["care_state_version"] = care_version
        if emergency_version is not None:
            row["emergency_state_version"] = emergency_version
        row["state_version"] = max(row["care_state_version"], row["emergency_state_version"], row["state_version"])
        return deepcopy(row)

    def block_agency(self, agency_id: str, rule: BlockingRule) -> None:
        """Refuse every action for an agency with `rule` until unblocked"""
        self._blocks[agency_id] = rule

    def unblock_agency(self, agency_id: str) -> None:
        self._blocks.pop(agency_id, None)

    def _lane_for_rpc(self, function_name: str) -> ActionLane:
        if function_name == self.settings.care_action_rpc:
            return ActionLane.CARE
        if function_name == self.settings.emergency_action_rpc:
            return ActionLane.EMERGENCY
        raise SupabaseError(
            code="PGRST202",
            message=f"Could not find the function public.{function_name}",
            status_code=404,
        )

    async def rpc(self, function_name: str, params: Dict[str, Any]) -> Any:
        rpc_lane = self._lane_for_rpc(function_name)

        actor_id = params.get("p_actor_id")
        agency_id = params.get("p_agency_id")
        if not actor_id or not agency_id:
            return _failure(ErrorCode.MISSING_CONTEXT, "Actor and agency are required")

        try:
            action = parse_action(params.get("p_action_type"))
        except ValueError:
            return _failure(ErrorCode.INVALID_TRANSITION, f"Unknown action {params.get('p_action_type')}")
        if lane_for_action(action) != rpc_lane:
            return _failure(ErrorCode.INVALID_TRANSITION, f"{action.value} is not a {rpc_lane.value} action")

        rule = self._blocks.get(agency_id)
        if rule is not None:
            logger.info(
                "Showcase brain blocked action",
                extra={"agency_id": agency_id, "action": action.value, "rule": rule.reason}
            )
            return {"success": False, "brainBlocked": True, "blockingRule": rule.to_payload()}

        row = self._row(agency_id)
        state_key = "care_state" if rpc_lane == ActionLane.CARE else "emergency_state"
        version_key = f"{state_key}_version"

        expected_version = params.get("p_expected_version")
        if expected_version != row[version_key]:
            return _failure(
                ErrorCode.VERSION_CONFLICT,
                f"Expected version {expected_version}, current is {row[version_key]}",
            )

        if rpc_lane == ActionLane.CARE and row["emergency_state"] == EmergencyState.ACTIVE.value:
            return _failure(ErrorCode.EMERGENCY_ACTIVE, "Care actions are suspended during an active emergency")

        current = (
            parse_care_state(row[state_key]) if rpc_lane == ActionLane.CARE
            else parse_emergency_state(row[state_key])
        )
        target = next_state(current, action)
        if target is None:
            return _failure(
                ErrorCode.INVALID_TRANSITION,
                f"{action.value} is not allowed from {row[state_key]}",
            )

        now = datetime.now(timezone.utc).isoformat()
        from_state = row[state_key]
        row[state_key] = target.value
        row[version_key] += 1
        row["state_version"] += 1
        row["updated_at"] = now
        self._history.append({
            "id": str(uuid4()),
            "agency_id": agency_id,
            "lane": rpc_lane.value,
            "action_type": action.value,
            "from_state": from_state,
            "to_state": target.value,
            "version": row[version_key],
            "actor_id": actor_id,
            "mode": params.get("p_mode"),
            "created_at": now,
        })
        logger.info(
            "Showcase brain applied transition",
            extra={"agency_id": agency_id, "action": action.value, "to_state": target.value}
        )
        return {"success": True, "newVersion": row[version_key]}

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        filters = filters or {}
        if table == self.settings.brain_state_table:
            agency_id = filters.get("agency_id")
            if agency_id is not None:
                self._row(str(agency_id))
            rows = list(self._rows.values())
        elif table == self.settings.brain_history_table:
            rows = list(self._history)
        else:
            raise SupabaseError(
                code="PGRST205",
                message=f"Could not find the table public.{table}",
                status_code=404,
            )

        rows = [
            row for row in rows
            if all(str(row.get(column)) == str(value) for column, value in filters.items())
        ]
        if order:
            column, _, direction = order.partition(".")
            if direction == "desc":
                # newest insert first among equal timestamps
                rows.reverse()
            rows.sort(key=lambda r: r.get(column) or "", reverse=direction == "desc")
        if limit is not None:
            rows = rows[:limit]
        return deepcopy(rows)


_showcase_backend: Optional[ShowcaseBrainBackend] = None


def get_showcase_backend() -> ShowcaseBrainBackend:
    """Get or create the process-wide showcase backend"""
    global _showcase_backend
    if _showcase_backend is None:
        _showcase_backend = ShowcaseBrainBackend()
    return _showcase_backend
