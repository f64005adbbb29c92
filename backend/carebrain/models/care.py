"""
Care and emergency state values held by the brain state record
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


class CareState(str, Enum):
    """Care session state (server authoritative)"""
    NOT_STARTED = "NOT_STARTED"
    IN_PREPARATION = "IN_PREPARATION"
    IN_PROGRESS = "IN_PROGRESS"
    PAUSED = "PAUSED"
    COMPLETING = "COMPLETING"
    COMPLETED = "COMPLETED"


class EmergencyState(str, Enum):
    """Emergency handling state (server authoritative)"""
    NONE = "NONE"
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"


class CareAction(str, Enum):
    """Actions proposing a CareState transition"""
    START_PREPARATION = "START_PREPARATION"
    CANCEL_PREPARATION = "CANCEL_PREPARATION"
    START_CARE = "START_CARE"
    PAUSE_CARE = "PAUSE_CARE"
    RESUME_CARE = "RESUME_CARE"
    BEGIN_COMPLETION = "BEGIN_COMPLETION"
    CONFIRM_COMPLETION = "CONFIRM_COMPLETION"


class EmergencyAction(str, Enum):
    """Actions proposing an EmergencyState transition"""
    TRIGGER_EMERGENCY = "TRIGGER_EMERGENCY"
    CONFIRM_EMERGENCY = "CONFIRM_EMERGENCY"
    CANCEL_EMERGENCY = "CANCEL_EMERGENCY"
    RESOLVE_EMERGENCY = "RESOLVE_EMERGENCY"
    CLEAR_EMERGENCY = "CLEAR_EMERGENCY"


class ActionLane(str, Enum):
    """Independent lifecycles on the brain state record"""
    CARE = "care"
    EMERGENCY = "emergency"


class ExecutionMode(str, Enum):
    """Live dispatch or non-persistent demonstration"""
    LIVE = "live"
    SHOWCASE = "showcase"


BrainStateValue = Union[CareState, EmergencyState]
Action = Union[CareAction, EmergencyAction]


def parse_care_state(value: Any) -> Optional[CareState]:
    """Parse a care state; unknown values give None"""
    if isinstance(value, CareState):
        return value
    try:
        return CareState(str(value).upper())
    except ValueError:
        return None


def parse_emergency_state(value: Any) -> Optional[EmergencyState]:
    """Parse an emergency state; unknown values give None"""
    if isinstance(value, EmergencyState):
        return value
    try:
        return EmergencyState(str(value).upper())
    except ValueError:
        return None


def parse_action(value: Any) -> Action:
    """
    Parse an action name into a CareAction or EmergencyAction

    Raises:
        ValueError: if the name is not a known action
    """
    if isinstance(value, (CareAction, EmergencyAction)):
        return value
    name = str(value).strip().upper()
    for enum_cls in (CareAction, EmergencyAction):
        try:
            return enum_cls(name)
        except ValueError:
            continue
    raise ValueError(f"Unknown action: {value}")


class LaneState(BaseModel):
    """
    Cached copy of one lane of the brain state

    `state` is None when the server reported a value this client does not know.
    """
    lane: ActionLane
    state: Optional[BrainStateValue] = None
    raw_state: Optional[str] = None
    version: int = Field(default=0, ge=0)


class BrainStateSnapshot(BaseModel):
    """One read of the brain state row for an agency"""
    agency_id: str
    care: LaneState
    emergency: LaneState
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "BrainStateSnapshot":
        """Build a snapshot from a brain_state table row"""
        shared_version = int(row.get("state_version") or 0)
        care_version = row.get("care_state_version")
        emergency_version = row.get("emergency_state_version")
        raw_care = row.get("care_state")
        raw_emergency = row.get("emergency_state")
        return cls(
            agency_id=str(row.get("agency_id", "")),
            care=LaneState(
                lane=ActionLane.CARE,
                state=parse_care_state(raw_care) if raw_care is not None else None,
                raw_state=str(raw_care) if raw_care is not None else None,
                version=int(care_version) if care_version is not None else shared_version,
            ),
            emergency=LaneState(
                lane=ActionLane.EMERGENCY,
                state=parse_emergency_state(raw_emergency) if raw_emergency is not None else None,
                raw_state=str(raw_emergency) if raw_emergency is not None else None,
                version=int(emergency_version) if emergency_version is not None else shared_version,
            ),
            updated_at=row.get("updated_at"),
        )

    def lane(self, lane: ActionLane) -> LaneState:
        return self.care if lane == ActionLane.CARE else self.emergency

    @property
    def emergency_active(self) -> bool:
        return self.emergency.state == EmergencyState.ACTIVE


class BrainStateTransition(BaseModel):
    """One row of brain state history"""
    id: Optional[str] = None
    agency_id: str
    lane: Optional[ActionLane] = None
    action_type: Optional[str] = None
    from_state: Optional[str] = None
    to_state: Optional[str] = None
    version: Optional[int] = None
    actor_id: Optional[str] = None
    mode: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}
