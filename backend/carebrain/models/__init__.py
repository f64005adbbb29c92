from carebrain.models.blocking import BlockingReason, BlockingRule
from carebrain.models.care import (ActionLane, BrainStateSnapshot,
                                   BrainStateTransition, CareAction, CareState,
                                   EmergencyAction, EmergencyState,
                                   ExecutionMode, LaneState)
from carebrain.models.dispatch import (Accepted, DispatchContext,
                                       DispatchResult, Failed, PolicyBlocked)

__all__ = [
    "Accepted",
    "ActionLane",
    "BlockingReason",
    "BlockingRule",
    "BrainStateSnapshot",
    "BrainStateTransition",
    "CareAction",
    "CareState",
    "DispatchContext",
    "DispatchResult",
    "EmergencyAction",
    "EmergencyState",
    "ExecutionMode",
    "Failed",
    "LaneState",
    "PolicyBlocked",
]
