"""
Action catalog: which care / emergency actions are offered from a state.

This decides which action buttons render. It is not an authorization check;
the brain validates every dispatch server-side. All functions are total:
unknown or terminal states have no valid actions.
"""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Optional, Tuple

from carebrain.models.care import (Action, ActionLane, BrainStateValue,
                                   CareAction, CareState, EmergencyAction,
                                   EmergencyState, parse_care_state,
                                   parse_emergency_state)

# action -> (source states, target state)
CARE_TRANSITIONS: Dict[CareAction, Tuple[FrozenSet[CareState], CareState]] = {
    CareAction.START_PREPARATION: (frozenset({CareState.NOT_STARTED}), CareState.IN_PREPARATION),
    CareAction.CANCEL_PREPARATION: (frozenset({CareState.IN_PREPARATION}), CareState.NOT_STARTED),
    CareAction.START_CARE: (frozenset({CareState.IN_PREPARATION}), CareState.IN_PROGRESS),
    CareAction.PAUSE_CARE: (frozenset({CareState.IN_PROGRESS}), CareState.PAUSED),
    CareAction.RESUME_CARE: (frozenset({CareState.PAUSED}), CareState.IN_PROGRESS),
    CareAction.BEGIN_COMPLETION: (frozenset({CareState.IN_PROGRESS}), CareState.COMPLETING),
    CareAction.CONFIRM_COMPLETION: (frozenset({CareState.COMPLETING}), CareState.COMPLETED),
}

EMERGENCY_TRANSITIONS: Dict[EmergencyAction, Tuple[FrozenSet[EmergencyState], EmergencyState]] = {
    EmergencyAction.TRIGGER_EMERGENCY: (
        frozenset({EmergencyState.NONE, EmergencyState.RESOLVED}),
        EmergencyState.PENDING,
    ),
    EmergencyAction.CONFIRM_EMERGENCY: (frozenset({EmergencyState.PENDING}), EmergencyState.ACTIVE),
    EmergencyAction.CANCEL_EMERGENCY: (frozenset({EmergencyState.PENDING}), EmergencyState.NONE),
    EmergencyAction.RESOLVE_EMERGENCY: (frozenset({EmergencyState.ACTIVE}), EmergencyState.RESOLVED),
    EmergencyAction.CLEAR_EMERGENCY: (frozenset({EmergencyState.RESOLVED}), EmergencyState.NONE),
}

# Shown immediately while the dispatch is in flight
OPTIMISTIC_TARGETS: Dict[EmergencyAction, EmergencyState] = {
    EmergencyAction.TRIGGER_EMERGENCY: EmergencyState.PENDING,
}


def _coerce_state(state: Any) -> Optional[BrainStateValue]:
    if isinstance(state, (CareState, EmergencyState)):
        return state
    if state is None:
        return None
    # Care and emergency state names do not overlap
    return parse_care_state(state) or parse_emergency_state(state)


def valid_actions_for_state(state: Any) -> FrozenSet[Action]:
    """
    Actions valid from a care or emergency state.

    Accepts enum members or raw state strings; anything unrecognised yields
    an empty set.
    """
    state = _coerce_state(state)
    if isinstance(state, CareState):
        return frozenset(
            action for action, (sources, _) in CARE_TRANSITIONS.items() if state in sources
        )
    if isinstance(state, EmergencyState):
        return frozenset(
            action for action, (sources, _) in EMERGENCY_TRANSITIONS.items() if state in sources
        )
    return frozenset()


def care_locked_by(emergency_state: Any) -> bool:
    """An ACTIVE emergency suspends every care action"""
    return _coerce_state(emergency_state) == EmergencyState.ACTIVE


def valid_care_actions(care_state: Any, emergency_state: Any = None) -> FrozenSet[Action]:
    """Care actions offered, suppressed entirely while an emergency is ACTIVE"""
    if care_locked_by(emergency_state):
        return frozenset()
    care_state = _coerce_state(care_state)
    if not isinstance(care_state, CareState):
        return frozenset()
    return valid_actions_for_state(care_state)


def valid_emergency_actions(emergency_state: Any) -> FrozenSet[Action]:
    """Emergency actions bypass care gating"""
    emergency_state = _coerce_state(emergency_state)
    if not isinstance(emergency_state, EmergencyState):
        return frozenset()
    return valid_actions_for_state(emergency_state)


def lane_for_action(action: Action) -> ActionLane:
    if isinstance(action, CareAction):
        return ActionLane.CARE
    if isinstance(action, EmergencyAction):
        return ActionLane.EMERGENCY
    raise TypeError(f"Not an action: {action!r}")


def next_state(state: Any, action: Action) -> Optional[BrainStateValue]:
    """Target of `action` from `state`, or None when the action is not valid there"""
    state = _coerce_state(state)
    if isinstance(action, CareAction) and isinstance(state, CareState):
        sources, target = CARE_TRANSITIONS[action]
        return target if state in sources else None
    if isinstance(action, EmergencyAction) and isinstance(state, EmergencyState):
        sources, target = EMERGENCY_TRANSITIONS[action]
        return target if state in sources else None
    return None


def optimistic_target(action: Action) -> Optional[EmergencyState]:
    return OPTIMISTIC_TARGETS.get(action) if isinstance(action, EmergencyAction) else None


def action_label(action: Action) -> str:
    """Button label; raises for an action without one"""
    if action is CareAction.START_PREPARATION:
        return "Start preparation"
    if action is CareAction.CANCEL_PREPARATION:
        return "Cancel preparation"
    if action is CareAction.START_CARE:
        return "Start care"
    if action is CareAction.PAUSE_CARE:
        return "Pause"
    if action is CareAction.RESUME_CARE:
        return "Resume"
    if action is CareAction.BEGIN_COMPLETION:
        return "Finish care"
    if action is CareAction.CONFIRM_COMPLETION:
        return "Confirm completion"
    if action is EmergencyAction.TRIGGER_EMERGENCY:
        return "Trigger emergency"
    if action is EmergencyAction.CONFIRM_EMERGENCY:
        return "Confirm emergency"
    if action is EmergencyAction.CANCEL_EMERGENCY:
        return "Cancel emergency"
    if action is EmergencyAction.RESOLVE_EMERGENCY:
        return "Resolve emergency"
    if action is EmergencyAction.CLEAR_EMERGENCY:
        return "Clear emergency"
    raise ValueError(f"No label for action: {action!r}")


def state_label(state: BrainStateValue) -> str:
    """Display label for a state; raises for a state without one"""
    if state is CareState.NOT_STARTED:
        return "Not started"
    if state is CareState.IN_PREPARATION:
        return "Preparing"
    if state is CareState.IN_PROGRESS:
        return "Care in progress"
    if state is CareState.PAUSED:
        return "Paused"
    if state is CareState.COMPLETING:
        return "Completing"
    if state is CareState.COMPLETED:
        return "Completed"
    if state is EmergencyState.NONE:
        return "No emergency"
    if state is EmergencyState.PENDING:
        return "Emergency pending"
    if state is EmergencyState.ACTIVE:
        return "Emergency active"
    if state is EmergencyState.RESOLVED:
        return "Emergency resolved"
    raise ValueError(f"No label for state: {state!r}")
