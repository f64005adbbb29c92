"""
Dispatch request context and the three result shapes
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from carebrain.core.dispatch_errors import (DispatchErrorKind, ErrorCode,
                                            classify_error_code, generic_message)
from carebrain.core.logging_config import LoggingConfig
from carebrain.models.blocking import BlockingRule
from carebrain.models.care import Action, ExecutionMode

logger = LoggingConfig.get_logger(__name__)


class DispatchContext(BaseModel):
    """Actor and tenant bundle passed explicitly into every dispatch"""
    actor_id: str = Field(..., description="User performing the action")
    agency_id: str = Field(..., description="Agency owning the brain state")
    resident_id: Optional[str] = Field(default=None, description="Resident the action concerns")
    mode: ExecutionMode = Field(default=ExecutionMode.LIVE, description="Live or demonstration execution")

    @field_validator("actor_id", "agency_id", mode="before")
    @classmethod
    def strip_ids(cls, v):
        return v.strip() if isinstance(v, str) else v

    @property
    def is_showcase(self) -> bool:
        return self.mode == ExecutionMode.SHOWCASE


@dataclass(frozen=True)
class DispatchRequest:
    action: Action
    expected_version: int
    context: DispatchContext

    def to_rpc_params(self) -> Dict[str, Any]:
        """RPC parameters in the backend's p_ naming convention"""
        return {
            "p_action_type": self.action.value,
            "p_expected_version": self.expected_version,
            "p_actor_id": self.context.actor_id,
            "p_agency_id": self.context.agency_id,
            "p_resident_id": self.context.resident_id,
            "p_mode": self.context.mode.value,
        }


@dataclass(frozen=True)
class Accepted:
    """Server applied the transition"""
    action: Action
    new_version: Optional[int]

    outcome = "accepted"


@dataclass(frozen=True)
class PolicyBlocked:
    """Server refused the action for a business rule"""
    action: Action
    rule: BlockingRule

    outcome = "policy_blocked"


@dataclass(frozen=True)
class Failed:
    """Any other rejection"""
    action: Action
    error_code: str
    message: str
    kind: DispatchErrorKind = DispatchErrorKind.UNKNOWN
    details: Dict[str, Any] = field(default_factory=dict)

    outcome = "failed"

    @classmethod
    def from_code(
        cls,
        action: Action,
        error_code: Optional[str],
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "Failed":
        code = error_code or ErrorCode.UNKNOWN_ERROR
        kind = classify_error_code(code)
        return cls(
            action=action,
            error_code=code,
            message=message or generic_message(kind),
            kind=kind,
            details=details or {},
        )


DispatchResult = Union[Accepted, PolicyBlocked, Failed]


def _pick(payload: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def parse_dispatch_response(action: Action, payload: Any) -> DispatchResult:
    """
    Turn a raw RPC response into one of the three result shapes.

    Malformed payloads never raise: they degrade to Failed.
    """
    if isinstance(payload, list) and len(payload) == 1:
        # set-returning RPCs wrap the object in a list
        payload = payload[0]
    if not isinstance(payload, dict):
        logger.warning(
            "Dispatch response is not an object",
            extra={"action": action.value, "payload_type": type(payload).__name__}
        )
        return Failed.from_code(action, ErrorCode.MALFORMED_RESPONSE)

    if payload.get("success") is True:
        new_version = _pick(payload, "newVersion", "new_version")
        try:
            new_version = int(new_version) if new_version is not None else None
        except (TypeError, ValueError):
            new_version = None
        return Accepted(action=action, new_version=new_version)

    if _pick(payload, "brainBlocked", "brain_blocked") is True:
        raw_rule = _pick(payload, "blockingRule", "blocking_rule")
        try:
            if not isinstance(raw_rule, dict):
                raise TypeError("blocking rule is not an object")
            return PolicyBlocked(action=action, rule=BlockingRule.model_validate(raw_rule))
        except (ValidationError, TypeError) as e:
            logger.warning(
                f"Blocking rule payload could not be parsed: {e}",
                extra={"action": action.value}
            )
            return Failed.from_code(action, ErrorCode.BLOCK_PAYLOAD_INVALID)

    error_code = _pick(payload, "errorCode", "error_code", "code")
    message = _pick(payload, "message", "error")
    return Failed.from_code(
        action,
        str(error_code) if error_code is not None else None,
        str(message) if message is not None else None,
    )
