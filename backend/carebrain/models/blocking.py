"""
Policy block explanation returned when the brain refuses an action
"""
import json
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BlockingReason(str, Enum):
    """Known blocking rule codes"""
    ONBOARDING_INCOMPLETE = "ONBOARDING_INCOMPLETE"
    INSURANCE_INCOMPLETE = "INSURANCE_INCOMPLETE"
    SOP_NOT_INGESTED = "SOP_NOT_INGESTED"
    RESIDENT_NO_BASELINE = "RESIDENT_NO_BASELINE"
    USER_IDENTITY_INVALID = "USER_IDENTITY_INVALID"
    USER_REVOKED = "USER_REVOKED"
    USER_SUSPENDED = "USER_SUSPENDED"
    CONSENT_MISSING = "CONSENT_MISSING"
    TENANT_ISOLATION_VIOLATED = "TENANT_ISOLATION_VIOLATED"
    EMERGENCY_PROFILE_MISSING = "EMERGENCY_PROFILE_MISSING"
    SOP_VIOLATION = "SOP_VIOLATION"


class BlockingRule(BaseModel):
    """
    Display-only explanation of a policy block.

    The client never interprets or retries based on its contents. Field
    aliases match the camelCase payload sent by the backend; snake_case
    names are accepted too.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    reason: str = Field(..., min_length=1, description="Blocking rule code or human-readable reason")
    master_spec_section: str = Field(..., alias="masterSpecSection", description="Policy section reference")
    risk_prevented: str = Field(..., alias="riskPrevented", description="Risk the block prevents")
    remediation_path: str = Field(..., alias="remediationPath", description="How to proceed")
    blocking_details: Optional[Dict[str, Any]] = Field(default=None, alias="blockingDetails")

    @field_validator("reason", "master_spec_section", "risk_prevented", "remediation_path", mode="before")
    @classmethod
    def require_text(cls, v):
        if not isinstance(v, str):
            raise ValueError("must be a string")
        return v

    @property
    def known_reason(self) -> Optional[BlockingReason]:
        """The reason as a BlockingReason when it is one of the known codes"""
        try:
            return BlockingReason(self.reason)
        except ValueError:
            return None

    def to_payload(self) -> Dict[str, Any]:
        """Wire (camelCase) representation"""
        return self.model_dump(by_alias=True, exclude_none=True)


def format_blocking_message(rule: BlockingRule) -> str:
    """Format blocking rule for display"""
    lines = [
        "ACTION BLOCKED",
        "",
        f"Rule: {rule.reason}",
        f"Policy section: {rule.master_spec_section}",
        "",
        "Why this is blocked:",
        rule.risk_prevented,
        "",
        "How to proceed:",
        rule.remediation_path,
    ]
    if rule.blocking_details:
        lines.extend(["", "Details: " + json.dumps(rule.blocking_details, indent=2, default=str)])
    return "\n".join(lines)
