"""
Dispatch error codes and their classification
"""
import re
from enum import Enum
from typing import Optional


class DispatchErrorKind(str, Enum):
    """Kinds of rejected dispatches"""
    STALE_VERSION = "stale_version"  # Expected version no longer current
    POLICY_BLOCK = "policy_block"  # Brain refused for a business rule
    TRANSPORT = "transport"  # Network / backend availability
    INVALID_REQUEST = "invalid_request"  # Request rejected as malformed or not allowed
    UNKNOWN = "unknown"


class ErrorCode:
    """Error codes produced by this client or the brain backend"""
    NETWORK_ERROR = "NETWORK_ERROR"
    VERSION_CONFLICT = "VERSION_CONFLICT"
    STALE_VERSION = "STALE_VERSION"
    MISSING_CONTEXT = "MISSING_CONTEXT"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    EMERGENCY_ACTIVE = "EMERGENCY_ACTIVE"
    BLOCK_PAYLOAD_INVALID = "BLOCK_PAYLOAD_INVALID"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


STALE_CODES = {ErrorCode.VERSION_CONFLICT, ErrorCode.STALE_VERSION}

INVALID_REQUEST_CODES = {
    ErrorCode.MISSING_CONTEXT,
    ErrorCode.INVALID_TRANSITION,
    ErrorCode.EMERGENCY_ACTIVE,
    ErrorCode.BLOCK_PAYLOAD_INVALID,
    ErrorCode.MALFORMED_RESPONSE,
}

# Backend failures surfaced as HTTP_<status> or raw PostgREST codes
TRANSPORT_PATTERNS = [
    r"^HTTP_5\d\d$",
    r"^PGRST00\d$",  # PostgREST connection errors
]

GENERIC_MESSAGES = {
    DispatchErrorKind.STALE_VERSION: "The record changed before your action arrived. Review the current state and try again.",
    DispatchErrorKind.TRANSPORT: "The care service could not be reached. Try again.",
    DispatchErrorKind.INVALID_REQUEST: "The action could not be applied.",
    DispatchErrorKind.UNKNOWN: "The action failed.",
}


def classify_error_code(error_code: Optional[str]) -> DispatchErrorKind:
    """
    Classify an error code returned by a failed dispatch

    Args:
        error_code: Code from the backend or produced by the transport

    Returns:
        DispatchErrorKind (UNKNOWN for anything unrecognised)
    """
    code = (error_code or "").strip().upper()
    if not code:
        return DispatchErrorKind.UNKNOWN
    if code in STALE_CODES:
        return DispatchErrorKind.STALE_VERSION
    if code == ErrorCode.NETWORK_ERROR:
        return DispatchErrorKind.TRANSPORT
    for pattern in TRANSPORT_PATTERNS:
        if re.match(pattern, code):
            return DispatchErrorKind.TRANSPORT
    if code in INVALID_REQUEST_CODES:
        return DispatchErrorKind.INVALID_REQUEST
    return DispatchErrorKind.UNKNOWN


def generic_message(kind: DispatchErrorKind) -> str:
    """User facing fallback text when the backend sent no message"""
    return GENERIC_MESSAGES.get(kind, GENERIC_MESSAGES[DispatchErrorKind.UNKNOWN])
