"""
API routes for care sessions (care / emergency action panels)
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from carebrain.core.config import get_settings
from carebrain.core.logging_config import LoggingConfig
from carebrain.core.transport import SupabaseError
from carebrain.models.care import ActionLane, ExecutionMode, parse_action
from carebrain.models.dispatch import DispatchContext
from carebrain.services.care_session import (CareSession, CareSessionNotFound,
                                             CareSessionRegistry,
                                             get_session_registry)

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/care/sessions", tags=["care"])


class OpenSessionRequest(BaseModel):
    """Request model for opening a session"""
    actor_id: str = Field(..., min_length=1)
    agency_id: str = Field(..., min_length=1)
    resident_id: Optional[str] = None
    mode: Optional[ExecutionMode] = None


class PerformActionRequest(BaseModel):
    """Request model for performing an action"""
    action: str = Field(..., description="Care or emergency action name")


class PerformActionResponse(BaseModel):
    outcome: str = Field(..., description="accepted, policy_blocked, failed, superseded or ignored")
    view: Dict[str, Any]


def _get_session(registry: CareSessionRegistry, session_id: str) -> CareSession:
    try:
        return registry.get(session_id)
    except CareSessionNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session {session_id} not found")


def _backend_unavailable(e: SupabaseError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"code": e.code, "message": e.message},
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def open_session(
    request: OpenSessionRequest,
    registry: CareSessionRegistry = Depends(get_session_registry),
):
    """Open a session and load the current brain state"""
    context = DispatchContext(
        actor_id=request.actor_id,
        agency_id=request.agency_id,
        resident_id=request.resident_id,
        mode=request.mode or ExecutionMode(get_settings().default_mode),
    )
    try:
        session = await registry.create(context)
    except SupabaseError as e:
        raise _backend_unavailable(e)
    return session.view()


@router.get("/{session_id}")
async def get_session(session_id: str, registry: CareSessionRegistry = Depends(get_session_registry)):
    """Current view of a session"""
    return _get_session(registry, session_id).view()


@router.post("/{session_id}/refresh")
async def refresh_session(session_id: str, registry: CareSessionRegistry = Depends(get_session_registry)):
    """Refetch the brain state"""
    session = _get_session(registry, session_id)
    try:
        await session.refresh()
    except SupabaseError as e:
        raise _backend_unavailable(e)
    return session.view()


@router.post("/{session_id}/actions", response_model=PerformActionResponse)
async def perform_action(
    session_id: str,
    request: PerformActionRequest,
    registry: CareSessionRegistry = Depends(get_session_registry),
):
    """Perform a care or emergency action"""
    session = _get_session(registry, session_id)
    try:
        action = parse_action(request.action)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    result = await session.perform(action)
    return PerformActionResponse(
        outcome=result.outcome if result is not None else "ignored",
        view=session.view(),
    )


@router.post("/{session_id}/errors/{lane}/dismiss")
async def dismiss_error(
    session_id: str,
    lane: ActionLane,
    registry: CareSessionRegistry = Depends(get_session_registry),
):
    """Dismiss the inline error of a lane"""
    session = _get_session(registry, session_id)
    session.reconciler(lane).dismiss_error()
    return session.view()


@router.post("/{session_id}/block/dismiss")
async def dismiss_block(session_id: str, registry: CareSessionRegistry = Depends(get_session_registry)):
    """Dismiss the policy block explanation"""
    session = _get_session(registry, session_id)
    session.block_presentation.dismiss()
    return session.view()


@router.post("/{session_id}/block/remediate")
async def remediate_block(session_id: str, registry: CareSessionRegistry = Depends(get_session_registry)):
    """Close the block and return where to go to fix it"""
    session = _get_session(registry, session_id)
    path = session.block_presentation.navigate_to_remediation()
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No policy block is shown")
    return {"remediation_path": path, "view": session.view()}


@router.get("/{session_id}/history")
async def get_history(
    session_id: str,
    limit: int = Query(default=50, ge=1, le=500),
    registry: CareSessionRegistry = Depends(get_session_registry),
) -> List[Dict[str, Any]]:
    """Brain state transitions for the session's agency, newest first"""
    session = _get_session(registry, session_id)
    try:
        transitions = await session.history(limit=limit)
    except SupabaseError as e:
        raise _backend_unavailable(e)
    return [t.model_dump(mode="json") for t in transitions]


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session_id: str, registry: CareSessionRegistry = Depends(get_session_registry)):
    """Close a session; responses still in flight are dropped"""
    try:
        await registry.close(session_id)
    except CareSessionNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session {session_id} not found")
