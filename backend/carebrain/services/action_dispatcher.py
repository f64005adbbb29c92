"""
Action dispatcher: sends one care / emergency action to the brain
"""
from typing import Any, Optional

from carebrain.core.action_catalog import lane_for_action
from carebrain.core.config import Settings, get_settings
from carebrain.core.logging_config import LoggingConfig
from carebrain.core.transport import BrainTransport, SupabaseError
from carebrain.models.care import Action, ActionLane
from carebrain.models.dispatch import (Accepted, DispatchContext,
                                       DispatchRequest, DispatchResult, Failed,
                                       PolicyBlocked, parse_dispatch_response)

logger = LoggingConfig.get_logger(__name__)


class ActionDispatcher:
    """
    Sends an action with the version the caller last observed.

    The caller is trusted to only send actions valid for `current_state`;
    the brain is the authority. Exactly one remote call per dispatch and
    no retries: every outcome, including transport failure, comes back as
    a DispatchResult.
    """

    def __init__(self, transport: BrainTransport, settings: Optional[Settings] = None):
        self.transport = transport
        self._settings = settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def rpc_for_action(self, action: Action) -> str:
        if lane_for_action(action) == ActionLane.EMERGENCY:
            return self.settings.emergency_action_rpc
        return self.settings.care_action_rpc

    async def dispatch(
        self,
        action: Action,
        current_state: Any,
        current_version: int,
        context: DispatchContext,
    ) -> DispatchResult:
        """
        Dispatch an action

        Args:
            action: Action to apply
            current_state: State the caller believes is current (logged only)
            current_version: Version the caller last observed
            context: Actor, agency, resident and execution mode

        Returns:
            Accepted, PolicyBlocked or Failed
        """
        request = DispatchRequest(action=action, expected_version=current_version, context=context)
        rpc_name = self.rpc_for_action(action)
        log_extra = {
            "action": action.value,
            "rpc": rpc_name,
            "current_state": getattr(current_state, "value", current_state),
            "expected_version": current_version,
            "agency_id": context.agency_id,
            "actor_id": context.actor_id,
            "mode": context.mode.value,
        }
        logger.info("Dispatching action", extra=log_extra)

        try:
            payload = await self.transport.rpc(rpc_name, request.to_rpc_params())
        except SupabaseError as e:
            logger.warning(
                f"Dispatch failed at transport level: {e}",
                extra={**log_extra, "error_code": e.code, "status_code": e.status_code}
            )
            return Failed.from_code(action, e.code, e.message, details=e.details)

        result = parse_dispatch_response(action, payload)
        if isinstance(result, Accepted):
            logger.info("Action accepted", extra={**log_extra, "new_version": result.new_version})
        elif isinstance(result, PolicyBlocked):
            logger.info("Action blocked by policy", extra={**log_extra, "rule": result.rule.reason})
        else:
            logger.warning(
                "Action rejected",
                extra={**log_extra, "error_code": result.error_code, "error_kind": result.kind.value}
            )
        return result
