"""
Tests for CareSession and the session registry
"""
from unittest.mock import Mock

import pytest

from carebrain.models.care import (BrainStateSnapshot, CareAction, CareState,
                                   EmergencyState)
from carebrain.models.dispatch import Accepted
from carebrain.services.care_session import (CareSession, CareSessionNotFound,
                                             CareSessionRegistry)


def row(agency_id, care_state="NOT_STARTED", emergency_state="NONE", version=1):
    return {
        "agency_id": agency_id,
        "care_state": care_state,
        "emergency_state": emergency_state,
        "state_version": version,
    }


@pytest.fixture
def session(context, showcase_backend, settings):
    return CareSession(context, showcase_backend, settings)


def test_apply_snapshot(session):
    session.apply_snapshot(BrainStateSnapshot.from_row(row("agency-1", "PAUSED", version=4)))

    assert session.care.displayed_state == CareState.PAUSED
    assert session.care.authoritative.version == 4


def test_snapshot_for_other_agency_is_ignored(session):
    session.apply_snapshot(BrainStateSnapshot.from_row(row("agency-2", "PAUSED", version=4)))

    assert session.snapshot is None
    assert session.care.authoritative.version == 0


def test_care_locked_by_active_emergency(session):
    session.apply_snapshot(BrainStateSnapshot.from_row(row("agency-1", "IN_PROGRESS", "ACTIVE", version=2)))

    assert session.care.is_locked
    assert session.care.available_actions() == frozenset()
    assert not session.emergency.is_locked


@pytest.mark.asyncio
async def test_perform_refreshes_after_accept(session, showcase_backend):
    showcase_backend.seed("agency-1", emergency_state=EmergencyState.NONE)
    await session.open()

    result = await session.perform(CareAction.START_PREPARATION)

    assert isinstance(result, Accepted)
    assert session.care.displayed_state == CareState.IN_PREPARATION
    await session.close()


@pytest.mark.asyncio
async def test_closed_session_ignores_actions(session):
    await session.open()
    await session.close()

    assert await session.perform(CareAction.START_PREPARATION) is None


@pytest.mark.asyncio
async def test_navigation_callback(context, showcase_backend, settings, consent_rule):
    on_navigate = Mock()
    session = CareSession(context, showcase_backend, settings, on_navigate=on_navigate)
    showcase_backend.block_agency("agency-1", consent_rule)
    await session.open()

    await session.perform(CareAction.START_PREPARATION)
    session.block_presentation.navigate_to_remediation()

    on_navigate.assert_called_once_with(consent_rule.remediation_path)
    await session.close()


@pytest.mark.asyncio
async def test_registry(context, showcase_backend):
    registry = CareSessionRegistry(transport_factory=lambda: showcase_backend)

    session = await registry.create(context)

    assert len(registry) == 1
    assert registry.get(session.session_id) is session

    await registry.close_all()

    assert len(registry) == 0
    assert session.closed
    with pytest.raises(CareSessionNotFound):
        registry.get(session.session_id)
    with pytest.raises(CareSessionNotFound):
        await registry.close(session.session_id)
