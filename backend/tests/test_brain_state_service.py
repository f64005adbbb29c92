"""
Tests for brain state reads and the state watcher
"""
import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from carebrain.core.transport import BrainTransport, SupabaseError
from carebrain.models.care import (ActionLane, BrainStateSnapshot, CareState,
                                   EmergencyState)
from carebrain.services.brain_state_service import (BrainStateService,
                                                    BrainStateWatcher)


def test_snapshot_from_row_with_lane_versions():
    snapshot = BrainStateSnapshot.from_row({
        "agency_id": "agency-1",
        "care_state": "IN_PROGRESS",
        "care_state_version": 4,
        "emergency_state": "PENDING",
        "emergency_state_version": 2,
        "state_version": 6,
        "updated_at": "2026-01-02T03:04:05+00:00",
    })

    assert snapshot.care.state == CareState.IN_PROGRESS
    assert snapshot.care.version == 4
    assert snapshot.emergency.state == EmergencyState.PENDING
    assert snapshot.emergency.version == 2
    assert snapshot.lane(ActionLane.CARE) is snapshot.care
    assert snapshot.updated_at.year == 2026
    assert not snapshot.emergency_active


def test_snapshot_falls_back_to_shared_version():
    snapshot = BrainStateSnapshot.from_row({
        "agency_id": "agency-1",
        "care_state": "PAUSED",
        "emergency_state": "ACTIVE",
        "state_version": 9,
    })

    assert snapshot.care.version == 9
    assert snapshot.emergency.version == 9
    assert snapshot.emergency_active


def test_snapshot_keeps_unknown_state_raw():
    snapshot = BrainStateSnapshot.from_row({"agency_id": "a", "care_state": "ARCHIVED", "state_version": 1})

    assert snapshot.care.state is None
    assert snapshot.care.raw_state == "ARCHIVED"
    assert snapshot.emergency.state is None


@pytest.mark.asyncio
async def test_fetch_state(showcase_backend, settings):
    showcase_backend.seed("agency-1", care_state=CareState.PAUSED, care_version=3)
    service = BrainStateService(showcase_backend, settings)

    snapshot = await service.fetch_state("agency-1")

    assert snapshot.agency_id == "agency-1"
    assert snapshot.care.state == CareState.PAUSED
    assert snapshot.care.version == 3


@pytest.mark.asyncio
async def test_fetch_state_without_row(settings):
    transport = Mock(spec=BrainTransport)
    transport.select = AsyncMock(return_value=[])
    service = BrainStateService(transport, settings)

    assert await service.fetch_state("agency-1") is None
    transport.select.assert_awaited_once_with(
        settings.brain_state_table, filters={"agency_id": "agency-1"}, limit=1
    )


@pytest.mark.asyncio
async def test_fetch_history(showcase_backend, settings):
    await showcase_backend.rpc(settings.care_action_rpc, {
        "p_action_type": "START_PREPARATION",
        "p_expected_version": 0,
        "p_actor_id": "caregiver-1",
        "p_agency_id": "agency-1",
        "p_mode": "showcase",
    })
    service = BrainStateService(showcase_backend, settings)

    history = await service.fetch_history("agency-1", limit=5)

    assert len(history) == 1
    assert history[0].lane == ActionLane.CARE
    assert history[0].action_type == "START_PREPARATION"
    assert history[0].version == 1


@pytest.mark.asyncio
async def test_watcher_disabled_with_zero_interval(showcase_backend, settings):
    service = BrainStateService(showcase_backend, settings)
    watcher = BrainStateWatcher(service, "agency-1", Mock(), interval_seconds=0)

    await watcher.start()

    assert not watcher.running
    await watcher.stop()


@pytest.mark.asyncio
async def test_watcher_delivers_snapshots(showcase_backend, settings):
    service = BrainStateService(showcase_backend, settings)
    received = []
    watcher = BrainStateWatcher(service, "agency-1", received.append, interval_seconds=0.01)

    await watcher.start()
    for _ in range(50):
        if received:
            break
        await asyncio.sleep(0.01)
    await watcher.stop()

    assert received
    assert received[0].agency_id == "agency-1"
    assert not watcher.running


@pytest.mark.asyncio
async def test_watcher_survives_backend_errors(settings):
    service = Mock(spec=BrainStateService)
    calls = []

    async def fetch_state(agency_id):
        calls.append(agency_id)
        if len(calls) == 1:
            raise SupabaseError("NETWORK_ERROR", "down")
        return None

    service.fetch_state = AsyncMock(side_effect=fetch_state)
    watcher = BrainStateWatcher(service, "agency-1", Mock(), interval_seconds=0.01)

    await watcher.start()
    for _ in range(50):
        if service.fetch_state.await_count >= 2:
            break
        await asyncio.sleep(0.01)
    await watcher.stop()

    assert service.fetch_state.await_count >= 2
