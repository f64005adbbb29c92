"""
Tests for the in-memory showcase brain
"""
import pytest

from carebrain.core.dispatch_errors import ErrorCode
from carebrain.core.transport import SupabaseError
from carebrain.models.care import CareState, EmergencyState


def params(action, version, agency="agency-1", actor="caregiver-1"):
    return {
        "p_action_type": action,
        "p_expected_version": version,
        "p_actor_id": actor,
        "p_agency_id": agency,
        "p_resident_id": None,
        "p_mode": "showcase",
    }


@pytest.mark.asyncio
async def test_applies_valid_transition(showcase_backend, settings):
    response = await showcase_backend.rpc(settings.care_action_rpc, params("START_PREPARATION", 0))

    assert response == {"success": True, "newVersion": 1}
    rows = await showcase_backend.select(settings.brain_state_table, filters={"agency_id": "agency-1"})
    assert rows[0]["care_state"] == "IN_PREPARATION"
    assert rows[0]["care_state_version"] == 1
    assert rows[0]["emergency_state_version"] == 0


@pytest.mark.asyncio
async def test_version_conflict(showcase_backend, settings):
    showcase_backend.seed("agency-1", care_version=4)

    response = await showcase_backend.rpc(settings.care_action_rpc, params("START_PREPARATION", 3))

    assert response["success"] is False
    assert response["errorCode"] == ErrorCode.VERSION_CONFLICT


@pytest.mark.asyncio
async def test_missing_context(showcase_backend, settings):
    response = await showcase_backend.rpc(settings.emergency_action_rpc, params("TRIGGER_EMERGENCY", 0, agency=""))
    assert response["errorCode"] == ErrorCode.MISSING_CONTEXT


@pytest.mark.asyncio
async def test_invalid_transition(showcase_backend, settings):
    response = await showcase_backend.rpc(settings.care_action_rpc, params("START_CARE", 0))
    assert response["errorCode"] == ErrorCode.INVALID_TRANSITION


@pytest.mark.asyncio
async def test_action_sent_to_wrong_rpc(showcase_backend, settings):
    response = await showcase_backend.rpc(settings.care_action_rpc, params("TRIGGER_EMERGENCY", 0))
    assert response["errorCode"] == ErrorCode.INVALID_TRANSITION


@pytest.mark.asyncio
async def test_care_refused_during_active_emergency(showcase_backend, settings):
    showcase_backend.seed("agency-1", care_state=CareState.IN_PROGRESS, emergency_state=EmergencyState.ACTIVE)

    response = await showcase_backend.rpc(settings.care_action_rpc, params("PAUSE_CARE", 0))

    assert response["errorCode"] == ErrorCode.EMERGENCY_ACTIVE


@pytest.mark.asyncio
async def test_blocked_agency(showcase_backend, settings, consent_rule):
    showcase_backend.block_agency("agency-1", consent_rule)

    response = await showcase_backend.rpc(settings.emergency_action_rpc, params("TRIGGER_EMERGENCY", 0))

    assert response["brainBlocked"] is True
    assert response["blockingRule"]["masterSpecSection"] == consent_rule.master_spec_section

    showcase_backend.unblock_agency("agency-1")
    response = await showcase_backend.rpc(settings.emergency_action_rpc, params("TRIGGER_EMERGENCY", 0))
    assert response["success"] is True


@pytest.mark.asyncio
async def test_unknown_rpc_raises(showcase_backend):
    with pytest.raises(SupabaseError) as exc_info:
        await showcase_backend.rpc("drop_everything", params("START_CARE", 0))
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_unknown_table_raises(showcase_backend):
    with pytest.raises(SupabaseError):
        await showcase_backend.select("residents")


@pytest.mark.asyncio
async def test_history_newest_first(showcase_backend, settings):
    await showcase_backend.rpc(settings.care_action_rpc, params("START_PREPARATION", 0))
    await showcase_backend.rpc(settings.care_action_rpc, params("START_CARE", 1))
    await showcase_backend.rpc(settings.care_action_rpc, params("START_PREPARATION", 0, agency="agency-2"))

    rows = await showcase_backend.select(
        settings.brain_history_table,
        filters={"agency_id": "agency-1"},
        order="created_at.desc",
        limit=10,
    )

    assert [r["action_type"] for r in rows] == ["START_CARE", "START_PREPARATION"]
    assert rows[0]["from_state"] == "IN_PREPARATION"
    assert rows[0]["to_state"] == "IN_PROGRESS"


@pytest.mark.asyncio
async def test_reads_are_copies(showcase_backend, settings):
    rows = await showcase_backend.select(settings.brain_state_table, filters={"agency_id": "agency-1"})
    rows[0]["care_state"] = "COMPLETED"

    rows = await showcase_backend.select(settings.brain_state_table, filters={"agency_id": "agency-1"})
    assert rows[0]["care_state"] == "NOT_STARTED"


def test_reset(showcase_backend):
    showcase_backend.seed("agency-1", care_version=3)
    showcase_backend.reset()
    assert showcase_backend.seed("agency-1")["care_state_version"] == 0
