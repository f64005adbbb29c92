"""
Pytest configuration and fixtures
"""
import os
import sys
from pathlib import Path

import pytest

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Tests never reach a real Supabase project
os.environ["BRAIN_BACKEND"] = "showcase"
os.environ["STATE_POLL_INTERVAL_SECONDS"] = "0"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_FILE_ENABLED"] = "false"
os.environ.setdefault("SUPABASE_URL", "http://supabase.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-test-key")

from carebrain.core.config import Settings, get_settings
from carebrain.models.blocking import BlockingRule
from carebrain.models.care import ExecutionMode
from carebrain.models.dispatch import DispatchContext
from carebrain.services.action_dispatcher import ActionDispatcher
from carebrain.services.showcase_backend import ShowcaseBrainBackend

get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the process environment defaults"""
    return Settings(
        brain_backend="showcase",
        state_poll_interval_seconds=0,
        supabase_url="http://supabase.test",
        supabase_anon_key="anon-test-key",
    )


@pytest.fixture
def showcase_backend(settings) -> ShowcaseBrainBackend:
    """Fresh in-memory brain per test"""
    return ShowcaseBrainBackend(settings)


@pytest.fixture
def context() -> DispatchContext:
    return DispatchContext(
        actor_id="caregiver-1",
        agency_id="agency-1",
        resident_id="resident-1",
        mode=ExecutionMode.SHOWCASE,
    )


@pytest.fixture
def dispatcher(showcase_backend, settings) -> ActionDispatcher:
    return ActionDispatcher(showcase_backend, settings)


@pytest.fixture
def consent_rule() -> BlockingRule:
    return BlockingRule(
        reason="CONSENT_MISSING",
        masterSpecSection="Section 20.6 - Resident Consent",
        riskPrevented="Care without documented consent violates patient rights",
        remediationPath="Complete resident consent configuration",
        blockingDetails={"missingConsents": ["photo"]},
    )


@pytest.fixture
def client(showcase_backend):
    """Test client whose sessions talk to the per-test showcase brain"""
    from fastapi.testclient import TestClient

    from carebrain.main import app
    from carebrain.services.care_session import (CareSessionRegistry,
                                                 get_session_registry)

    registry = CareSessionRegistry(transport_factory=lambda: showcase_backend)
    app.dependency_overrides[get_session_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
