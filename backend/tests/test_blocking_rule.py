"""
Tests for blocking rule parsing and formatting
"""
import pytest
from pydantic import ValidationError

from carebrain.models.blocking import (BlockingReason, BlockingRule,
                                       format_blocking_message)


def test_parse_camel_case_payload():
    rule = BlockingRule.model_validate({
        "reason": "SOP_NOT_INGESTED",
        "masterSpecSection": "Section 12",
        "riskPrevented": "Care without SOPs",
        "remediationPath": "/settings/sops",
    })
    assert rule.reason == "SOP_NOT_INGESTED"
    assert rule.master_spec_section == "Section 12"
    assert rule.remediation_path == "/settings/sops"
    assert rule.blocking_details is None
    assert rule.known_reason == BlockingReason.SOP_NOT_INGESTED


def test_parse_snake_case_payload():
    rule = BlockingRule.model_validate({
        "reason": "Agency paused by administrator",
        "master_spec_section": "Section 3",
        "risk_prevented": "Unsupervised care",
        "remediation_path": "Contact your administrator",
    })
    assert rule.risk_prevented == "Unsupervised care"
    assert rule.known_reason is None


def test_missing_field_is_rejected():
    with pytest.raises(ValidationError):
        BlockingRule.model_validate({"reason": "CONSENT_MISSING", "masterSpecSection": "x", "riskPrevented": "y"})


def test_non_string_field_is_rejected():
    with pytest.raises(ValidationError):
        BlockingRule.model_validate({
            "reason": 7,
            "masterSpecSection": "x",
            "riskPrevented": "y",
            "remediationPath": "z",
        })


def test_rule_is_immutable(consent_rule):
    with pytest.raises(ValidationError):
        consent_rule.reason = "OTHER"


def test_to_payload_round_trips_wire_names(consent_rule):
    payload = consent_rule.to_payload()
    assert payload["masterSpecSection"] == "Section 20.6 - Resident Consent"
    assert payload["blockingDetails"] == {"missingConsents": ["photo"]}
    assert BlockingRule.model_validate(payload) == consent_rule


def test_format_blocking_message(consent_rule):
    message = format_blocking_message(consent_rule)
    assert message.startswith("ACTION BLOCKED\n\nRule: CONSENT_MISSING\n")
    assert "Policy section: Section 20.6 - Resident Consent" in message
    assert "Why this is blocked:\nCare without documented consent violates patient rights" in message
    assert "How to proceed:\nComplete resident consent configuration" in message
    assert '"missingConsents"' in message


def test_format_without_details_has_no_details_section():
    rule = BlockingRule(
        reason="USER_SUSPENDED",
        masterSpecSection="Section 5",
        riskPrevented="Suspended users acting",
        remediationPath="Contact your agency",
    )
    assert "Details:" not in format_blocking_message(rule)
