import json
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.core.negotiation import NegotiationStatus
from tests.factories import activity, category, roster_member, spread_activities, term


def _dump(models):
    return [model.model_dump(mode="json", by_alias=True) for model in models]


@pytest.fixture
def healthy_payload(now):
    activities = (
        spread_activities(now, count=14, days=7, event_type="proposal_created")
        + spread_activities(now, count=14, days=7, event_type="proposal_response")
        + [activity("term_agreed", now - timedelta(days=1), event_id="agreed_1")]
    )
    categories = [
        category(
            "Pricing Terms",
            [
                term("margin", NegotiationStatus.AGREED),
                term("upfront_fee", pending=1),
            ],
        )
    ]
    return {
        "activities": _dump(activities),
        "roster": _dump([roster_member("user-1", deal_role="deal_lead")]),
        "categories": _dump(categories),
        "asOf": now.isoformat(),
    }


@pytest.fixture
def silent_payload(now):
    return {
        "dealName": "Quiet Deal",
        "roster": _dump([roster_member("user-1", deal_role="deal_lead")]),
        "asOf": now.isoformat(),
    }


def test_velocity_metrics_for_active_deal(healthy_payload):
    with TestClient(app) as client:
        response = client.post("/deals/deal_001/velocity/metrics", json=healthy_payload)

    assert response.status_code == 200
    body = response.json()
    assert body["dealId"] == "deal_001"
    assert body["measurementDate"].startswith("2026-03-02T12:00:00")
    assert body["proposalsPerDay"] == pytest.approx(2.0)
    assert body["responseRateToProposals"] == pytest.approx(100)
    assert body["participantEngagementRate"] == pytest.approx(100)
    assert body["daysSinceLastAgreement"] == 1
    assert body["velocityTrend"] == "accelerating"
    assert body["estimatedDaysToCompletion"] is not None


def test_explicit_term_counts_override_categories(healthy_payload):
    healthy_payload.update({"totalTerms": 10, "agreedTerms": 10})

    with TestClient(app) as client:
        body = client.post("/deals/deal_001/velocity/metrics", json=healthy_payload).json()

    assert body["estimatedDaysToCompletion"] == 0


def test_stall_risk_for_silent_deal(silent_payload):
    with TestClient(app) as client:
        response = client.post("/deals/deal_001/velocity/stall-risk", json=silent_payload)

    assert response.status_code == 200
    body = response.json()
    assert body["riskLevel"] == "critical"
    assert body["overallRiskScore"] == 100
    assert body["probabilityOfStall"] == 0.95
    assert body["estimatedDaysUntilStall"] == 0
    factor_types = [factor["factorType"] for factor in body["riskFactors"]]
    assert "unresponsive_party" in factor_types
    unresponsive = next(f for f in body["riskFactors"] if f["factorType"] == "unresponsive_party")
    assert unresponsive["relatedPartyId"] == "user-1"
    assert unresponsive["dataPoints"]["daysSinceLastActivity"] == 999
    assert body["matchedPatterns"][0]["patternId"] == "participant-dropout"


def test_health_summary_for_active_deal(healthy_payload):
    healthy_payload["dealName"] = "Apollo Term Loan B"

    with TestClient(app) as client:
        response = client.post("/deals/deal_001/velocity/health-summary", json=healthy_payload)

    assert response.status_code == 200
    body = response.json()
    assert body["overallHealth"] == "healthy"
    assert body["healthScore"] == 100
    assert body["stallRisk"]["riskFactors"] == []
    assert body["executiveSummary"].startswith("Apollo Term Loan B is progressing well.")
    assert body["participantEngagement"][0]["participantId"] == "user-1"
    assert "Deal velocity is accelerating" in body["positiveIndicators"]
    assert body["activeAlerts"] == []


def test_health_summary_for_silent_deal_lists_alerts_first_by_severity(silent_payload):
    with TestClient(app) as client:
        response = client.post("/deals/deal_001/velocity/health-summary", json=silent_payload)

    assert response.status_code == 200
    body = response.json()
    assert body["overallHealth"] == "critical"
    first = body["activeAlerts"][0]
    assert first["alertType"] == "party_response_delay"
    assert first["severity"] == "critical"
    assert first["interventions"][0] == {
        "interventionType": "schedule_call",
        "priority": "primary",
        "title": "Direct Outreach Call",
    }
    assert body["topPriorities"][0] == "Direct Outreach Call"
    assert "urgent intervention" in body["executiveSummary"]


def test_health_summary_requires_deal_name(healthy_payload):
    with TestClient(app) as client:
        response = client.post("/deals/deal_001/velocity/health-summary", json=healthy_payload)

    assert response.status_code == 422


def test_precomputed_participants_take_precedence_over_roster(silent_payload):
    silent_payload["participants"] = [
        {
            "participantId": "user-7",
            "partyName": "BigBank NA",
            "partyType": "lender_side",
            "dealRole": "negotiator",
            "daysSinceLastActivity": 1,
            "isActive": True,
            "engagementScore": 80,
        }
    ]

    with TestClient(app) as client:
        body = client.post("/deals/deal_001/velocity/stall-risk", json=silent_payload).json()

    assert "unresponsive_party" not in [f["factorType"] for f in body["riskFactors"]]
    assert "low_engagement" not in [f["factorType"] for f in body["riskFactors"]]


def test_benchmark_selected_from_configured_catalog(monkeypatch, healthy_payload):
    monkeypatch.setenv(
        "DEAL_BENCHMARK_CATALOG_JSON",
        json.dumps({"strict": {"inactivityWarningDays": 0, "inactivityCriticalDays": 1}}),
    )
    healthy_payload["benchmarkId"] = "strict"

    with TestClient(app) as client:
        body = client.post("/deals/deal_001/velocity/stall-risk", json=healthy_payload).json()

    assert [(f["factorType"], f["severity"]) for f in body["riskFactors"]] == [
        ("inactivity_period", "medium")
    ]


def test_configured_default_benchmark_applies_without_id(monkeypatch, healthy_payload):
    monkeypatch.setenv(
        "DEAL_BENCHMARK_CATALOG_JSON",
        json.dumps({"strict": {"inactivityWarningDays": 0, "inactivityCriticalDays": 1}}),
    )
    monkeypatch.setenv("DEAL_BENCHMARK_DEFAULT_ID", "strict")

    with TestClient(app) as client:
        body = client.post("/deals/deal_001/velocity/stall-risk", json=healthy_payload).json()

    assert [f["factorType"] for f in body["riskFactors"]] == ["inactivity_period"]


def test_inline_benchmark_wins_over_catalog(monkeypatch, healthy_payload):
    monkeypatch.setenv("DEAL_BENCHMARK_DEFAULT_ID", "missing")
    healthy_payload["benchmarkId"] = "missing"
    healthy_payload["benchmark"] = {"inactivityWarningDays": 0}

    with TestClient(app) as client:
        response = client.post("/deals/deal_001/velocity/stall-risk", json=healthy_payload)

    assert response.status_code == 200
    assert response.json()["riskFactors"][0]["factorType"] == "inactivity_period"


def test_unknown_benchmark_id_is_not_found(healthy_payload):
    healthy_payload["benchmarkId"] = "does_not_exist"

    with TestClient(app) as client:
        response = client.post("/deals/deal_001/velocity/stall-risk", json=healthy_payload)

    assert response.status_code == 404
    assert response.json() == {"detail": "DEAL_BENCHMARK_NOT_FOUND"}


@pytest.mark.parametrize(
    "path", ["velocity/metrics", "velocity/stall-risk", "velocity/health-summary"]
)
def test_velocity_apis_can_be_disabled(monkeypatch, silent_payload, path):
    monkeypatch.setenv("DEAL_VELOCITY_APIS_ENABLED", "false")

    with TestClient(app) as client:
        response = client.post(f"/deals/deal_001/{path}", json=silent_payload)

    assert response.status_code == 404
    assert response.json() == {"detail": "DEAL_VELOCITY_APIS_DISABLED"}


def test_invalid_activity_type_is_rejected(silent_payload, now):
    silent_payload["activities"] = [
        {
            "id": "a1",
            "dealId": "deal_001",
            "eventType": "deal_closed",
            "actorId": "user-1",
            "actorParty": "BigBank NA",
            "timestamp": now.isoformat(),
        }
    ]

    with TestClient(app) as client:
        response = client.post("/deals/deal_001/velocity/metrics", json=silent_payload)

    assert response.status_code == 422
