import pytest

from src.core.negotiation import NegotiationStatus
from src.core.velocity import (
    HistoricalPatternMatch,
    RiskFactor,
    StallRiskAssessment,
    assess_stall_risk,
    build_deal_health_summary,
    generate_alerts,
)
from src.core.velocity.health import (
    classify_health,
    concern_areas,
    executive_summary,
    positive_indicators,
    top_priorities,
)
from tests.factories import category, engagement, metrics, term


def _factor(factor_type: str, severity: str = "high", description: str = "") -> RiskFactor:
    return RiskFactor(
        factor_type=factor_type,
        severity=severity,
        weight=0.2,
        description=description or f"{factor_type} detected",
    )


def _assessment(now, score: float, level: str, factors=(), patterns=()) -> StallRiskAssessment:
    return StallRiskAssessment(
        deal_id="deal_1",
        assessment_date=now,
        overall_risk_score=score,
        risk_level=level,
        probability_of_stall=min(0.95, score / 100),
        estimated_days_until_stall=None,
        risk_factors=list(factors),
        matched_patterns=list(patterns),
        confidence=0.8,
    )


def _match(similarity: float, close_rate: float = 0.38) -> HistoricalPatternMatch:
    return HistoricalPatternMatch(
        pattern_id="participant-dropout",
        pattern_name="Key Participant Disengagement",
        similarity=similarity,
        outcome_type="stalled_failed",
        historical_close_rate=close_rate,
    )


@pytest.mark.parametrize(
    "score,level,health,health_score",
    [
        (90, "critical", "critical", 0),
        (72, "critical", "critical", 6),
        (60, "high", "at_risk", 40),
        (35, "medium", "at_risk", 52.5),
        (10, "low", "healthy", 90),
        (0, "low", "healthy", 100),
    ],
)
def test_health_bands_follow_risk_level(now, score, level, health, health_score):
    assert classify_health(_assessment(now, score, level)) == (
        health,
        pytest.approx(health_score),
    )


def test_healthy_summary_highlights_completion_estimate(now):
    deal_metrics = metrics(now)

    summary = executive_summary("Apollo TLB", deal_metrics, _assessment(now, 5, "low"), [])

    assert summary == (
        "Apollo TLB is progressing well. Velocity metrics are healthy with 100% participant "
        "engagement. Estimated 10 days to completion based on current pace."
    )


def test_healthy_summary_without_estimate_encourages_momentum(now):
    deal_metrics = metrics(now, estimated_days_to_completion=None)

    summary = executive_summary("Apollo TLB", deal_metrics, _assessment(now, 5, "low"), [])

    assert summary.endswith("Maintain current momentum for optimal results.")


def test_critical_summary_counts_urgent_alerts_and_top_pattern_close_rate(now):
    assessment = _assessment(
        now, 85, "critical", factors=[_factor("inactivity_period")], patterns=[_match(0.9)]
    )
    alerts = generate_alerts("deal_1", assessment, metrics(now), [], [])

    summary = executive_summary("Apollo TLB", metrics(now), assessment, alerts)

    assert summary == (
        "Apollo TLB requires immediate attention. Deal velocity has declined significantly "
        "with 1 risk factors identified. 2 urgent interventions recommended. Historical "
        "patterns suggest a 62% probability of extended delays without action."
    )


def test_critical_summary_without_patterns_assumes_even_odds(now):
    assessment = _assessment(now, 85, "critical", factors=[_factor("unresponsive_party")])
    alerts = generate_alerts("deal_1", assessment, metrics(now), [], [])

    summary = executive_summary("Apollo TLB", metrics(now), assessment, alerts)

    assert "1 urgent intervention recommended." in summary
    assert summary.endswith("suggest a 50% probability of extended delays without action.")


def test_high_and_medium_summaries_use_alert_counts(now):
    factors = [_factor("inactivity_period"), _factor("low_engagement", "medium")]
    deal_metrics = metrics(now, days_since_last_activity=4, participant_engagement_rate=33.4)
    high_assessment = _assessment(now, 55, "high", factors)
    medium_assessment = _assessment(now, 35, "medium", factors)
    medium_metrics = metrics(now, compared_to_historical_average=0.8)

    high = executive_summary(
        "Deal",
        deal_metrics,
        high_assessment,
        generate_alerts("deal_1", high_assessment, deal_metrics, [], []),
    )
    medium = executive_summary(
        "Deal",
        medium_metrics,
        medium_assessment,
        generate_alerts("deal_1", medium_assessment, medium_metrics, [], []),
    )

    assert high == (
        "Deal is showing warning signs. 4 days since last activity with engagement at 33%. "
        "Consider the 1 suggested intervention to maintain momentum."
    )
    assert medium == (
        "Deal is progressing with some areas requiring attention. Current velocity is at "
        "80% of historical average. 2 optimization opportunities identified."
    )


def test_medium_summary_singular_opportunity(now):
    assessment = _assessment(now, 35, "medium", [_factor("pricing_deadlock", "medium")])
    deal_metrics = metrics(now, compared_to_historical_average=0.9)
    alerts = generate_alerts("deal_1", assessment, deal_metrics, [], [])

    summary = executive_summary("Deal", deal_metrics, assessment, alerts)

    assert summary.endswith("90% of historical average. 1 optimization opportunity identified.")


def test_top_priorities_lead_with_primary_interventions_of_urgent_alerts(now):
    factors = [
        _factor("inactivity_period"),
        _factor("inactivity_period"),
        _factor("unresponsive_party"),
        _factor("low_engagement", "medium"),
    ]
    assessment = _assessment(now, 80, "critical", factors)
    alerts = generate_alerts("deal_1", assessment, metrics(now), [], [])

    assert top_priorities(alerts, assessment) == [
        "Direct Outreach Call",
        "Schedule Alignment Call",
        "Address inactivity period",
    ]


def test_top_priorities_deduplicate_factor_types_without_alerts(now):
    factors = [
        _factor("inactivity_period"),
        _factor("inactivity_period"),
        _factor("unresponsive_party"),
        _factor("low_engagement", "medium"),
    ]

    assert top_priorities([], _assessment(now, 80, "critical", factors)) == [
        "Address inactivity period"
    ]


def test_top_priorities_skip_factor_already_named_by_an_alert(now):
    assessment = _assessment(now, 60, "high", [_factor("covenant_stalemate")])
    alerts = generate_alerts("deal_1", assessment, metrics(now), [], [])

    assert top_priorities(alerts, assessment) == [
        "Schedule Covenant Alignment Call",
        "Address covenant stalemate",
    ]


def test_positive_indicators_are_capped(now):
    participants = [engagement(f"u{i}") for i in range(3)]

    indicators = positive_indicators(metrics(now), participants)

    assert indicators == [
        "Strong participant engagement (100%)",
        "Deal velocity is accelerating",
        "High proposal response rate (100%)",
        "Consistent progress on term agreements",
    ]


def test_stable_pace_is_a_positive_indicator_only_near_history(now):
    near = positive_indicators(
        metrics(now, velocity_trend="stable", compared_to_historical_average=0.8), []
    )
    behind = positive_indicators(
        metrics(now, velocity_trend="stable", compared_to_historical_average=0.6), []
    )

    assert "Maintaining healthy negotiation pace" in near
    assert "Maintaining healthy negotiation pace" not in behind


def test_concern_areas_add_pace_and_strong_pattern(now):
    factors = [_factor(t, description=t) for t in ("inactivity_period", "low_engagement")]
    assessment = _assessment(now, 75, "critical", factors, [_match(2 / 3)])

    concerns = concern_areas(metrics(now, compared_to_historical_average=0.5), assessment)

    assert concerns == [
        "inactivity_period",
        "low_engagement",
        "Deal velocity at 50% of typical pace",
        'Pattern match: "Key Participant Disengagement" (67% similarity)',
    ]


def test_build_summary_from_assessment(now, benchmark, pattern_catalog):
    participants = [engagement(f"u{i}") for i in range(2)]
    deal_metrics = metrics(now)
    assessment = assess_stall_risk(
        "deal_1", deal_metrics, participants, [], benchmark, pattern_catalog=pattern_catalog, now=now
    )

    summary = build_deal_health_summary(
        "deal_1", "Apollo TLB", deal_metrics, assessment, participants, []
    )

    assert summary.overall_health == "healthy"
    assert summary.health_score == 100
    assert summary.stall_risk == assessment
    assert summary.participant_engagement == participants
    assert summary.active_alerts == []
    assert summary.top_priorities == []
    assert summary.concern_areas == []
    assert summary.executive_summary.startswith("Apollo TLB is progressing well.")


def test_build_summary_surfaces_closing_window_alert(now, benchmark, pattern_catalog):
    participants = [engagement(f"u{i}") for i in range(2)]
    categories = [
        category(
            "General Terms",
            [term(f"t{i}", NegotiationStatus.AGREED) for i in range(4)] + [term("t4")],
        )
    ]
    deal_metrics = metrics(now)
    assessment = assess_stall_risk(
        "deal_1",
        deal_metrics,
        participants,
        categories,
        benchmark,
        pattern_catalog=pattern_catalog,
        now=now,
    )

    summary = build_deal_health_summary(
        "deal_1", "Apollo TLB", deal_metrics, assessment, participants, categories
    )

    closing = [a for a in summary.active_alerts if a.alert_type == "optimal_closing_window"]
    assert len(closing) == 1
    assert closing[0].description.startswith("Deal is 80% complete with strong engagement.")
    assert summary.model_dump(by_alias=True)["activeAlerts"][-1]["alertType"] == (
        "optimal_closing_window"
    )
