from src.core.velocity.alerts import generate_alerts
from src.core.velocity.benchmarks import default_deal_benchmark, parse_benchmark_catalog
from src.core.velocity.health import build_deal_health_summary
from src.core.velocity.metrics import (
    compute_participant_engagement,
    compute_velocity_metrics,
    derive_participant_engagements,
)
from src.core.velocity.models import (
    ActivityEvent,
    CategoryWithTerms,
    DealAccelerationAlert,
    DealBenchmark,
    DealHealthSummary,
    DealParticipant,
    HistoricalPattern,
    HistoricalPatternMatch,
    NegotiationTerm,
    ParticipantEngagement,
    RiskFactor,
    StallRiskAssessment,
    SuggestedIntervention,
    VelocityMetrics,
)
from src.core.velocity.patterns import default_pattern_catalog, match_historical_patterns
from src.core.velocity.risk_factors import SEVERITY_MULTIPLIER, detect_risk_factors
from src.core.velocity.scoring import assess_stall_risk

__all__ = [
    "ActivityEvent",
    "CategoryWithTerms",
    "DealAccelerationAlert",
    "DealBenchmark",
    "DealHealthSummary",
    "DealParticipant",
    "HistoricalPattern",
    "HistoricalPatternMatch",
    "NegotiationTerm",
    "ParticipantEngagement",
    "RiskFactor",
    "SEVERITY_MULTIPLIER",
    "StallRiskAssessment",
    "SuggestedIntervention",
    "VelocityMetrics",
    "assess_stall_risk",
    "build_deal_health_summary",
    "compute_participant_engagement",
    "compute_velocity_metrics",
    "default_deal_benchmark",
    "default_pattern_catalog",
    "derive_participant_engagements",
    "detect_risk_factors",
    "generate_alerts",
    "match_historical_patterns",
    "parse_benchmark_catalog",
]
