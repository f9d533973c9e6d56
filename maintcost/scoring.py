"""Composite maintenance cost score.

Sub-scores run 0-100 where 100 is the cheapest package to keep secure; the
composite is their weighted sum.
"""

import math

from .metrics import clamp
from .models import (
    ComplexityMetrics,
    CompositeScore,
    CVEMetrics,
    MaintenanceMetrics,
    RiskLevel,
    ScoreComponent,
    Severity,
)

WEIGHTS = {
    "historical_cves": 0.50,
    "maintenance_health": 0.10,
    "dependency_complexity": 0.15,
    "technical_lag": 0.15,
    "community_signals": 0.10,
}

# Community health is not measured yet
COMMUNITY_PLACEHOLDER_SCORE = 50


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_cve_score(cve: CVEMetrics | None) -> int:
    if cve is None or cve.total_cves == 0:
        return 100

    score = 100
    avg = cve.avg_cves_per_year
    if avg > 10:
        score -= 70
    elif avg > 5:
        score -= 50
    elif avg > 2:
        score -= 30
    elif avg > 1:
        score -= 20
    elif avg > 0.5:
        score -= 10

    critical = cve.critical_cves_per_year
    if critical > 2:
        score -= 20
    elif critical > 1:
        score -= 15
    elif critical > 0.5:
        score -= 10

    high = cve.high_cves_per_year
    if high > 3:
        score -= 15
    elif high > 1:
        score -= 10

    return clamp(score)


def calculate_technical_lag_score(cve: CVEMetrics, maintenance: MaintenanceMetrics) -> int:
    score = 100

    days = maintenance.days_since_last_release or 0
    if days > 730:
        score -= 50
    elif days > 365:
        score -= 30
    elif days > 180:
        score -= 15

    unpatched = cve.by_severity.get(Severity.CRITICAL.value, 0) + cve.by_severity.get(Severity.HIGH.value, 0)
    if unpatched > 5:
        score -= 40
    elif unpatched > 2:
        score -= 25
    elif unpatched > 0:
        score -= 15

    return clamp(score)


def estimate_maintenance_hours(
    cve: CVEMetrics, maintenance: MaintenanceMetrics, complexity: ComplexityMetrics
) -> int:
    """Estimated yearly hours spent keeping the package patched."""
    hours = 2.0
    hours += cve.avg_cves_per_year * 2
    hours += cve.critical_cves_per_year * 4
    hours += complexity.direct_dependencies * 0.2
    if maintenance.release_frequency == "abandoned":
        hours += 10
    elif maintenance.release_frequency == "low":
        hours += 5
    return round_half_up(hours)


def get_risk_level(score: int) -> RiskLevel:
    if score >= 80:
        return RiskLevel.LOW
    if score >= 60:
        return RiskLevel.MEDIUM
    if score >= 40:
        return RiskLevel.ELEVATED
    if score >= 20:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def _component(name: str, score: int, **details) -> ScoreComponent:
    weight = WEIGHTS[name]
    return ScoreComponent(score=score, weight=weight, weighted_score=score * weight, details=details)


def calculate_composite_score(
    cve: CVEMetrics, maintenance: MaintenanceMetrics, complexity: ComplexityMetrics
) -> CompositeScore:
    """Combine the factor metrics into one weighted score.

    Args:
        cve: Aggregated vulnerability metrics for the dependency tree
        maintenance: Release health of the root package
        complexity: Dependency complexity of the root package

    Returns:
        Composite score with risk tier, hours estimate and per-factor breakdown
    """
    breakdown = {
        "historical_cves": _component(
            "historical_cves",
            calculate_cve_score(cve),
            avg_cves_per_year=cve.avg_cves_per_year,
            critical_cves_per_year=cve.critical_cves_per_year,
            high_cves_per_year=cve.high_cves_per_year,
            total_cves=cve.total_cves,
        ),
        "maintenance_health": _component(
            "maintenance_health",
            maintenance.score,
            last_release_date=maintenance.last_release_date,
            release_frequency=maintenance.release_frequency,
            actively_maintained=maintenance.actively_maintained,
        ),
        "dependency_complexity": _component(
            "dependency_complexity",
            complexity.score,
            direct_dependencies=complexity.direct_dependencies,
            complexity_level=complexity.complexity_level,
        ),
        "technical_lag": _component(
            "technical_lag",
            calculate_technical_lag_score(cve, maintenance),
            days_since_last_release=maintenance.days_since_last_release,
        ),
        "community_signals": _component(
            "community_signals",
            COMMUNITY_PLACEHOLDER_SCORE,
            note="Future enhancement",
        ),
    }

    total = clamp(round_half_up(sum(part.weighted_score for part in breakdown.values())))
    return CompositeScore(
        total_score=total,
        risk_level=get_risk_level(total),
        estimated_annual_maintenance_hours=estimate_maintenance_hours(cve, maintenance, complexity),
        breakdown=breakdown,
    )
