"""Tests for the composite score."""

import pytest

from maintcost.models import ComplexityMetrics, CVEMetrics, MaintenanceMetrics, RiskLevel
from maintcost.scoring import (
    WEIGHTS,
    calculate_composite_score,
    calculate_cve_score,
    calculate_technical_lag_score,
    estimate_maintenance_hours,
    get_risk_level,
    round_half_up,
)


def healthy_maintenance(**overrides):
    values = dict(
        score=100,
        days_since_last_release=10,
        release_frequency="active",
        releases_per_year=8.0,
        total_versions=40,
        actively_maintained=True,
    )
    values.update(overrides)
    return MaintenanceMetrics(**values)


class TestRiskLevel:
    """Test risk tier boundaries."""

    @pytest.mark.parametrize("score,expected", [
        (100, RiskLevel.LOW),
        (80, RiskLevel.LOW),
        (79, RiskLevel.MEDIUM),
        (60, RiskLevel.MEDIUM),
        (59, RiskLevel.ELEVATED),
        (40, RiskLevel.ELEVATED),
        (39, RiskLevel.HIGH),
        (20, RiskLevel.HIGH),
        (19, RiskLevel.CRITICAL),
        (0, RiskLevel.CRITICAL),
    ])
    def test_boundaries(self, score, expected):
        assert get_risk_level(score) is expected


class TestFactorScores:
    """Test individual factor scores."""

    def test_zero_cves_is_perfect(self):
        assert calculate_cve_score(CVEMetrics()) == 100
        assert calculate_cve_score(None) == 100

    def test_frequent_critical_cves(self):
        cve = CVEMetrics(total_cves=40, avg_cves_per_year=12, critical_cves_per_year=3, high_cves_per_year=4)
        # -70 avg, -20 critical, -15 high
        assert calculate_cve_score(cve) == 0

    def test_moderate_history(self):
        cve = CVEMetrics(total_cves=3, avg_cves_per_year=0.75, critical_cves_per_year=0.25, high_cves_per_year=0.5)
        assert calculate_cve_score(cve) == 90

    def test_technical_lag(self):
        cve = CVEMetrics(total_cves=3, by_severity={"CRITICAL": 1, "HIGH": 2})
        assert calculate_technical_lag_score(cve, healthy_maintenance(days_since_last_release=400)) == 45

    def test_technical_lag_unknown_release_date(self):
        assert calculate_technical_lag_score(CVEMetrics(), healthy_maintenance(days_since_last_release=None)) == 100

    def test_maintenance_hours(self):
        cve = CVEMetrics(total_cves=4, avg_cves_per_year=1.5, critical_cves_per_year=0.5)
        complexity = ComplexityMetrics(score=90, direct_dependencies=7, total_dependencies=105)
        # 2 + 3 + 2 + 1.4 + 5
        hours = estimate_maintenance_hours(cve, healthy_maintenance(release_frequency="low"), complexity)
        assert hours == 13

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(84.5) == 85
        assert round_half_up(84.49) == 84


class TestCompositeScore:
    """Test the weighted composite."""

    def test_weights_sum_to_one(self):
        assert sum(WEIGHTS.values()) == pytest.approx(1.0)

    def test_clean_package(self):
        score = calculate_composite_score(CVEMetrics(), healthy_maintenance(), ComplexityMetrics())

        # 50 + 10 + 15 + 15 + 5
        assert score.total_score == 95
        assert score.risk_level is RiskLevel.LOW
        assert score.estimated_annual_maintenance_hours == 2
        assert set(score.breakdown) == set(WEIGHTS)
        assert score.breakdown["community_signals"].score == 50
        assert score.breakdown["historical_cves"].weighted_score == 50

    def test_breakdown_details(self):
        cve = CVEMetrics(total_cves=2, avg_cves_per_year=0.5)
        score = calculate_composite_score(cve, healthy_maintenance(), ComplexityMetrics(direct_dependencies=3))

        assert score.breakdown["historical_cves"].details["total_cves"] == 2
        assert score.breakdown["dependency_complexity"].details["direct_dependencies"] == 3
        assert score.breakdown["technical_lag"].details["days_since_last_release"] == 10

    def test_risky_package(self):
        cve = CVEMetrics(
            total_cves=60,
            avg_cves_per_year=12,
            critical_cves_per_year=3,
            high_cves_per_year=4,
            by_severity={"CRITICAL": 20, "HIGH": 25},
        )
        maintenance = healthy_maintenance(score=10, days_since_last_release=1000, release_frequency="abandoned")
        complexity = ComplexityMetrics(score=30, direct_dependencies=60, total_dependencies=900)

        score = calculate_composite_score(cve, maintenance, complexity)

        # 0 + 1 + 4.5 + 1.5 + 5 = 12
        assert score.total_score == 12
        assert score.risk_level is RiskLevel.CRITICAL
