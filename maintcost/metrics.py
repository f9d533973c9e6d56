"""Vulnerability frequency, maintenance health and dependency complexity metrics."""

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from .models import (
    ComplexityMetrics,
    CVEMetrics,
    MaintenanceMetrics,
    PackageInfo,
    Severity,
    VersionInfo,
    VulnerabilityFinding,
)

DAYS_PER_YEAR = 365.25
RELEASE_WINDOW_YEARS = 2


def clamp(score: float, low: int = 0, high: int = 100) -> int:
    return int(max(low, min(high, score)))


def classify_severity(finding: VulnerabilityFinding) -> Severity:
    """Severity category of a finding, bucketing a CVSS v3 score when needed."""
    if finding.severity is not None:
        return finding.severity
    score = finding.cvss_score
    if score is None:
        return Severity.UNKNOWN
    if score >= 9.0:
        return Severity.CRITICAL
    if score >= 7.0:
        return Severity.HIGH
    if score >= 4.0:
        return Severity.MODERATE
    return Severity.LOW


def calculate_cve_metrics(findings: Iterable[VulnerabilityFinding]) -> CVEMetrics:
    """Frequency and severity statistics for a deduplicated finding list."""
    findings = list(findings)
    if not findings:
        return CVEMetrics()

    by_severity = {severity.value: 0 for severity in Severity}
    by_year: dict[int, int] = {}
    oldest: datetime | None = None
    newest: datetime | None = None

    for finding in findings:
        published = finding.published
        if published is not None:
            by_year[published.year] = by_year.get(published.year, 0) + 1
            if oldest is None or published < oldest:
                oldest = published
            if newest is None or published > newest:
                newest = published

        by_severity[classify_severity(finding).value] += 1

    years_of_data = 0.0
    if oldest is not None and newest is not None:
        years_of_data = (newest - oldest) / timedelta(days=DAYS_PER_YEAR)
    # A single publish date would otherwise divide by ~0
    effective_years = max(years_of_data, 1)

    total = len(findings)
    return CVEMetrics(
        total_cves=total,
        avg_cves_per_year=round(total / effective_years, 2),
        critical_cves_per_year=round(by_severity[Severity.CRITICAL.value] / effective_years, 2),
        high_cves_per_year=round(by_severity[Severity.HIGH.value] / effective_years, 2),
        moderate_cves_per_year=round(by_severity[Severity.MODERATE.value] / effective_years, 2),
        low_cves_per_year=round(by_severity[Severity.LOW.value] / effective_years, 2),
        by_severity=by_severity,
        by_year=dict(sorted(by_year.items())),
        oldest_cve=oldest.date() if oldest else None,
        newest_cve=newest.date() if newest else None,
        years_of_data=round(years_of_data, 1),
    )


def release_frequency(releases_per_year: float) -> str:
    if releases_per_year > 12:
        return "very active"
    if releases_per_year > 6:
        return "active"
    if releases_per_year > 2:
        return "moderate"
    if releases_per_year > 0:
        return "low"
    return "abandoned"


def calculate_maintenance_metrics(
    package_info: PackageInfo | None, now: datetime | None = None
) -> MaintenanceMetrics:
    """Release recency and cadence health for a package.

    Args:
        package_info: Registry metadata, or None when the package is unknown
        now: Reference time, defaults to the current UTC time

    Returns:
        Maintenance metrics with a 0-100 score
    """
    if package_info is None:
        return MaintenanceMetrics()

    now = now or datetime.now(timezone.utc)
    latest = package_info.latest()
    last_release = latest.published_at if latest else None
    days_since = (now - last_release).days if last_release else None

    window_start = now - timedelta(days=365 * RELEASE_WINDOW_YEARS)
    recent = [v for v in package_info.versions if v.published_at and v.published_at > window_start]
    releases_per_year = len(recent) / RELEASE_WINDOW_YEARS
    frequency = release_frequency(releases_per_year)

    score = 100
    if days_since is not None:
        if days_since > 730:
            score -= 60
        elif days_since > 365:
            score -= 40
        elif days_since > 180:
            score -= 20
        elif days_since > 90:
            score -= 10

    if frequency == "abandoned":
        score -= 30
    elif frequency == "low":
        score -= 15

    return MaintenanceMetrics(
        score=clamp(score),
        last_release_date=last_release.date() if last_release else None,
        days_since_last_release=days_since,
        release_frequency=frequency,
        releases_per_year=round(releases_per_year, 1),
        total_versions=len(package_info.versions),
        actively_maintained=days_since is not None and days_since < 365 and frequency != "abandoned",
    )


def calculate_complexity_metrics(
    version_info: VersionInfo | None,
    direct_dependencies: int | None = None,
    total_dependencies: int | None = None,
) -> ComplexityMetrics:
    """Dependency complexity for one release.

    Args:
        version_info: Version metadata with the declared direct dependencies
        direct_dependencies: Known direct count, overrides the declared one
        total_dependencies: Known transitive count, overrides the x15 estimate

    Returns:
        Complexity metrics with a 0-100 score (100 is simplest)
    """
    declared = version_info.dependencies if version_info is not None else None
    if declared is None and direct_dependencies is None and total_dependencies is None:
        return ComplexityMetrics()

    direct = direct_dependencies if direct_dependencies is not None else len(declared or [])
    total = total_dependencies if total_dependencies is not None else direct * 15

    score = 100
    if total > 500:
        score -= 50
    elif total > 200:
        score -= 35
    elif total > 100:
        score -= 20
    elif total > 50:
        score -= 10

    if direct > 50:
        score -= 20
    elif direct > 30:
        score -= 15
    elif direct > 15:
        score -= 10
    elif direct > 5:
        score -= 5

    if total > 500:
        level = "very high"
    elif total > 200:
        level = "high"
    elif total > 50:
        level = "moderate"
    else:
        level = "low"

    return ComplexityMetrics(
        score=clamp(score),
        direct_dependencies=direct,
        total_dependencies=total,
        complexity_level=level,
    )
