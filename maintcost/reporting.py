"""JSON serialization of analysis results."""

import json
import logging
from datetime import date
from pathlib import Path

from .models import (
    ComplexityMetrics,
    CompositeScore,
    CVEMetrics,
    MaintenanceMetrics,
    PackageAnalysis,
    ProjectReport,
    ProjectSummary,
)

logger = logging.getLogger(__name__)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join("CVEs" if part == "cves" else part.capitalize() for part in rest)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _plain(value):
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


def cve_metrics_to_dict(cve: CVEMetrics) -> dict:
    return {
        "totalCVEs": cve.total_cves,
        "avgCVEsPerYear": cve.avg_cves_per_year,
        "criticalCVEsPerYear": cve.critical_cves_per_year,
        "highCVEsPerYear": cve.high_cves_per_year,
        "moderateCVEsPerYear": cve.moderate_cves_per_year,
        "lowCVEsPerYear": cve.low_cves_per_year,
        "bySeverity": dict(cve.by_severity),
        "byYear": {str(year): count for year, count in cve.by_year.items()},
        "oldestCVE": _iso(cve.oldest_cve),
        "newestCVE": _iso(cve.newest_cve),
        "yearsOfData": cve.years_of_data,
    }


def maintenance_to_dict(maintenance: MaintenanceMetrics) -> dict:
    return {
        "score": maintenance.score,
        "lastReleaseDate": _iso(maintenance.last_release_date),
        "daysSinceLastRelease": maintenance.days_since_last_release,
        "releaseFrequency": maintenance.release_frequency,
        "releasesPerYear": maintenance.releases_per_year,
        "totalVersions": maintenance.total_versions,
        "activelyMaintained": maintenance.actively_maintained,
    }


def complexity_to_dict(complexity: ComplexityMetrics) -> dict:
    return {
        "score": complexity.score,
        "directDependencies": complexity.direct_dependencies,
        "totalDependencies": complexity.total_dependencies,
        "complexityLevel": complexity.complexity_level,
    }


def score_to_dict(score: CompositeScore) -> dict:
    breakdown = {}
    for name, part in score.breakdown.items():
        entry = {"score": part.score, "weight": part.weight, "weightedScore": round(part.weighted_score, 2)}
        entry.update({_camel(key): _plain(value) for key, value in part.details.items()})
        breakdown[_camel(name)] = entry
    return {
        "totalScore": score.total_score,
        "riskLevel": score.risk_level.value,
        "estimatedAnnualMaintenanceHours": score.estimated_annual_maintenance_hours,
        "breakdown": breakdown,
    }


def package_to_dict(package: PackageAnalysis) -> dict:
    result = {
        "packageName": package.name,
        "version": package.version_constraint,
        "resolvedVersion": package.resolved_version,
        "found": package.found,
    }
    if package.error is not None:
        result["error"] = package.error
        return result

    result.update({
        "score": score_to_dict(package.score) if package.score else None,
        "cveMetrics": cve_metrics_to_dict(package.cve_metrics) if package.cve_metrics else None,
        "packageMetrics": {
            "maintenance": maintenance_to_dict(package.maintenance) if package.maintenance else None,
            "complexity": complexity_to_dict(package.complexity) if package.complexity else None,
        },
        "transitiveDependencies": {
            "totalPackagesInTree": package.tree.total_packages_in_tree,
            "directCount": package.tree.direct_count,
            "indirectCount": package.tree.indirect_count,
        },
    })
    if package.graph is not None:
        result["dependencyGraph"] = {
            "strategy": package.graph.strategy.value,
            "version": package.graph.version,
            "usedFallback": package.graph.used_fallback,
            "attemptedVersions": list(package.graph.attempted_versions),
        }
    return result


def summary_to_dict(summary: ProjectSummary | None) -> dict | None:
    if summary is None:
        return None
    return {
        "averageScore": summary.average_score,
        "totalMaintenanceHours": summary.total_maintenance_hours,
        "totalCVEs": summary.total_cves,
        "totalCriticalCVEs": summary.total_critical_cves,
        "riskDistribution": dict(summary.risk_distribution),
        "highestRiskPackages": [
            {"name": entry.name, "score": entry.score, "risk": entry.risk.value}
            for entry in summary.highest_risk_packages
        ],
        "analysisDate": summary.analysis_date.isoformat(),
    }


def report_to_dict(report: ProjectReport) -> dict:
    return {
        "projectName": report.project_name,
        "totalDependencies": report.total_dependencies,
        "packages": [package_to_dict(p) for p in report.packages],
        "summary": summary_to_dict(report.summary),
        "analyzedAt": report.analyzed_at.isoformat(),
    }


def save_results(report: ProjectReport, output_path: str | Path) -> Path:
    """Write the report as indented JSON and return the path written."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(report_to_dict(report), f, indent=2)
    logger.info("Results saved to %s", output_path)
    return output_path
