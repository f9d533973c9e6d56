"""Per-dependency analysis pipeline and project roll-up."""

import logging
from collections.abc import Sequence
from datetime import date, datetime, timezone

import httpx

from .config import Settings
from .deps_dev import DepsDevClient
from .exceptions import VersionResolutionError
from .graph import DependencyGraphResolver, root_only
from .metrics import calculate_complexity_metrics, calculate_cve_metrics, calculate_maintenance_metrics
from .models import (
    DeclaredDependency,
    GraphStrategy,
    Manifest,
    PackageAnalysis,
    PackageInfo,
    ProjectReport,
    ProjectSummary,
    Relation,
    RiskEntry,
    RiskLevel,
    Severity,
    TreeStats,
)
from .osv import OSVClient, VulnerabilityCache, deduplicate_vulnerabilities, query_vulnerabilities_batch
from .scheduling import BatchScheduler
from .scoring import calculate_composite_score, round_half_up
from .version import VersionResolver

logger = logging.getLogger(__name__)

TOP_RISK_COUNT = 5


class PackageAnalyzer:
    """Run the scoring pipeline for packages within one analysis run.

    One analyzer owns one vulnerability cache, so a package name queried
    for any dependency tree is never queried again during the run. Use it
    as an async context manager to share a single HTTP connection pool.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        osv: OSVClient | None = None,
        registry: DepsDevClient | None = None,
        cache: VulnerabilityCache | None = None,
    ):
        self.settings = settings or Settings()
        self._owns_clients = osv is None and registry is None
        self.osv = osv or OSVClient(self.settings.osv_api_url, timeout=self.settings.timeout)
        self.registry = registry or DepsDevClient(self.settings.deps_dev_api_url, timeout=self.settings.timeout)
        self.cache = cache if cache is not None else VulnerabilityCache()
        self.resolver = VersionResolver()
        self.graph_resolver = DependencyGraphResolver(self.registry, self.settings.fallback_versions)
        self._http: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "PackageAnalyzer":
        if self._owns_clients:
            self._http = httpx.AsyncClient(timeout=self.settings.timeout)
            self.osv.use_client(self._http)
            self.registry.use_client(self._http)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._http is not None:
            self.osv.use_client(None)
            self.registry.use_client(None)
            await self._http.aclose()
            self._http = None

    def resolve_version(self, name: str, constraint: str | None, package_info: PackageInfo | None) -> str | None:
        """Pick the concrete version to analyze, or None when it cannot be determined."""
        if package_info is None or not package_info.versions:
            return None

        if not constraint:
            latest = package_info.latest()
            return latest.version if latest else None

        try:
            return self.resolver.resolve(constraint, package_info.version_strings())
        except VersionResolutionError as e:
            logger.warning(
                "Could not resolve version for %s (%s), analyzing direct package only: %s",
                name,
                constraint,
                e.message,
            )
            return None

    async def analyze_package(self, name: str, constraint: str | None = None, shallow: bool = False) -> PackageAnalysis:
        """Score one package and, unless shallow, its whole dependency tree.

        Failures inside the pipeline are recorded on the result instead of
        raised, so one bad package cannot stop a project analysis.
        """
        logger.info("Analyzing %s...", name)
        try:
            return await self._analyze(name, constraint, shallow)
        except Exception as e:
            logger.exception("Error analyzing %s", name)
            return PackageAnalysis(name=name, version_constraint=constraint, error=str(e))

    async def _analyze(self, name: str, constraint: str | None, shallow: bool) -> PackageAnalysis:
        package_info = await self.registry.get_package_info(name)
        resolved = self.resolve_version(name, constraint, package_info)

        if shallow:
            graph = root_only(name, resolved, GraphStrategy.SHALLOW)
        else:
            graph = await self.graph_resolver.resolve(name, resolved, package_info)
            resolved = graph.version

        names = list(dict.fromkeys(node.name for node in graph.packages))
        vulns_by_package = await query_vulnerabilities_batch(
            self.osv, names, cache=self.cache, concurrency=self.settings.max_concurrency
        )
        cve_metrics = calculate_cve_metrics(deduplicate_vulnerabilities(vulns_by_package))

        tree = TreeStats(
            total_packages_in_tree=len(names),
            direct_count=sum(1 for node in graph.packages if node.relation is Relation.DIRECT),
            indirect_count=sum(1 for node in graph.packages if node.relation is Relation.INDIRECT),
        )

        maintenance = calculate_maintenance_metrics(package_info)
        version_info = None
        if package_info is not None and resolved:
            version_info = await self.registry.get_version_info(name, resolved)

        if graph.has_graph:
            complexity = calculate_complexity_metrics(
                version_info,
                direct_dependencies=tree.direct_count,
                total_dependencies=tree.total_packages_in_tree,
            )
        else:
            complexity = calculate_complexity_metrics(version_info)

        return PackageAnalysis(
            name=name,
            version_constraint=constraint,
            resolved_version=resolved,
            found=package_info is not None,
            score=calculate_composite_score(cve_metrics, maintenance, complexity),
            cve_metrics=cve_metrics,
            maintenance=maintenance,
            complexity=complexity,
            graph=graph,
            tree=tree,
        )

    async def analyze_dependencies(
        self, dependencies: Sequence[DeclaredDependency], shallow: bool = False
    ) -> list[PackageAnalysis]:
        """Analyze declared dependencies in waves of ``max_concurrency`` packages."""
        done = 0

        async def run(dependency: DeclaredDependency) -> PackageAnalysis:
            nonlocal done
            result = await self.analyze_package(dependency.name, dependency.version_constraint, shallow=shallow)
            done += 1
            logger.info("Progress: %d/%d", done, len(dependencies))
            return result

        scheduler = BatchScheduler(self.settings.max_concurrency)
        return await scheduler.map(list(dependencies), run)

    async def analyze_project(self, manifest: Manifest, shallow: bool = False) -> ProjectReport:
        logger.info("Analyzing project %s: %d dependencies", manifest.name, len(manifest.entries))
        packages = await self.analyze_dependencies(manifest.entries, shallow=shallow)
        return ProjectReport(
            project_name=manifest.name,
            total_dependencies=len(manifest.entries),
            packages=packages,
            summary=calculate_project_summary(packages),
            analyzed_at=datetime.now(timezone.utc),
        )


def calculate_project_summary(packages: Sequence[PackageAnalysis], today: date | None = None) -> ProjectSummary | None:
    """Roll scored packages up into project totals.

    Returns:
        The summary, or None when no package produced a score
    """
    scored = [p for p in packages if p.score is not None]
    if not scored:
        return None

    risk_distribution = {level.value: 0 for level in RiskLevel}
    total_hours = 0
    total_cves = 0
    total_critical = 0
    for package in scored:
        risk_distribution[package.score.risk_level.value] += 1
        total_hours += package.score.estimated_annual_maintenance_hours
        if package.cve_metrics is not None:
            total_cves += package.cve_metrics.total_cves
            total_critical += package.cve_metrics.by_severity.get(Severity.CRITICAL.value, 0)

    # sorted() is stable, so ties keep encounter order
    highest = sorted(scored, key=lambda p: p.score.total_score)[:TOP_RISK_COUNT]

    return ProjectSummary(
        average_score=round_half_up(sum(p.score.total_score for p in scored) / len(scored)),
        total_maintenance_hours=total_hours,
        total_cves=total_cves,
        total_critical_cves=total_critical,
        risk_distribution=risk_distribution,
        highest_risk_packages=[
            RiskEntry(name=p.name, score=p.score.total_score, risk=p.score.risk_level) for p in highest
        ],
        analysis_date=today or datetime.now(timezone.utc).date(),
    )


async def analyze_project(manifest: Manifest, settings: Settings | None = None, shallow: bool = False) -> ProjectReport:
    """Analyze a parsed manifest with a fresh run-scoped cache."""
    async with PackageAnalyzer(settings) as analyzer:
        return await analyzer.analyze_project(manifest, shallow=shallow)


async def analyze_package(
    name: str, constraint: str | None = None, settings: Settings | None = None, shallow: bool = False
) -> PackageAnalysis:
    async with PackageAnalyzer(settings) as analyzer:
        return await analyzer.analyze_package(name, constraint, shallow=shallow)
