"""Core data models for maintcost."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum

_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


class DependencyKind(str, Enum):
    """Which manifest group a dependency was declared in."""

    DIRECT = "direct"
    DEVELOPMENT = "development"


class Relation(str, Enum):
    """Relation of a graph node to the root package."""

    SELF = "SELF"
    DIRECT = "DIRECT"
    INDIRECT = "INDIRECT"
    UNKNOWN = "UNKNOWN"


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    ELEVATED = "ELEVATED"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class GraphStrategy(str, Enum):
    """Which degradation step produced the dependency tree."""

    RESOLVED_VERSION = "resolved_version"
    RECENT_VERSION = "recent_version"
    ROOT_ONLY = "root_only"
    SHALLOW = "shallow"


@dataclass(frozen=True)
class DeclaredDependency:
    """A single dependency entry in a package.json manifest."""

    name: str
    version_constraint: str | None = None
    kind: DependencyKind = DependencyKind.DIRECT


@dataclass
class Manifest:
    """A parsed package.json manifest."""

    name: str
    raw: str
    entries: list[DeclaredDependency]


@dataclass(frozen=True)
class GraphNode:
    name: str | None
    version: str | None
    relation: Relation = Relation.UNKNOWN


@dataclass(frozen=True)
class VulnerabilityFinding:
    """One advisory returned by the vulnerability source.

    Severity is either a precomputed category or a CVSS v3 base score
    that still needs bucketing.
    """

    id: str | None = None
    published: datetime | None = None
    severity: Severity | None = None
    cvss_score: float | None = None


@dataclass(frozen=True)
class PackageVersion:
    """A published version with its publish timestamp."""

    version: str
    published_at: datetime | None = None


@dataclass
class PackageInfo:
    """Package-level registry metadata."""

    name: str
    versions: list[PackageVersion] = field(default_factory=list)

    def version_strings(self) -> list[str]:
        return [v.version for v in self.versions if v.version]

    def by_recency(self) -> list[PackageVersion]:
        """Versions sorted newest first; undated versions sort last."""
        return sorted(
            self.versions,
            key=lambda v: v.published_at or _UNDATED,
            reverse=True,
        )

    def latest(self) -> PackageVersion | None:
        ordered = self.by_recency()
        return ordered[0] if ordered else None


@dataclass
class VersionInfo:
    """Version-specific registry metadata."""

    name: str
    version: str
    dependencies: list[str] | None = None


@dataclass
class DependencyGraph:
    """Resolved transitive dependency graph for one exact version."""

    nodes: list[GraphNode] = field(default_factory=list)


@dataclass
class CVEMetrics:
    total_cves: int = 0
    avg_cves_per_year: float = 0.0
    critical_cves_per_year: float = 0.0
    high_cves_per_year: float = 0.0
    moderate_cves_per_year: float = 0.0
    low_cves_per_year: float = 0.0
    by_severity: dict[str, int] = field(
        default_factory=lambda: {s.value: 0 for s in Severity}
    )
    by_year: dict[int, int] = field(default_factory=dict)
    oldest_cve: date | None = None
    newest_cve: date | None = None
    years_of_data: float = 0.0


@dataclass
class MaintenanceMetrics:
    score: int = 0
    last_release_date: date | None = None
    days_since_last_release: int | None = None
    release_frequency: str = "unknown"
    releases_per_year: float = 0.0
    total_versions: int = 0
    actively_maintained: bool = False


@dataclass
class ComplexityMetrics:
    score: int = 100
    direct_dependencies: int = 0
    total_dependencies: int = 0
    complexity_level: str = "low"


@dataclass
class ScoreComponent:
    """One weighted factor of a composite score."""

    score: int
    weight: float
    weighted_score: float
    details: dict = field(default_factory=dict)


@dataclass
class CompositeScore:
    total_score: int
    risk_level: RiskLevel
    estimated_annual_maintenance_hours: int
    breakdown: dict[str, ScoreComponent]


@dataclass
class GraphResolution:
    """Outcome of the dependency graph fallback chain."""

    strategy: GraphStrategy
    version: str | None
    packages: list[GraphNode]
    attempted_versions: list[str] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.strategy is GraphStrategy.RECENT_VERSION

    @property
    def has_graph(self) -> bool:
        return self.strategy in (GraphStrategy.RESOLVED_VERSION, GraphStrategy.RECENT_VERSION)


@dataclass
class TreeStats:
    total_packages_in_tree: int = 1
    direct_count: int = 0
    indirect_count: int = 0


@dataclass
class PackageAnalysis:
    """Result of analyzing one declared dependency."""

    name: str
    version_constraint: str | None
    resolved_version: str | None = None
    found: bool = False
    score: CompositeScore | None = None
    cve_metrics: CVEMetrics | None = None
    maintenance: MaintenanceMetrics | None = None
    complexity: ComplexityMetrics | None = None
    graph: GraphResolution | None = None
    tree: TreeStats = field(default_factory=TreeStats)
    error: str | None = None


@dataclass
class RiskEntry:
    name: str
    score: int
    risk: RiskLevel


@dataclass
class ProjectSummary:
    average_score: int
    total_maintenance_hours: int
    total_cves: int
    total_critical_cves: int
    risk_distribution: dict[str, int]
    highest_risk_packages: list[RiskEntry]
    analysis_date: date


@dataclass
class ProjectReport:
    project_name: str
    total_dependencies: int
    packages: list[PackageAnalysis]
    summary: ProjectSummary | None
    analyzed_at: datetime