"""Boundary records for the OSV and deps.dev JSON responses.

Each response is validated into a pydantic model and immediately normalized
into the internal dataclasses in ``models``; nothing past the API clients
sees the raw registry shapes.
"""

from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .models import (
    DependencyGraph,
    GraphNode,
    PackageInfo,
    PackageVersion,
    Relation,
    Severity,
    VersionInfo,
    VulnerabilityFinding,
)

_SEVERITY_ALIASES = {"MEDIUM": Severity.MODERATE}
_DATETIME = TypeAdapter(datetime)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp and normalize it to UTC.

    Parsing goes through pydantic, which accepts any number of fractional
    second digits (nanosecond timestamps are truncated to microseconds).
    Unparseable values yield None.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = _DATETIME.validate_python(value)
    except ValidationError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_severity(value: Any) -> Optional[Severity]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        return Severity.UNKNOWN
    label = value.strip().upper()
    if label in _SEVERITY_ALIASES:
        return _SEVERITY_ALIASES[label]
    try:
        return Severity(label)
    except ValueError:
        return Severity.UNKNOWN


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# OSV


class OSVSeverity(_Record):
    type: str = ""
    # Usually a CVSS vector string, occasionally a bare numeric base score
    score: Optional[Union[str, float]] = None


class OSVVulnerability(_Record):
    id: Optional[str] = None
    published: Optional[str] = None
    severity: list[OSVSeverity] = Field(default_factory=list)
    database_specific: Optional[dict[str, Any]] = None

    def to_finding(self) -> VulnerabilityFinding:
        category = None
        if self.database_specific:
            category = parse_severity(self.database_specific.get("severity"))

        cvss_score = None
        for entry in self.severity:
            if entry.type == "CVSS_V3":
                try:
                    cvss_score = float(entry.score)
                except (TypeError, ValueError):
                    # Vector strings carry no base score
                    cvss_score = None
                break

        return VulnerabilityFinding(
            id=self.id or None,
            published=parse_timestamp(self.published),
            severity=category,
            cvss_score=cvss_score,
        )


class OSVQueryResponse(_Record):
    vulns: list[OSVVulnerability] = Field(default_factory=list)

    def to_findings(self) -> list[VulnerabilityFinding]:
        return [vuln.to_finding() for vuln in self.vulns]


# deps.dev


class VersionKey(_Record):
    system: Optional[str] = None
    name: Optional[str] = None
    version: Optional[str] = None


class DepsDevVersionSummary(_Record):
    version_key: Optional[VersionKey] = Field(default=None, alias="versionKey")
    published_at: Optional[str] = Field(default=None, alias="publishedAt")


class DepsDevPackage(_Record):
    versions: list[DepsDevVersionSummary] = Field(default_factory=list)

    def to_package_info(self, name: str) -> PackageInfo:
        versions = [
            PackageVersion(
                version=summary.version_key.version,
                published_at=parse_timestamp(summary.published_at),
            )
            for summary in self.versions
            if summary.version_key and summary.version_key.version
        ]
        return PackageInfo(name=name, versions=versions)


class DepsDevVersion(_Record):
    version_key: Optional[VersionKey] = Field(default=None, alias="versionKey")
    dependencies: Optional[list[Any]] = None

    def to_version_info(self, name: str, version: str) -> VersionInfo:
        if self.dependencies is None:
            return VersionInfo(name=name, version=version, dependencies=None)

        names = []
        for item in self.dependencies:
            if isinstance(item, str):
                names.append(item)
            elif isinstance(item, dict):
                key = item.get("versionKey") or item
                if key.get("name"):
                    names.append(key["name"])
        return VersionInfo(name=name, version=version, dependencies=names)


class DepsDevNode(_Record):
    version_key: Optional[VersionKey] = Field(default=None, alias="versionKey")
    relation: Optional[str] = None

    def to_node(self) -> GraphNode:
        try:
            relation = Relation(self.relation) if self.relation else Relation.UNKNOWN
        except ValueError:
            relation = Relation.UNKNOWN
        key = self.version_key or VersionKey()
        return GraphNode(name=key.name, version=key.version, relation=relation)


class DepsDevGraph(_Record):
    nodes: Optional[list[DepsDevNode]] = None

    def to_graph(self) -> DependencyGraph:
        return DependencyGraph(nodes=[node.to_node() for node in self.nodes or []])
