"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from maintcost.models import (
    DependencyGraph,
    GraphNode,
    PackageInfo,
    PackageVersion,
    Relation,
    Severity,
    VersionInfo,
    VulnerabilityFinding,
)

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


class FakeOSV:
    """In-memory vulnerability source that records every query."""

    def __init__(self, findings=None):
        self.findings = findings or {}
        self.calls = []

    async def query_vulnerabilities(self, package_name):
        self.calls.append(package_name)
        return list(self.findings.get(package_name, []))


class FakeRegistry:
    """In-memory deps.dev stand-in.

    ``graphs`` maps (name, version) to a DependencyGraph; missing pairs
    behave like a failed lookup.
    """

    def __init__(self, packages=None, versions=None, graphs=None):
        self.packages = packages or {}
        self.versions = versions or {}
        self.graphs = graphs or {}
        self.graph_calls = []

    async def get_package_info(self, name):
        return self.packages.get(name)

    async def get_version_info(self, name, version):
        return self.versions.get((name, version))

    async def get_dependency_graph(self, name, version):
        self.graph_calls.append((name, version))
        return self.graphs.get((name, version))


def make_package_info(name, *versions, now=NOW):
    """PackageInfo whose versions were published ``days`` ago, given as (version, days) pairs."""
    return PackageInfo(
        name=name,
        versions=[PackageVersion(version=v, published_at=now - timedelta(days=days)) for v, days in versions],
    )


def make_graph(root, version, direct=(), indirect=()):
    nodes = [GraphNode(name=root, version=version, relation=Relation.SELF)]
    nodes += [GraphNode(name=n, version=v, relation=Relation.DIRECT) for n, v in direct]
    nodes += [GraphNode(name=n, version=v, relation=Relation.INDIRECT) for n, v in indirect]
    return DependencyGraph(nodes=nodes)


def finding(vuln_id, published, severity=None, cvss_score=None):
    return VulnerabilityFinding(
        id=vuln_id,
        published=datetime.fromisoformat(published).replace(tzinfo=timezone.utc) if published else None,
        severity=severity,
        cvss_score=cvss_score,
    )


@pytest.fixture
def sample_package_json():
    """Sample package.json content for testing."""
    return """
{
  "name": "test-project",
  "dependencies": {
    "express": "^4.18.0",
    "lodash": "~4.17.21"
  },
  "devDependencies": {
    "jest": "^29.0.0"
  }
}
"""


@pytest.fixture
def temp_manifest_file(tmp_path, sample_package_json):
    """Create a temporary package.json for testing."""
    manifest = tmp_path / "package.json"
    manifest.write_text(sample_package_json)
    return manifest


@pytest.fixture
def express_registry():
    """Registry where express@4.18.2 depends on two packages and 4.19.0 has no graph."""
    return FakeRegistry(
        packages={
            "express": make_package_info("express", ("4.17.1", 900), ("4.18.2", 400), ("4.19.0", 30)),
        },
        versions={
            ("express", "4.19.0"): VersionInfo("express", "4.19.0", ["body-parser", "qs"]),
            ("express", "4.18.2"): VersionInfo("express", "4.18.2", ["body-parser", "qs"]),
        },
        graphs={
            ("express", "4.18.2"): make_graph(
                "express", "4.18.2", direct=[("body-parser", "1.20.1")], indirect=[("qs", "6.11.0")]
            ),
        },
    )


@pytest.fixture
def express_osv():
    return FakeOSV({
        "express": [finding("GHSA-aaaa", "2022-11-26", severity=Severity.HIGH)],
        "qs": [
            finding("GHSA-bbbb", "2022-12-01", severity=Severity.HIGH),
            finding("GHSA-cccc", "2024-02-10", cvss_score=9.8),
        ],
    })
