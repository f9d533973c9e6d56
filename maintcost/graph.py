"""Dependency tree retrieval with an explicit degradation chain."""

import logging

from .deps_dev import DepsDevClient, extract_packages_from_graph
from .exceptions import GraphUnavailableError
from .models import GraphNode, GraphResolution, GraphStrategy, PackageInfo, Relation

logger = logging.getLogger(__name__)


def root_only(name: str, version: str | None, strategy: GraphStrategy, attempted=None) -> GraphResolution:
    return GraphResolution(
        strategy=strategy,
        version=version,
        packages=[GraphNode(name=name, version=version, relation=Relation.SELF)],
        attempted_versions=list(attempted or []),
    )


class DependencyGraphResolver:
    """Find a dependency graph for a package, degrading step by step.

    Strategies, tried in order:
        1. the graph of the resolved version
        2. the graph of one of the most recently published versions, which
           then becomes the resolved version
        3. the root package alone
    """

    def __init__(self, registry: DepsDevClient, max_fallback_versions: int = 10):
        self.registry = registry
        self.max_fallback_versions = max_fallback_versions

    async def resolve(self, name: str, version: str | None, package_info: PackageInfo | None) -> GraphResolution:
        if not version:
            return root_only(name, version, GraphStrategy.ROOT_ONLY)

        attempted: list[str] = []
        strategies = (self._from_resolved_version, self._from_recent_versions)
        for strategy in strategies:
            try:
                return await strategy(name, version, package_info, attempted)
            except GraphUnavailableError as e:
                logger.warning("%s", e.message)

        logger.warning(
            "Could not fetch dependency graph for %s@%s, analyzing direct package only",
            name,
            version,
        )
        return root_only(name, version, GraphStrategy.ROOT_ONLY, attempted)

    async def _fetch(self, name: str, version: str, attempted: list[str]) -> list[GraphNode] | None:
        attempted.append(version)
        graph = await self.registry.get_dependency_graph(name, version)
        if graph is None:
            return None
        packages = extract_packages_from_graph(graph)
        if not packages:
            logger.warning("Dependency graph for %s@%s has no usable nodes", name, version)
            packages = [GraphNode(name=name, version=version, relation=Relation.SELF)]
        return packages

    async def _from_resolved_version(self, name, version, package_info, attempted) -> GraphResolution:
        packages = await self._fetch(name, version, attempted)
        if packages is None:
            raise GraphUnavailableError(f"{name}@{version}", attempted)
        return GraphResolution(GraphStrategy.RESOLVED_VERSION, version, packages, list(attempted))

    async def _from_recent_versions(self, name, version, package_info, attempted) -> GraphResolution:
        if package_info is None or not package_info.versions:
            raise GraphUnavailableError(name, [])

        recent = package_info.by_recency()[:self.max_fallback_versions]
        tried_before = len(attempted)
        for candidate in recent:
            if candidate.version in attempted:
                continue
            packages = await self._fetch(name, candidate.version, attempted)
            if packages is not None:
                logger.warning(
                    "Using dependency graph from %s@%s as fallback for %s",
                    name,
                    candidate.version,
                    version,
                )
                return GraphResolution(
                    GraphStrategy.RECENT_VERSION, candidate.version, packages, list(attempted)
                )
        raise GraphUnavailableError(f"{name} (recent versions)", attempted[tried_before:])
