"""deps.dev registry client: release history, version metadata, dependency graphs."""

import logging
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .api_client import ApiClient
from .config import DEPS_DEV_API
from .exceptions import MaintCostError, NotFoundError, TransportError
from .models import DependencyGraph, GraphNode, PackageInfo, VersionInfo
from .schemas import DepsDevGraph, DepsDevPackage, DepsDevVersion

logger = logging.getLogger(__name__)


def _encode(value: str) -> str:
    # Scoped names such as @babel/core must not keep their slash
    return quote(value, safe="")


class DepsDevClient(ApiClient):
    """Adapter for the deps.dev v3 API, npm system only.

    Every lookup returns None when the registry has no such entity or the
    request fails; nothing is raised to the caller.
    """

    def __init__(self, base_url: str = DEPS_DEV_API, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        super().__init__(base_url, timeout=timeout, client=client)

    def _package_path(self, name: str) -> str:
        return f"/systems/npm/packages/{_encode(name)}"

    async def _lookup(self, path: str, resource: str, model, convert):
        try:
            data = await self._request_json("GET", path, resource)
            try:
                return convert(model.model_validate(data or {}))
            except (ValidationError, TypeError, ValueError, AttributeError) as e:
                raise TransportError(resource, f"unexpected response shape ({type(e).__name__})") from e
        except NotFoundError:
            logger.debug("%s not found on deps.dev", resource)
        except MaintCostError as e:
            logger.error("Error querying deps.dev for %s: %s", resource, e)
        return None

    async def get_package_info(self, name: str) -> PackageInfo | None:
        """Fetch every published version of a package with its publish time."""
        return await self._lookup(
            self._package_path(name), name, DepsDevPackage, lambda record: record.to_package_info(name)
        )

    async def get_version_info(self, name: str, version: str) -> VersionInfo | None:
        """Fetch the declared direct dependencies of one release."""
        path = f"{self._package_path(name)}/versions/{_encode(version)}"
        return await self._lookup(
            path, f"{name}@{version}", DepsDevVersion, lambda record: record.to_version_info(name, version)
        )

    async def get_dependency_graph(self, name: str, version: str) -> DependencyGraph | None:
        """Fetch the resolved transitive dependency graph of one exact release."""
        path = f"{self._package_path(name)}/versions/{_encode(version)}:dependencies"
        return await self._lookup(path, f"dependency graph of {name}@{version}", DepsDevGraph, DepsDevGraph.to_graph)


def extract_packages_from_graph(graph: DependencyGraph | None) -> list[GraphNode]:
    """Return the unique (name, version) nodes of a graph in node order.

    The first node seen for a (name, version) pair wins, whatever the
    relation of later duplicates. Nodes without a name or version are skipped.
    """
    if graph is None or not graph.nodes:
        return []

    seen: set[tuple[str, str]] = set()
    packages: list[GraphNode] = []
    for node in graph.nodes:
        if not node.name or not node.version:
            continue
        key = (node.name, node.version)
        if key in seen:
            continue
        seen.add(key)
        packages.append(node)
    return packages
