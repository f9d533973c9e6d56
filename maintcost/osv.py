"""OSV.dev vulnerability lookups, batching and deduplication."""

import logging
from collections.abc import Iterable, Iterator, Mapping

import httpx
from pydantic import ValidationError

from .api_client import ApiClient
from .config import OSV_API
from .exceptions import MaintCostError, TransportError
from .models import VulnerabilityFinding
from .scheduling import BatchScheduler
from .schemas import OSVQueryResponse

logger = logging.getLogger(__name__)

ECOSYSTEM = "npm"


class OSVClient(ApiClient):
    """Query the OSV database for advisories affecting an npm package."""

    def __init__(self, base_url: str = OSV_API, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        super().__init__(base_url, timeout=timeout, client=client)

    async def query_vulnerabilities(self, package_name: str) -> list[VulnerabilityFinding]:
        """Fetch all advisories for a package.

        Args:
            package_name: npm package name

        Returns:
            Findings for the package; an empty list when the lookup fails
        """
        payload = {"package": {"name": package_name, "ecosystem": ECOSYSTEM}}
        resource = f"OSV advisories for {package_name}"
        try:
            data = await self._request_json("POST", "/query", resource, json=payload)
            try:
                return OSVQueryResponse.model_validate(data or {}).to_findings()
            except (ValidationError, TypeError, ValueError, AttributeError) as e:
                raise TransportError(resource, f"unexpected response shape ({type(e).__name__})") from e
        except MaintCostError as e:
            logger.error("Error querying OSV for %s: %s", package_name, e)
            return []


class VulnerabilityCache:
    """Findings per package name for the lifetime of one analysis run.

    Keys are package names only; a name seen once is never queried again in
    the same run, whatever version of it appears elsewhere in the tree.
    """

    def __init__(self):
        self._entries: dict[str, list[VulnerabilityFinding]] = {}

    def __contains__(self, package_name: str) -> bool:
        return package_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, package_name: str) -> list[VulnerabilityFinding] | None:
        return self._entries.get(package_name)

    def set(self, package_name: str, findings: list[VulnerabilityFinding]) -> None:
        self._entries[package_name] = findings


async def query_vulnerabilities_batch(
    source: OSVClient,
    package_names: Iterable[str],
    cache: VulnerabilityCache | None = None,
    concurrency: int = 5,
) -> dict[str, list[VulnerabilityFinding]]:
    """Fetch findings for many packages, reusing and filling a shared cache.

    Cached names are served without a request. The rest are queried in
    sequential waves of ``concurrency`` requests; every result, including an
    empty one, is written to the cache.

    Args:
        source: Vulnerability source to query
        package_names: Package names, in request order
        cache: Run-scoped cache; a fresh one is used when omitted
        concurrency: Maximum simultaneous requests

    Returns:
        Mapping of every requested name to its findings, in request order
    """
    if cache is None:
        cache = VulnerabilityCache()

    ordered = list(dict.fromkeys(package_names))
    uncached = [name for name in ordered if name not in cache]
    if len(uncached) < len(ordered):
        logger.debug("OSV cache hit for %d of %d packages", len(ordered) - len(uncached), len(ordered))

    async def fetch(name: str) -> tuple[str, list[VulnerabilityFinding]]:
        return name, await source.query_vulnerabilities(name)

    scheduler = BatchScheduler(concurrency)
    for name, findings in await scheduler.map(uncached, fetch):
        cache.set(name, findings)

    return {name: cache.get(name) for name in ordered}


def deduplicate_vulnerabilities(
    vulns_by_package: Mapping[str, list[VulnerabilityFinding]],
) -> list[VulnerabilityFinding]:
    """Merge per-package findings, keeping the first finding per id.

    Findings without an id are dropped since they cannot be matched.
    """
    seen: dict[str, VulnerabilityFinding] = {}
    for findings in vulns_by_package.values():
        for finding in findings:
            if finding.id and finding.id not in seen:
                seen[finding.id] = finding
    return list(seen.values())
