"""Error taxonomy for maintcost.

Only ManifestError is ever surfaced to a caller. The others are raised inside
the API clients and the resolver and converted into a degraded result at the
public boundary.
"""

from enum import Enum


class MaintCostError(Exception):
    def __init__(self, message: str, error_code: str = "MC-GENERIC"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)

    def __str__(self):
        return f"[{self.error_code}] {self.message}"


class NotFoundError(MaintCostError):
    """The registry reports that the entity does not exist."""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"{resource} not found", error_code="MC-NOT-FOUND")


class TransportError(MaintCostError):
    """Network failure, unexpected status or unparseable body."""

    def __init__(self, resource: str, details: str):
        self.resource = resource
        super().__init__(f"Request for {resource} failed: {details}", error_code="MC-TRANSPORT")


class ResolutionFailure(str, Enum):
    NO_INPUT = "NO_INPUT"
    NOT_AVAILABLE = "NOT_AVAILABLE"
    NO_MATCH = "NO_MATCH"


class VersionResolutionError(MaintCostError):
    def __init__(self, reason: ResolutionFailure, constraint: str | None = None):
        self.reason = reason
        self.constraint = constraint
        if reason is ResolutionFailure.NO_INPUT:
            msg = "No version constraint or no published versions to resolve against"
        elif reason is ResolutionFailure.NOT_AVAILABLE:
            msg = f"Exact version {constraint} is not published"
        else:
            msg = f"No published version satisfies {constraint}"
        super().__init__(msg, error_code=f"MC-VERSION-{reason.value}")


class GraphUnavailableError(MaintCostError):
    def __init__(self, package: str, tried: list[str]):
        self.package = package
        self.tried = tried
        msg = f"No dependency graph for {package}"
        if tried:
            msg += f" (tried {', '.join(tried)})"
        super().__init__(msg, error_code="MC-GRAPH")


class ManifestError(MaintCostError):
    def __init__(self, reason: str, path: str | None = None):
        self.reason = reason
        self.path = path
        msg = f"Failed to read package.json: {reason}"
        if path:
            msg = f"Failed to read {path}: {reason}"
        super().__init__(msg, error_code="MC-MANIFEST")
