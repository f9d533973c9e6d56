"""Node.js package.json parsing."""

import json
from pathlib import Path

from .exceptions import ManifestError
from .models import DeclaredDependency, DependencyKind, Manifest

DEFAULT_PROJECT_NAME = "Unknown Project"


def _entries(section: object, kind: DependencyKind, group: str) -> list[DeclaredDependency]:
    if section is None:
        return []
    if not isinstance(section, dict):
        raise ManifestError(f'"{group}" must be an object')

    entries = []
    for name, constraint in section.items():
        if constraint is not None and not isinstance(constraint, str):
            raise ManifestError(f'Invalid version for "{name}" in "{group}"')
        entries.append(DeclaredDependency(name=name, version_constraint=constraint or None, kind=kind))
    return entries


def parse_package_json(content: str, include_dev: bool = False) -> Manifest:
    """Parse package.json content into Manifest.

    Args:
        content: The package.json file content
        include_dev: Also read devDependencies

    Returns:
        Parsed Manifest with production dependencies first

    Raises:
        ManifestError: If the content is not a JSON object
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError("top-level value must be an object")

    entries = _entries(data.get("dependencies"), DependencyKind.DIRECT, "dependencies")
    if include_dev:
        entries += _entries(data.get("devDependencies"), DependencyKind.DEVELOPMENT, "devDependencies")

    return Manifest(name=data.get("name") or DEFAULT_PROJECT_NAME, raw=content, entries=entries)


def read_package_json(path: str | Path, include_dev: bool = False) -> Manifest:
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(e.strerror or str(e), path=str(path)) from e

    try:
        return parse_package_json(content, include_dev=include_dev)
    except ManifestError as e:
        raise ManifestError(e.reason, path=str(path)) from e
