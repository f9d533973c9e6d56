"""npm version range resolution.

npm ranges (``^``, ``~``, x-ranges, hyphen ranges, comparator sets joined by
whitespace and alternatives joined by ``||``) are parsed into comparator sets
and evaluated against the published versions with semver ordering. The
``major.minor.patch`` core is a ``packaging`` release version; prerelease
identifiers are compared as semver does, not as PEP 440 pre/post tags.
"""

import re

from packaging.version import Version

from .exceptions import ResolutionFailure, VersionResolutionError

_EXACT = re.compile(
    r"^[v=]*\s*(\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)$"
)
_SEMVER = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$")
_PARTIAL = re.compile(
    r"^[v=]*(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?"
    r"(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)
_COMPARATOR = re.compile(r"^(~>|<=|>=|\^|~|<|>|=)?(.*)$")
_HYPHEN = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")

_CHECKS = {
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "==": lambda a, b: a == b,
}


class InvalidRange(ValueError):
    """Raised for range expressions that cannot be parsed."""


class SemVer:
    """A semver version: release core plus optional prerelease identifiers.

    Build metadata is ignored. Numeric identifiers compare numerically and
    sort below alphanumeric ones, and a release sorts above all of its
    prereleases, so ``1.2.4-0 < 1.2.4`` and ``2.0.0-1 < 2.0.0``.
    """

    def __init__(self, major: int, minor: int, patch: int, prerelease: str | None = None):
        self.release = Version(f"{major}.{minor}.{patch}")
        self.prerelease = prerelease or None
        identifiers = self.prerelease.split(".") if self.prerelease else []
        if any(not part for part in identifiers):
            raise ValueError(f"Empty prerelease identifier in {prerelease!r}")
        self._pre_key = tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in identifiers)

    @classmethod
    def parse(cls, text: str) -> "SemVer":
        match = _SEMVER.match(text)
        if not match:
            raise ValueError(f"Not a semver version: {text!r}")
        major, minor, patch, pre = match.groups()
        return cls(int(major), int(minor), int(patch), pre)

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    @property
    def triple(self) -> tuple[int, int, int]:
        return (self.release.major, self.release.minor, self.release.micro)

    @property
    def key(self):
        # Releases carry an empty key that outranks any prerelease key
        return (self.release, 0 if self.prerelease else 1, self._pre_key)

    def __eq__(self, other):
        return isinstance(other, SemVer) and self.key == other.key

    def __lt__(self, other):
        return self.key < other.key

    def __le__(self, other):
        return self.key <= other.key

    def __gt__(self, other):
        return self.key > other.key

    def __ge__(self, other):
        return self.key >= other.key

    def __hash__(self):
        return hash(self.key)

    def __str__(self):
        text = ".".join(str(n) for n in self.triple)
        return f"{text}-{self.prerelease}" if self.prerelease else text

    def __repr__(self):
        return f"SemVer({str(self)!r})"


def parse_version(value: str) -> SemVer | None:
    """Parse a strict semver string, returning None when it is not one."""
    match = _EXACT.match(value.strip()) if value else None
    if not match:
        return None
    try:
        return SemVer.parse(match.group(1))
    except ValueError:
        return None


def _wild(part: str | None) -> bool:
    return part is None or part in ("x", "X", "*")


class _Partial:
    """A possibly incomplete version such as ``1``, ``1.2`` or ``1.x``."""

    def __init__(self, text: str):
        match = _PARTIAL.match(text)
        if not match:
            raise InvalidRange(f"Invalid version in range: {text!r}")
        major, minor, patch, pre = match.groups()
        self.major = None if _wild(major) else int(major)
        self.minor = None if self.major is None or _wild(minor) else int(minor)
        self.patch = None if self.minor is None or _wild(patch) else int(patch)
        self.pre = pre if self.patch is not None else None

    @property
    def is_any(self) -> bool:
        return self.major is None

    @property
    def is_full(self) -> bool:
        return self.patch is not None

    def floor(self) -> SemVer:
        try:
            return SemVer(self.major or 0, self.minor or 0, self.patch or 0, self.pre)
        except ValueError as exc:
            raise InvalidRange(str(exc)) from exc

    def release(self) -> tuple[int, int, int]:
        return (self.major or 0, self.minor or 0, self.patch or 0)

    def next_unspecified(self) -> SemVer:
        """Lowest version above every version matching this partial."""
        if self.minor is None:
            return SemVer(self.major + 1, 0, 0)
        return SemVer(self.major, self.minor + 1, 0)


class _ComparatorSet:
    """One ``||`` alternative: an AND of comparators."""

    def __init__(self, text: str):
        self.comparators: list[tuple[str, SemVer]] = []
        self.prerelease_tuples: set[tuple[int, int, int]] = set()
        self.empty = False

        hyphen = _HYPHEN.match(text)
        if hyphen:
            self._hyphen(_Partial(hyphen.group(1)), _Partial(hyphen.group(2)))
        else:
            # Allow a space between an operator and its version: ">= 1.2.3"
            glued = re.sub(r"(~>|<=|>=|\^|~|<|>|=)\s+", r"\1", text.strip())
            for token in glued.split():
                self._comparator(token)

    def _add(self, op: str, version: SemVer) -> None:
        self.comparators.append((op, version))

    def _track(self, partial: _Partial) -> None:
        if partial.pre:
            self.prerelease_tuples.add(partial.release())

    def _hyphen(self, low: _Partial, high: _Partial) -> None:
        self._track(low)
        self._track(high)
        if not low.is_any:
            self._add(">=", low.floor())
        if high.is_any:
            return
        if high.is_full:
            self._add("<=", high.floor())
        else:
            self._add("<", high.next_unspecified())

    def _comparator(self, token: str) -> None:
        op, rest = _COMPARATOR.match(token).groups()
        op = op or "="
        partial = _Partial(rest or "*")
        self._track(partial)

        if partial.is_any:
            if op in ("<", ">"):
                # Nothing is below or above "any version"
                self.empty = True
            return

        if op == "^":
            self._add(">=", partial.floor())
            self._add("<", _caret_ceiling(partial))
        elif op in ("~", "~>"):
            self._add(">=", partial.floor())
            if partial.minor is None:
                self._add("<", SemVer(partial.major + 1, 0, 0))
            else:
                self._add("<", SemVer(partial.major, partial.minor + 1, 0))
        elif op == "=":
            if partial.is_full:
                self._add("==", partial.floor())
            else:
                self._add(">=", partial.floor())
                self._add("<", partial.next_unspecified())
        elif op == ">":
            if partial.is_full:
                self._add(">", partial.floor())
            else:
                self._add(">=", partial.next_unspecified())
        elif op == ">=":
            self._add(">=", partial.floor())
        elif op == "<":
            self._add("<", partial.floor())
        elif op == "<=":
            if partial.is_full:
                self._add("<=", partial.floor())
            else:
                self._add("<", partial.next_unspecified())

    def contains(self, version: SemVer) -> bool:
        if self.empty:
            return False
        # npm only admits prereleases on a tuple the range names explicitly
        if version.is_prerelease and version.triple not in self.prerelease_tuples:
            return False
        return all(_CHECKS[op](version, bound) for op, bound in self.comparators)


def _caret_ceiling(partial: _Partial) -> SemVer:
    if partial.major != 0 or partial.minor is None:
        return SemVer(partial.major + 1, 0, 0)
    if partial.minor != 0 or partial.patch is None:
        return SemVer(0, partial.minor + 1, 0)
    return SemVer(0, 0, partial.patch + 1)


class NpmRange:
    """A parsed npm range expression."""

    def __init__(self, expression: str):
        self.raw = expression
        alternatives = expression.split("||")
        self.alternatives = [_ComparatorSet(alt) for alt in alternatives]

    def __contains__(self, version: SemVer) -> bool:
        return any(alt.contains(version) for alt in self.alternatives)


class VersionResolver:
    """Map a declared constraint to the best published version."""

    def resolve(self, constraint: str | None, available: list[str] | None) -> str:
        """Resolve a constraint against the published versions.

        Args:
            constraint: Exact version or npm range expression
            available: Published version strings

        Returns:
            The exact version if it is published, otherwise the highest
            published version satisfying the range

        Raises:
            VersionResolutionError: With reason NO_INPUT, NOT_AVAILABLE or NO_MATCH
        """
        if not constraint or not constraint.strip() or not available:
            raise VersionResolutionError(ResolutionFailure.NO_INPUT, constraint)

        exact = _EXACT.match(constraint.strip())
        if exact:
            if exact.group(1) in available:
                return exact.group(1)
            raise VersionResolutionError(ResolutionFailure.NOT_AVAILABLE, constraint)

        try:
            npm_range = NpmRange(constraint)
        except InvalidRange:
            raise VersionResolutionError(ResolutionFailure.NO_MATCH, constraint)

        best: tuple[SemVer, str] | None = None
        for candidate in available:
            parsed = parse_version(candidate)
            if parsed is None or parsed not in npm_range:
                continue
            if best is None or parsed > best[0]:
                best = (parsed, candidate)

        if best is None:
            raise VersionResolutionError(ResolutionFailure.NO_MATCH, constraint)
        return best[1]


def resolve_version(constraint: str | None, available: list[str] | None) -> str | None:
    """Resolve a constraint, returning None instead of raising."""
    try:
        return VersionResolver().resolve(constraint, available)
    except VersionResolutionError:
        return None
