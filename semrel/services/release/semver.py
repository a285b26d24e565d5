from __future__ import annotations

import re
from dataclasses import dataclass

from semrel.services.release.model import ReleaseBump


_VERSION_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[A-Za-z-][0-9A-Za-z-]*)(?:\.(?:0|[1-9]\d*|\d*[A-Za-z-][0-9A-Za-z-]*))*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)
_MAINTENANCE_RE = re.compile(r"^(0|[1-9]\d*)\.(?:x(?:\.x)?|(0|[1-9]\d*)\.x)$")
_RANGE_RE = re.compile(r"^>=\s*(\S+)(?:\s+<\s*(\S+))?$")

Identifier = int | str


def _parse_identifier(part: str) -> Identifier:
    return int(part) if part.isdigit() else part


@dataclass(frozen=True, slots=True)
class SemVer:
    """Semantic version with prerelease precedence (build metadata is dropped)."""

    major: int
    minor: int
    patch: int
    prerelease: tuple[Identifier, ...] = ()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            return f"{base}-{'.'.join(str(p) for p in self.prerelease)}"
        return base

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def base(self) -> SemVer:
        return SemVer(self.major, self.minor, self.patch)

    def _key(self) -> tuple[object, ...]:
        # A release sorts after all of its prereleases; numeric identifiers
        # sort before alphanumeric ones.
        pre = tuple((0, p, "") if isinstance(p, int) else (1, 0, p) for p in self.prerelease)
        return (self.major, self.minor, self.patch, 0 if pre else 1, pre)

    def __lt__(self, other: SemVer) -> bool:
        return self._key() < other._key()

    def __le__(self, other: SemVer) -> bool:
        return self._key() <= other._key()

    def __gt__(self, other: SemVer) -> bool:
        return self._key() > other._key()

    def __ge__(self, other: SemVer) -> bool:
        return self._key() >= other._key()

    def bump(self, kind: ReleaseBump) -> SemVer:
        match kind:
            case "major":
                if self.prerelease and self.minor == 0 and self.patch == 0:
                    return self.base
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                if self.prerelease and self.patch == 0:
                    return self.base
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                if self.prerelease:
                    return self.base
                return SemVer(self.major, self.minor, self.patch + 1)
            case "prerelease":
                if not self.prerelease:
                    return SemVer(self.major, self.minor, self.patch + 1, (0,))
                parts = list(self.prerelease)
                for i in range(len(parts) - 1, -1, -1):
                    part = parts[i]
                    if isinstance(part, int):
                        parts[i] = part + 1
                        return SemVer(self.major, self.minor, self.patch, tuple(parts))
                return SemVer(self.major, self.minor, self.patch, (*parts, 0))
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")

    def with_prerelease(self, identifier: str, n: int) -> SemVer:
        """Return `<base>-<identifier>.<n>`."""
        parts = tuple(_parse_identifier(p) for p in identifier.split("."))
        return SemVer(self.major, self.minor, self.patch, (*parts, n))


def parse_version(text: str) -> SemVer | None:
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    pre: tuple[Identifier, ...] = ()
    if m.group(4):
        pre = tuple(_parse_identifier(p) for p in m.group(4).split("."))
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)), pre)


def clean_version(text: str) -> SemVer | None:
    """Parse a version, tolerating a leading `v` or `=` and surrounding spaces."""
    return parse_version(text.strip().lstrip("=v").strip())


def diff(old: SemVer, new: SemVer) -> ReleaseBump | None:
    """Return the most significant component differing between two versions."""
    if old.major != new.major:
        return "major"
    if old.minor != new.minor:
        return "minor"
    if old.patch != new.patch:
        return "patch"
    if old.prerelease != new.prerelease:
        return "prerelease"
    return None


@dataclass(frozen=True, slots=True)
class SemverRange:
    """Half-open version range `>=lower <upper`; a None bound is unbounded.

    Prerelease versions never satisfy a range: ranges only describe release
    lines.
    """

    lower: SemVer | None = None
    upper: SemVer | None = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.lower is not None:
            parts.append(f">={self.lower}")
        if self.upper is not None:
            parts.append(f"<{self.upper}")
        return " ".join(parts) or "*"

    @property
    def is_empty(self) -> bool:
        return self.lower is not None and self.upper is not None and self.lower >= self.upper

    def satisfies(self, version: SemVer) -> bool:
        if version.is_prerelease:
            return False
        if self.lower is not None and version < self.lower:
            return False
        if self.upper is not None and version >= self.upper:
            return False
        return True

    def overlaps(self, other: SemverRange) -> bool:
        if self.is_empty or other.is_empty:
            return False
        below = self.upper is not None and other.lower is not None and self.upper <= other.lower
        above = other.upper is not None and self.lower is not None and other.upper <= self.lower
        return not (below or above)


def is_maintenance_range(text: str) -> bool:
    """True for maintenance range names: `N.x`, `N.x.x` or `N.N.x`."""
    return _MAINTENANCE_RE.match(text) is not None


def maintenance_range(text: str) -> SemverRange | None:
    """Convert `1.x` to `>=1.0.0 <2.0.0` and `1.2.x` to `>=1.2.0 <1.3.0`."""
    m = _MAINTENANCE_RE.match(text)
    if m is None:
        return None
    major = int(m.group(1))
    if m.group(2) is None:
        return SemverRange(SemVer(major, 0, 0), SemVer(major + 1, 0, 0))
    minor = int(m.group(2))
    return SemverRange(SemVer(major, minor, 0), SemVer(major, minor + 1, 0))


def parse_range(text: str) -> SemverRange | None:
    """Parse a maintenance range name or a `>=A [<B]` expression."""
    text = text.strip()
    if is_maintenance_range(text):
        return maintenance_range(text)
    m = _RANGE_RE.match(text)
    if m is None:
        return None
    lower = parse_version(m.group(1))
    upper = parse_version(m.group(2)) if m.group(2) else None
    if lower is None or (m.group(2) and upper is None):
        return None
    return SemverRange(lower, upper)


def highest(*versions: SemVer | None) -> SemVer | None:
    present = [v for v in versions if v is not None]
    return max(present) if present else None


def lowest(*versions: SemVer | None) -> SemVer | None:
    present = [v for v in versions if v is not None]
    return min(present) if present else None
