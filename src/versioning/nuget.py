"""NuGet version handling using semantic versioning.

NuGet versions may have two to four numeric parts and an optional prerelease
label. Dependency ranges use interval notation:

    1.0          -> 1.0 <= v
    [1.0]        -> v == 1.0
    [1.0,2.0)    -> 1.0 <= v < 2.0
    (,2.0]       -> v <= 2.0
"""

import re
from typing import Iterable, List, Optional

import semantic_version

from .models import VersionRange

_VERSION_RE = re.compile(
    r'^\s*v?(?P<nums>\d+(?:\.\d+){0,3})(?:-(?P<pre>[0-9A-Za-z\-\.]+))?(?:\+(?P<build>[0-9A-Za-z\-\.]+))?\s*$'
)


def parse_version(text: str) -> Optional[semantic_version.Version]:
    """Parse a NuGet version string, returning None when it is not a version.

    A fourth numeric part (revision) is kept as build metadata so that it
    survives round-trips, but it does not take part in ordering.
    """
    if not text:
        return None
    m = _VERSION_RE.match(str(text))
    if not m:
        return None
    nums = [int(n) for n in m.group("nums").split(".")]
    while len(nums) < 3:
        nums.append(0)
    build = []
    if len(nums) == 4:
        if nums[3]:
            build.append(str(nums[3]))
        nums = nums[:3]
    if m.group("build"):
        build.extend(m.group("build").split("."))
    prerelease = tuple(m.group("pre").split(".")) if m.group("pre") else ()
    try:
        return semantic_version.Version(
            major=nums[0],
            minor=nums[1],
            patch=nums[2],
            prerelease=prerelease,
            build=tuple(build),
        )
    except ValueError:
        return None


def normalize_version(text: str) -> str:
    """Return the NuGet normalized form of ``text`` (``1.0`` -> ``1.0.0``).

    Unparseable input is returned stripped and unchanged.
    """
    ver = parse_version(text)
    if ver is None:
        return str(text).strip()
    core = f"{ver.major}.{ver.minor}.{ver.patch}"
    revision = [b for b in ver.build if b.isdigit()]
    if revision and revision[0] != "0":
        core = f"{core}.{revision[0]}"
    if ver.prerelease:
        core = f"{core}-{'.'.join(ver.prerelease)}"
    return core


def _sort_key(ver: semantic_version.Version):
    revision = next((int(b) for b in ver.build if b.isdigit()), 0)
    return (ver.major, ver.minor, ver.patch, revision, not ver.prerelease, ver.prerelease)


def same_version(left: str, right: str) -> bool:
    """Return True when two version strings denote the same NuGet version."""
    lv, rv = parse_version(left), parse_version(right)
    if lv is None or rv is None:
        return str(left).strip().lower() == str(right).strip().lower()
    return normalize_version(left).lower() == normalize_version(right).lower()


def parse_range(spec: Optional[str]) -> VersionRange:
    """Parse a NuGet range. An empty spec matches every version.

    Raises:
        ValueError: if the spec is not a valid NuGet range.
    """
    s = (spec or "").strip()
    if not s:
        return VersionRange(raw=s)

    if s[0] not in "[(":
        floor = parse_version(s)
        if floor is None:
            raise ValueError(f"Invalid version range '{spec}'")
        return VersionRange(raw=s, minimum=floor, min_inclusive=True)

    if s[-1] not in "])":
        raise ValueError(f"Invalid version range '{spec}'")
    min_inclusive = s[0] == "["
    max_inclusive = s[-1] == "]"
    body = s[1:-1]

    if "," not in body:
        exact = parse_version(body)
        if exact is None or not (min_inclusive and max_inclusive):
            raise ValueError(f"Invalid version range '{spec}'")
        return VersionRange(raw=s, minimum=exact, maximum=exact,
                            min_inclusive=True, max_inclusive=True)

    left, right = (part.strip() for part in body.split(",", 1))
    minimum = parse_version(left) if left else None
    maximum = parse_version(right) if right else None
    if (left and minimum is None) or (right and maximum is None):
        raise ValueError(f"Invalid version range '{spec}'")
    return VersionRange(raw=s, minimum=minimum, maximum=maximum,
                        min_inclusive=min_inclusive, max_inclusive=max_inclusive)


def _in_range(ver: semantic_version.Version, rng: VersionRange) -> bool:
    key = _sort_key(ver)
    if rng.minimum is not None:
        low = _sort_key(rng.minimum)
        if key < low or (key == low and not rng.min_inclusive):
            return False
    if rng.maximum is not None:
        high = _sort_key(rng.maximum)
        if key > high or (key == high and not rng.max_inclusive):
            return False
    return True


def _parsed(candidates: Iterable[str]) -> List[tuple]:
    parsed = []
    for text in candidates:
        ver = parse_version(text)
        if ver is None:
            continue  # Skip invalid versions
        parsed.append((ver, text))
    return parsed


def pick_latest(candidates: Iterable[str]) -> Optional[str]:
    """Pick the highest stable version from candidates (prereleases excluded)."""
    stable = [(v, t) for v, t in _parsed(candidates) if not v.prerelease]
    if not stable:
        return None
    stable.sort(key=lambda item: _sort_key(item[0]), reverse=True)
    return stable[0][1]


def pick_lowest_matching(candidates: Iterable[str], spec: Optional[str]) -> Optional[str]:
    """Pick the lowest version satisfying a NuGet dependency range.

    Prereleases are only eligible when the range bound itself is a prerelease.
    """
    rng = parse_range(spec)
    allow_prerelease = any(
        bound is not None and bound.prerelease for bound in (rng.minimum, rng.maximum)
    )
    matches = [
        (v, t) for v, t in _parsed(candidates)
        if _in_range(v, rng) and (allow_prerelease or not v.prerelease)
    ]
    if not matches:
        return None
    matches.sort(key=lambda item: _sort_key(item[0]))
    return matches[0][1]


def is_range(spec: Optional[str]) -> bool:
    """Return True when ``spec`` uses interval notation rather than a plain version."""
    s = (spec or "").strip()
    return bool(s) and s[0] in "[("


def as_minimum_range(spec: Optional[str]) -> str:
    """Rewrite a bare dependency version (a minimum in NuGet) to interval notation."""
    s = (spec or "").strip()
    if not s or is_range(s):
        return s
    return f"[{s}, )"
