"""Version ordering and bumping for MAJOR.MINOR.PATCH labels.

Components are compared as integers, so ``2.0.0`` sorts after ``1.9.9``.
Malformed labels raise ``MalformedVersion`` instead of being read as zero.
"""

from __future__ import annotations

from enum import Enum

from scriptsync.errors import MalformedVersion

INITIAL_VERSION = "0.0.0"


class BumpKind(Enum):
    """Which component of a version to increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


def parse_version(version: str) -> tuple[int, int, int]:
    """Parse ``"X.Y.Z"`` into an integer triple.

    Raises:
        MalformedVersion: wrong number of components, or a component that is
            not a non-negative decimal integer.
    """
    if not isinstance(version, str):
        raise MalformedVersion(version)

    parts = version.strip().split(".")
    if len(parts) != 3 or not all(p.isdigit() and p.isascii() for p in parts):
        raise MalformedVersion(version)

    major, minor, patch = (int(p) for p in parts)
    return major, minor, patch


def format_version(parts: tuple[int, int, int]) -> str:
    return ".".join(str(p) for p in parts)


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as ``a`` is lower than, equal to, or higher than ``b``."""
    pa = parse_version(a)
    pb = parse_version(b)
    if pa > pb:
        return 1
    if pa < pb:
        return -1
    return 0


def max_version(*versions: str) -> str:
    """Return the highest of the given versions (``0.0.0`` when none are given)."""
    best = INITIAL_VERSION
    for v in versions:
        if compare_versions(v, best) > 0:
            best = v
    return best


def bump_version(version: str, kind: BumpKind | str) -> str:
    """Increment one component of ``version``.

    ``major`` resets minor and patch, ``minor`` resets patch, ``patch`` only
    increments patch.
    """
    kind = BumpKind(kind)
    major, minor, patch = parse_version(version)

    if kind == BumpKind.MAJOR:
        return format_version((major + 1, 0, 0))
    if kind == BumpKind.MINOR:
        return format_version((major, minor + 1, 0))
    return format_version((major, minor, patch + 1))
