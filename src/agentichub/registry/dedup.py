"""
Deduplication of registry listings.

Registries publish one listing per released version, and pages can overlap
between fetches. Listings are collapsed on their normalized repository URL,
keeping the newest version; listings without a repository collapse on name.
"""

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ServerRecord

_DIGITS = re.compile(r"(\d+)")
_SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*://")


def _normalize_once(value: str) -> str:
    value = _SCHEME.sub("", value.strip().lower())
    value = value.removeprefix("www.")
    return value.strip("/").removesuffix(".git").strip("/")


def normalize_repository_url(url: str) -> str:
    """
    Normalize a repository URL for identity comparison.

    Lowercases, drops the scheme and a leading ``www.``, strips surrounding
    slashes and a trailing ``.git``, so ``https://GitHub.com/A/B.git/`` and
    ``github.com/a/b`` share one identity. Idempotent.
    """
    value = _normalize_once(url)
    while True:
        again = _normalize_once(value)
        if again == value:
            return value
        value = again


def _version_key(version: str) -> tuple[tuple[int, int | str], ...]:
    parts: list[tuple[int, int | str]] = []
    for chunk in _DIGITS.split(version):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk))
    return tuple(parts)


def compare_versions(left: str | None, right: str | None) -> int:
    """
    Compare two free-form version strings, treating digit runs as numbers.

    Returns:
        -1, 0 or 1 as ``left`` sorts before, equal to or after ``right``
    """
    left_key = _version_key(left or "")
    right_key = _version_key(right or "")
    if left_key == right_key:
        return 0
    return 1 if left_key > right_key else -1


def _prefer(candidate: "ServerRecord", existing: "ServerRecord") -> bool:
    order = compare_versions(candidate.version, existing.version)
    if order > 0:
        return True
    return order == 0 and len(candidate.packages) > len(existing.packages)


def deduplicate(servers: Iterable["ServerRecord"]) -> list["ServerRecord"]:
    """
    Collapse listings so each repository (or bare name) appears once.

    Args:
        servers: Listings, possibly with duplicates across pages or versions

    Returns:
        One listing per normalized repository URL plus one per name among
        listings without a repository. Order is unspecified.
    """
    best_by_repo: dict[str, "ServerRecord"] = {}
    by_name: dict[str, "ServerRecord"] = {}

    for server in servers:
        repo_url = server.repository_url
        if not repo_url:
            by_name.setdefault(server.name, server)
            continue

        key = normalize_repository_url(repo_url)
        existing = best_by_repo.get(key)
        if existing is None or _prefer(server, existing):
            best_by_repo[key] = server

    return list(best_by_repo.values()) + list(by_name.values())
