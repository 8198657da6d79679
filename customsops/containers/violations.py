"""Container weight violations reported by the ContainerWeightCheck function."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from customsops.config import CRITICAL_EXCESS_KG


def _declaration_sort_key(entry: dict[str, Any]) -> tuple[int, Any]:
    value = entry.get("declarationId")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value)
    try:
        return (1, int(str(value)))
    except (TypeError, ValueError):
        return (0, 0)


def sort_violations(entries: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Newest declaration first (highest declarationId)."""
    return sorted(entries, key=_declaration_sort_key, reverse=True)


def _excess(entry: dict[str, Any]) -> float:
    return (entry.get("violation") or {}).get("exceedsBy") or 0


def filter_violations(
    entries: Iterable[dict[str, Any]],
    search: str = "",
    company: str = "",
) -> list[dict[str, Any]]:
    """Keep actual violations matching the search box and company dropdown."""
    term = search.lower()
    result = []
    for entry in entries:
        if not (entry.get("violation") or {}).get("hasViolation"):
            continue
        if term and not (
            term in str(entry.get("declarationId", "")).lower()
            or term in str(entry.get("company") or "").lower()
        ):
            continue
        if company and entry.get("company") != company:
            continue
        result.append(entry)
    return result


def violation_summary(entries: list[dict[str, Any]]) -> dict[str, Any]:
    """Header cards: count, critical count (over 10 t excess) and mean excess."""
    total = len(entries)
    critical = sum(1 for entry in entries if _excess(entry) > CRITICAL_EXCESS_KG)
    avg_excess = sum(_excess(entry) for entry in entries) / total if total else 0
    return {
        "totalViolations": total,
        "criticalViolations": critical,
        "avgExcess": avg_excess,
    }


def companies(entries: Iterable[dict[str, Any]]) -> list[str]:
    seen: list[str] = []
    for entry in entries:
        name = entry.get("company")
        if name and name not in seen:
            seen.append(name)
    return seen
