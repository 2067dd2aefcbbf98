from __future__ import annotations

from typing import Any


def _first(values: Any) -> str:
    if isinstance(values, list) and values and isinstance(values[0], str):
        return values[0].strip()
    return ""


def build_drug_suggestions(results: list[dict[str, Any]], query: str) -> list[dict[str, str]]:
    """Reshape openFDA label results into ``{name, strength}`` suggestions.

    Labels without ``openfda`` metadata are dropped, brand names win over
    generic names, and only names containing ``query`` are kept.
    """
    needle = query.strip().lower()
    suggestions: list[dict[str, str]] = []
    seen: set[tuple[str, str]] = set()
    for result in results:
        openfda = result.get("openfda")
        if not isinstance(openfda, dict) or not openfda:
            continue
        name = _first(openfda.get("brand_name")) or _first(openfda.get("generic_name"))
        if not name or needle not in name.lower():
            continue
        strength = _first(result.get("active_ingredient"))
        key = (name.lower(), strength.lower())
        if key in seen:
            continue
        seen.add(key)
        suggestions.append({"name": name, "strength": strength})
    return suggestions
