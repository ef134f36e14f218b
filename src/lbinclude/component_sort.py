"""Region/weight ordering of layout section components."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from .models import LayoutNotFound

logger = logging.getLogger("lbinclude.sort")


def _weight(component: Any) -> int:
    if not isinstance(component, dict):
        return 0
    weight = component.get("weight")
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return 0
    return weight


def _components_list(components: Any) -> List[Any]:
    if isinstance(components, dict):
        return list(components.values())
    if isinstance(components, list):
        return list(components)
    return []


def _region_ranks(layouts, layout_id: Any) -> Dict[str, int] | None:
    if not isinstance(layout_id, str) or not layout_id:
        return None
    try:
        definition = layouts.get_definition(layout_id)
    except LayoutNotFound:
        logger.warning("layout_not_found layout_id=%s fallback=weight", layout_id)
        return None
    regions = list(definition.regions or [])
    if len(regions) <= 1:
        return None
    return {region: rank for rank, region in enumerate(regions)}


def sort_components(components: Any, ranks: Dict[str, int] | None) -> List[Any]:
    items = _components_list(components)
    if ranks is None:
        return sorted(items, key=_weight)
    undeclared = len(ranks)

    def key(component: Any) -> tuple:
        region = component.get("region") if isinstance(component, dict) else None
        if not isinstance(region, str) or region not in ranks:
            return (undeclared, 0)
        return (ranks[region], _weight(component))

    return sorted(items, key=key)


def sort_section_components(sections: Any, layouts) -> list:
    """Order the components of every section in place and return the sections.

    Multi-region layouts order by the definition's region order, then by
    weight. Single-region and unknown layouts order by weight only. Ties keep
    their input order.
    """
    if not isinstance(sections, list):
        return []
    for section in sections:
        if not isinstance(section, dict) or "components" not in section:
            continue
        ranks = _region_ranks(layouts, section.get("layout_id"))
        section["components"] = sort_components(section["components"], ranks)
    return sections
