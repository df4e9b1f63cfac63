from __future__ import annotations

import logging
from graphlib import CycleError, TopologicalSorter

from ..models.config_models import MergeRequest

"""Sheet dependency ordering.

Some sheets gate their rows by keys extracted from another sheet (the Ozon
"Шаблон" sheet feeds article numbers to the video sheets). Such a key-source sheet
has to be merged completely before any sheet that filters against its keys.

Instead of hard-coding the template sheet, dependencies are declared:
- a sheet with use_extracted_keys depends on every enabled key-source sheet
- depends_on lists further sheets that must be merged first

The processing order is a topological sort of that graph. Sheets without an
ordering constraint keep their configuration (mapping) order.
"""

__all__ = [
    "SheetDependencyError",
    "build_dependency_graph",
    "key_sources_for",
    "resolve_sheet_order",
]

logger = logging.getLogger(__name__)


class SheetDependencyError(Exception):
    """Raised when sheet dependencies form a cycle."""
    pass


def _enabled_key_sources(request: MergeRequest) -> list[str]:
    return [name for name in request.enabled_configs() if request.is_key_source(name)]


def key_sources_for(request: MergeRequest, sheet_name: str) -> list[str]:
    """Key-source sheets whose keys gate the given sheet.

    Parameters
    ----------
    request: merge request holding all sheet configs
    sheet_name: dependent sheet

    Returns
    -------
    list[str]: explicit depends_on entries that are enabled key sources, or, when
    none are declared, every enabled key source other than the sheet itself
    """
    cfg = request.sheet_configs.get(sheet_name)
    if cfg is None or not cfg.use_extracted_keys:
        return []
    sources = [s for s in _enabled_key_sources(request) if s != sheet_name]
    explicit = [s for s in cfg.depends_on if s in sources]
    return explicit or sources


def build_dependency_graph(request: MergeRequest) -> dict[str, set[str]]:
    """Map every enabled sheet to the set of enabled sheets it must follow.

    Parameters
    ----------
    request: merge request

    Returns
    -------
    dict[str, set[str]]: sheet -> predecessors (only enabled sheets appear)
    """
    enabled = request.enabled_configs()
    graph: dict[str, set[str]] = {name: set() for name in enabled}
    for name, cfg in enabled.items():
        for dep in cfg.depends_on:
            if dep == name:
                continue
            if dep not in enabled:
                logger.debug("sheet=%s depends_on=%s ignored (not enabled)", name, dep)
                continue
            graph[name].add(dep)
        graph[name].update(key_sources_for(request, name))
    return graph


def resolve_sheet_order(request: MergeRequest) -> list[str]:
    """Enabled sheet names in processing order.

    Parameters
    ----------
    request: merge request

    Returns
    -------
    list[str]: topologically sorted sheet names; ties keep mapping order

    Raises
    ------
    SheetDependencyError: if the declared dependencies form a cycle
    """
    graph = build_dependency_graph(request)
    position = {name: idx for idx, name in enumerate(graph)}
    sorter: TopologicalSorter[str] = TopologicalSorter(graph)
    try:
        sorter.prepare()
    except CycleError as e:
        cycle = e.args[1] if len(e.args) > 1 else []
        raise SheetDependencyError(
            f"sheet dependencies form a cycle: {' -> '.join(map(str, cycle))}"
        ) from e

    order: list[str] = []
    pending: list[str] = []
    while sorter.is_active():
        pending.extend(sorter.get_ready())
        pending.sort(key=position.__getitem__)
        # one at a time so that config order decides among independent sheets
        head = pending.pop(0)
        order.append(head)
        sorter.done(head)
    return order
