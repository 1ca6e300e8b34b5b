"""Tree assembly for the capability forest and the module forest.

Catalog rows are an arena keyed by id with a nullable parent id. Child adjacency is
built on demand through an index map, and each node is rendered at most once, so a
node can never appear as its own descendant even if bad data introduced a cycle
(cyclic rows are simply unreachable from any root and are left out).
"""

from collections import defaultdict
from collections.abc import Collection, Iterable

from app.models import Capability, Module
from app.schemas.permissions import CapabilityNode, ModuleNode, ModuleWithCapabilities

UNKNOWN_MODULE_NAME = "Unknown"


def _index_by_parent(capabilities: Iterable[Capability]) -> dict[int | None, list[Capability]]:
    """parent_id -> children, each list ordered by ascending id."""
    by_parent: dict[int | None, list[Capability]] = defaultdict(list)
    for capability in sorted(capabilities, key=lambda c: c.id):
        by_parent[capability.parent_id].append(capability)
    return by_parent


def _render_capability(
    capability: Capability,
    by_parent: dict[int | None, list[Capability]],
    module_names: dict[int, str],
    granted_ids: Collection[int],
    visited: set[int],
) -> CapabilityNode:
    visited.add(capability.id)
    children = [
        _render_capability(child, by_parent, module_names, granted_ids, visited)
        for child in by_parent.get(capability.id, [])
        if child.id not in visited
    ]
    return CapabilityNode(
        id=capability.id,
        module_id=capability.module_id,
        module_name=module_names.get(capability.module_id, UNKNOWN_MODULE_NAME),
        name=capability.name,
        parent_id=capability.parent_id,
        ref_code=capability.ref_code,
        description=capability.description or "",
        is_visible=bool(capability.is_visible),
        has_permission=capability.id in granted_ids,
        children=children,
    )


def build_permission_tree(
    capabilities: Iterable[Capability],
    modules: Iterable[Module],
    granted_ids: Collection[int] | None = None,
) -> list[CapabilityNode]:
    """
    Render capabilities as a forest rooted at parentless nodes.

    Children are found by scanning the given catalog for a matching parent id, so only
    capabilities passed in can appear; a node whose parent is absent from the input is
    not rendered. has_permission marks membership in granted_ids (all False when None).
    """
    module_names = {m.id: m.name for m in modules}
    granted = frozenset(granted_ids or ())
    by_parent = _index_by_parent(capabilities)
    visited: set[int] = set()
    return [
        _render_capability(root, by_parent, module_names, granted, visited)
        for root in by_parent.get(None, [])
    ]


def build_module_capability_tree(
    modules: Iterable[Module],
    capabilities: Iterable[Capability],
) -> list[ModuleWithCapabilities]:
    """
    For each module (ascending id), its root capabilities and their descendants, all by id.

    Modules with no capabilities are dropped from the listing.
    """
    module_list = sorted(modules, key=lambda m: m.id)
    module_names = {m.id: m.name for m in module_list}
    by_parent = _index_by_parent(capabilities)
    visited: set[int] = set()
    result: list[ModuleWithCapabilities] = []
    for module in module_list:
        roots = [c for c in by_parent.get(None, []) if c.module_id == module.id]
        nodes = [
            _render_capability(root, by_parent, module_names, (), visited)
            for root in roots
        ]
        if nodes:
            result.append(
                ModuleWithCapabilities(
                    id=module.id,
                    name=module.name,
                    ref_code=module.ref_code,
                    capabilities=nodes,
                )
            )
    return result


def _sort_modules(nodes: list[ModuleNode], visited: set[int]) -> list[ModuleNode]:
    ordered = sorted(nodes, key=lambda n: (n.sort_order, n.id))
    for node in ordered:
        visited.add(node.id)
        node.children = _sort_modules(
            [child for child in node.children if child.id not in visited], visited
        )
    return ordered


def build_module_tree(modules: Iterable[Module]) -> list[ModuleNode]:
    """
    Assemble a module forest ordered by sort_order at every level.

    Each module is attached to its parent through an id map; a module whose parent is
    not among the given modules becomes a root.
    """
    nodes: dict[int, ModuleNode] = {
        m.id: ModuleNode(
            id=m.id,
            name=m.name,
            ref_code=m.ref_code,
            parent_id=m.parent_id,
            is_visible=bool(m.is_visible),
            logo_name=m.logo_name,
            redirect_page=m.redirect_page,
            sort_order=m.sort_order or 0,
            description=m.description,
        )
        for m in modules
    }
    roots: list[ModuleNode] = []
    for node in nodes.values():
        parent = nodes.get(node.parent_id) if node.parent_id is not None else None
        if parent is not None and parent is not node:
            parent.children.append(node)
        else:
            roots.append(node)
    return _sort_modules(roots, set())
