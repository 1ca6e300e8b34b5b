"""Unit tests for capability and module tree assembly (no database)."""

import unittest
from types import SimpleNamespace

from app.services.permission_tree import (
    UNKNOWN_MODULE_NAME,
    build_module_capability_tree,
    build_module_tree,
    build_permission_tree,
)


def _capability(cid, parent_id=None, module_id=1, ref_code=None):
    return SimpleNamespace(
        id=cid,
        module_id=module_id,
        name=f"cap-{cid}",
        parent_id=parent_id,
        ref_code=ref_code or f"CAP_{cid}",
        description=None,
        is_visible=True,
    )


def _module(mid, parent_id=None, sort_order=0, ref_code=None):
    return SimpleNamespace(
        id=mid,
        name=f"module-{mid}",
        ref_code=ref_code or f"MOD_{mid}",
        parent_id=parent_id,
        is_visible=True,
        logo_name=None,
        redirect_page=None,
        sort_order=sort_order,
        description=None,
    )


def _flatten(nodes):
    for node in nodes:
        yield node
        yield from _flatten(node.children)


class TestBuildPermissionTree(unittest.TestCase):
    def test_nests_children_in_id_order(self) -> None:
        caps = [_capability(3, parent_id=1), _capability(1), _capability(2, parent_id=1)]
        tree = build_permission_tree(caps, [_module(1)])
        self.assertEqual([n.id for n in tree], [1])
        self.assertEqual([c.id for c in tree[0].children], [2, 3])
        self.assertEqual(tree[0].module_name, "module-1")

    def test_marks_granted_nodes(self) -> None:
        caps = [_capability(1), _capability(2, parent_id=1)]
        tree = build_permission_tree(caps, [_module(1)], granted_ids=[2])
        self.assertFalse(tree[0].has_permission)
        self.assertTrue(tree[0].children[0].has_permission)

    def test_unknown_module_name(self) -> None:
        tree = build_permission_tree([_capability(1, module_id=42)], [])
        self.assertEqual(tree[0].module_name, UNKNOWN_MODULE_NAME)

    def test_orphan_is_not_rendered(self) -> None:
        tree = build_permission_tree([_capability(1), _capability(5, parent_id=4)], [])
        self.assertEqual([n.id for n in _flatten(tree)], [1])

    def test_each_node_rendered_once_and_cycles_terminate(self) -> None:
        caps = [
            _capability(1),
            _capability(2, parent_id=1),
            _capability(3, parent_id=2),
            # 4 and 5 point at each other; neither is reachable from a root
            _capability(4, parent_id=5),
            _capability(5, parent_id=4),
        ]
        tree = build_permission_tree(caps, [_module(1)])
        ids = [n.id for n in _flatten(tree)]
        self.assertEqual(ids, [1, 2, 3])
        self.assertEqual(len(ids), len(set(ids)))

    def test_self_parented_node_is_left_out(self) -> None:
        tree = build_permission_tree([_capability(1, parent_id=1)], [])
        self.assertEqual(tree, [])


class TestBuildModuleCapabilityTree(unittest.TestCase):
    def test_groups_by_module_and_drops_empty_modules(self) -> None:
        modules = [_module(2), _module(1), _module(3)]
        caps = [
            _capability(1, module_id=1),
            _capability(2, parent_id=1, module_id=1),
            _capability(3, module_id=2),
        ]
        result = build_module_capability_tree(modules, caps)
        self.assertEqual([m.id for m in result], [1, 2])
        self.assertEqual([c.id for c in result[0].capabilities[0].children], [2])


class TestBuildModuleTree(unittest.TestCase):
    def test_orders_by_sort_order_at_every_level(self) -> None:
        modules = [
            _module(1, sort_order=2),
            _module(2, sort_order=1),
            _module(3, parent_id=1, sort_order=5),
            _module(4, parent_id=1, sort_order=3),
        ]
        tree = build_module_tree(modules)
        self.assertEqual([m.id for m in tree], [2, 1])
        self.assertEqual([m.id for m in tree[1].children], [4, 3])

    def test_missing_parent_becomes_root(self) -> None:
        tree = build_module_tree([_module(7, parent_id=99)])
        self.assertEqual([m.id for m in tree], [7])

    def test_cycle_terminates(self) -> None:
        tree = build_module_tree([_module(1, parent_id=2), _module(2, parent_id=1), _module(3)])
        ids = [n.id for n in _flatten(tree)]
        self.assertEqual(ids, [3])


if __name__ == "__main__":
    unittest.main()
