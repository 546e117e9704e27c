"""Tests for ``ViewTree``: search, paging, reveal and change notifications."""

from __future__ import annotations

import unittest

from fakes import FakeHost, PagedNode, StaticTree, settle
from repotree.cancellation import CancellationToken
from repotree.view_model import CollapsibleState, NodeStateChange

SHAPE = {"a": {"b": {"c": {}}}, "p": 5}


class FindNodeTests(unittest.IsolatedAsyncioTestCase):
    async def test_finds_nodes_within_depth_bound(self) -> None:
        tree = StaticTree(SHAPE)

        found = await tree.find_node("root/a/b", max_depth=2)

        self.assertIsNotNone(found)
        self.assertEqual(found.id, "root/a/b")

    async def test_nodes_beyond_depth_bound_are_not_found(self) -> None:
        tree = StaticTree(SHAPE)

        self.assertIsNone(await tree.find_node("root/a/b/c", max_depth=2))
        found = await tree.find_node("root/a/b/c", max_depth=3)
        self.assertEqual(found.id, "root/a/b/c")

    async def test_children_beyond_depth_bound_are_never_loaded(self) -> None:
        tree = StaticTree({"a": {"b": {"c": {"d": {}}}}})

        self.assertIsNone(await tree.find_node("root/a/b/c/d", max_depth=2))

        (a,) = tree.root.cached_children
        (b,) = a.cached_children
        (c,) = b.cached_children
        self.assertEqual(b.load_count, 1)
        self.assertEqual(c.load_count, 0)
        self.assertIsNone(c.cached_children)

    async def test_default_depth_comes_from_config(self) -> None:
        tree = StaticTree(SHAPE)
        self.assertEqual(tree.config.find_max_depth, 2)

        self.assertIsNone(await tree.find_node("root/a/b/c"))

    async def test_current_page_is_searched_without_paging(self) -> None:
        tree = StaticTree(SHAPE)

        found = await tree.find_node("root/p/item1")

        self.assertEqual(found.id, "root/p/item1")
        self.assertIsNone(await tree.find_node("root/p/item4"))

    async def test_paging_grows_window_until_match(self) -> None:
        tree = StaticTree(SHAPE)

        found = await tree.find_node("root/p/item4", allow_paging=True)

        self.assertEqual(found.id, "root/p/item4")
        paged = tree.ensure_root().cached_children[1]
        self.assertIsInstance(paged, PagedNode)
        self.assertEqual(paged.show_more_calls, 1)
        self.assertEqual(tree.get_last_known_limit(paged), 2 + tree.config.page_size)

    async def test_paging_stops_when_node_runs_out(self) -> None:
        tree = StaticTree({"p": 7})

        self.assertIsNone(await tree.find_node("missing", allow_paging=True, max_depth=5))

        paged = tree.ensure_root().cached_children[0]
        self.assertFalse(paged.paging.has_more)
        self.assertEqual(paged.show_more_calls, 1)

    async def test_paged_children_are_not_descended_into(self) -> None:
        tree = StaticTree({"p": 3})

        await tree.find_node("missing", allow_paging=True, max_depth=5)

        paged = tree.ensure_root().cached_children[0]
        for item in paged.cached_children:
            self.assertEqual(item.load_count, 0)

    async def test_pre_cancelled_token_returns_none_without_loading(self) -> None:
        tree = StaticTree(SHAPE)
        token = CancellationToken()
        token.cancel()

        self.assertIsNone(await tree.find_node("root/a", token=token))
        self.assertEqual(tree.ensure_root().load_count, 0)

    async def test_cancellation_during_search_stops_it(self) -> None:
        tree = StaticTree(SHAPE)
        token = CancellationToken()
        visited: list[str] = []

        def predicate(node) -> bool:
            visited.append(node.id)
            if node.id == "root/a":
                token.cancel()
            return False

        self.assertIsNone(await tree.find_node(predicate, token=token, max_depth=5))
        self.assertNotIn("root/a/b", visited)

    async def test_predicate_failure_returns_none(self) -> None:
        tree = StaticTree(SHAPE)

        def predicate(_node) -> bool:
            raise ValueError("bad predicate")

        with self.assertLogs("repotree.view_tree", level="ERROR"):
            self.assertIsNone(await tree.find_node(predicate))

    async def test_can_traverse_prunes_subtrees(self) -> None:
        tree = StaticTree(SHAPE)

        async def can_traverse(node) -> bool:
            return node.id != "root/a"

        self.assertIsNone(await tree.find_node("root/a/b", can_traverse=can_traverse))
        self.assertIsNotNone(await tree.find_node("root/a/b"))


class PagingTests(unittest.IsolatedAsyncioTestCase):
    async def test_show_more_records_last_known_limit(self) -> None:
        tree = StaticTree({"p": 10})
        paged = (await tree.get_children(tree.ensure_root()))[0]

        await tree.show_more(paged, 3)

        self.assertEqual(len(await paged.get_children()), 5)
        self.assertTrue(tree.has_last_known_limit(paged))
        self.assertEqual(tree.get_last_known_limit(paged), 5)

        tree.reset_last_known_limit(paged)
        self.assertFalse(tree.has_last_known_limit(paged))

    async def test_reset_limits_by_prefix(self) -> None:
        tree = StaticTree({"g": {"p": 10}, "g1": {"p": 10}})
        group, other_group = await tree.get_children()
        (first,) = await group.get_children()
        (second,) = await other_group.get_children()
        await tree.show_more(first, 1)
        await tree.show_more(second, 1)

        tree.reset_last_known_limits("root/g/")

        self.assertFalse(tree.has_last_known_limit(first))
        self.assertTrue(tree.has_last_known_limit(second))

    async def test_show_more_zero_loads_everything(self) -> None:
        tree = StaticTree({"p": 10})
        (paged,) = await tree.get_children()

        await tree.show_more(paged, 0)

        self.assertEqual(len(await paged.get_children()), 10)
        self.assertIsNone(tree.get_last_known_limit(paged))
        self.assertTrue(tree.has_last_known_limit(paged))

    async def test_show_more_on_plain_node_raises(self) -> None:
        tree = StaticTree(SHAPE)
        plain = (await tree.get_children())[0]

        with self.assertRaises(TypeError):
            await tree.show_more(plain)

    async def test_show_more_reveals_previous_node(self) -> None:
        host = FakeHost()
        tree = StaticTree({"p": 10}, host=host)
        (paged,) = await tree.get_children()
        last = (await paged.get_children())[-1]

        await tree.show_more(paged, previous_node=last)

        self.assertEqual(host.reveals[0][0], last)
        self.assertTrue(host.reveals[0][1])


class NotificationTests(unittest.IsolatedAsyncioTestCase):
    async def test_root_changes_are_reported_as_everything(self) -> None:
        tree = StaticTree(SHAPE)
        root = tree.ensure_root()
        child = (await root.get_children())[0]
        changes: list[object] = []
        tree.on_did_change_tree_data.subscribe(changes.append)

        tree.trigger_node_change(root)
        tree.trigger_node_change(child)
        await tree.refresh()

        self.assertEqual(changes, [None, child, None])

    async def test_forced_root_disposes_previous_root(self) -> None:
        tree = StaticTree(SHAPE)
        old = tree.ensure_root()

        new = tree.ensure_root(force=True)

        self.assertIsNot(old, new)
        self.assertTrue(old.disposed)
        self.assertIs(tree.root, new)

    async def test_reveal_failure_is_swallowed(self) -> None:
        host = FakeHost()
        host.fail_reveal = True
        tree = StaticTree(SHAPE, host=host)
        node = (await tree.get_children())[0]

        with self.assertLogs("repotree.view_tree", level="ERROR"):
            await tree.reveal(node, select=True)

    async def test_reveal_without_host_is_a_no_op(self) -> None:
        tree = StaticTree(SHAPE)
        node = (await tree.get_children())[0]

        await tree.reveal(node)
        self.assertFalse(tree.visible)
        self.assertEqual(tree.selection, [])

    async def test_visibility_changes_are_debounced(self) -> None:
        tree = StaticTree(SHAPE)
        seen: list[bool] = []
        tree.on_did_change_visibility.subscribe(seen.append)

        tree.on_visibility_changed(True)
        tree.on_visibility_changed(False)
        await settle()

        self.assertEqual(seen, [False])

    async def test_expand_and_collapse_are_published(self) -> None:
        tree = StaticTree(SHAPE)
        node = (await tree.get_children())[0]
        seen: list[NodeStateChange] = []
        tree.on_did_change_node_state.subscribe(seen.append)

        tree.on_element_expanded(node)
        tree.on_element_collapsed(node)

        self.assertEqual(
            seen,
            [
                NodeStateChange(node, CollapsibleState.EXPANDED),
                NodeStateChange(node, CollapsibleState.COLLAPSED),
            ],
        )

    async def test_dispose_tears_down_root_and_listeners(self) -> None:
        tree = StaticTree(SHAPE)
        root = tree.ensure_root()
        tree.on_did_change_tree_data.subscribe(lambda _node: None)

        tree.dispose()

        self.assertTrue(root.disposed)
        self.assertIsNone(tree.root)
        self.assertEqual(len(tree.on_did_change_tree_data), 0)
        self.assertFalse(tree.auto_refresh)


if __name__ == "__main__":
    unittest.main()
