import random

import pytest

from lsylar.rbtree import RBNode, RBTree, insert_timer_value, insert_value


def _black_height(tree, node):
    if node is tree.sentinel:
        return 1
    if node.red:
        assert not node.left.red and not node.right.red
    left = _black_height(tree, node.left)
    right = _black_height(tree, node.right)
    assert left == right
    return left + (0 if node.red else 1)


def _check(tree):
    assert not tree.root.red
    assert not tree.sentinel.red
    _black_height(tree, tree.root)


def test_insert_then_delete_single_node_empties_tree():
    tree = RBTree(insert_timer_value)
    node = RBNode(1)
    tree.insert(node)
    assert tree.minimum() is node
    tree.delete(node)
    assert tree.is_empty()
    assert node.key == 0
    assert node.left is None and node.parent is None


def test_empty_tree_has_no_minimum():
    tree = RBTree()
    assert tree.is_empty()
    assert tree.minimum() is None
    assert len(tree) == 0


def test_in_order_traversal_is_sorted_and_balanced():
    rng = random.Random(7)
    keys = [rng.randrange(1000) for _ in range(300)]
    tree = RBTree(insert_value)
    for key in keys:
        tree.insert(RBNode(key))
        _check(tree)
    assert [n.key for n in tree] == sorted(keys)
    assert len(tree) == len(keys)


def test_deletes_keep_invariants():
    rng = random.Random(11)
    nodes = [RBNode(rng.randrange(500)) for _ in range(200)]
    tree = RBTree()
    for node in nodes:
        tree.insert(node)
    rng.shuffle(nodes)
    remaining = list(nodes)
    for node in nodes[:150]:
        remaining.remove(node)
        expected = sorted(n.key for n in remaining)
        tree.delete(node)
        _check(tree)
        assert [n.key for n in tree] == expected
    assert len(tree) == 50


def test_next_walks_successors():
    tree = RBTree()
    nodes = {k: RBNode(k) for k in (5, 1, 9, 3)}
    for node in nodes.values():
        tree.insert(node)
    assert tree.next(nodes[1]) is nodes[3]
    assert tree.next(nodes[3]) is nodes[5]
    assert tree.next(nodes[9]) is None


def test_delete_unlinked_node_raises():
    tree = RBTree()
    node = RBNode(3)
    with pytest.raises(ValueError):
        tree.delete(node)
    tree.insert(node)
    tree.delete(node)
    with pytest.raises(ValueError):
        tree.delete(node)


def test_timer_ordering_handles_wraparound():
    tree = RBTree(insert_timer_value)
    late = RBNode(5)
    early = RBNode(0xFFFFFFF0)
    tree.insert(early)
    tree.insert(late)
    assert tree.minimum() is early
    assert [n.key for n in tree] == [0xFFFFFFF0, 5]


def test_plain_ordering_has_no_wraparound():
    tree = RBTree(insert_value)
    tree.insert(RBNode(0xFFFFFFF0))
    tree.insert(RBNode(5))
    assert tree.minimum().key == 5