"""Intrusive red-black tree with pluggable insertion ordering."""

from __future__ import annotations

from typing import Callable, Iterator, Optional

_INT32_SIGN = 0x80000000
_UINT32_MASK = 0xFFFFFFFF


class RBNode:
    """A node of a red-black tree; subclass it to carry a payload."""

    def __init__(self, key: int = 0, data: object = None) -> None:
        self.key = key
        self.data = data
        self.left: Optional[RBNode] = None
        self.right: Optional[RBNode] = None
        self.parent: Optional[RBNode] = None
        self.red = False

    def __repr__(self) -> str:
        colour = "red" if self.red else "black"
        return f"{type(self).__name__}(key={self.key}, {colour})"


InsertFunc = Callable[[RBNode, RBNode, RBNode], None]


def _link(parent: RBNode, node: RBNode, sentinel: RBNode, go_left: bool) -> None:
    if go_left:
        parent.left = node
    else:
        parent.right = node
    node.parent = parent
    node.left = sentinel
    node.right = sentinel
    node.red = True


def insert_value(root: RBNode, node: RBNode, sentinel: RBNode) -> None:
    """Plain binary-search insertion ordered by key; equal keys go right."""
    temp = root
    while True:
        go_left = node.key < temp.key
        child = temp.left if go_left else temp.right
        if child is sentinel:
            break
        temp = child
    _link(temp, node, sentinel, go_left)


def _timer_before(a: int, b: int) -> bool:
    """True when a precedes b, comparing the difference as a signed 32-bit value."""
    return ((a - b) & _UINT32_MASK) >= _INT32_SIGN


def insert_timer_value(root: RBNode, node: RBNode, sentinel: RBNode) -> None:
    """Insertion for timer keys, tolerant of 32-bit millisecond wrap-around."""
    temp = root
    while True:
        go_left = _timer_before(node.key, temp.key)
        child = temp.left if go_left else temp.right
        if child is sentinel:
            break
        temp = child
    _link(temp, node, sentinel, go_left)


def _subtree_min(node: RBNode, sentinel: RBNode) -> RBNode:
    while node.left is not sentinel:
        node = node.left
    return node


class RBTree:
    """Red-black tree of RBNode objects with a shared black sentinel."""

    def __init__(self, insert: InsertFunc = insert_value) -> None:
        self.sentinel = RBNode()
        self.sentinel.left = self.sentinel
        self.sentinel.right = self.sentinel
        self.root: RBNode = self.sentinel
        self._insert = insert
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[RBNode]:
        node = self.minimum()
        while node is not None:
            yield node
            node = self.next(node)

    def is_empty(self) -> bool:
        return self.root is self.sentinel

    def minimum(self) -> Optional[RBNode]:
        """The leftmost node, or None when the tree is empty."""
        if self.is_empty():
            return None
        return _subtree_min(self.root, self.sentinel)

    def next(self, node: RBNode) -> Optional[RBNode]:
        """The in-order successor of node, or None if node is the last."""
        sentinel = self.sentinel
        if node.right is not sentinel:
            return _subtree_min(node.right, sentinel)
        root = self.root
        while True:
            parent = node.parent
            if node is root or parent is None:
                return None
            if node is parent.left:
                return parent
            node = parent

    def _left_rotate(self, node: RBNode) -> None:
        sentinel = self.sentinel
        temp = node.right
        node.right = temp.left
        if temp.left is not sentinel:
            temp.left.parent = node
        temp.parent = node.parent
        if node is self.root:
            self.root = temp
        elif node is node.parent.left:
            node.parent.left = temp
        else:
            node.parent.right = temp
        temp.left = node
        node.parent = temp

    def _right_rotate(self, node: RBNode) -> None:
        sentinel = self.sentinel
        temp = node.left
        node.left = temp.right
        if temp.right is not sentinel:
            temp.right.parent = node
        temp.parent = node.parent
        if node is self.root:
            self.root = temp
        elif node is node.parent.right:
            node.parent.right = temp
        else:
            node.parent.left = temp
        temp.right = node
        node.parent = temp

    def insert(self, node: RBNode) -> None:
        """Link node into the tree and restore the red-black properties."""
        sentinel = self.sentinel
        self._size += 1
        if self.root is sentinel:
            node.parent = None
            node.left = sentinel
            node.right = sentinel
            node.red = False
            self.root = node
            return

        self._insert(self.root, node, sentinel)

        while node is not self.root and node.parent.red:
            grand = node.parent.parent
            if node.parent is grand.left:
                uncle = grand.right
                if uncle.red:
                    node.parent.red = False
                    uncle.red = False
                    grand.red = True
                    node = grand
                else:
                    if node is node.parent.right:
                        node = node.parent
                        self._left_rotate(node)
                    node.parent.red = False
                    node.parent.parent.red = True
                    self._right_rotate(node.parent.parent)
            else:
                uncle = grand.left
                if uncle.red:
                    node.parent.red = False
                    uncle.red = False
                    grand.red = True
                    node = grand
                else:
                    if node is node.parent.left:
                        node = node.parent
                        self._right_rotate(node)
                    node.parent.red = False
                    node.parent.parent.red = True
                    self._left_rotate(node.parent.parent)

        self.root.red = False

    @staticmethod
    def _unlink(node: RBNode) -> None:
        node.left = None
        node.right = None
        node.parent = None
        node.key = 0

    def delete(self, node: RBNode) -> None:
        """Remove node from the tree; raises ValueError if it is not linked in."""
        sentinel = self.sentinel
        if node is sentinel or node.left is None or node.right is None:
            raise ValueError("node is not in the tree")
        self._size -= 1

        if node.left is sentinel:
            temp = node.right
            subst = node
        elif node.right is sentinel:
            temp = node.left
            subst = node
        else:
            subst = _subtree_min(node.right, sentinel)
            temp = subst.right

        if subst is self.root:
            self.root = temp
            temp.red = False
            if temp is not sentinel:
                temp.parent = None
            self._unlink(node)
            return

        red = subst.red

        if subst is subst.parent.left:
            subst.parent.left = temp
        else:
            subst.parent.right = temp

        if subst is node:
            temp.parent = subst.parent
        else:
            temp.parent = subst if subst.parent is node else subst.parent

            subst.left = node.left
            subst.right = node.right
            subst.parent = node.parent
            subst.red = node.red

            if node is self.root:
                self.root = subst
            elif node is node.parent.left:
                node.parent.left = subst
            else:
                node.parent.right = subst

            if subst.left is not sentinel:
                subst.left.parent = subst
            if subst.right is not sentinel:
                subst.right.parent = subst

        self._unlink(node)

        if red:
            return

        while temp is not self.root and not temp.red:
            if temp is temp.parent.left:
                w = temp.parent.right
                if w.red:
                    w.red = False
                    temp.parent.red = True
                    self._left_rotate(temp.parent)
                    w = temp.parent.right
                if not w.left.red and not w.right.red:
                    w.red = True
                    temp = temp.parent
                else:
                    if not w.right.red:
                        w.left.red = False
                        w.red = True
                        self._right_rotate(w)
                        w = temp.parent.right
                    w.red = temp.parent.red
                    temp.parent.red = False
                    w.right.red = False
                    self._left_rotate(temp.parent)
                    temp = self.root
            else:
                w = temp.parent.left
                if w.red:
                    w.red = False
                    temp.parent.red = True
                    self._right_rotate(temp.parent)
                    w = temp.parent.left
                if not w.left.red and not w.right.red:
                    w.red = True
                    temp = temp.parent
                else:
                    if not w.left.red:
                        w.right.red = False
                        w.red = True
                        self._left_rotate(w)
                        w = temp.parent.left
                    w.red = temp.parent.red
                    temp.parent.red = False
                    w.left.red = False
                    self._right_rotate(temp.parent)
                    temp = self.root

        temp.red = False
        self.sentinel.red = False