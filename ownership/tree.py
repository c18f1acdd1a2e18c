"""
Tree Node Module

A tree built from the ownership primitives without reference cycles:

    TreeNode.value     payload
    TreeNode.children  BorrowCell[list of Rc[TreeNode]]   strong, parent owns children
    TreeNode.parent    BorrowCell[Weak[TreeNode]]         weak, child never owns parent

Releasing the last handle to a node drops it, which releases its children in
turn. A child that is still held elsewhere survives its parent; its parent
link then stops upgrading.
"""

from contextlib import ExitStack
from typing import Callable, Generic, List, Optional, TypeVar

from ownership.cell import BorrowCell, Ref
from ownership.diagnostics import RcDiagnostics
from ownership.rc import Droppable, Rc, Weak, release_all

T = TypeVar('T')


class TreeNode(Droppable, Generic[T]):
    def __init__(self, value: T, diagnostics: Optional[RcDiagnostics] = None):
        self.value = value
        self.children: BorrowCell[List[Rc['TreeNode[T]']]] = BorrowCell([], diagnostics)
        self.parent: BorrowCell[Weak['TreeNode[T]']] = BorrowCell(Weak.new(), diagnostics)

    def drop(self):
        """Release the parent link, then every child (best-effort per child)."""
        with self.parent.borrow_mut() as slot:
            parent = slot.value
            slot.value = Weak.new()
        with self.children.borrow_mut() as slot:
            children = slot.value
            slot.value = []
        parent.release()
        release_all(children)

    def __repr__(self):
        guard = self.children.try_borrow()
        if guard is None:
            return f"TreeNode(value={self.value!r}, children=<borrowed>)"
        with guard:
            return f"TreeNode(value={self.value!r}, children={len(guard.value)})"


def new_node(value: T, on_drop: Optional[Callable[[TreeNode[T]], None]] = None,
             diagnostics: Optional[RcDiagnostics] = None) -> Rc[TreeNode[T]]:
    """A detached node: no children, dangling parent link."""
    return Rc.new(TreeNode(value, diagnostics), on_drop=on_drop, diagnostics=diagnostics)


def append_child(parent: Rc[TreeNode[T]], child: Rc[TreeNode[T]]):
    """Attach child under parent.

    The child handle is moved into the parent's children; the caller must not
    release it afterwards. Pass child.clone() to keep an external handle.
    Both cells are borrowed before either is changed, so a borrow conflict
    leaves the tree untouched.
    """
    with parent.value.children.borrow_mut() as children, \
            child.value.parent.borrow_mut() as slot:
        children.value.append(child)
        previous = slot.value
        slot.value = parent.downgrade()
    previous.release()


def for_each(node: Rc[TreeNode[T]], visitor: Callable[[T], None]):
    """Depth-first pre-order traversal, visiting each node's value.

    A node's children stay shared-borrowed until its whole subtree has been
    visited.
    """
    with ExitStack() as guards:
        pending = [node]
        while pending:
            item = pending.pop()
            if isinstance(item, Ref):
                # Subtree finished
                item.release()
                continue
            visitor(item.value.value)
            children = guards.enter_context(item.value.children.borrow())
            pending.append(children)
            pending.extend(reversed(children.value))


def parent_of(node: Rc[TreeNode[T]]) -> Optional[Rc[TreeNode[T]]]:
    """A new strong handle to the parent, or None if unset or already dropped.

    The caller owns the returned handle and must release it.
    """
    with node.value.parent.borrow() as slot:
        return slot.value.upgrade()


def children_of(node: Rc[TreeNode[T]]) -> List[T]:
    with node.value.children.borrow() as children:
        return [child.value.value for child in children.value]
