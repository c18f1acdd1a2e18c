"""
Cyclic Structure Module

Two nodes that own each other through strong handles. Once every external
handle is released, each node is still owned by the other: strong counts
never reach zero, no destructor hook runs, and the allocations stay on the
heap for the life of the process.

This is the known leak of reference counting. Nothing here detects or breaks
the cycle; avoiding it is the caller's job, usually by making one direction a
Weak handle as ownership.tree does for parent links.
"""

from typing import Callable, Generic, Optional, TypeVar

from ownership.cell import BorrowCell
from ownership.diagnostics import RcDiagnostics
from ownership.rc import Droppable, Rc

T = TypeVar('T')


class CycleNode(Droppable, Generic[T]):
    def __init__(self, value: T, diagnostics: Optional[RcDiagnostics] = None):
        self.value = value
        self.next: BorrowCell[Optional[Rc['CycleNode[T]']]] = BorrowCell(None, diagnostics)

    def drop(self):
        successor = self.next.replace(None)
        if successor is not None:
            successor.release()

    def __repr__(self):
        return f"CycleNode(value={self.value!r})"


def new_cycle_node(value: T,
                   on_drop: Optional[Callable[[CycleNode[T]], None]] = None,
                   diagnostics: Optional[RcDiagnostics] = None) -> Rc[CycleNode[T]]:
    return Rc.new(CycleNode(value, diagnostics), on_drop=on_drop, diagnostics=diagnostics)


def _point_at(node: Rc[CycleNode[T]], target: Rc[CycleNode[T]]):
    previous = node.value.next.replace(target.clone())
    if previous is not None:
        previous.release()


def link_mutually(a: Rc[CycleNode[T]], b: Rc[CycleNode[T]]):
    """Make a own b and b own a, both strongly.

    After this, releasing the caller's handles to a and b leaks both nodes.
    """
    _point_at(a, b)
    _point_at(b, a)


def next_of(node: Rc[CycleNode[T]]) -> Optional[Rc[CycleNode[T]]]:
    """A new strong handle to the node's successor, or None."""
    with node.value.next.borrow() as slot:
        successor = slot.value
        return successor.clone() if successor is not None else None
