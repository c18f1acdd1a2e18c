"""
Cons List Module

A singly linked list whose tails are shared handles, so several lists can
share one tail:

    a = from_iterable([5, 10])
    b = cons(3, a.clone())     # 3 -> 5 -> 10
    c = cons(4, a.clone())     # 4 -> 5 -> 10
    a.strong_count() == 3

The empty list (Nil) is None. Dropping a cell releases its tail, so dropping
the last list that reaches a shared tail frees it.
"""

from typing import Callable, Generic, Iterable, List, Optional, TypeVar

from ownership.rc import Droppable, Rc

T = TypeVar('T')


class Cons(Droppable, Generic[T]):
    def __init__(self, head: T, tail: Optional[Rc['Cons[T]']] = None):
        self.head = head
        self.tail = tail

    def drop(self):
        tail, self.tail = self.tail, None
        if tail is not None:
            tail.release()

    def __repr__(self):
        return f"Cons({self.head!r}, {'...' if self.tail is not None else 'Nil'})"


def cons(head: T, tail: Optional[Rc[Cons[T]]] = None,
         on_drop: Optional[Callable[[Cons[T]], None]] = None) -> Rc[Cons[T]]:
    """Prepend head to tail. The tail handle is moved into the new cell."""
    return Rc.new(Cons(head, tail), on_drop=on_drop)


def from_iterable(values: Iterable[T]) -> Optional[Rc[Cons[T]]]:
    lst: Optional[Rc[Cons[T]]] = None
    for value in reversed(list(values)):
        lst = cons(value, lst)
    return lst


def for_each(lst: Optional[Rc[Cons[T]]], f: Callable[[T], None]):
    """Call f on every element, head first. Does not touch any count."""
    cell = lst.value if lst is not None else None
    while cell is not None:
        f(cell.head)
        cell = cell.tail.value if cell.tail is not None else None


def to_list(lst: Optional[Rc[Cons[T]]]) -> List[T]:
    items: List[T] = []
    for_each(lst, items.append)
    return items
