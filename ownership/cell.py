"""
Borrow Cell Module

Run-time checked interior mutability. A BorrowCell hands out guards:

- borrow():     shared read guard (Ref), any number may coexist
- borrow_mut(): exclusive write guard (RefMut), only while no other guard exists

State machine:
    FREE --borrow--> SHARED(1) --borrow--> SHARED(n+1)
    FREE --borrow_mut--> EXCLUSIVE
    SHARED(n) --release--> SHARED(n-1) | FREE
    EXCLUSIVE --release--> FREE

Any other transition raises a BorrowError subclass. Guards are context
managers, so the state is restored on every exit path:

    with cell.borrow_mut() as guard:
        guard.value.append(item)

Not thread-safe.
"""

from enum import Enum
from typing import Generic, Optional, TypeVar

from ownership.diagnostics import RcDiagnostics, get_diagnostics
from ownership.errors import (
    AlreadyBorrowedError, AlreadyMutablyBorrowedError, BorrowConflict,
    BorrowError, ReleasedHandleError,
)

T = TypeVar('T')


class BorrowState(Enum):
    FREE = "free"
    SHARED = "shared"
    EXCLUSIVE = "exclusive"


class BorrowCell(Generic[T]):
    """A mutable slot whose borrowing rules are enforced at run time."""

    def __init__(self, value: T, diagnostics: Optional[RcDiagnostics] = None):
        self._value = value
        self._readers = 0
        self._writer = False
        # None reports to whichever instance is active at borrow time
        self._diagnostics = diagnostics

    @property
    def diagnostics(self) -> RcDiagnostics:
        return self._diagnostics if self._diagnostics is not None else get_diagnostics()

    @property
    def state(self) -> BorrowState:
        if self._writer:
            return BorrowState.EXCLUSIVE
        if self._readers:
            return BorrowState.SHARED
        return BorrowState.FREE

    @property
    def readers(self) -> int:
        """Number of outstanding shared guards."""
        return self._readers

    def _describe_state(self) -> str:
        if self._readers:
            return f"shared({self._readers})"
        return self.state.value

    def _fail(self, error: BorrowError) -> BorrowError:
        self.diagnostics.record_conflict(error)
        return error

    def borrow(self) -> 'Ref[T]':
        """Take a shared guard. Fails if an exclusive guard is outstanding."""
        if self._writer:
            raise self._fail(AlreadyMutablyBorrowedError(BorrowConflict.READ_WHILE_WRITING))
        self._readers += 1
        self.diagnostics.record_borrow("borrow", self._describe_state())
        return Ref(self)

    def borrow_mut(self) -> 'RefMut[T]':
        """Take the exclusive guard. Fails if any guard is outstanding."""
        if self._writer:
            raise self._fail(AlreadyBorrowedError(BorrowConflict.WRITE_WHILE_WRITING))
        if self._readers:
            raise self._fail(AlreadyBorrowedError(BorrowConflict.WRITE_WHILE_READING, self._readers))
        self._writer = True
        self.diagnostics.record_borrow("borrow_mut", self._describe_state())
        return RefMut(self)

    def try_borrow(self) -> Optional['Ref[T]']:
        if self._writer:
            return None
        return self.borrow()

    def try_borrow_mut(self) -> Optional['RefMut[T]']:
        if self._writer or self._readers:
            return None
        return self.borrow_mut()

    def replace(self, value: T) -> T:
        """Swap in a new value under an exclusive borrow, returning the old one."""
        with self.borrow_mut() as guard:
            old = guard.value
            guard.value = value
        return old

    def _release_shared(self):
        self._readers -= 1
        self.diagnostics.record_borrow("release shared", self._describe_state())

    def _release_exclusive(self):
        self._writer = False
        self.diagnostics.record_borrow("release exclusive", self._describe_state())

    def __repr__(self):
        if self._writer:
            return "BorrowCell(<borrowed>)"
        return f"BorrowCell({self._value!r})"


class _Guard(Generic[T]):
    """Common guard behaviour: scoped release, use-after-release checks."""

    def __init__(self, cell: BorrowCell[T]):
        self._cell: Optional[BorrowCell[T]] = cell

    @property
    def released(self) -> bool:
        return self._cell is None

    def _live_cell(self) -> BorrowCell[T]:
        if self._cell is None:
            raise ReleasedHandleError(f"{type(self).__name__} used after release")
        return self._cell

    @property
    def value(self) -> T:
        return self._live_cell()._value

    def release(self):
        """Give the borrow back. Releasing twice is a no-op."""
        cell = self._cell
        if cell is None:
            return
        self._cell = None
        self._give_back(cell)

    def _give_back(self, cell: BorrowCell[T]):
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


class Ref(_Guard[T]):
    """Shared read guard returned by BorrowCell.borrow()."""

    def _give_back(self, cell: BorrowCell[T]):
        cell._release_shared()

    def __repr__(self):
        return f"Ref({self.value!r})" if not self.released else "Ref(<released>)"


class RefMut(_Guard[T]):
    """Exclusive write guard returned by BorrowCell.borrow_mut()."""

    @property
    def value(self) -> T:
        return self._live_cell()._value

    @value.setter
    def value(self, new_value: T):
        self._live_cell()._value = new_value

    def _give_back(self, cell: BorrowCell[T]):
        cell._release_exclusive()

    def __repr__(self):
        return f"RefMut({self.value!r})" if not self.released else "RefMut(<released>)"
