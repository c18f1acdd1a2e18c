"""
Reference Counting Module

Shared ownership with deterministic destruction.

Control Block Design:
- One ControlBlock per allocation, holding strong and weak counters
- The payload lives in the block while strong > 0
- strong 1 -> 0 drops the payload exactly once (destructor hook)
- strong == 0 and weak == 0 deallocates the block exactly once
- Weak handles keep the counts alive, never the payload
- Cascading drops are queued and run breadth-first: handles released
  inside a drop hook are dropped after that hook returns

Handles:
- Rc: owning handle (strong). Rc.new / clone / Weak.upgrade create one.
- Weak: non-owning handle. Rc.downgrade creates one; Weak.new() is dangling.

Handles are released explicitly with release() or by leaving a with block.
A handle that is never released keeps its count forever, like a leaked
allocation.

Reference cycles are never collected. Nodes that point back at an owner
should hold a Weak handle to it (see ownership.tree); strong back references
leak (see ownership.cyclic).

Not thread-safe: counters are plain integers.
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Deque, Generic, Optional, TypeVar

from ownership.diagnostics import RcDiagnostics, get_diagnostics
from ownership.errors import ReleasedHandleError

T = TypeVar('T')

# Blocks whose strong count reached zero and whose payload is still to be
# dropped. The outermost dec_strong drains the queue, so a cascade through a
# deep structure runs as a loop instead of one stack frame chain per level.
_pending_drops: Deque['ControlBlock'] = deque()
_draining = False


def _drain_pending_drops():
    """Drop queued payloads until the cascade settles.

    Every queued block is dropped even if an earlier one fails; the first
    error is re-raised once the queue is empty.
    """
    global _draining
    _draining = True
    first_error: Optional[BaseException] = None
    try:
        while _pending_drops:
            block = _pending_drops.popleft()
            try:
                block._drop_payload()
            except Exception as e:
                if first_error is None:
                    first_error = e
            finally:
                block._maybe_deallocate()
    finally:
        _draining = False
    if first_error is not None:
        raise first_error


class Droppable(ABC):
    """Payload that owns other handles and must release them when dropped.

    drop() runs once, when the last strong handle to the payload is released.
    """

    @abstractmethod
    def drop(self) -> None:
        pass


def _short_repr(value: Any, limit: int = 40) -> str:
    text = repr(value)
    if len(text) > limit:
        text = text[:limit - 3] + "..."
    return text


class ControlBlock:
    """Counters plus payload slot for one reference-counted allocation."""

    def __init__(self, value: Any, on_drop: Optional[Callable[[Any], None]],
                 diagnostics: RcDiagnostics):
        self.strong = 1
        self.weak = 0
        self.dropped = False
        self.deallocated = False
        self._value = value
        self._on_drop = on_drop
        self.diagnostics = diagnostics
        self.block_id = diagnostics.register(self)

    @property
    def value(self) -> Any:
        if self.dropped:
            raise ReleasedHandleError(f"payload of block #{self.block_id} was dropped")
        return self._value

    def describe_payload(self) -> str:
        if self.dropped:
            return "<dropped>"
        return f"{type(self._value).__name__}({_short_repr(self._value)})"

    def dec_strong(self):
        self.strong -= 1
        if self.strong == 0:
            _pending_drops.append(self)
            if not _draining:
                _drain_pending_drops()

    def dec_weak(self):
        self.weak -= 1
        if self.strong == 0:
            self._maybe_deallocate()

    def _drop_payload(self):
        value, on_drop = self._value, self._on_drop
        payload_desc = self.describe_payload()
        self._value = None
        self._on_drop = None
        self.dropped = True
        self.diagnostics.record_drop(self, payload_desc)

        # Caller hook first, then the payload releases what it owns
        try:
            if on_drop is not None:
                on_drop(value)
        finally:
            if isinstance(value, Droppable):
                value.drop()

    def _maybe_deallocate(self):
        # A block queued for dropping can lose its last weak handle before
        # its turn comes; deallocation waits for the drop.
        if self.weak == 0 and self.dropped and not self.deallocated:
            self.deallocated = True
            self.diagnostics.record_dealloc(self)


class Rc(Generic[T]):
    """Strong, owning handle to a reference-counted value."""

    def __init__(self, block: ControlBlock):
        self._block: Optional[ControlBlock] = block

    @classmethod
    def new(cls, value: T, on_drop: Optional[Callable[[T], None]] = None,
            diagnostics: Optional[RcDiagnostics] = None) -> 'Rc[T]':
        """Allocate a control block (strong=1, weak=0) owning value.

        on_drop, if given, is called with the payload when it is dropped.
        """
        block = ControlBlock(value, on_drop, diagnostics or get_diagnostics())
        return cls(block)

    create = new

    def _live_block(self, operation: str) -> ControlBlock:
        if self._block is None:
            raise ReleasedHandleError(f"cannot {operation} a released Rc")
        return self._block

    @property
    def released(self) -> bool:
        return self._block is None

    @property
    def block_id(self) -> int:
        return self._live_block("inspect").block_id

    @property
    def value(self) -> T:
        """The shared payload (read access through any live handle)."""
        return self._live_block("read").value

    def clone(self) -> 'Rc[T]':
        block = self._live_block("clone")
        block.strong += 1
        block.diagnostics.record_clone(block)
        return Rc(block)

    def downgrade(self) -> 'Weak[T]':
        block = self._live_block("downgrade")
        block.weak += 1
        block.diagnostics.record_downgrade(block)
        return Weak(block)

    def release(self):
        """Give up this handle's ownership. Drops the payload on the last one."""
        block = self._live_block("release")
        self._block = None
        block.diagnostics.record_release(block, "strong")
        block.dec_strong()

    def strong_count(self) -> int:
        return self._live_block("inspect").strong

    def weak_count(self) -> int:
        return self._live_block("inspect").weak

    @staticmethod
    def ptr_eq(a: 'Rc[Any]', b: 'Rc[Any]') -> bool:
        """True when both handles point at the same allocation."""
        return a._live_block("compare") is b._live_block("compare")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._block is not None:
            self.release()
        return False

    def __repr__(self):
        if self._block is None:
            return "Rc(<released>)"
        block = self._block
        return f"Rc({_short_repr(block.value)}, strong={block.strong}, weak={block.weak})"


class Weak(Generic[T]):
    """Non-owning handle. Never keeps the payload alive."""

    def __init__(self, block: Optional[ControlBlock] = None):
        self._block = block
        self._released = False

    @classmethod
    def new(cls) -> 'Weak[T]':
        """A dangling handle that never upgrades."""
        return cls(None)

    def _check_live(self, operation: str):
        if self._released:
            raise ReleasedHandleError(f"cannot {operation} a released Weak")

    @property
    def released(self) -> bool:
        return self._released

    @property
    def dangling(self) -> bool:
        return self._block is None

    def upgrade(self) -> Optional[Rc[T]]:
        """A new strong handle, or None once the payload is gone."""
        self._check_live("upgrade")
        block = self._block
        if block is None:
            get_diagnostics().record_upgrade(None, False)
            return None
        if block.strong == 0:
            block.diagnostics.record_upgrade(block, False)
            return None
        block.strong += 1
        block.diagnostics.record_upgrade(block, True)
        return Rc(block)

    def clone(self) -> 'Weak[T]':
        self._check_live("clone")
        block = self._block
        if block is not None:
            block.weak += 1
            block.diagnostics.record_downgrade(block)
        return Weak(block)

    def release(self):
        self._check_live("release")
        self._released = True
        block = self._block
        self._block = None
        if block is not None:
            block.diagnostics.record_release(block, "weak")
            block.dec_weak()

    def strong_count(self) -> int:
        """Strong count of the target, 0 if dangling or dropped."""
        self._check_live("inspect")
        return self._block.strong if self._block is not None else 0

    def weak_count(self) -> int:
        """Weak count of the target, 0 if dangling."""
        self._check_live("inspect")
        return self._block.weak if self._block is not None else 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if not self._released:
            self.release()
        return False

    def __repr__(self):
        if self._released:
            return "Weak(<released>)"
        if self._block is None:
            return "Weak(<dangling>)"
        return f"Weak(block=#{self._block.block_id}, strong={self._block.strong})"


def release_all(handles) -> None:
    """Release every handle in order.

    A failing release does not stop the remaining ones; the first error is
    re-raised once all of them have been attempted.
    """
    first_error: Optional[BaseException] = None
    for handle in handles:
        try:
            handle.release()
        except Exception as e:
            if first_error is None:
                first_error = e
    if first_error is not None:
        raise first_error
