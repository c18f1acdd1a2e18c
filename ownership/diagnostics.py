"""
Ownership Diagnostics Module

Provides debugging and diagnostic support for the reference-counted heap:
- trace: Conditional trace output gated by TraceLevel
- dump_stats: Print allocation and handle statistics
- dump_heap: Print every control block that has not been deallocated
- validate_heap: Check counter invariants of every live control block
- set_diagnostics / get_diagnostics: Process-wide active instance

Every control block registers itself with the diagnostics instance that was
active when it was created. The registry is the heap: a block stays listed
until both of its counters reach zero, so leaked cycles remain visible in
heap dumps exactly as leaked allocations would.
"""

import sys
from enum import IntEnum
from typing import TYPE_CHECKING, Dict, List, Optional, TextIO, Union

if TYPE_CHECKING:
    from ownership.rc import ControlBlock
    from ownership.errors import BorrowError


class TraceLevel(IntEnum):
    """Trace verbosity, each level includes the ones below it."""
    NONE = 0        # No tracing output
    LIFECYCLE = 1   # Allocation, payload drop, deallocation
    OPS = 2         # clone, downgrade, upgrade, release
    BORROWS = 3     # BorrowCell guards taken and released
    ALL = 4         # Everything

    @classmethod
    def parse(cls, value: Union[int, str, 'TraceLevel']) -> 'TraceLevel':
        """Accept a level name ("ops"), a number (2) or a numeric string ("2")."""
        if isinstance(value, bool):
            raise ValueError(f"Invalid trace level: {value!r}")
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip()
        if text.isdigit():
            return cls(int(text))
        try:
            return cls[text.upper()]
        except KeyError:
            names = ", ".join(level.name.lower() for level in cls)
            raise ValueError(f"Invalid trace level: {value!r} (expected one of {names} or 0-4)")


class RcDiagnostics:
    """Heap registry, counters and trace output for the ownership model."""

    def __init__(self, trace_level: TraceLevel = TraceLevel.NONE,
                 stream: Optional[TextIO] = None):
        self.trace_level = TraceLevel.parse(trace_level)
        # None means sys.stderr, resolved at write time
        self.stream = stream
        self.heap: Dict[int, 'ControlBlock'] = {}
        self._next_block_id = 1

        self.total_allocations = 0
        self.payload_drops = 0
        self.deallocations = 0
        self.clones = 0
        self.downgrades = 0
        self.upgrades = 0
        self.failed_upgrades = 0
        self.borrow_conflicts = 0

    def _write(self, line: str):
        stream = self.stream if self.stream is not None else sys.stderr
        print(line, file=stream)

    def enabled(self, level: TraceLevel) -> bool:
        return self.trace_level != TraceLevel.NONE and self.trace_level >= level

    def trace(self, level: TraceLevel, tag: str, message: str):
        """Write "[RC:TAG] message" if the current trace level is high enough."""
        if self.enabled(level):
            self._write(f"[RC:{tag}] {message}")

    # Block lifecycle hooks, called by ControlBlock

    def register(self, block: 'ControlBlock') -> int:
        block_id = self._next_block_id
        self._next_block_id += 1
        self.heap[block_id] = block
        self.total_allocations += 1
        self.trace(TraceLevel.LIFECYCLE, "ALLOC", f"block=#{block_id} payload={block.describe_payload()}")
        return block_id

    def record_drop(self, block: 'ControlBlock', payload_desc: str):
        self.payload_drops += 1
        self.trace(TraceLevel.LIFECYCLE, "DROP",
                   f"block=#{block.block_id} payload={payload_desc} weak={block.weak}")

    def record_dealloc(self, block: 'ControlBlock'):
        self.heap.pop(block.block_id, None)
        self.deallocations += 1
        self.trace(TraceLevel.LIFECYCLE, "DEALLOC", f"block=#{block.block_id}")

    def record_clone(self, block: 'ControlBlock'):
        self.clones += 1
        self.trace(TraceLevel.OPS, "CLONE", f"block=#{block.block_id} strong={block.strong}")

    def record_downgrade(self, block: 'ControlBlock'):
        self.downgrades += 1
        self.trace(TraceLevel.OPS, "DOWNGRADE", f"block=#{block.block_id} weak={block.weak}")

    def record_upgrade(self, block: Optional['ControlBlock'], succeeded: bool):
        if succeeded:
            self.upgrades += 1
            self.trace(TraceLevel.OPS, "UPGRADE", f"block=#{block.block_id} strong={block.strong}")
        else:
            self.failed_upgrades += 1
            target = f"block=#{block.block_id}" if block is not None else "dangling"
            self.trace(TraceLevel.OPS, "UPGRADE", f"{target} gone")

    def record_release(self, block: 'ControlBlock', kind: str):
        # Counts are reported before the decrement takes effect
        self.trace(TraceLevel.OPS, "RELEASE",
                   f"{kind} block=#{block.block_id} strong={block.strong} weak={block.weak}")

    def record_borrow(self, action: str, state: str):
        self.trace(TraceLevel.BORROWS, "BORROW", f"{action} -> {state}")

    def record_conflict(self, error: 'BorrowError'):
        self.borrow_conflicts += 1
        self.trace(TraceLevel.BORROWS, "CONFLICT", str(error))

    # Inspection

    def live_blocks(self) -> List['ControlBlock']:
        """Blocks not yet deallocated, oldest first."""
        return [self.heap[block_id] for block_id in sorted(self.heap)]

    def live_payloads(self) -> int:
        return sum(1 for block in self.heap.values() if block.strong > 0)

    def stats(self) -> Dict[str, int]:
        return {
            "total_allocations": self.total_allocations,
            "live_blocks": len(self.heap),
            "live_payloads": self.live_payloads(),
            "payload_drops": self.payload_drops,
            "deallocations": self.deallocations,
            "clones": self.clones,
            "downgrades": self.downgrades,
            "upgrades": self.upgrades,
            "failed_upgrades": self.failed_upgrades,
            "borrow_conflicts": self.borrow_conflicts,
        }

    def dump_stats(self, stream: Optional[TextIO] = None):
        """Print statistics regardless of trace level."""
        out = stream if stream is not None else (self.stream or sys.stdout)
        print("[RC:STATS]", file=out)
        for key, value in self.stats().items():
            print(f"  {key}: {value}", file=out)

    def dump_heap(self, stream: Optional[TextIO] = None):
        """Print every control block still present on the heap."""
        out = stream if stream is not None else (self.stream or sys.stdout)
        blocks = self.live_blocks()
        print("[RC:HEAP]", file=out)
        for block in blocks:
            print(f"  block=#{block.block_id} strong={block.strong} weak={block.weak} "
                  f"payload={block.describe_payload()}", file=out)
        print(f"  Total blocks: {len(blocks)}", file=out)

    def validate_heap(self) -> int:
        """Check counter invariants. Returns the number of problems (0 = valid)."""
        problems = []
        for block in self.live_blocks():
            tag = f"block=#{block.block_id}"
            if block.strong < 0 or block.weak < 0:
                problems.append(f"{tag} negative count strong={block.strong} weak={block.weak}")
            if block.strong > 0 and block.dropped:
                problems.append(f"{tag} payload dropped while strong={block.strong}")
            if block.strong == 0 and not block.dropped:
                problems.append(f"{tag} payload alive with strong=0")
            if block.strong == 0 and block.weak == 0:
                problems.append(f"{tag} both counts zero but not deallocated")
            if block.deallocated:
                problems.append(f"{tag} deallocated block still on heap")
        for problem in problems:
            self._write(f"[RC:VALIDATE] {problem}")
        return len(problems)


_active = RcDiagnostics()


def get_diagnostics() -> RcDiagnostics:
    """The diagnostics instance new control blocks register with."""
    return _active


def set_diagnostics(diagnostics: RcDiagnostics) -> RcDiagnostics:
    """Install a new active instance, returning the previous one."""
    global _active
    previous = _active
    _active = diagnostics
    return previous
