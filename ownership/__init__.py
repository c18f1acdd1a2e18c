"""
Ownership Package

Shared ownership, weak back references and run-time borrow checking for
single-threaded Python code.

Model:
- Reference counting with separate strong/weak counters per control block
- Deterministic, exactly-once destructor hooks when strong reaches zero
- Weak handles that observe destruction instead of preventing it
- Borrow cells: many readers or one writer, checked at run time
- No cycle collection: strong cycles leak by design

Package Structure:
    ownership/
    ├── __init__.py        # Package exports (this file)
    ├── errors.py          # BorrowError family, ReleasedHandleError, ConfigError
    ├── diagnostics.py     # Tracing, heap dumps, validation (RcDiagnostics)
    ├── config.py          # ownership.toml loading (OwnershipConfig)
    ├── cell.py            # BorrowCell, Ref, RefMut
    ├── rc.py              # ControlBlock, Rc, Weak, Droppable
    ├── tree.py            # Cycle-safe tree (strong children, weak parent)
    ├── cyclic.py          # Mutually owning nodes (leaks)
    ├── cons_list.py       # Cons list with shared tails
    └── limit_tracker.py   # Quota tracker with Messenger implementations
"""

from ownership.errors import (
    OwnershipError, BorrowConflict, BorrowError, AlreadyBorrowedError,
    AlreadyMutablyBorrowedError, ReleasedHandleError, ConfigError,
)
from ownership.diagnostics import (
    TraceLevel, RcDiagnostics, get_diagnostics, set_diagnostics,
)
from ownership.config import OwnershipConfig, load_config, apply_config
from ownership.cell import BorrowCell, BorrowState, Ref, RefMut
from ownership.rc import ControlBlock, Droppable, Rc, Weak, release_all
from ownership.tree import (
    TreeNode, new_node, append_child, for_each, parent_of, children_of,
)
from ownership.cyclic import CycleNode, new_cycle_node, link_mutually, next_of

__all__ = [
    'OwnershipError',
    'BorrowConflict',
    'BorrowError',
    'AlreadyBorrowedError',
    'AlreadyMutablyBorrowedError',
    'ReleasedHandleError',
    'ConfigError',
    'TraceLevel',
    'RcDiagnostics',
    'get_diagnostics',
    'set_diagnostics',
    'OwnershipConfig',
    'load_config',
    'apply_config',
    'BorrowCell',
    'BorrowState',
    'Ref',
    'RefMut',
    'ControlBlock',
    'Droppable',
    'Rc',
    'Weak',
    'release_all',
    'TreeNode',
    'new_node',
    'append_child',
    'for_each',
    'parent_of',
    'children_of',
    'CycleNode',
    'new_cycle_node',
    'link_mutually',
    'next_of',
]
