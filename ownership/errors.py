"""
Ownership Error Taxonomy

Errors raised by the ownership primitives:
- BorrowError: run-time borrow violation on a BorrowCell (fatal)
- ReleasedHandleError: use of a handle or guard after it was released
- ConfigError: invalid ownership.toml or environment override

A stale weak handle is not an error: Weak.upgrade() returns None.
A reference cycle is not an error either: it silently leaks.
"""

from enum import Enum


class OwnershipError(Exception):
    """Base exception for the ownership model"""
    pass


class BorrowConflict(Enum):
    """Which borrow rule a failed borrow ran into."""
    WRITE_WHILE_READING = "write requested while shared borrows are active"
    WRITE_WHILE_WRITING = "write requested while an exclusive borrow is active"
    READ_WHILE_WRITING = "read requested while an exclusive borrow is active"


class BorrowError(OwnershipError):
    """A borrow request that violates the borrowing rules.

    This is the run-time equivalent of a rejected program: it is raised at
    the call site and never caught by the library.
    """

    kind = "BorrowError"
    summary = "already borrowed"

    def __init__(self, conflict: BorrowConflict, readers: int = 0):
        self.conflict = conflict
        self.readers = readers
        detail = conflict.value
        if conflict is BorrowConflict.WRITE_WHILE_READING:
            detail = f"{detail} ({readers} reader(s))"
        super().__init__(f"{self.summary}: {self.kind} ({detail})")


class AlreadyBorrowedError(BorrowError):
    """borrow_mut() while any borrow is active"""
    kind = "BorrowMutError"
    summary = "already borrowed"


class AlreadyMutablyBorrowedError(BorrowError):
    """borrow() while an exclusive borrow is active"""
    kind = "BorrowError"
    summary = "already mutably borrowed"


class ReleasedHandleError(OwnershipError):
    """A handle or guard was used after release()"""
    pass


class ConfigError(OwnershipError):
    """Error loading or validating ownership configuration"""
    pass
