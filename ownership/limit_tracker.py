"""
Limit Tracker Module

Quota tracking that reports through a Messenger. Messenger.send() takes the
messenger as a shared, read-only collaborator; a messenger that needs to
record what it was sent does so through a BorrowCell (interior mutability).
"""

import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Union

from ownership.cell import BorrowCell

ERROR_MSG = "Error: You are over your quota!"
URGENT_WARNING = "Urgent warning: You've used up over 90% of your quota!"
WARNING_MSG = "Warning: You've used up over 75% of your quota!"


class Messenger(ABC):
    @abstractmethod
    def send(self, msg: str) -> None:
        pass


class LimitTracker:
    """Sends a warning when value crosses 75%, 90% and 100% of max."""

    def __init__(self, messenger: Messenger, max: int):
        if max <= 0:
            raise ValueError(f"max must be positive, got {max}")
        self.messenger = messenger
        self.value = 0
        self.max = max

    def set_value(self, value: int):
        self.value = value
        percentage_of_max = self.value / self.max

        if percentage_of_max >= 1.0:
            self.messenger.send(ERROR_MSG)
        elif percentage_of_max >= 0.9:
            self.messenger.send(URGENT_WARNING)
        elif percentage_of_max >= 0.75:
            self.messenger.send(WARNING_MSG)


class RecordingMessenger(Messenger):
    """Keeps every message it is sent, mutating through a shared reference."""

    def __init__(self):
        self.sent_messages: BorrowCell[List[str]] = BorrowCell([])

    def send(self, msg: str):
        with self.sent_messages.borrow_mut() as messages:
            messages.value.append(msg)

    def messages(self) -> List[str]:
        with self.sent_messages.borrow() as messages:
            return list(messages.value)

    def try_to_violate_the_borrowing_rules(self):
        """Take two exclusive borrows at once. Always raises AlreadyBorrowedError."""
        with self.sent_messages.borrow_mut() as first:
            with self.sent_messages.borrow_mut() as second:
                first.value.append(ERROR_MSG)
                second.value.append(URGENT_WARNING)


class FileMessenger(Messenger):
    """Appends each message as a line to log_path.

    If the file cannot be written the error goes to stderr and the message to
    stdout, so no message is lost.
    """

    def __init__(self, log_path: Union[str, Path]):
        self.log_path = Path(log_path)

    def send(self, msg: str):
        try:
            with open(self.log_path, 'a') as f:
                f.write(msg + "\n")
        except OSError as e:
            print(e, file=sys.stderr)
            print(msg)
