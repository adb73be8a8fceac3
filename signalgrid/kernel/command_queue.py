from collections import deque
from typing import Deque, Iterator
from signalgrid.application.commands import Command

class CommandQueue:
    """FIFO of state commands waiting for the start of the next tick.

    `drain` only hands out the commands queued when it was called. Anything a
    command submits while executing stays queued for the following tick.
    """

    def __init__(self):
        self._pending: Deque[Command] = deque()

    def add(self, command: Command):
        self._pending.append(command)

    def drain(self) -> Iterator[Command]:
        for _ in range(len(self._pending)):
            # A command may clear the queue (restart) while we are draining
            if not self._pending:
                return
            yield self._pending.popleft()

    def clear(self):
        self._pending.clear()

    def __len__(self) -> int:
        return len(self._pending)
