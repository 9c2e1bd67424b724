from dataclasses import dataclass
from typing import Any, Tuple

# Persistent stack: () when empty, otherwise (top, rest).
EMPTY = ()


def _push(stack, symbol):
    return (symbol, stack)


def _iter_stack(stack):
    while stack:
        symbol, stack = stack
        yield symbol


def _stack_from(cells):
    """Build a stack whose top is the last element of ``cells``."""
    stack = EMPTY
    for symbol in cells:
        stack = (symbol, stack)
    return stack


@dataclass(frozen=True, eq=False)
class Tape:
    """
    Doubly-infinite tape with only the visited window materialized.
    ``left`` and ``right`` are stacks stored nearest-first: their top is the
    cell adjacent to the head. Anything past either end reads as ``blank``.

    Equality compares tapes as infinite bands: blank cells at the edges of
    the visited window are ignored.
    """

    left: tuple
    current: Any
    right: tuple
    blank: Any

    @classmethod
    def blank_tape(cls, blank, symbol=None):
        return cls(EMPTY, blank if symbol is None else symbol, EMPTY, blank)

    @classmethod
    def from_cells(cls, left, current, right, blank):
        """Build a tape from plain left-to-right sequences around the head."""
        return cls(_stack_from(left), current, _stack_from(reversed(tuple(right))), blank)

    def read(self):
        return self.current

    def write(self, symbol) -> "Tape":
        return Tape(self.left, symbol, self.right, self.blank)

    def move_left(self) -> "Tape":
        if self.left:
            current, left = self.left
        else:
            current, left = self.blank, EMPTY
        return Tape(left, current, _push(self.right, self.current), self.blank)

    def move_right(self) -> "Tape":
        if self.right:
            current, right = self.right
        else:
            current, right = self.blank, EMPTY
        return Tape(_push(self.left, self.current), current, right, self.blank)

    def cells(self) -> Tuple[tuple, int]:
        """Visited window left-to-right, plus the head's index within it."""
        left = tuple(_iter_stack(self.left))[::-1]
        right = tuple(_iter_stack(self.right))
        return left + (self.current,) + right, len(left)

    def count(self, symbol) -> int:
        total = 1 if self.current == symbol else 0
        for stack in (self.left, self.right):
            total += sum(1 for cell in _iter_stack(stack) if cell == symbol)
        return total

    def nonblank_count(self) -> int:
        window, _ = self.cells()
        return sum(1 for cell in window if cell != self.blank)

    def _trimmed(self):
        window, head = self.cells()
        start, stop = 0, len(window)
        while start < head and window[start] == self.blank:
            start += 1
        while stop > head + 1 and window[stop - 1] == self.blank:
            stop -= 1
        return window[start:head], self.current, window[head + 1:stop], self.blank

    def __eq__(self, other):
        if not isinstance(other, Tape):
            return NotImplemented
        return self._trimmed() == other._trimmed()

    def __hash__(self):
        return hash(self._trimmed())

    def __reduce__(self):
        # Flatten the stacks so deep tapes pickle without recursion.
        window, head = self.cells()
        return (
            Tape.from_cells,
            (window[:head], self.current, window[head + 1:], self.blank),
        )

    def __repr__(self):
        window, head = self.cells()
        return f"Tape(cells={window!r}, head={head}, blank={self.blank!r})"
