import hashlib
import json
from collections.abc import Sequence
from itertools import product

from simulator.errors import MalformedDefinition
from simulator.turing_machine import (
    Action,
    Machine,
    MachineDefinition,
    Movement,
    TransitionTable,
    ordered,
)

MOVES = (Movement.LEFT, Movement.RIGHT)


# === TRANSITION OPTION MAP ===
def generate_actions(states, alphabet):
    """All options for one (state, symbol) cell: undefined first, then every action."""
    options = [None]
    for write in alphabet:
        for move in MOVES:
            for next_state in states:
                options.append(Action(write, move, next_state))
    return options


def hash_ruleset(definition):
    """Hash a definition's transition table deterministically."""
    rules = [
        [repr(state), repr(symbol), repr(action.write), action.move.value, repr(action.next_state)]
        for (state, symbol), action in definition.transitions.items()
    ]
    rules_json = json.dumps(sorted(rules))
    return hashlib.sha256(rules_json.encode("utf-8")).hexdigest()


def machine_id(index):
    return f"TM_{index:06d}"


class TransitionSpace:
    """
    Every transition table over (states, alphabet, final_states).

    Cells are ordered symbol-major (for each symbol, each non-final state) and
    each cell picks one of generate_actions(). Index i is the mixed-radix
    number whose first digit is the first cell, which is exactly the order
    itertools.product yields. Nothing is materialized up front.
    """

    def __init__(self, states, alphabet, final_states):
        self.states = ordered(states)
        self.alphabet = ordered(alphabet)
        self.final_states = frozenset(final_states)
        if not self.states:
            raise MalformedDefinition("State set must not be empty.")
        if not self.alphabet:
            raise MalformedDefinition("Alphabet must not be empty.")
        if not self.final_states.issubset(self.states):
            raise MalformedDefinition("Final states must be a subset of the state set.")

        self.options = generate_actions(self.states, self.alphabet)
        self.cells = [
            (state, symbol)
            for symbol in self.alphabet
            for state in self.states
            if state not in self.final_states
        ]
        self._option_index = {option: i for i, option in enumerate(self.options)}

    @property
    def base(self):
        return len(self.options)

    @property
    def size(self):
        return self.base ** len(self.cells)

    def __len__(self):
        # len() is capped at sys.maxsize; use .size for huge spaces.
        return self.size

    def _normalize_index(self, index):
        if index < 0:
            index += self.size
        if not 0 <= index < self.size:
            raise IndexError(f"Transition table index {index} out of range.")
        return index

    def _build(self, choice):
        return TransitionTable(zip(self.cells, choice))

    def choices(self, index):
        """Per-cell options for ``index``, first cell first."""
        index = self._normalize_index(index)
        digits = []
        for _ in self.cells:
            index, digit = divmod(index, self.base)
            digits.append(self.options[digit])
        digits.reverse()
        return digits

    def table(self, index):
        return self._build(self.choices(index))

    def index_of(self, table):
        """Inverse of table(): position of ``table`` in the enumeration."""
        index = 0
        for cell in self.cells:
            try:
                digit = self._option_index[table.get(cell)]
            except KeyError:
                raise MalformedDefinition(f"Action for {cell!r} is outside this space.") from None
            index = index * self.base + digit
        extra = set(table) - set(self.cells)
        if extra:
            raise MalformedDefinition(f"Table has cells outside this space: {sorted(map(repr, extra))}.")
        return index

    def tables(self, start=0, stop=None):
        """Lazily yield tables for indices in [start, stop)."""
        stop = self.size if stop is None else min(stop, self.size)
        if start == 0 and stop == self.size:
            for choice in product(self.options, repeat=len(self.cells)):
                yield self._build(choice)
            return
        for index in range(start, stop):
            yield self.table(index)

    def chunks(self, chunk_size):
        """Disjoint (start, stop) index ranges covering the whole space."""
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1.")
        for start in range(0, self.size, chunk_size):
            yield start, min(start + chunk_size, self.size)

    def partition(self, num_chunks):
        """Split the space into at most ``num_chunks`` contiguous ranges."""
        chunk_size = max(1, -(-self.size // max(1, num_chunks)))
        return list(self.chunks(chunk_size))


class _SpaceView(Sequence):
    """Lazy, restartable sequence over a TransitionSpace."""

    def __init__(self, space):
        self.space = space

    @property
    def size(self):
        return self.space.size

    def __len__(self):
        return self.space.size

    def from_table(self, table):
        raise NotImplementedError

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self.from_table(self.space.table(i)) for i in range(*index.indices(self.size))]
        return self.from_table(self.space.table(index))

    def __iter__(self):
        for table in self.space.tables():
            yield self.from_table(table)

    def iter_range(self, start, stop):
        for table in self.space.tables(start, stop):
            yield self.from_table(table)


class DefinitionSpace(_SpaceView):
    def __init__(self, space, blank):
        super().__init__(space)
        if blank not in space.alphabet:
            raise MalformedDefinition(f"Blank symbol {blank!r} is not in the alphabet.")
        self.blank = blank

    def from_table(self, table):
        return MachineDefinition(
            states=self.space.states,
            alphabet=self.space.alphabet,
            blank=self.blank,
            final_states=self.space.final_states,
            transitions=table,
        )


class MachineSpace(_SpaceView):
    """Runnable machines, one per transition table, all from the same start."""

    def __init__(self, definitions, start_state, tape_symbol=None):
        super().__init__(definitions.space)
        self.definitions = definitions
        space = definitions.space
        if start_state not in space.states:
            raise MalformedDefinition(f"Start state {start_state!r} is not in the state set.")
        if tape_symbol is not None and tape_symbol not in space.alphabet:
            raise MalformedDefinition(f"Initial tape symbol {tape_symbol!r} is not in the alphabet.")
        self.start_state = start_state
        self.tape_symbol = tape_symbol

    def from_table(self, table):
        return Machine.initial(self.definitions.from_table(table), self.start_state, self.tape_symbol)


def enumerate_definitions(states, alphabet, final_states, blank=None):
    """Every MachineDefinition over (states, alphabet, final_states), lazily."""
    space = TransitionSpace(states, alphabet, final_states)
    return DefinitionSpace(space, space.alphabet[0] if blank is None else blank)


def generate_machines(states, alphabet, blank, start_state, final_states, tape_symbol=None):
    """Every machine over the given sets, each starting in ``start_state``."""
    definitions = enumerate_definitions(states, alphabet, final_states, blank)
    return MachineSpace(definitions, start_state, tape_symbol)
