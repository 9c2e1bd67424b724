from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple, Optional

from simulator.errors import InvalidMovement, MalformedDefinition
from simulator.tape import Tape


class Movement(Enum):
    LEFT = "L"
    RIGHT = "R"

    @classmethod
    def parse(cls, value):
        """Accept a Movement or its 'L'/'R' letter."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.upper())
            except ValueError:
                pass
        raise InvalidMovement(value)


class Action(NamedTuple):
    write: Any
    move: Movement
    next_state: Any

    def __str__(self):
        return f"{self.write}{self.move.value}{self.next_state}"


def ordered(values):
    """Fix an iteration order: sets are sorted, sequences keep theirs."""
    if isinstance(values, (set, frozenset)):
        try:
            return tuple(sorted(values))
        except TypeError:
            return tuple(sorted(values, key=repr))
    return tuple(dict.fromkeys(values))


class TransitionTable(Mapping):
    """Immutable, hashable partial map (state, symbol) -> Action."""

    __slots__ = ("_entries", "_hash")

    def __init__(self, entries=()):
        if isinstance(entries, Mapping):
            entries = entries.items()
        table = {}
        for key, action in entries:
            if action is None:
                continue
            if not isinstance(key, tuple) or len(key) != 2:
                raise MalformedDefinition(f"Transition key must be a (state, symbol) pair, got {key!r}.")
            if not isinstance(action, (tuple, list)) or len(action) != 3:
                raise MalformedDefinition(
                    f"Transition {key!r} must map to (write, move, next_state), got {action!r}."
                )
            write, move, next_state = action
            table[key] = Action(write, Movement.parse(move), next_state)
        self._entries = table
        self._hash = None

    def __getitem__(self, key):
        return self._entries[key]

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __hash__(self):
        if self._hash is None:
            self._hash = hash(frozenset(self._entries.items()))
        return self._hash

    def __reduce__(self):
        # The cached hash is per-process; rebuild it on the other side.
        return TransitionTable, (self._entries,)

    def __repr__(self):
        return f"TransitionTable({self._entries!r})"


@dataclass(frozen=True)
class MachineDefinition:
    """
    Static part of a machine: Q, Gamma, blank, F and the transition table.
    Validated once on construction so stepping never has to.
    """

    states: tuple
    alphabet: tuple
    blank: Any
    final_states: frozenset
    transitions: TransitionTable = field(default_factory=TransitionTable)

    def __post_init__(self):
        object.__setattr__(self, "states", ordered(self.states))
        object.__setattr__(self, "alphabet", ordered(self.alphabet))
        object.__setattr__(self, "final_states", frozenset(self.final_states))
        if not isinstance(self.transitions, TransitionTable):
            object.__setattr__(self, "transitions", TransitionTable(self.transitions))
        self.validate()

    def validate(self):
        if not self.states:
            raise MalformedDefinition("State set must not be empty.")
        if not self.alphabet:
            raise MalformedDefinition("Alphabet must not be empty.")
        if self.blank not in self.alphabet:
            raise MalformedDefinition(f"Blank symbol {self.blank!r} is not in the alphabet.")
        unknown = self.final_states.difference(self.states)
        if unknown:
            raise MalformedDefinition(f"Final states {sorted(map(repr, unknown))} are not in the state set.")

        for (state, symbol), action in self.transitions.items():
            if state not in self.states:
                raise MalformedDefinition(f"Transition from unknown state {state!r}.")
            if state in self.final_states:
                raise MalformedDefinition(f"Final state {state!r} must not have outgoing transitions.")
            if symbol not in self.alphabet:
                raise MalformedDefinition(f"Transition on unknown symbol {symbol!r}.")
            if action.write not in self.alphabet:
                raise MalformedDefinition(
                    f"Transition ({state!r}, {symbol!r}) writes unknown symbol {action.write!r}."
                )
            if action.next_state not in self.states:
                raise MalformedDefinition(
                    f"Transition ({state!r}, {symbol!r}) moves to unknown state {action.next_state!r}."
                )

    @property
    def non_final_states(self):
        return tuple(state for state in self.states if state not in self.final_states)

    def is_final(self, state) -> bool:
        return state in self.final_states

    def lookup(self, state, symbol) -> Optional[Action]:
        return self.transitions.get((state, symbol))


@dataclass(frozen=True)
class Machine:
    """One configuration: a definition plus the current state and tape."""

    definition: MachineDefinition
    state: Any
    tape: Tape

    @classmethod
    def initial(cls, definition, start_state, tape_symbol=None):
        if start_state not in definition.states:
            raise MalformedDefinition(f"Start state {start_state!r} is not in the state set.")
        if tape_symbol is not None and tape_symbol not in definition.alphabet:
            raise MalformedDefinition(f"Initial tape symbol {tape_symbol!r} is not in the alphabet.")
        return cls(definition, start_state, Tape.blank_tape(definition.blank, tape_symbol))

    def read(self):
        return self.tape.read()


def _flatten_transitions(transitions):
    """
    Accept either {(state, symbol): action} or the per-symbol layout
    {symbol: {state: action}} and return flat (key, action) pairs.
    """
    for key, value in transitions.items():
        if isinstance(value, Mapping):
            for state, action in value.items():
                yield (state, key), action
        else:
            yield key, value


def make_machine(states, alphabet, blank, final_states, transitions, start_state, tape_symbol=None):
    """Build a definition from literal parts and return its starting machine."""
    definition = MachineDefinition(
        states=states,
        alphabet=alphabet,
        blank=blank,
        final_states=final_states,
        transitions=TransitionTable(_flatten_transitions(transitions or {})),
    )
    return Machine.initial(definition, start_state, tape_symbol)
