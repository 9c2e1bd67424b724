from rich.table import Table

from logger.logger import console
from simulator.errors import MalformedDefinition
from simulator.turing_machine import Machine, MachineDefinition, Movement

UNDEFINED_CELL = "---"


def format_cell(action):
    if action is None:
        return UNDEFINED_CELL
    return f"{action.write}{action.move.value}{action.next_state}"


def format_ruleset(definition):
    """
    Standard one-line notation: one underscore-separated group per non-final
    state, one write/move/next cell per symbol, '---' where undefined.
    e.g. "1RB1LC_1LA1RB_1LB1RHALT".
    """
    rows = []
    for state in definition.non_final_states:
        rows.append("".join(
            format_cell(definition.lookup(state, symbol)) for symbol in definition.alphabet
        ))
    return "_".join(rows)


def parse_ruleset(text, halt_state="Z", start_state="A"):
    """
    Inverse of format_ruleset for the usual compact machines: states are the
    letters A, B, ... (one row each), symbols the digits 0..k-1, and any
    next-state letter without a row of its own is treated as final.
    Returns the starting Machine on a blank tape.
    """
    rows = text.strip().split("_")
    width = len(rows[0])
    if width == 0 or width % 3 or any(len(row) != width for row in rows):
        raise MalformedDefinition(f"Not in standard TM text format: {text!r}")
    num_symbols = width // 3
    states = [chr(ord("A") + i) for i in range(len(rows))]
    alphabet = list(range(num_symbols))

    transitions = {}
    final_states = {halt_state}
    for state, row in zip(states, rows):
        for symbol in alphabet:
            write, move, next_state = row[3 * symbol:3 * symbol + 3]
            if next_state == "-":
                continue
            if not write.isdigit():
                raise MalformedDefinition(f"Not a symbol: {write!r} in {text!r}")
            if next_state not in states:
                final_states.add(next_state)
            transitions[(state, symbol)] = (int(write), Movement.parse(move), next_state)

    definition = MachineDefinition(
        states=states + sorted(final_states),
        alphabet=alphabet,
        blank=0,
        final_states=final_states,
        transitions=transitions,
    )
    return Machine.initial(definition, start_state)


def ruleset_table(definition, title=None):
    """State x symbol table of a definition, ready for console.print."""
    table = Table(title=title)
    table.add_column("State")
    for symbol in definition.alphabet:
        table.add_column(str(symbol), justify="center")
    for state in definition.non_final_states:
        row = [format_cell(definition.lookup(state, symbol)) for symbol in definition.alphabet]
        table.add_row(str(state), *row)
    return table


def print_ruleset(definition, title="Transition Table"):
    console.print(ruleset_table(definition, title))
