import numpy as np

from simulator.engine import check_budget
from simulator.simulator_jit import simulate_batch
from simulator.turing_machine import Movement

UNDEFINED = -1


def encode_definition(definition, num_states=None, num_symbols=None):
    """
    Index-encode a definition for the compiled kernel.
    Returns (transitions, final_mask); transitions has shape
    (num_states, num_symbols, 3) and holds -1 in undefined cells.
    """
    num_states = num_states or len(definition.states)
    num_symbols = num_symbols or len(definition.alphabet)
    state_index = {state: i for i, state in enumerate(definition.states)}
    symbol_index = {symbol: i for i, symbol in enumerate(definition.alphabet)}

    transitions = np.full((num_states, num_symbols, 3), UNDEFINED, dtype=np.int64)
    for (state, symbol), action in definition.transitions.items():
        dir_bit = 0 if action.move is Movement.LEFT else 1
        transitions[state_index[state], symbol_index[symbol]] = (
            symbol_index[action.write],
            dir_bit,
            state_index[action.next_state],
        )

    final_mask = np.zeros(num_states, dtype=np.bool_)
    for state in definition.final_states:
        final_mask[state_index[state]] = True
    return transitions, final_mask


def _check_fresh(machine):
    # The kernel starts from a single written cell; anything else is unsupported.
    expected = 0 if machine.tape.read() == machine.definition.blank else 1
    if machine.tape.nonblank_count() != expected:
        raise ValueError("Only machines on a fresh tape can be evaluated by the compiled kernel.")


def evaluate_batch(machines, max_steps=100):
    """
    Host-side driver for the compiled kernel.
    Returns an int64 array of shape (n, 3): final state index (into each
    definition's ordered states), remaining budget, non-blank cells.
    """
    max_steps = check_budget(max_steps)
    machines = list(machines)
    num_machines = len(machines)
    out = np.zeros((num_machines, 3), dtype=np.int64)
    if num_machines == 0:
        return out

    num_states = max(len(m.definition.states) for m in machines)
    num_symbols = max(len(m.definition.alphabet) for m in machines)

    transitions = np.full((num_machines, num_states, num_symbols, 3), UNDEFINED, dtype=np.int64)
    final_masks = np.zeros((num_machines, num_states), dtype=np.bool_)
    states = np.zeros(num_machines, dtype=np.int64)
    tape_symbols = np.zeros(num_machines, dtype=np.int64)
    blanks = np.zeros(num_machines, dtype=np.int64)

    for idx, machine in enumerate(machines):
        _check_fresh(machine)
        definition = machine.definition
        transitions[idx], final_masks[idx] = encode_definition(definition, num_states, num_symbols)
        states[idx] = definition.states.index(machine.state)
        tape_symbols[idx] = definition.alphabet.index(machine.tape.read())
        blanks[idx] = definition.alphabet.index(definition.blank)

    simulate_batch(transitions, final_masks, states, tape_symbols, blanks, np.int64(max_steps), out)
    return out


def evaluate(machine, max_steps=100):
    """Run one machine on the compiled kernel: (final state, remaining, non-blank cells)."""
    state_idx, remaining, nonblank = evaluate_batch([machine], max_steps)[0]
    return machine.definition.states[int(state_idx)], int(remaining), int(nonblank)
