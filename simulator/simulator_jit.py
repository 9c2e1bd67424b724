from numba import njit
import numpy as np

INITIAL_TAPE_SIZE = 64


@njit
def simulate_encoded(transitions, final_mask, state, tape_symbol, blank, max_steps):
    """
    Compiled counterpart of engine.run for index-encoded machines.
    transitions[state, symbol] = (write, dir_bit, next_state), -1 when undefined.
    The tape doubles whenever the head walks off either end.
    Returns (state, remaining, nonblank_cells).
    """
    size = INITIAL_TAPE_SIZE
    tape = np.full(size, blank, dtype=np.int64)
    head = size // 2
    tape[head] = tape_symbol
    remaining = max_steps

    while remaining > 0:
        if final_mask[state]:
            break
        symbol = tape[head]
        new_symbol = transitions[state, symbol, 0]
        if new_symbol < 0:
            break

        tape[head] = new_symbol
        if transitions[state, symbol, 1] == 0:
            head -= 1
        else:
            head += 1
        state = transitions[state, symbol, 2]
        remaining -= 1

        if head < 0 or head >= size:
            grown = np.full(size * 2, blank, dtype=np.int64)
            offset = size // 2
            grown[offset:offset + size] = tape
            head += offset
            tape = grown
            size *= 2

    nonblank = 0
    for i in range(size):
        if tape[i] != blank:
            nonblank += 1
    return state, remaining, nonblank


@njit
def simulate_batch(transitions, final_masks, states, tape_symbols, blanks, max_steps, out):
    """Run every encoded machine in the batch; one row of ``out`` per machine."""
    for idx in range(transitions.shape[0]):
        state, remaining, nonblank = simulate_encoded(
            transitions[idx], final_masks[idx], states[idx], tape_symbols[idx], blanks[idx], max_steps
        )
        out[idx, 0] = state
        out[idx, 1] = remaining
        out[idx, 2] = nonblank
