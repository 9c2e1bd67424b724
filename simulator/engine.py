import operator
from typing import NamedTuple, Optional

from simulator.errors import InvalidMovement
from simulator.turing_machine import Machine, Movement


class RunResult(NamedTuple):
    """Outcome of a bounded run: the last machine reached and the unused budget."""

    machine: Machine
    remaining: int
    steps: int

    @property
    def halted(self) -> bool:
        return is_halted(self.machine)

    @property
    def stuck(self) -> bool:
        return is_stuck(self.machine)

    @property
    def terminated(self) -> bool:
        return self.halted or self.stuck

    @property
    def inconclusive(self) -> bool:
        """Budget ran out before the machine stopped on its own."""
        return not self.terminated


def is_halted(machine: Machine) -> bool:
    return machine.state in machine.definition.final_states


def is_stuck(machine: Machine) -> bool:
    """Not final, but no transition is defined for what is under the head."""
    if is_halted(machine):
        return False
    return machine.definition.lookup(machine.state, machine.tape.read()) is None


def is_terminal(machine: Machine) -> bool:
    return is_halted(machine) or is_stuck(machine)


def _move(tape, move):
    if move is Movement.LEFT:
        return tape.move_left()
    if move is Movement.RIGHT:
        return tape.move_right()
    raise InvalidMovement(move)


def successor(machine: Machine) -> Optional[Machine]:
    """The next configuration, or None when no transition applies."""
    if machine.state in machine.definition.final_states:
        return None
    action = machine.definition.lookup(machine.state, machine.tape.read())
    if action is None:
        return None
    tape = _move(machine.tape.write(action.write), action.move)
    return Machine(machine.definition, action.next_state, tape)


step = successor


def advance(machine: Machine) -> Machine:
    """Like step, but a terminal configuration maps to itself."""
    next_machine = successor(machine)
    return machine if next_machine is None else next_machine


def check_budget(max_steps) -> int:
    """Normalize a step budget to a non-negative int; numpy integers are fine."""
    if isinstance(max_steps, bool):
        raise TypeError(f"max_steps must be an int, got {type(max_steps)}.")
    try:
        max_steps = operator.index(max_steps)
    except TypeError:
        raise TypeError(f"max_steps must be an int, got {type(max_steps)}.") from None
    if max_steps < 0:
        raise ValueError(f"max_steps must be non-negative, got {max_steps}.")
    return max_steps


def run(machine: Machine, max_steps: int) -> RunResult:
    """
    Step ``machine`` until it halts, gets stuck or ``max_steps`` transitions
    have been applied. Always terminates.
    """
    max_steps = check_budget(max_steps)
    remaining = max_steps
    while remaining > 0:
        next_machine = successor(machine)
        if next_machine is None:
            break
        machine = next_machine
        remaining -= 1
    return RunResult(machine, remaining, max_steps - remaining)
