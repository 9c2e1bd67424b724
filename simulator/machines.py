from simulator.turing_machine import make_machine


def three_state_busy_beaver():
    """Three-state, two-symbol busy beaver: halts after 13 steps with six 1s on the tape."""
    return make_machine(
        states={"A", "B", "C", "HALT"},
        alphabet={0, 1},
        blank=0,
        final_states={"HALT"},
        transitions={
            0: {"A": (1, "R", "B"), "B": (1, "L", "A"), "C": (1, "L", "B")},
            1: {"A": (1, "L", "C"), "B": (1, "R", "B"), "C": (1, "R", "HALT")},
        },
        start_state="A",
    )


def no_transition_machine():
    """Empty transition table: stuck in its start state from the first step."""
    return make_machine(
        states={0, 1},
        alphabet={0, 1},
        blank=0,
        final_states={1},
        transitions={},
        start_state=0,
    )
