class TuringSpaceError(Exception):
    """Base class for errors raised while building or stepping machines."""


class InvalidMovement(TuringSpaceError, ValueError):
    """A movement value that is neither left nor right."""

    def __init__(self, move):
        super().__init__(f"Not a valid move: {move!r}")
        self.move = move


class MalformedDefinition(TuringSpaceError, ValueError):
    """A machine definition that cannot be run as given."""
