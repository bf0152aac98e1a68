from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    UNRECOGNIZED = "unrecognized"
    AMBIGUOUS = "ambiguous"
    INCOMPLETE = "incomplete"
    INVALID_ARGUMENT = "invalid_argument"
    SEMANTIC_REJECTION = "semantic_rejection"
    PROPAGATION = "propagation"


INVALID_INPUT = "% Invalid input detected at '^' marker."
INCOMPLETE_COMMAND = "% Incomplete command."
INTERNAL_ERROR = "% Internal error, command not applied."


class CLIError(Exception):
    """A command failed; the message is what the device prints."""

    kind = ErrorKind.SEMANTIC_REJECTION

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        token: Optional[str] = None,
        position: Optional[int] = None,
        column: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.token = token
        self.position = position
        self.column = column


class SemanticError(CLIError):
    """The command parsed but the device refuses it (business rule)."""

    kind = ErrorKind.SEMANTIC_REJECTION


class PropagationError(CLIError):
    """Topology invariants were violated. Always an engine bug."""

    kind = ErrorKind.PROPAGATION


class ModeStackError(PropagationError):
    pass
