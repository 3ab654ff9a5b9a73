"""Exception hierarchy for TypeGraph analysis runs."""

from __future__ import annotations

from typing import List, Sequence, Tuple


class TypeGraphError(Exception):
    """Base class for every failure a caller can distinguish."""


class InputError(TypeGraphError):
    """The input file set is empty, missing or unreadable."""


class ParseFailure(TypeGraphError):
    """A source file could not be parsed; the whole run is aborted."""

    def __init__(self, path: str, locations: Sequence[Tuple[int, int]] = ()) -> None:
        self.path = path
        self.locations: List[Tuple[int, int]] = list(locations)
        where = ", ".join(f"{line}:{col}" for line, col in self.locations[:5])
        message = f"Failed to parse {path}"
        if where:
            message += f" (syntax errors at {where})"
        super().__init__(message)


class DeclarationConflictError(TypeGraphError):
    """Two declarations share a canonical id outside the partial-merge rule."""

    def __init__(self, type_id: str, first: str, second: str) -> None:
        self.type_id = type_id
        super().__init__(
            f"Type '{type_id}' is declared as {first} and as {second}"
        )
