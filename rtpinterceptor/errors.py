"""Aggregation of several errors into one exception."""

from __future__ import annotations

from collections.abc import Iterable

_EMPTY_MESSAGE = "multiError must contain multiple error but is empty"


class MultiError(Exception):
    """Several errors raised together, for example when closing a chain."""

    def __init__(self, errors: Iterable[BaseException | None]) -> None:
        self.errors: tuple[BaseException, ...] = tuple(e for e in errors if e is not None)
        super().__init__(*self.errors)

    def __str__(self) -> str:
        parts = [str(err) for err in self.errors]
        return "\n".join(parts) if parts else _EMPTY_MESSAGE

    def __contains__(self, err: object) -> bool:
        """Tell whether ``err`` is one of the errors, searching nested groups too."""
        for inner in self.errors:
            if inner is err:
                return True
            if isinstance(inner, MultiError) and err in inner:
                return True
        return False


def flatten_errors(errors: Iterable[BaseException | None]) -> MultiError | None:
    """Drop ``None`` entries; return a MultiError of the rest, or None if empty."""
    remaining = [err for err in errors if err is not None]
    if not remaining:
        return None
    return MultiError(remaining)