"""Collects macro errors so that all of them can be reported together."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class _Entry:
    obj: object
    message: str


class MacroErrors(Exception):
    """Every error gathered by a Ctxt, in the order they were added."""

    def __init__(self, errors: list[tuple[object, str]]) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(message for _, message in self.errors))

    @property
    def messages(self) -> list[str]:
        return [message for _, message in self.errors]


class Ctxt:
    """Gathers errors and reports them all at once from ``check``.

    A context must be checked exactly once. Used as a context manager, leaving
    the block without having checked it is itself an error.
    """

    def __init__(self) -> None:
        self._errors: list[_Entry] | None = []

    def error(self, obj: object, msg: object) -> None:
        """Record an error about ``obj``; ``obj`` says where the error points."""
        if self._errors is None:
            raise RuntimeError("error added after the context was checked")
        self._errors.append(_Entry(obj, str(msg)))

    def check(self) -> None:
        """Consume the context; raise MacroErrors if any error was recorded."""
        if self._errors is None:
            raise RuntimeError("context was already checked")
        errors, self._errors = self._errors, None
        if errors:
            raise MacroErrors([(entry.obj, entry.message) for entry in errors])

    @property
    def checked(self) -> bool:
        return self._errors is None

    def __enter__(self) -> Ctxt:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None and not self.checked:
            raise RuntimeError("forgot to check for errors")