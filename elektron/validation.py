"""Run a series of validators and report the first failure."""

from __future__ import annotations

from collections.abc import Callable


class ValidationError(Exception):
    """A validator failed; the message carries the base message and the cause."""


def validate(base_message: str, *args: Callable[[], object]) -> None:
    """Call each validator in turn.

    A validator fails by raising. The first failure stops the run and is
    raised again as a ValidationError whose message is prefixed with
    ``base_message``.
    """
    for validator in args:
        try:
            validator()
        except Exception as err:
            raise ValidationError(f"{base_message}: {err}") from err