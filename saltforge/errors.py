"""saltforge error taxonomy.

Every error is a ``click.ClickException`` so the CLI prints a one-line
diagnostic and exits non-zero without extra plumbing.
"""

import logging
from typing import Optional

import click

log = logging.getLogger(__name__)


class SaltForgeError(click.ClickException):
    exit_code = 1

    def show(self, file=None) -> None:
        log.error("%s", self.format_message())
        super().show(file)


class InvalidInputError(SaltForgeError):
    """Malformed fixed-width value, pattern or request."""
    exit_code = 2


class ConfigError(SaltForgeError):
    exit_code = 2


class ExhaustedError(SaltForgeError):
    """Salt search ran past its attempt bound."""
    exit_code = 3

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class DerivationError(SaltForgeError):
    exit_code = 4

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class LedgerError(SaltForgeError):
    """Ledger transaction failed, reverted or did not confirm. Never retried."""
    exit_code = 5


class AddressMismatchError(SaltForgeError):
    exit_code = 6

    def __init__(self, predicted: str, actual: str, name: str = ""):
        label = f"{name}: " if name else ""
        super().__init__(f"{label}predicted {predicted} but ledger reported {actual}")
        self.predicted = predicted
        self.actual = actual
