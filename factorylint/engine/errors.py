"""
Exceptions raised by the factorylint engine.

Rules never raise for code that simply does not match; these are reserved
for environment and configuration problems.
"""


class FactorylintError(Exception):
    """Base class for engine errors."""


class ParserUnavailableError(FactorylintError):
    """The tree-sitter Ruby grammar could not be loaded."""


class ConfigError(FactorylintError):
    """A configuration file could not be read or has the wrong shape."""


class EditConflictError(FactorylintError):
    """Two autofix edits for the same buffer overlap."""

    def __init__(self, first, second):
        super().__init__(
            f"overlapping edits [{first.start_byte}, {first.end_byte}) "
            f"and [{second.start_byte}, {second.end_byte})"
        )
        self.first = first
        self.second = second
