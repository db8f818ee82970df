"""Error taxonomy for stack dump parsing."""

from __future__ import annotations


class StackparseError(Exception):
    """Base class for every error raised by stackparse."""


class InvalidPrefixPattern(StackparseError):
    """The configured line prefix regex does not compile."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"failed to compile line prefix regexp {pattern!r}: {reason}")


class StackParseError(StackparseError):
    """A parse failure, annotated with the 1-based input line once known."""

    expectation: str = "unexpected formatting"

    def __init__(self, detail: str, line_number: int | None = None) -> None:
        self.detail = detail
        self.line_number = line_number
        super().__init__(self._format())

    def _format(self) -> str:
        message = f"{self.expectation}: {self.detail}"
        if self.line_number is None:
            return message
        return f"line {self.line_number}: {message}"

    def at_line(self, line_number: int) -> StackParseError:
        """Attach the input position and return self for re-raising."""
        self.line_number = line_number
        self.args = (self._format(),)
        return self


class MalformedHeaderLine(StackParseError):
    expectation = "malformed goroutine header"


class MalformedEntryLine(StackParseError):
    expectation = "expected '<file>:<line> [entry]'"


class TruncatedCreatedBy(StackParseError):
    expectation = "'created by' line is missing its location line"


class InternalFault(StackParseError):
    expectation = "internal error while parsing"
