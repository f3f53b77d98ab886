"""Exceptions raised by funcmatch.

Library code raises these; the command line turns them into a
``SystemExit`` with the message.
"""


class FuncmatchError(Exception):
    pass


class InputError(FuncmatchError):
    """An input file is missing or unreadable."""


class SymbolTableError(InputError):
    """A symbol table row could not be parsed."""


class ExtractionError(FuncmatchError):
    """A symbol's byte range does not fit the image."""


class AddressError(ExtractionError):
    """An address lies below the image base."""


class DumpToolError(FuncmatchError):
    """The dump tool could not be run or exited with an error."""


class DumpParseError(FuncmatchError):
    """The dump tool produced a line we do not understand."""

    def __init__(self, lineno, line, reason):
        super().__init__(f"line {lineno}: {reason}: {line!r}")
        self.lineno = lineno
        self.line = line


class SymbolNotFoundError(FuncmatchError):
    def __init__(self, name, source=None):
        where = f" (symbols from {source})" if source else ""
        super().__init__(f"symbol {name} not found in rebuilt object{where}")
        self.name = name


class AmbiguousSymbolError(FuncmatchError):
    def __init__(self, name, matches):
        super().__init__(
            f"symbol {name} matches several labels: {', '.join(sorted(matches))}"
        )
        self.name = name
        self.matches = list(matches)
