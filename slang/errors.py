"""
S-Language Error Types
======================

Error types for scanning, macro expansion and assembly.

Every compile-time error is fatal: compilation is all-or-nothing and the
error carries the location of the user line that caused it. The machine
itself has no error channel (an undefined-label jump is a normal halt and
decrementing zero is a no-op), so there is no runtime error type here.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass
class SourceLocation:
    """Location of a line in source code."""
    line: int
    filename: str = "<input>"
    text: str = ""

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}"


@dataclass
class SlangError(Exception):
    """Base error type for the S-language toolchain."""
    message: str
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        text = ""
        if self.location and self.location.text:
            text = f"\n    {self.location.text.strip()}"
        return f"{type(self).__name__}{loc}: {self.message}{text}"


class CompileError(SlangError):
    """Error raised while turning source into a program."""
    pass


class SyntaxError(CompileError):
    """A line is neither a literal instruction nor a macro invocation."""
    pass


class DirectiveError(SyntaxError):
    """Malformed @def/@end macro directive."""
    pass


@dataclass
class DuplicateLabelError(CompileError):
    """A label is owned by more than one instruction after expansion."""
    first_location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        base = super().__str__()
        if self.first_location:
            return f"{base}\n    (first defined at {self.first_location})"
        return base


@dataclass
class RecursiveMacroError(CompileError):
    """Expansion re-entered a macro already on its own expansion path."""
    chain: Tuple[str, ...] = ()

    def __str__(self) -> str:
        base = super().__str__()
        if self.chain:
            path = "\n      -> ".join(self.chain)
            return f"{base}\n    expansion path:\n      {path}"
        return base


class ExpansionDepthError(CompileError):
    """Macro nesting exceeded the configured depth ceiling."""
    pass
