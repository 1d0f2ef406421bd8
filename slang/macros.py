"""
S-Language Macro Table
======================

Macro patterns, definitions and the ordered macro table.

A macro is declared with a pattern line and a body:

    @def if {v1} < {v2} goto {label}
            $a <- v2 - v1
            if $a != 0 goto label
    @end

Pattern elements are either literal tokens, which must match verbatim, or
``{name}`` capture slots, which bind exactly one operand token (a variable,
a label or a numeral). The table is scanned in declaration order and the
first definition whose pattern aligns wins, so declaration order is
precedence. Built-in prologue definitions are declared before any user
definition.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .errors import SourceLocation
from .instructions import is_operand
from .tokens import Token, TokenType, ScannedLine


@dataclass(frozen=True)
class PatternElement:
    """One element of a macro pattern: a literal token or a capture slot."""
    token: Token

    @property
    def is_slot(self) -> bool:
        return self.token.type == TokenType.PLACEHOLDER

    @property
    def name(self) -> str:
        return self.token.value

    def __str__(self) -> str:
        return str(self.token)


@dataclass(frozen=True)
class MacroPattern:
    """An ordered sequence of pattern elements."""
    elements: Tuple[PatternElement, ...]

    @classmethod
    def from_tokens(cls, tokens: Sequence[Token]) -> "MacroPattern":
        return cls(tuple(PatternElement(tok) for tok in tokens))

    @property
    def slot_names(self) -> List[str]:
        names = []
        for elem in self.elements:
            if elem.is_slot and elem.name not in names:
                names.append(elem.name)
        return names

    def match(self, tokens: Sequence[Token]) -> Optional[Dict[str, Token]]:
        """
        Align tokens against this pattern.

        Returns the placeholder bindings, or None if the pattern does not
        align. A placeholder that occurs more than once must bind the same
        token at every occurrence.
        """
        if len(tokens) != len(self.elements):
            return None

        bindings: Dict[str, Token] = {}
        for elem, tok in zip(self.elements, tokens):
            if elem.is_slot:
                if not is_operand(tok):
                    return None
                bound = bindings.get(elem.name)
                if bound is not None and bound != tok:
                    return None
                bindings[elem.name] = tok
            elif elem.token != tok:
                return None
        return bindings

    def shape(self) -> Tuple[str, ...]:
        """Pattern with slot names replaced by their first-occurrence number."""
        order = self.slot_names
        return tuple(f"{{{order.index(elem.name)}}}" if elem.is_slot else elem.token.value
                     for elem in self.elements)

    def __str__(self) -> str:
        return " ".join(str(elem) for elem in self.elements)


@dataclass(eq=False)
class MacroDefinition:
    """
    A macro: pattern, body template lines and declaration index.

    Definitions compare by identity; the declaration index orders them in
    the table and names them in expansion-path diagnostics.
    """
    pattern: MacroPattern
    body: List[ScannedLine] = field(default_factory=list)
    index: int = 0
    location: Optional[SourceLocation] = None

    @property
    def builtin(self) -> bool:
        return self.location is not None and self.location.filename == PROLOGUE_FILENAME

    def __str__(self) -> str:
        return f"@def {self.pattern}"


PROLOGUE_FILENAME = "<prologue>"


class MacroTable:
    """Macro definitions in declaration order."""

    def __init__(self):
        self.definitions: List[MacroDefinition] = []

    def define(self, pattern: MacroPattern, body: List[ScannedLine],
               location: Optional[SourceLocation] = None) -> MacroDefinition:
        """Append a definition; it takes the next declaration index."""
        definition = MacroDefinition(pattern, list(body), len(self.definitions), location)
        self.definitions.append(definition)
        return definition

    def shadowing(self, definition: MacroDefinition) -> Optional[MacroDefinition]:
        """Earlier definition with a structurally identical pattern, if any."""
        shape = definition.pattern.shape()
        for earlier in self.definitions[:definition.index]:
            if earlier.pattern.shape() == shape:
                return earlier
        return None

    def match(self, tokens: Sequence[Token]) -> Optional[Tuple[MacroDefinition, Dict[str, Token]]]:
        """Return the first definition whose pattern aligns, with its bindings."""
        for definition in self.definitions:
            bindings = definition.pattern.match(tokens)
            if bindings is not None:
                return definition, bindings
        return None

    def __len__(self) -> int:
        return len(self.definitions)

    def __iter__(self) -> Iterator[MacroDefinition]:
        return iter(self.definitions)
