"""
S-Language Macro Expander
=========================

Hygienic, recursive expansion of macro invocations into literal
instructions.

Expanding one invocation:
    1. placeholders in the body are replaced by the tokens they bound;
    2. each distinct ``$name`` marker gets one fresh auxiliary variable;
    3. each distinct ``%name`` marker gets one fresh label;
    4. every produced line goes back through the instruction matcher and
       the macro table, recursing until only literal instructions remain.

Fresh names come from a single ExpansionContext per program, which has
already seen every explicit auxiliary variable and label in the source, so
automatic names can never collide with written ones or with each other.

Expansion keeps the chain of definitions currently being expanded; a
definition that reappears on its own chain is a RecursiveMacroError. A
depth ceiling bounds acyclic but very deep nesting.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import (
    SourceLocation, SyntaxError, RecursiveMacroError, ExpansionDepthError,
)
from .instructions import (
    LABEL_LETTERS, Instruction, Label, Opcode, Variable, VarKind, match_instruction,
)
from .macros import MacroDefinition, MacroTable
from .tokens import Token, TokenType, ScannedLine

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64
DEFAULT_LABEL_LETTER = "A"


class ExpansionContext:
    """
    Allocator of fresh auxiliary variables and labels for one program.

    Tracks the highest auxiliary index and the highest index per label
    letter seen so far, explicit or allocated. Allocation only moves
    forward; names are never reused.
    """

    def __init__(self):
        self.max_aux = 0
        self.max_label: Dict[str, int] = {letter: 0 for letter in LABEL_LETTERS}

    def observe_token(self, tok: Token):
        """Record an explicitly written variable or label."""
        if not tok.is_operand:
            return
        var = Variable.parse(tok.value)
        if var is not None:
            if var.kind == VarKind.AUX:
                self.max_aux = max(self.max_aux, var.index)
            return
        label = Label.parse(tok.value)
        if label is not None:
            self.max_label[label.letter] = max(self.max_label[label.letter], label.index)

    def observe_line(self, line: ScannedLine):
        if line.label is not None:
            self.observe_token(line.label)
        for tok in line.tokens:
            self.observe_token(tok)

    def fresh_variable(self) -> Variable:
        self.max_aux += 1
        return Variable(VarKind.AUX, self.max_aux)

    def fresh_label(self, letter: str = DEFAULT_LABEL_LETTER) -> Label:
        if letter not in self.max_label:
            letter = DEFAULT_LABEL_LETTER
        self.max_label[letter] += 1
        return Label(letter, self.max_label[letter])


class Expander:
    """Expands scanned lines to literal instructions."""

    def __init__(self, table: MacroTable, context: ExpansionContext,
                 max_depth: int = DEFAULT_MAX_DEPTH):
        self.table = table
        self.context = context
        self.max_depth = max_depth

    def expand(self, lines: Iterable[ScannedLine]) -> List[Instruction]:
        """Expand a sequence of lines to a flat instruction list."""
        instructions: List[Instruction] = []
        for line in lines:
            instructions.extend(self.expand_line(line))
        return instructions

    def expand_line(self, line: ScannedLine) -> List[Instruction]:
        """Expand one user line; every produced instruction carries its location."""
        if line.is_empty:
            return []
        return self._expand(line, line.location, (), 0)

    # =========================================================================
    # Internals
    # =========================================================================

    def _expand(self, line: ScannedLine, origin: Optional[SourceLocation],
                path: Tuple[MacroDefinition, ...], depth: int) -> List[Instruction]:
        label = self._resolve_label(line.label, origin)

        instr = match_instruction(line.tokens)
        if instr is not None:
            return [Instruction(instr.opcode, instr.var, instr.target, label, origin)]

        found = self.table.match(line.tokens)
        if found is None:
            context = f" (while expanding '{path[-1].pattern}')" if path else ""
            raise SyntaxError(
                f"Not an instruction or macro invocation: '{line.text()}'{context}",
                origin,
            )
        definition, bindings = found

        if definition in path:
            chain = tuple(str(d.pattern) for d in path + (definition,))
            raise RecursiveMacroError(
                f"Macro '{definition.pattern}' is invoked from its own expansion",
                origin, chain,
            )
        if depth >= self.max_depth:
            raise ExpansionDepthError(
                f"Macro nesting deeper than {self.max_depth} levels "
                f"while expanding '{definition.pattern}'",
                origin,
            )

        produced: List[Instruction] = []
        for body_line in self._instantiate(definition, bindings, origin, depth):
            produced.extend(self._expand(body_line, origin, path + (definition,), depth + 1))

        if label is not None:
            if produced and produced[0].label is None:
                produced[0] = produced[0].with_label(label)
            else:
                produced.insert(0, Instruction(Opcode.NOP, label=label, location=origin))

        return produced

    def _instantiate(self, definition: MacroDefinition, bindings: Dict[str, Token],
                     origin: Optional[SourceLocation], depth: int) -> List[ScannedLine]:
        """Produce the body of one expansion instance with all names substituted."""
        auto_vars: Dict[str, Variable] = {}
        auto_labels: Dict[str, Label] = {}

        def substitute(tok: Token) -> Token:
            if tok.type in (TokenType.PLACEHOLDER, TokenType.IDENTIFIER) and tok.value in bindings:
                return bindings[tok.value]
            if tok.type == TokenType.PLACEHOLDER:
                raise SyntaxError(
                    f"Placeholder {tok} is not bound by pattern '{definition.pattern}'",
                    origin,
                )
            if tok.type == TokenType.AUTO_VAR:
                if tok.value not in auto_vars:
                    auto_vars[tok.value] = self.context.fresh_variable()
                return Token(TokenType.IDENTIFIER, str(auto_vars[tok.value]))
            if tok.type == TokenType.AUTO_LABEL:
                if tok.value not in auto_labels:
                    auto_labels[tok.value] = self.context.fresh_label(tok.value[0])
                return Token(TokenType.IDENTIFIER, str(auto_labels[tok.value]))
            return tok

        lines = []
        for body_line in definition.body:
            label = substitute(body_line.label) if body_line.label is not None else None
            tokens = [substitute(tok) for tok in body_line.tokens]
            lines.append(ScannedLine(label, tokens, origin))

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "%sexpand '%s' with {%s}%s%s",
                "  " * depth,
                definition.pattern,
                ", ".join(f"{k}={v.value}" for k, v in bindings.items()),
                "".join(f" ${k}={v}" for k, v in auto_vars.items()),
                "".join(f" %{k}={v}" for k, v in auto_labels.items()),
            )
        return lines

    def _resolve_label(self, tok: Optional[Token],
                       origin: Optional[SourceLocation]) -> Optional[Label]:
        if tok is None:
            return None
        label = Label.parse(tok.value) if tok.type == TokenType.IDENTIFIER else None
        if label is None:
            raise SyntaxError(
                f"Invalid label '{tok}', expected a letter A-E followed by a positive index",
                origin,
            )
        return label
