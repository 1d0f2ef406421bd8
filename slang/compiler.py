"""
S-Language Compiler
===================

Front end and driver: turns source text into an assembled Program.

Steps:
    1. The prologue (built-in macros) and the user source are split into
       lines; blank lines and comments are dropped.
    2. ``@def ... @end`` blocks are collected into the macro table in
       declaration order, prologue first. All definitions are collected
       before expansion starts, so a macro may be used above its
       definition.
    3. Every explicit auxiliary variable and label is recorded in the
       expansion context, so automatic names never collide with them.
    4. Each remaining line is expanded to literal instructions.
    5. The instruction stream is assembled.

Compilation is all-or-nothing: the first error aborts it.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .assembler import Assembler, Program
from .errors import DirectiveError, SourceLocation
from .expander import DEFAULT_MAX_DEPTH, ExpansionContext, Expander
from .instructions import KEYWORDS
from .macros import PROLOGUE_FILENAME, MacroPattern, MacroTable
from .prologue import PROLOGUE
from .tokens import COMMENT_CHAR, TokenType, ScannedLine, scan_line

logger = logging.getLogger(__name__)

DEF_DIRECTIVE = "@def"
END_DIRECTIVE = "@end"


@dataclass
class CompilerConfig:
    """Configuration for a compile."""
    max_expansion_depth: int = DEFAULT_MAX_DEPTH
    include_prologue: bool = True
    filename: str = "<input>"


class Compiler:
    """
    S-language compiler.

    One instance may compile several programs; each compile gets a fresh
    macro table and expansion context.
    """

    def __init__(self, config: Optional[CompilerConfig] = None):
        self.config = config or CompilerConfig()
        self.table = MacroTable()
        self.context = ExpansionContext()

    def compile(self, source: str) -> Program:
        """Compile source text to a Program."""
        self.table = MacroTable()
        self.context = ExpansionContext()

        program_lines: List[ScannedLine] = []
        if self.config.include_prologue:
            program_lines.extend(self._collect(PROLOGUE, PROLOGUE_FILENAME))
        program_lines.extend(self._collect(source, self.config.filename))

        for line in program_lines:
            self.context.observe_line(line)
        for definition in self.table:
            for line in definition.body:
                self.context.observe_line(line)

        expander = Expander(self.table, self.context, self.config.max_expansion_depth)
        instructions = expander.expand(program_lines)
        program = Assembler().assemble(instructions)

        logger.info(
            "%s: compiled %d source lines to %d instructions "
            "(%d labels, %d macros, %d auxiliary variables)",
            self.config.filename, len(program_lines), len(program),
            len(program.labels), len(self.table), self.context.max_aux,
        )
        return program

    def _collect(self, source: str, filename: str) -> List[ScannedLine]:
        """
        Scan source lines, defining macros and returning the program lines.
        """
        program_lines: List[ScannedLine] = []
        current: Optional[Tuple[MacroPattern, SourceLocation, List[ScannedLine]]] = None

        for line_num, raw in enumerate(source.splitlines(), 1):
            location = SourceLocation(line_num, filename, raw)
            stripped = raw.strip()

            if not stripped or stripped.startswith(COMMENT_CHAR):
                continue

            if stripped.startswith('@'):
                parts = stripped.split(None, 1)
                directive = parts[0]
                rest = parts[1] if len(parts) > 1 else ""

                if directive == DEF_DIRECTIVE:
                    if current is not None:
                        raise DirectiveError("Unexpected nested @def directive", location)
                    current = (self._parse_pattern(rest, location), location, [])
                elif directive == END_DIRECTIVE:
                    if current is None:
                        raise DirectiveError("Unexpected @end directive", location)
                    if rest and not rest.startswith(COMMENT_CHAR):
                        raise DirectiveError("Unexpected text after @end", location)
                    self._define(*current)
                    current = None
                else:
                    raise DirectiveError(f"Unknown directive {directive}", location)
                continue

            scanned = scan_line(raw, location)
            if scanned.is_empty:
                continue
            if current is not None:
                current[2].append(scanned)
            else:
                program_lines.append(scanned)

        if current is not None:
            raise DirectiveError("Unterminated @def directive (missing @end)", current[1])

        return program_lines

    def _parse_pattern(self, text: str, location: SourceLocation) -> MacroPattern:
        scanned = scan_line(text, location)
        if scanned.label is not None:
            raise DirectiveError("A macro pattern cannot carry a label", location)
        if not scanned.tokens:
            raise DirectiveError("Empty macro pattern", location)
        for tok in scanned.tokens:
            if tok.type in (TokenType.AUTO_VAR, TokenType.AUTO_LABEL):
                raise DirectiveError(
                    f"Automatic name {tok} is not allowed in a macro pattern", location
                )
            if tok.type == TokenType.PLACEHOLDER and tok.value in KEYWORDS:
                raise DirectiveError(
                    f"Placeholder {tok} reuses the instruction word '{tok.value}'", location
                )
        return MacroPattern.from_tokens(scanned.tokens)

    def _define(self, pattern: MacroPattern, location: SourceLocation,
                body: List[ScannedLine]):
        names = set(pattern.slot_names)
        for line in body:
            toks = ([line.label] if line.label is not None else []) + line.tokens
            for tok in toks:
                if tok.type == TokenType.PLACEHOLDER and tok.value not in names:
                    raise DirectiveError(
                        f"Placeholder {tok} is not bound by pattern '{pattern}'",
                        line.location,
                    )

        definition = self.table.define(pattern, body, location)

        earlier = self.table.shadowing(definition)
        if earlier is not None and not definition.builtin:
            logger.warning(
                "%s: macro '%s' can never match, shadowed by '%s' declared at %s",
                location, pattern, earlier.pattern, earlier.location,
            )


def compile_source(source: str, config: Optional[CompilerConfig] = None) -> Program:
    """Convenience function to compile source text."""
    return Compiler(config).compile(source)


def compile_file(path: Union[str, Path], config: Optional[CompilerConfig] = None) -> Program:
    """Compile a source file; the file name is used in error locations."""
    path = Path(path)
    config = replace(config or CompilerConfig(), filename=str(path))
    return Compiler(config).compile(path.read_text(encoding="utf-8"))
