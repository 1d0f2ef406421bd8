"""
S-Language Assembler
====================

Assembles the fully expanded, fully literal instruction stream into a
Program: an indexed instruction tuple plus a label table.

Labels must be unique across the whole program. Automatic labels are
drawn from the same allocator that has seen every explicit label, so a
duplicate here always means the source (or a macro body with an explicit
label, used twice) defines the same label more than once.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Set, Tuple

from .errors import DuplicateLabelError
from .instructions import Instruction, Label, Variable, VarKind


@dataclass
class Program:
    """An assembled program."""
    instructions: Tuple[Instruction, ...] = ()
    labels: Dict[Label, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self.instructions[index]

    def variables(self) -> Set[Variable]:
        """All variables the program mentions."""
        return {instr.var for instr in self.instructions if instr.var is not None}

    def aux_variables(self) -> Set[Variable]:
        return {var for var in self.variables() if var.kind == VarKind.AUX}

    def listing(self, numbered: bool = False) -> str:
        return format_program(self, numbered)

    def __str__(self) -> str:
        return self.listing()


class Assembler:
    """Builds the label table and the final instruction tuple."""

    def __init__(self):
        self.labels: Dict[Label, int] = {}
        self.instructions: List[Instruction] = []

    def assemble(self, instructions: Iterable[Instruction]) -> Program:
        self.labels = {}
        self.instructions = []

        for instr in instructions:
            if instr.label is not None:
                if instr.label in self.labels:
                    first = self.instructions[self.labels[instr.label]]
                    raise DuplicateLabelError(
                        f"Redefined label {instr.label}",
                        instr.location,
                        first.location,
                    )
                self.labels[instr.label] = len(self.instructions)
            self.instructions.append(instr)

        return Program(tuple(self.instructions), dict(self.labels))


def assemble(instructions: Iterable[Instruction]) -> Program:
    """Convenience function to assemble an instruction stream."""
    return Assembler().assemble(instructions)


def format_program(program: Program, numbered: bool = False) -> str:
    """
    Format a program as S source text.

    The plain listing is itself a valid program: compiling it again yields
    the same instructions. With ``numbered`` each line is prefixed with its
    instruction index, for reading only.
    """
    lines = []
    for index, instr in enumerate(program.instructions):
        label = f"[{instr.label}]" if instr.label is not None else ""
        line = f"{label:<8}{instr.body()}"
        if numbered:
            line = f"{index:04d}:  {line}"
        lines.append(line)
    return "\n".join(lines)
