"""
S-Language Instructions
=======================

Variables, labels and the literal instruction set.

Variables:
    y        - the output variable
    x1, x2.. - input variables
    z1, z2.. - auxiliary variables (also used for automatic variables)

Labels:
    A1..E1, A2..E2, ... - a letter from ABCDE plus a positive index

Instruction forms (literal instructions always take precedence over macros):
    V <- V + 1          Increment
    V <- V - 1          Decrement
    if V != 0 goto L    Jump if nonzero
    jnz V L             Jump if nonzero (alternate syntax)
    nop                 No operation
    print V             Emit the value of V
    dump                Emit the whole machine state

Variable and label numbering follows the usual textbook order, which is
also what the program numbering in ``slang.encoding`` builds on:

    #(y) = 1, #(x1) = 2, #(z1) = 3, #(x2) = 4, #(z2) = 5, ...
    #(A1) = 1, #(B1) = 2, ..., #(E1) = 5, #(A2) = 6, ...
"""

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import List, Optional, Sequence
import re

from .errors import SourceLocation
from .tokens import Token


LABEL_LETTERS = "ABCDE"

# Words of the literal instruction forms
KEYWORDS = ("if", "goto", "nop", "print", "dump", "jnz")

_VARIABLE_RE = re.compile(r'^(?:(y)|([xz])([1-9][0-9]*))$')
_LABEL_RE = re.compile(r'^([A-E])([1-9][0-9]*)$')
_NUMERAL_RE = re.compile(r'^[0-9]+$')


class VarKind(Enum):
    """Variable namespaces."""
    OUTPUT = "y"
    INPUT = "x"
    AUX = "z"


@dataclass(frozen=True)
class Variable:
    """A machine variable."""
    kind: VarKind
    index: int = 1

    @classmethod
    def parse(cls, text: str) -> Optional["Variable"]:
        """Parse a variable name, returning None if it is not one."""
        m = _VARIABLE_RE.match(text)
        if not m:
            return None
        if m.group(1):
            return OUTPUT
        return cls(VarKind(m.group(2)), int(m.group(3)))

    @classmethod
    def from_number(cls, number: int) -> "Variable":
        """Inverse of ``number``."""
        if number < 1:
            raise ValueError(f"Variable numbers start at 1, got {number}")
        if number == 1:
            return OUTPUT
        if number % 2 == 0:
            return cls(VarKind.INPUT, number // 2)
        return cls(VarKind.AUX, number // 2)

    @property
    def number(self) -> int:
        if self.kind == VarKind.OUTPUT:
            return 1
        if self.kind == VarKind.INPUT:
            return 2 * self.index
        return 2 * self.index + 1

    def __str__(self) -> str:
        if self.kind == VarKind.OUTPUT:
            return "y"
        return f"{self.kind.value}{self.index}"


OUTPUT = Variable(VarKind.OUTPUT, 1)


@dataclass(frozen=True)
class Label:
    """An instruction label."""
    letter: str
    index: int

    @classmethod
    def parse(cls, text: str) -> Optional["Label"]:
        """Parse a label name, returning None if it is not one."""
        m = _LABEL_RE.match(text)
        if not m:
            return None
        return cls(m.group(1), int(m.group(2)))

    @classmethod
    def from_number(cls, number: int) -> "Label":
        """Inverse of ``number``."""
        if number < 1:
            raise ValueError(f"Label numbers start at 1, got {number}")
        index, pos = divmod(number - 1, len(LABEL_LETTERS))
        return cls(LABEL_LETTERS[pos], index + 1)

    @property
    def number(self) -> int:
        return len(LABEL_LETTERS) * (self.index - 1) + LABEL_LETTERS.index(self.letter) + 1

    def __str__(self) -> str:
        return f"{self.letter}{self.index}"


def is_numeral(text: str) -> bool:
    return bool(_NUMERAL_RE.match(text))


def is_operand(tok: Token) -> bool:
    """True for tokens a macro capture slot may bind: variable, label or numeral."""
    if not tok.is_operand:
        return False
    return (Variable.parse(tok.value) is not None
            or Label.parse(tok.value) is not None
            or is_numeral(tok.value))


class Opcode(IntEnum):
    """Instruction kinds."""
    NOP = 0
    INC = 1
    DEC = 2
    JNZ = 3
    PRINT = 4
    DUMP = 5


@dataclass(frozen=True)
class Instruction:
    """
    A literal instruction.

    Fields:
        opcode: instruction kind
        var: operand variable (INC, DEC, JNZ, PRINT)
        target: jump target (JNZ)
        label: label owned by this instruction, if any
        location: user line the instruction was produced from
    """
    opcode: Opcode
    var: Optional[Variable] = None
    target: Optional[Label] = None
    label: Optional[Label] = None
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    def with_label(self, label: Optional[Label]) -> "Instruction":
        return replace(self, label=label)

    def body(self) -> str:
        """Render the instruction without its label."""
        op = self.opcode
        if op == Opcode.INC:
            return f"{self.var} <- {self.var} + 1"
        if op == Opcode.DEC:
            return f"{self.var} <- {self.var} - 1"
        if op == Opcode.JNZ:
            return f"if {self.var} != 0 goto {self.target}"
        if op == Opcode.PRINT:
            return f"print {self.var}"
        if op == Opcode.DUMP:
            return "dump"
        return "nop"

    def __str__(self) -> str:
        if self.label is not None:
            return f"[{self.label}] {self.body()}"
        return self.body()


def match_instruction(tokens: Sequence[Token]) -> Optional[Instruction]:
    """
    Recognize a literal instruction.

    Returns None if the tokens do not form one of the fixed instruction
    shapes; the caller then tries the macro table.
    """
    values: List[str] = [tok.value if tok.is_operand else str(tok) for tok in tokens]
    n = len(values)

    if n == 1:
        if values[0] == "nop":
            return Instruction(Opcode.NOP)
        if values[0] == "dump":
            return Instruction(Opcode.DUMP)
        return None

    if n == 2 and values[0] == "print":
        var = Variable.parse(values[1])
        if var is not None:
            return Instruction(Opcode.PRINT, var)
        return None

    if n == 3 and values[0] == "jnz":
        var = Variable.parse(values[1])
        target = Label.parse(values[2])
        if var is not None and target is not None:
            return Instruction(Opcode.JNZ, var, target)
        return None

    if n == 5 and values[1] == "<-" and values[4] == "1" and values[0] == values[2]:
        var = Variable.parse(values[0])
        if var is None:
            return None
        if values[3] == "+":
            return Instruction(Opcode.INC, var)
        if values[3] == "-":
            return Instruction(Opcode.DEC, var)
        return None

    if (n == 6 and values[0] == "if" and values[2] == "!=" and values[3] == "0"
            and values[4] == "goto"):
        var = Variable.parse(values[1])
        target = Label.parse(values[5])
        if var is not None and target is not None:
            return Instruction(Opcode.JNZ, var, target)

    return None
