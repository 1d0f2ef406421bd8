"""
S-Language Program Numbering
============================

Injective numeric encoding of assembled programs.

Pairing function:

    <x, y> = 2^x * (2y + 1) - 1

Every natural number is <x, y> for exactly one pair (x, y).

Instruction code:

    #(I) = <a, <b, c>>

    - a: label number, 0 if the instruction is unlabeled
    - b: 0 non-computing, 1 increment, 2 decrement, #(L) + 2 jump to L
    - c: #(V) - 1 for increment, decrement and jump

    Non-computing instructions (b = 0):
        nop         c = 0
        dump        c = 1
        print V     c = #(V) + 1

Program number:

    #(P) = prod prime(i) ^ (#(I_i) + 1)

The product is astronomically large for any real program and is never
computed; the exponent list ``#(I_1) ... #(I_n)`` stands for it.
"""

from typing import Iterable, List, Tuple

from sympy import prime

from .assembler import Program, assemble
from .instructions import Instruction, Label, Opcode, Variable

# Instruction class (b) offsets
B_NONCOMPUTING = 0
B_INC = 1
B_DEC = 2
B_JUMP_BASE = 2

# Non-computing sub-codes (c)
C_NOP = 0
C_DUMP = 1
C_PRINT_BASE = 1


# ==============================================================================
# Pairing
# ==============================================================================

def pair(x: int, y: int) -> int:
    """<x, y> = 2^x (2y + 1) - 1."""
    if x < 0 or y < 0:
        raise ValueError(f"pair() arguments must be natural numbers, got ({x}, {y})")
    return (1 << x) * (2 * y + 1) - 1


def unpair(z: int) -> Tuple[int, int]:
    """Inverse of ``pair``."""
    if z < 0:
        raise ValueError(f"unpair() argument must be a natural number, got {z}")
    n = z + 1
    x = 0
    while n % 2 == 0:
        n //= 2
        x += 1
    return x, (n - 1) // 2


# ==============================================================================
# Instructions
# ==============================================================================

def instruction_code(instr: Instruction) -> int:
    """Code of a single instruction."""
    a = instr.label.number if instr.label is not None else 0
    op = instr.opcode

    if op == Opcode.INC:
        b, c = B_INC, instr.var.number - 1
    elif op == Opcode.DEC:
        b, c = B_DEC, instr.var.number - 1
    elif op == Opcode.JNZ:
        b, c = instr.target.number + B_JUMP_BASE, instr.var.number - 1
    elif op == Opcode.PRINT:
        b, c = B_NONCOMPUTING, instr.var.number + C_PRINT_BASE
    elif op == Opcode.DUMP:
        b, c = B_NONCOMPUTING, C_DUMP
    else:
        b, c = B_NONCOMPUTING, C_NOP

    return pair(a, pair(b, c))


def decode_instruction(code: int) -> Instruction:
    """Instruction with the given code."""
    a, rest = unpair(code)
    b, c = unpair(rest)
    label = Label.from_number(a) if a else None

    if b == B_NONCOMPUTING:
        if c == C_NOP:
            return Instruction(Opcode.NOP, label=label)
        if c == C_DUMP:
            return Instruction(Opcode.DUMP, label=label)
        return Instruction(Opcode.PRINT, Variable.from_number(c - C_PRINT_BASE), label=label)

    var = Variable.from_number(c + 1)
    if b == B_INC:
        return Instruction(Opcode.INC, var, label=label)
    if b == B_DEC:
        return Instruction(Opcode.DEC, var, label=label)
    return Instruction(Opcode.JNZ, var, Label.from_number(b - B_JUMP_BASE), label)


# ==============================================================================
# Programs
# ==============================================================================

def encode_program(program: Iterable[Instruction]) -> List[int]:
    """Exponent list of a program: one code per instruction."""
    return [instruction_code(instr) for instr in program]


def decode_program(codes: Iterable[int]) -> Program:
    """Rebuild a program from its exponent list."""
    return assemble(decode_instruction(code) for code in codes)


def prime_powers(program: Iterable[Instruction]) -> List[Tuple[int, int]]:
    """
    Factors of the program number as (prime, exponent) pairs.

    The i-th instruction contributes prime(i) ** (code + 1).
    """
    return [(int(prime(i)), code + 1) for i, code in enumerate(encode_program(program), 1)]


def format_exponents(codes: Iterable[int]) -> str:
    """Render an exponent list as ``[c1, c2, ...]``."""
    return "[" + ", ".join(str(code) for code in codes) + "]"
