"""
S-Language - Macro Compiler and Register Machine
================================================

A compiler and interpreter for the S language: a register machine over
unbounded natural-number variables whose only computing instructions are
increment, decrement and jump-if-nonzero. Everything else (goto,
assignment, arithmetic, comparisons) is built from hygienic macros.

Pipeline:
    scan -> match instruction / macro -> expand -> assemble -> run / encode

Usage:
    from slang import compile_source, run_program

    program = compile_source('''
        y <- x1 + x2
    ''')
    result = run_program(program, [2, 3])
    print(result.y)                     # 5

    from slang import encode_program
    print(encode_program(program))      # exponent list of the program number
"""

# Core modules
from .errors import (
    SlangError, CompileError, SyntaxError, DirectiveError,
    DuplicateLabelError, RecursiveMacroError, ExpansionDepthError,
    SourceLocation,
)

from .tokens import Token, TokenType, Lexer, ScannedLine, scan_line

from .instructions import (
    Variable, VarKind, Label, Opcode, Instruction, match_instruction,
)

from .macros import MacroPattern, MacroDefinition, MacroTable

from .expander import ExpansionContext, Expander

from .assembler import Program, Assembler, assemble, format_program

from .compiler import CompilerConfig, Compiler, compile_source, compile_file

from .vm import ExecutionState, State, Machine, RunResult, run_program

from .encoding import (
    pair, unpair, instruction_code, decode_instruction,
    encode_program, decode_program, prime_powers,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "SlangError", "CompileError", "SyntaxError", "DirectiveError",
    "DuplicateLabelError", "RecursiveMacroError", "ExpansionDepthError",
    "SourceLocation",

    # Scanner
    "Token", "TokenType", "Lexer", "ScannedLine", "scan_line",

    # Instructions
    "Variable", "VarKind", "Label", "Opcode", "Instruction", "match_instruction",

    # Macros
    "MacroPattern", "MacroDefinition", "MacroTable",
    "ExpansionContext", "Expander",

    # Assembly
    "Program", "Assembler", "assemble", "format_program",

    # Compiler
    "CompilerConfig", "Compiler", "compile_source", "compile_file",

    # Machine
    "ExecutionState", "State", "Machine", "RunResult", "run_program",

    # Numbering
    "pair", "unpair", "instruction_code", "decode_instruction",
    "encode_program", "decode_program", "prime_powers",
]
