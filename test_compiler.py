#!/usr/bin/env python3
"""
Compiler Tests: Scanner, Matchers, Expander, Assembler
======================================================

Tests for turning S-language source into assembled programs.
"""

import unittest
import sys
import os

# Add package root to path
TEST_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, TEST_DIR)

from slang import errors
from slang.tokens import Lexer, Token, TokenType, scan_line
from slang.instructions import (
    OUTPUT, Instruction, Label, Opcode, Variable, VarKind, match_instruction,
)
from slang.macros import MacroPattern, MacroTable
from slang.expander import ExpansionContext, Expander
from slang.assembler import assemble
from slang.compiler import CompilerConfig, Compiler, compile_source


def x(i):
    return Variable(VarKind.INPUT, i)


def z(i):
    return Variable(VarKind.AUX, i)


def tokens(text):
    return scan_line(text).tokens


def compile_bare(source, **options):
    """Compile without the prologue."""
    return compile_source(source, CompilerConfig(include_prologue=False, **options))


class TestLexer(unittest.TestCase):
    """Test the line scanner."""

    def test_basic_tokens(self):
        """Test token recognition without whitespace."""
        toks = Lexer("x1<-x1+1").tokenize()

        types = [t.type for t in toks]
        self.assertEqual(types, [
            TokenType.IDENTIFIER,
            TokenType.ASSIGN,
            TokenType.IDENTIFIER,
            TokenType.PLUS,
            TokenType.NUMBER,
        ])

    def test_comments(self):
        """Comments run to the end of the line."""
        toks = Lexer("y <- y + 1   # bump y").tokenize()
        self.assertEqual(len(toks), 5)
        self.assertEqual(Lexer("# only a comment").tokenize(), [])

    def test_template_forms(self):
        """Placeholders, automatic variables and automatic labels."""
        toks = Lexer("{v} $a %L").tokenize()

        values = [(t.type, t.value) for t in toks]
        self.assertEqual(values, [
            (TokenType.PLACEHOLDER, "v"),
            (TokenType.AUTO_VAR, "a"),
            (TokenType.AUTO_LABEL, "L"),
        ])

    def test_token_equality_ignores_column(self):
        self.assertEqual(Token(TokenType.IDENTIFIER, "x1", 1),
                         Token(TokenType.IDENTIFIER, "x1", 9))

    def test_unexpected_character(self):
        with self.assertRaises(errors.SyntaxError):
            Lexer("x1 ? 2").tokenize()

    def test_malformed_placeholder(self):
        with self.assertRaises(errors.SyntaxError):
            Lexer("goto {label").tokenize()

    def test_scan_label(self):
        """A leading [NAME] is split off as the line label."""
        line = scan_line("[A1]  nop")
        self.assertEqual(line.label, Token(TokenType.IDENTIFIER, "A1"))
        self.assertEqual(line.tokens, [Token(TokenType.IDENTIFIER, "nop")])

    def test_label_only_at_start(self):
        with self.assertRaises(errors.SyntaxError):
            scan_line("nop [A1]")


class TestInstructionMatcher(unittest.TestCase):
    """Test recognition of literal instructions."""

    def test_increment_decrement(self):
        self.assertEqual(match_instruction(tokens("y <- y + 1")),
                         Instruction(Opcode.INC, OUTPUT))
        self.assertEqual(match_instruction(tokens("z3 <- z3 - 1")),
                         Instruction(Opcode.DEC, z(3)))

    def test_jump(self):
        self.assertEqual(match_instruction(tokens("if x2 != 0 goto B2")),
                         Instruction(Opcode.JNZ, x(2), Label("B", 2)))
        self.assertEqual(match_instruction(tokens("jnz x1 E1")),
                         Instruction(Opcode.JNZ, x(1), Label("E", 1)))

    def test_meta_instructions(self):
        self.assertEqual(match_instruction(tokens("nop")), Instruction(Opcode.NOP))
        self.assertEqual(match_instruction(tokens("dump")), Instruction(Opcode.DUMP))
        self.assertEqual(match_instruction(tokens("print x3")),
                         Instruction(Opcode.PRINT, x(3)))

    def test_not_literal(self):
        """Lines left for the macro table."""
        self.assertIsNone(match_instruction(tokens("x1 <- x2 + 1")))
        self.assertIsNone(match_instruction(tokens("goto A1")))
        self.assertIsNone(match_instruction(tokens("x01 <- x01 + 1")))
        self.assertIsNone(match_instruction(tokens("if x1 != 0 goto F1")))

    def test_variable_numbering(self):
        self.assertEqual(OUTPUT.number, 1)
        self.assertEqual(x(1).number, 2)
        self.assertEqual(z(1).number, 3)
        self.assertEqual(Variable.from_number(5), z(2))

    def test_label_numbering(self):
        self.assertEqual(Label("A", 1).number, 1)
        self.assertEqual(Label("E", 1).number, 5)
        self.assertEqual(Label.from_number(6), Label("A", 2))


class TestMacroTable(unittest.TestCase):
    """Test macro patterns and first-match precedence."""

    def pattern(self, text):
        return MacroPattern.from_tokens(tokens(text))

    def test_slot_binding(self):
        bindings = self.pattern("if {v1} < {v2} goto {label}").match(
            tokens("if x1 < z2 goto A3"))
        self.assertEqual(bindings["v1"].value, "x1")
        self.assertEqual(bindings["v2"].value, "z2")
        self.assertEqual(bindings["label"].value, "A3")

    def test_slot_binds_single_operand(self):
        pattern = self.pattern("goto {label}")
        self.assertIsNone(pattern.match(tokens("goto +")))
        self.assertIsNone(pattern.match(tokens("goto banana")))
        self.assertIsNone(pattern.match(tokens("goto A1 A2")))

    def test_repeated_slot(self):
        pattern = self.pattern("{v} <- {v} * 2")
        self.assertIsNotNone(pattern.match(tokens("x1 <- x1 * 2")))
        self.assertIsNone(pattern.match(tokens("x1 <- x2 * 2")))

    def test_first_match_wins(self):
        table = MacroTable()
        first = table.define(self.pattern("bump {a}"), [])
        table.define(self.pattern("bump {b}"), [])

        definition, bindings = table.match(tokens("bump x1"))
        self.assertIs(definition, first)
        self.assertIn("a", bindings)

    def test_shadowing(self):
        table = MacroTable()
        first = table.define(self.pattern("swap {a} {b}"), [])
        same = table.define(self.pattern("swap {p} {q}"), [])
        repeated = table.define(self.pattern("swap {p} {p}"), [])

        self.assertIs(table.shadowing(same), first)
        self.assertIsNone(table.shadowing(repeated))


class TestExpander(unittest.TestCase):
    """Test hygienic expansion."""

    def test_context_allocation(self):
        ctx = ExpansionContext()
        ctx.observe_line(scan_line("[E1] z4 <- z4 + 1"))

        self.assertEqual(ctx.fresh_variable(), z(5))
        self.assertEqual(ctx.fresh_variable(), z(6))
        self.assertEqual(ctx.fresh_label("E"), Label("E", 2))
        self.assertEqual(ctx.fresh_label("L"), Label("A", 1))

    def test_literal_lines_unchanged(self):
        """Expanding literal instructions changes nothing."""
        lines = [scan_line(text) for text in (
            "[A1] x1 <- x1 - 1",
            "y <- y + 1",
            "if x1 != 0 goto A1",
        )]
        produced = Expander(MacroTable(), ExpansionContext()).expand(lines)

        self.assertEqual(produced, [
            Instruction(Opcode.DEC, x(1), label=Label("A", 1)),
            Instruction(Opcode.INC, OUTPUT),
            Instruction(Opcode.JNZ, x(1), Label("A", 1)),
        ])

    def test_hygiene(self):
        """Automatic variables are fresh per instance and avoid written ones."""
        program = compile_source("""
            z1 <- z1 + 1
            goto E1
            goto E1
        """)

        self.assertEqual(list(program), [
            Instruction(Opcode.INC, z(1)),
            Instruction(Opcode.INC, z(2)),
            Instruction(Opcode.JNZ, z(2), Label("E", 1)),
            Instruction(Opcode.INC, z(3)),
            Instruction(Opcode.JNZ, z(3), Label("E", 1)),
        ])

    def test_hygiene_across_macros(self):
        program = compile_source("""
            z2 <- z2 + 1
            y <- x1 + x2
            x4 <- y * x3
        """)
        written = {z(2)}
        auto = program.aux_variables() - written
        self.assertTrue(auto)
        self.assertTrue(all(var.index > 2 for var in auto))

    def test_auto_label_letters(self):
        """%E-style markers keep their letter, others fall back to A."""
        program = compile_source("x1 <- 0")

        self.assertEqual(program[0].label, Label("A", 1))
        jumps = [instr.target for instr in program if instr.opcode == Opcode.JNZ]
        self.assertIn(Label("E", 1), jumps)
        self.assertIn(Label("E", 2), jumps)

    def test_label_on_macro_invocation(self):
        """The invocation label goes on the first produced instruction."""
        program = compile_source("[B1] goto E1")
        self.assertEqual(program[0], Instruction(Opcode.INC, z(1), label=Label("B", 1)))

    def test_label_on_labeled_expansion(self):
        """A nop carries the label when the expansion starts with its own."""
        program = compile_source("[B1] x1 <- 0")
        self.assertEqual(program[0], Instruction(Opcode.NOP, label=Label("B", 1)))
        self.assertEqual(program[1].label, Label("A", 1))

    def test_label_on_empty_expansion(self):
        program = compile_bare("""
            @def nothing
            @end
            [C2] nothing
        """)
        self.assertEqual(list(program), [Instruction(Opcode.NOP, label=Label("C", 2))])

    def test_nested_expansion(self):
        program = compile_bare("""
            @def twice {v}
                    v <- v + 1
                    v <- v + 1
            @end
            @def four {v}
                    twice v
                    twice v
            @end
            four x2
        """)
        self.assertEqual(list(program), [Instruction(Opcode.INC, x(2))] * 4)

    def test_direct_recursion(self):
        with self.assertRaises(errors.RecursiveMacroError) as ctx:
            compile_bare("""
                @def loop {v}
                        loop v
                @end
                loop x1
            """)
        self.assertEqual(ctx.exception.chain, ("loop {v}", "loop {v}"))
        self.assertEqual(ctx.exception.location.line, 5)

    def test_indirect_recursion(self):
        with self.assertRaises(errors.RecursiveMacroError) as ctx:
            compile_bare("""
                @def ping {v}
                        pong v
                @end
                @def pong {v}
                        ping v
                @end
                ping y
            """)
        self.assertEqual(ctx.exception.chain, ("ping {v}", "pong {v}", "ping {v}"))

    def test_unused_recursive_macro(self):
        """Recursion is only an error when the macro is expanded."""
        program = compile_bare("""
            @def loop {v}
                    loop v
            @end
            y <- y + 1
        """)
        self.assertEqual(len(program), 1)

    def test_same_macro_twice_is_not_recursion(self):
        program = compile_bare("""
            @def bump {v}
                    v <- v + 1
            @end
            @def bump2 {v}
                    bump v
                    bump v
            @end
            bump2 y
        """)
        self.assertEqual(len(program), 2)

    def test_depth_ceiling(self):
        source = """
            @def m1 {v}
                    m2 v
            @end
            @def m2 {v}
                    m3 v
            @end
            @def m3 {v}
                    v <- v + 1
            @end
            m1 x1
        """
        with self.assertRaises(errors.ExpansionDepthError):
            compile_bare(source, max_expansion_depth=2)
        self.assertEqual(len(compile_bare(source, max_expansion_depth=3)), 1)


class TestCompiler(unittest.TestCase):
    """Test the compiler driver."""

    def test_unknown_line(self):
        with self.assertRaises(errors.SyntaxError) as ctx:
            compile_source("y <- y + 1\nfrobnicate x1\n")
        self.assertEqual(ctx.exception.location.line, 2)
        self.assertIn("frobnicate", str(ctx.exception))

    def test_error_in_expansion_names_user_line(self):
        with self.assertRaises(errors.SyntaxError) as ctx:
            compile_bare("""
                @def broken {v}
                        v <- v * v * v
                @end
                nop
                broken x1
            """)
        self.assertEqual(ctx.exception.location.line, 6)

    def test_duplicate_label(self):
        with self.assertRaises(errors.DuplicateLabelError) as ctx:
            compile_source("[A1] nop\n[A1] nop\n")
        self.assertEqual(ctx.exception.location.line, 2)
        self.assertEqual(ctx.exception.first_location.line, 1)

    def test_duplicate_label_from_macro_body(self):
        with self.assertRaises(errors.DuplicateLabelError):
            compile_bare("""
                @def mark
                [B5]    nop
                @end
                mark
                mark
            """)

    def test_macro_before_definition(self):
        program = compile_bare("""
            twice x1
            @def twice {v}
                    v <- v + 1
                    v <- v + 1
            @end
        """)
        self.assertEqual(list(program), [Instruction(Opcode.INC, x(1))] * 2)

    def test_directive_errors(self):
        bad_sources = [
            "@def a {v}\n@def b {v}\n@end\n@end\n",     # nested
            "nop\n@end\n",                              # stray @end
            "@def a {v}\nnop\n",                        # unterminated
            "@include other.s\n",                       # unknown
            "@def\nnop\n@end\n",                        # empty pattern
            "@def a {v}\n    b <- w + 1\n    {w} <- {w} + 1\n@end\n",  # unbound
        ]
        for source in bad_sources:
            with self.subTest(source=source):
                with self.assertRaises(errors.DirectiveError):
                    compile_source(source)

    def test_keyword_placeholder_rejected(self):
        """A slot named like an instruction word would rewrite that word."""
        with self.assertRaises(errors.DirectiveError) as ctx:
            compile_source("""
                @def hop {goto}
                        if x1 != 0 goto goto
                @end
            """)
        self.assertEqual(ctx.exception.location.line, 2)

    def test_user_macro_shadowed_by_prologue(self):
        """Prologue definitions come first; a clone of one is reported."""
        with self.assertLogs("slang.compiler", level="WARNING") as logs:
            program = compile_source("""
                @def goto {target}
                        nop
                @end
                goto E1
            """)
        self.assertIn("shadowed", logs.output[0])
        self.assertEqual([instr.opcode for instr in program], [Opcode.INC, Opcode.JNZ])

    def test_literal_beats_macro(self):
        program = compile_source("""
            @def {v} <- {v} + 1
                    nop
            @end
            y <- y + 1
        """)
        self.assertEqual(list(program), [Instruction(Opcode.INC, OUTPUT)])

    def test_compile_without_prologue(self):
        with self.assertRaises(errors.SyntaxError):
            compile_bare("goto E1")

    def test_locations(self):
        program = compile_source("\n\ny <- x1 + x2\n")
        self.assertTrue(all(instr.location.line == 3 for instr in program))

    def test_compiler_reuse(self):
        compiler = Compiler()
        first = compiler.compile("goto E1")
        second = compiler.compile("goto E1")
        self.assertEqual(list(first), list(second))

    def test_listing_recompiles(self):
        """The expanded listing is a fixed point of compilation."""
        program = compile_source("""
            [B1] y <- x1 * x2
                 if y < x3 goto B1
        """)
        again = compile_bare(program.listing())

        self.assertEqual(list(again), list(program))
        self.assertEqual(again.labels, program.labels)

    def test_labels_unique(self):
        program = compile_source("""
            y <- x1 / x2
            y <- y - x3
            x1 <- 0
        """)
        labels = [instr.label for instr in program if instr.label is not None]
        self.assertEqual(len(labels), len(set(labels)))
        self.assertEqual(len(labels), len(program.labels))

    def test_numbered_listing(self):
        program = assemble([Instruction(Opcode.NOP, label=Label("A", 1)),
                            Instruction(Opcode.INC, OUTPUT)])
        self.assertEqual(program.listing(numbered=True).splitlines(), [
            "0000:  [A1]    nop",
            "0001:          y <- y + 1",
        ])


def run_tests():
    """Run all tests."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    # Add test classes
    suite.addTests(loader.loadTestsFromTestCase(TestLexer))
    suite.addTests(loader.loadTestsFromTestCase(TestInstructionMatcher))
    suite.addTests(loader.loadTestsFromTestCase(TestMacroTable))
    suite.addTests(loader.loadTestsFromTestCase(TestExpander))
    suite.addTests(loader.loadTestsFromTestCase(TestCompiler))

    # Run
    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == "__main__":
    sys.exit(run_tests())
