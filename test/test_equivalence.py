import unittest

from cloneprune.ir import *
from cloneprune.equivalence import *
from .utils import instructions


class TestCompare(unittest.TestCase):
    def test_equal_sequences(self):
        a = instructions("+", "call", "return")
        self.assertEqual(compare(a, a), Equivalent())
        self.assertEqual(compare(a, instructions("+", "call", "return")), Equivalent())

    def test_empty_sequences(self):
        self.assertEqual(compare((), ()), Equivalent())

    def test_length_gate(self):
        a = instructions("+", "return")
        b = instructions("+", "copy", "return")
        verdict = compare(a, b)
        self.assertEqual(verdict, Incomparable(2, 3))
        self.assertFalse(verdict.is_equivalent)

    def test_length_gate_even_when_prefix_matches(self):
        self.assertIsInstance(compare(instructions("return"), ()), Incomparable)
        self.assertIsInstance(compare((), instructions("return")), Incomparable)

    def test_first_mismatch(self):
        a = instructions("+", "*", "-", "return")
        b = instructions("+", "/", "+", "return")
        verdict = compare(a, b)

        self.assertIsInstance(verdict, Mismatch)
        self.assertEqual(verdict.position, 1)
        self.assertEqual(verdict.expected, a[1])
        self.assertEqual(verdict.actual, b[1])
        for j in range(verdict.position):
            self.assertEqual(a[j].opcode, b[j].opcode)

    def test_mismatch_carries_operands(self):
        a = (Instruction("+", [Operand(VARIABLE_KIND), Operand(PARAMETER_KIND), Operand(NUMBER_KIND)]),)
        b = (Instruction("-", [Operand(VARIABLE_KIND), Operand(PARAMETER_KIND)]),)
        verdict = compare(a, b)

        self.assertEqual(verdict.expected.operand_kinds, (VARIABLE_KIND, PARAMETER_KIND, NUMBER_KIND))
        self.assertEqual(verdict.actual.operand_kinds, (VARIABLE_KIND, PARAMETER_KIND))

    def test_operands_do_not_gate_by_default(self):
        a = (Instruction("+", [Operand(VARIABLE_KIND), Operand(PARAMETER_KIND)]),)
        b = (Instruction("+", [Operand(VARIABLE_KIND), Operand(NUMBER_KIND), Operand(NUMBER_KIND)]),)
        self.assertEqual(compare(a, b), Equivalent())

    def test_operand_kind_gate(self):
        a = (Instruction("return"), Instruction("+", [Operand(VARIABLE_KIND), Operand(PARAMETER_KIND)]))
        b = (Instruction("return"), Instruction("+", [Operand(VARIABLE_KIND), Operand(NUMBER_KIND)]))
        self.assertEqual(compare(a, b, operand_kinds=True), Mismatch(1, a[1], b[1]))
        self.assertEqual(compare(a, a, operand_kinds=True), Equivalent())

    def test_operand_kind_gate_still_reports_opcodes_first(self):
        a = instructions("+", "return")
        b = instructions("-", "return")
        self.assertEqual(compare(a, b, operand_kinds=True), Mismatch(0, a[0], b[0]))


class TestDescribe(unittest.TestCase):
    def test_describe_instruction(self):
        instruction = Instruction("call", [Operand(ABSENT), Operand(FUNCTION_KIND)])
        self.assertEqual(describe_instruction(instruction, "Stmt1"), [
            "Stmt1: code: call",
            "  Number of operands: 2",
            "  Operand 0: (null)",
            "  Operand 1: function",
        ])

    def test_describe_mismatch(self):
        a = (Instruction("+", [Operand(VARIABLE_KIND)]),)
        b = (Instruction("-", []),)
        lines = describe_verdict(compare(a, b))
        self.assertEqual(lines, [
            "Statements at position 0 are not equivalent.",
            "Stmt1: code: +",
            "  Number of operands: 1",
            "  Operand 0: variable",
            "Stmt2: code: -",
            "  Number of operands: 0",
        ])

    def test_describe_incomparable(self):
        lines = describe_verdict(Incomparable(2, 5))
        self.assertEqual(lines, ["Functions have different number of statements (2 vs 5)."])

    def test_describe_equivalent(self):
        self.assertEqual(describe_verdict(Equivalent()), ["Functions have equivalent statements."])


class TestInstructionModel(unittest.TestCase):
    def test_immutable(self):
        instruction = Instruction("+", [Operand(VARIABLE_KIND)])
        with self.assertRaises(AttributeError):
            instruction.opcode = "-"
        with self.assertRaises(AttributeError):
            instruction.operands[0].kind = NUMBER_KIND
        self.assertIsInstance(instruction.operands, tuple)

    def test_value_equality(self):
        self.assertEqual(Instruction("+", [Operand(VARIABLE_KIND)]), Instruction("+", (Operand(VARIABLE_KIND),)))
        self.assertNotEqual(Instruction("+", [Operand(VARIABLE_KIND)]), Instruction("+", [Operand(ABSENT)]))
        self.assertEqual(len({Instruction("return"), Instruction("return")}), 1)
