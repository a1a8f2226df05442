import unittest

from cloneprune.ir import *
from cloneprune.flatten import flatten, MalformedFunctionError, VarFormHost
from .utils import add_return, straight_line, ListHost


class TestVarFormFlattening(unittest.TestCase):
    def test_one_instruction_per_statement(self):
        fn = add_return("basefn")
        flat = flatten(fn)

        self.assertEqual(flat, (
            Instruction("+", [Operand(VARIABLE_KIND), Operand(PARAMETER_KIND), Operand(PARAMETER_KIND)]),
            Instruction(RETURN_OP, [Operand(ABSENT), Operand(VARIABLE_KIND)]),
        ))

    def test_zero_operand_and_control_statements(self):
        fn = straight_line("f", [
            VarOperator(LOOP_OP, None, [NumberConstant("1")]),
            VarOperator(BREAK_OP, None, []),
            VarOperator(RETURN_OP, None, []),
        ])
        flat = flatten(fn)

        self.assertEqual([i.opcode for i in flat], [LOOP_OP, BREAK_OP, RETURN_OP])
        self.assertEqual(flat[1].operand_kinds, (ABSENT,))
        self.assertEqual(flat[2].operand_kinds, (ABSENT,))

    def test_call_operands(self):
        pointer = Parameter("fp")
        t0, t1 = Variable("t0", is_temporary=True), Variable("t1", is_temporary=True)
        fn = straight_line("f", [
            FunctionVarOperator("printf", t0, [StringLiteral('"%d"'), GlobalVariable("count")]),
            FunctionVarOperator(pointer, t1, [CharLiteral("'c'")]),
        ])
        flat = flatten(fn)

        self.assertEqual(flat[0].operand_kinds, (TEMPORARY_KIND, FUNCTION_KIND, STRING_KIND, GLOBAL_KIND))
        self.assertEqual(flat[1].operand_kinds, (TEMPORARY_KIND, PARAMETER_KIND, CHAR_KIND))

    def test_block_order(self):
        first = BasicBlock([VarOperator(IF_OP, None, [Parameter("c")])], [], [])
        second = BasicBlock([VarOperator(COPY_OP, Variable("x"), [NumberConstant("1")])], [], [])
        third = BasicBlock([VarOperator(RETURN_OP, None, [])], [], [])
        first.add_successor(second)
        first.add_successor(third)
        second.add_successor(third)
        fn = Function("f", [first, second, third])

        self.assertEqual([i.opcode for i in flatten(fn)], [IF_OP, COPY_OP, RETURN_OP])

    def test_empty_blocks_contribute_nothing(self):
        fn = Function("f", [BasicBlock([], [], []), BasicBlock([VarOperator(RETURN_OP, None, [])], [], [])])
        self.assertEqual([i.opcode for i in flatten(fn)], [RETURN_OP])

    def test_deterministic(self):
        fn = add_return("basefn")
        self.assertEqual(flatten(fn), flatten(fn))
        self.assertIsInstance(flatten(fn), tuple)

    def test_does_not_modify_function(self):
        fn = add_return("basefn")
        before = repr(fn)
        flatten(fn, VarFormHost())
        self.assertEqual(repr(fn), before)


class TestHostFlattening(unittest.TestCase):
    def test_absent_operands(self):
        fn = ("f", [[("gimple_assign", ["ssa_name", None, "integer_cst"])], [("gimple_return", [None])]])
        flat = flatten(fn, ListHost())

        self.assertEqual(flat[0], Instruction("gimple_assign", [Operand("ssa_name"), Operand(ABSENT), Operand("integer_cst")]))
        self.assertEqual(flat[1], Instruction("gimple_return", [Operand(ABSENT)]))

    def test_inconsistent_operand_count(self):
        fn = ("broken_fn", [[("gimple_assign", ["ssa_name"])]])
        with self.assertRaises(MalformedFunctionError) as context:
            flatten(fn, ListHost(count_offset=1))
        self.assertEqual(context.exception.function_name, "broken_fn")
        self.assertIn("broken_fn", str(context.exception))

    def test_underreported_operand_count(self):
        fn = ("broken_fn", [[("gimple_assign", ["ssa_name", "var_decl", "integer_cst"])]])
        with self.assertRaises(MalformedFunctionError) as context:
            flatten(fn, ListHost(count_offset=-2))
        self.assertEqual(context.exception.function_name, "broken_fn")

    def test_negative_operand_count(self):
        fn = ("broken_fn", [[("gimple_nop", [])]])
        with self.assertRaises(MalformedFunctionError):
            flatten(fn, ListHost(count_offset=-1))

    def test_failing_block_enumeration(self):
        class FailingHost(ListHost):
            def basic_blocks(self, function):
                raise RuntimeError("CFG not built")

        with self.assertRaises(MalformedFunctionError) as context:
            flatten(("no_cfg", []), FailingHost())
        self.assertEqual(context.exception.function_name, "no_cfg")

    def test_unnamed_function(self):
        with self.assertRaises(MalformedFunctionError) as context:
            flatten(None, name="registered_fn")
        self.assertEqual(context.exception.function_name, "registered_fn")
