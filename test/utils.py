"""Helpers for building small variable-form functions by hand.
"""

from typing import List, Optional

from cloneprune.ir import *
from cloneprune.flatten import HostIR


def straight_line(name: str, operators: List[VarOperator]) -> Function:
    """A function consisting of a single basic block."""
    return Function(name, [BasicBlock(operators, [], [])])

def add_return(name: str, opcode: str = "+") -> Function:
    """x = a <opcode> b; return x;"""
    a, b = Parameter("a"), Parameter("b")
    x = Variable("x")
    return Function(name, [BasicBlock([
        VarOperator(opcode, x, [a, b]),
        VarOperator(RETURN_OP, None, [x]),
    ], [], [])], [a, b])

def instructions(*opcodes: str) -> InstructionSequence:
    return tuple(Instruction(opcode) for opcode in opcodes)


class ListHost(HostIR):
    """A host whose functions are (name, [[statement, ...], ...]) pairs and whose statements are
    (opcode, [operand kind or None, ...]) pairs. count_offset makes statements misreport how many
    operands they have.
    """
    def __init__(self, count_offset: int = 0):
        self.count_offset = count_offset

    def function_name(self, function) -> str:
        return function[0]

    def basic_blocks(self, function):
        return function[1]

    def statements(self, block):
        return block

    def opcode(self, statement) -> str:
        return statement[0]

    def num_operands(self, statement) -> int:
        return len(statement[1]) + self.count_offset

    def operand_kind(self, statement, index: int) -> Optional[str]:
        return statement[1][index]
