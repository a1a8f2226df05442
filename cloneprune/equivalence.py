"""Positional comparison of flattened instruction sequences.
"""

from abc import ABC
from typing import List, Sequence

from .ir import Instruction


#
# Verdicts
#
class Verdict(ABC):
    @property
    def is_equivalent(self) -> bool:
        return False

class Equivalent(Verdict):
    @property
    def is_equivalent(self) -> bool:
        return True

    def __eq__(self, other):
        return isinstance(other, Equivalent)

    def __hash__(self):
        return hash(Equivalent)

    def __repr__(self):
        return "Equivalent()"

class Mismatch(Verdict):
    """The first position at which the two sequences differ.

    :param position: index of the first differing instruction.
    :param expected: the instruction at that position in the first (base) sequence.
    :param actual: the instruction at that position in the second (clone) sequence.
    """
    def __init__(self, position: int, expected: Instruction, actual: Instruction):
        self.position = position
        self.expected = expected
        self.actual = actual

    def __eq__(self, other):
        return isinstance(other, Mismatch) and (self.position, self.expected, self.actual) == (other.position, other.expected, other.actual)

    def __hash__(self):
        return hash((self.position, self.expected, self.actual))

    def __repr__(self):
        return f"Mismatch(position={self.position}, expected={self.expected!r}, actual={self.actual!r})"

class Incomparable(Verdict):
    """The sequences have different lengths, so no positional comparison was attempted."""
    def __init__(self, expected_length: int, actual_length: int):
        self.expected_length = expected_length
        self.actual_length = actual_length

    def __eq__(self, other):
        return isinstance(other, Incomparable) and (self.expected_length, self.actual_length) == (other.expected_length, other.actual_length)

    def __hash__(self):
        return hash((self.expected_length, self.actual_length))

    def __repr__(self):
        return f"Incomparable({self.expected_length} vs {self.actual_length})"


def compare(a: Sequence[Instruction], b: Sequence[Instruction], operand_kinds: bool = False) -> Verdict:
    """Compare two instruction sequences position by position.

    Only opcodes decide equivalence unless operand_kinds is set. Operands of the first mismatching
    pair are still reported in the Mismatch so they can be shown as diagnostics.

    :param a: the base function's instructions.
    :param b: the clone's instructions.
    :param operand_kinds: if True, also require the operand kinds at each position to match.
    """
    if len(a) != len(b):
        return Incomparable(len(a), len(b))

    for i, (expected, actual) in enumerate(zip(a, b)):
        if expected.opcode != actual.opcode:
            return Mismatch(i, expected, actual)
        if operand_kinds and expected.operand_kinds != actual.operand_kinds:
            return Mismatch(i, expected, actual)

    return Equivalent()


#
# Diagnostic text
#
def describe_instruction(instruction: Instruction, label: str) -> List[str]:
    lines = [f"{label}: code: {instruction.opcode}",
             f"  Number of operands: {len(instruction.operands)}"]
    for j, operand in enumerate(instruction.operands):
        if operand.is_absent:
            lines.append(f"  Operand {j}: (null)")
        else:
            lines.append(f"  Operand {j}: {operand.kind}")
    return lines

def describe_verdict(verdict: Verdict) -> List[str]:
    if isinstance(verdict, Incomparable):
        return [f"Functions have different number of statements ({verdict.expected_length} vs {verdict.actual_length})."]
    if isinstance(verdict, Mismatch):
        return [f"Statements at position {verdict.position} are not equivalent."] + \
               describe_instruction(verdict.expected, "Stmt1") + \
               describe_instruction(verdict.actual, "Stmt2")
    assert isinstance(verdict, Equivalent), f"Unknown verdict type {type(verdict)}"
    return ["Functions have equivalent statements."]
