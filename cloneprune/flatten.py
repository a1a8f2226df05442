"""Flatten a function's control flow graph into a single sequence of comparable instructions.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from .ir import *


class MalformedFunctionError(Exception):
    """The host could not produce a consistent instruction stream for a function."""
    def __init__(self, function_name: str, message: str):
        super().__init__(f"Cannot flatten function {function_name}: {message}")
        self.function_name = function_name


class HostIR(ABC):
    """The capabilities that the flattener needs from a compiler's IR.

    Implementations must enumerate blocks and statements deterministically: the same function
    must always yield the same flattening for a given IR snapshot.
    """
    @abstractmethod
    def function_name(self, function: Any) -> str:
        ...

    @abstractmethod
    def basic_blocks(self, function: Any) -> Iterable[Any]:
        """The function's basic blocks in the host's canonical block order."""
        ...

    @abstractmethod
    def statements(self, block: Any) -> Iterable[Any]:
        """The statements of a basic block in program order."""
        ...

    @abstractmethod
    def opcode(self, statement: Any) -> str:
        ...

    @abstractmethod
    def num_operands(self, statement: Any) -> int:
        ...

    @abstractmethod
    def operand_kind(self, statement: Any, index: int) -> Optional[str]:
        """The category of the operand in slot index, or None if the slot is empty.

        Raises IndexError if index is not smaller than num_operands(statement).
        """
        ...


class VarFormHost(HostIR):
    """HostIR for the variable-form functions in cloneprune.ir.

    Slot 0 of every statement holds the result variable (empty if the result is not stored).
    Calls then have the callee, followed by the arguments. Other operators follow slot 0 with
    their operands.
    """
    def function_name(self, function: Function) -> str:
        return function.name

    def basic_blocks(self, function: Function) -> Iterable[BasicBlock]:
        return function

    def statements(self, block: BasicBlock) -> Iterable[VarOperator]:
        return block

    def opcode(self, statement: VarOperator) -> str:
        return statement.op

    def num_operands(self, statement: VarOperator) -> int:
        return len(self._slots(statement))

    def operand_kind(self, statement: VarOperator, index: int) -> Optional[str]:
        operand = self._slots(statement)[index]
        if operand is None:
            return None
        if isinstance(operand, str):
            return FUNCTION_KIND
        return operand.kind

    @staticmethod
    def _slots(statement: VarOperator) -> List[Any]:
        if isinstance(statement, FunctionVarOperator):
            return [statement.result, statement.name] + list(statement.operands)
        return [statement.result] + list(statement.operands)


def flatten(function: Any, host: Optional[HostIR] = None, name: Optional[str] = None) -> InstructionSequence:
    """Convert a function into a linear sequence of instructions.

    Every statement in every basic block yields exactly one instruction, including control flow
    statements and statements without operands.

    :param function: the function to flatten.
    :param host: the IR introspection capability. Defaults to VarFormHost.
    :param name: the name the function is registered under, used in errors if the host cannot name it.
    :returns: a tuple of instructions in canonical block order, then program order.
    :raises MalformedFunctionError: if the host reports inconsistent statement data.
    """
    if host is None:
        host = VarFormHost()
    try:
        name = host.function_name(function)
    except Exception as e:
        raise MalformedFunctionError(name if name is not None else repr(function), f"{type(e).__name__}: {e}") from e

    instructions: List[Instruction] = []
    try:
        for block in host.basic_blocks(function):
            for statement in host.statements(block):
                instructions.append(_flatten_statement(statement, host, name))
    except MalformedFunctionError:
        raise
    except Exception as e:
        raise MalformedFunctionError(name, f"{type(e).__name__}: {e}") from e

    return tuple(instructions)


def _flatten_statement(statement: Any, host: HostIR, name: str) -> Instruction:
    opcode = host.opcode(statement)
    count = host.num_operands(statement)
    if not isinstance(count, int) or isinstance(count, bool) or count < 0:
        raise MalformedFunctionError(name, f"statement '{opcode}' reports an invalid operand count: {count!r}")

    operands = []
    for index in range(count):
        try:
            kind = host.operand_kind(statement, index)
        except IndexError as e:
            raise MalformedFunctionError(name, f"statement '{opcode}' reports {count} operands but has no operand {index}") from e
        operands.append(Operand(ABSENT if kind is None else kind))

    try:
        host.operand_kind(statement, count)
    except IndexError:
        return Instruction(opcode, operands)
    raise MalformedFunctionError(name, f"statement '{opcode}' reports {count} operands but has more")
