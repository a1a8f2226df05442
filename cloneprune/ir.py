"""Intermediate representations used for clone pruning.

The first half of this module is the host-side IR: functions made of basic blocks of
variable-form operators, as produced by a compiler frontend. The second half is the
flattened instruction model that functions are compared in.
"""

from abc import ABC
from typing import List, Union, Iterator, Optional, Literal, Tuple, Iterable

#
# Operand kinds
#
NUMBER_KIND = "number"
STRING_KIND = "string"
CHAR_KIND = "char"
BOOL_KIND = "bool"
NULL_KIND = "null"
FIELD_KIND = "field"
TYPE_KIND = "type"
VARIABLE_KIND = "variable"
TEMPORARY_KIND = "temporary"
PARAMETER_KIND = "parameter"
GLOBAL_KIND = "global"
FUNCTION_KIND = "function"
ABSENT = "none"

#
# Constants
#
class Constant(ABC):
    kind = None

    def __repr__(self):
        return self.value

    def __hash__(self):
        return hash(self.value)

    def __eq__(self, other):
        return type(self) == type(other) and self.value == other.value

class NumberConstant(Constant):
    kind = NUMBER_KIND

    def __init__(self, value: str):
        self.value = value

class CharLiteral(Constant):
    kind = CHAR_KIND

    def __init__(self, value: str):
        self.value = value

class StringLiteral(Constant):
    kind = STRING_KIND

    def __init__(self, value: str):
        self.value = value

class BoolLiteral(Constant):
    kind = BOOL_KIND

    def __init__(self, value: Literal["true", "false"]):
        self.value = value

class NullLiteral(Constant):
    kind = NULL_KIND

    def __init__(self):
        self.value = "NULL"

# Struct field
class Field(Constant):
    kind = FIELD_KIND

    def __init__(self, value: str):
        self.value = value

# Type name for casts and sizeof
class TypeName(Constant):
    kind = TYPE_KIND

    def __init__(self, value: str):
        self.value = value

#
# Variables
#
class Variable(ABC):
    def __init__(self, name: str, is_temporary: bool=False):
        self.name = name
        self.is_temporary = is_temporary

    @property
    def kind(self) -> str:
        return TEMPORARY_KIND if self.is_temporary else VARIABLE_KIND

    def __eq__(self, other: 'Variable'):
        return id(self) == id(other)

    def __repr__(self):
        return self.name

    def __hash__(self):
        return id(self)

class Parameter(Variable):
    def __init__(self, name: str):
        super().__init__(name, is_temporary=False)

    @property
    def kind(self) -> str:
        return PARAMETER_KIND

class GlobalVariable(Variable):
    def __init__(self, name: str):
        super().__init__(name, is_temporary=False)

    @property
    def kind(self) -> str:
        return GLOBAL_KIND

VarOperand = Union[Constant, Variable]

#
# Opcodes
#
FUNCTION_CALL_OP = "call"
POINTER_DEREFERENCE_OP = "*_dereference" # To disambiguate from multiplication, we use this name
TERNARY_OP = "ternary"
COPY_OP = "copy"
STORE_OP = "store"
CAST_OP = "cast"
SUBSCRIPT_OP = "[]"
SIZEOF_OP = "sizeof"
RETURN_OP = "return"
IF_OP = "if"
LOOP_OP = "loop"
BREAK_OP = "break"
CONTINUE_OP = "continue"

#
# Operators
#
class VarOperator:
    """A single three-address statement. Its inputs are variables and constants; its output
    is stored in a variable.

    :param op: a symbol identifying what unit of computation this operator represents.
    :param result: the variable storing the result of the computation. None for control flow
        statements and other operators whose result is not stored anywhere.
    :param operands: the input arguments to this operator.
    """
    def __init__(self, op: str, result: Optional[Variable], operands: List[VarOperand]):
        self.op = op
        self.result = result
        self.operands = operands

    def __repr__(self):
        op_names = [repr(op) for op in self.operands]
        if self.result is None:
            return f"{self.op} " + " ".join(op_names)
        return f"{self.result} = {self.op} " + " ".join(op_names)

class FunctionVarOperator(VarOperator):
    """A function call. Calls through a variable (a function pointer) store that variable as the name.

    :param name: the name of the function, or the variable holding a pointer to it.
    :param result: the variable storing the return value, if any.
    :param operands: the arguments to the function.
    """
    def __init__(self, name: Union[str, Variable], result: Optional[Variable], operands: List[VarOperand]):
        super().__init__(FUNCTION_CALL_OP, result, operands)
        self.name = name

    def __repr__(self):
        op_names = [repr(op) for op in self.operands]
        name_repr = f"(*{self.name})" if isinstance(self.name, Variable) else self.name
        return f"{self.result} = {name_repr}(" + ", ".join(op_names) + ")"

#
# Basic Blocks
#
class BasicBlock:
    id_counter = 0

    def __init__(self, operators: List[VarOperator], predecessors: List['BasicBlock'], successors: List['BasicBlock']):
        self.operators = operators
        self.predecessors = predecessors
        self.successors = successors
        self.id = BasicBlock.id_counter
        BasicBlock.id_counter += 1

    def add_successor(self, successor: 'BasicBlock'):
        self.successors.append(successor)
        successor.predecessors.append(self)

    def __iter__(self) -> Iterator[VarOperator]:
        """Iterate over the operators in basic block in order.
        """
        for operator in self.operators:
            yield operator

    def __repr__(self):
        predecessors = ", ".join([str(p.id) for p in self.predecessors])
        operators = "\n".join([repr(operator) for operator in self])
        successors = ", ".join([str(s.id) for s in self.successors])

        return f"predecessors: {predecessors}\n ID = {self.id}\n{operators}\nsuccessors: {successors}"

    def __eq__(self, other):
        return id(self) == id(other)

    def __hash__(self):
        return id(self)

#
# Function
#
class Function:
    def __init__(self, name: str, basic_blocks: List[BasicBlock], parameters: Optional[List[Parameter]] = None):
        """Initialize a Function object.

        Precondition: The first element of basic_blocks is the functions' entry block.
        """
        assert(len(basic_blocks) > 0)
        self.name = name
        self.entry_block = basic_blocks[0]
        self.basic_blocks = basic_blocks
        self.parameters = parameters if parameters is not None else []

    def __iter__(self) -> Iterator[BasicBlock]:
        """Iterate over the functions' basic blocks in layout order, starting with the entry block.
        """
        for block in self.basic_blocks:
            yield block

    def __repr__(self) -> str:
        declaration = "function " + self.name + "(" + ", ".join([repr(p) for p in self.parameters]) + ")\n"
        block_representations = [repr(b) for b in self.basic_blocks]
        return declaration + "\n\n".join(block_representations)

#
# Flattened instructions
#
class Operand:
    """The comparable part of an operand: its syntactic category, not its value."""
    __slots__ = ("kind",)

    def __init__(self, kind: str):
        object.__setattr__(self, "kind", kind)

    def __setattr__(self, name, value):
        raise AttributeError(f"Operand is immutable; cannot set '{name}'.")

    @property
    def is_absent(self) -> bool:
        return self.kind == ABSENT

    def __eq__(self, other):
        return isinstance(other, Operand) and self.kind == other.kind

    def __hash__(self):
        return hash(self.kind)

    def __repr__(self):
        return f"Operand({self.kind})"

class Instruction:
    """One flattened IR statement: an opcode and its operand descriptors in positional order.
    """
    __slots__ = ("opcode", "operands")

    def __init__(self, opcode: str, operands: Iterable[Operand] = ()):
        object.__setattr__(self, "opcode", opcode)
        object.__setattr__(self, "operands", tuple(operands))

    def __setattr__(self, name, value):
        raise AttributeError(f"Instruction is immutable; cannot set '{name}'.")

    @property
    def operand_kinds(self) -> Tuple[str, ...]:
        return tuple(operand.kind for operand in self.operands)

    def __eq__(self, other):
        return isinstance(other, Instruction) and self.opcode == other.opcode and self.operands == other.operands

    def __hash__(self):
        return hash((self.opcode, self.operands))

    def __repr__(self):
        return " ".join([self.opcode] + [operand.kind for operand in self.operands])

InstructionSequence = Tuple[Instruction, ...]
