"""Interact with tree_sitter to lower C functions into variable-form IR.
"""

import itertools
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

import tree_sitter_c
from tree_sitter import Language, Parser, Node

from ..ir import *

C_LANGUAGE = Language(tree_sitter_c.language())
parser = Parser(C_LANGUAGE)

ARRAY_INITIALIZER_OP = "array_init"

class SemanticError(Exception):
    pass

class ParsingError(Exception):
    pass

class VariableRegistry:
    def __init__(self, parent_registry: 'VariableRegistry' = None):
        """Maps variable names to IR variable objects for one scope. Enclosing scopes are reached
        through parent_registry; the outermost registry holds the global variables.

        :param parent_registry: The scope that this scope is found in, or None for the global scope.
        """
        self.name2obj: Dict[str, Variable] = {}
        self.parent_registry = parent_registry
        # Temporaries are numbered per function, across all of its scopes.
        self.temporaries = parent_registry.temporaries if parent_registry is not None else itertools.count()

    def scopes(self):
        registry = self
        while registry is not None:
            yield registry
            registry = registry.parent_registry

    def variable_exists(self, variable_name: str) -> bool:
        return any(variable_name in registry.name2obj for registry in self.scopes())

    def lookup(self, variable_name: str) -> Variable:
        """Find the innermost variable with this name. Identifiers that were never declared are
        assumed to be global variables, since functions are processed apart from the rest of
        the translation unit.
        """
        for registry in self.scopes():
            if variable_name in registry.name2obj:
                return registry.name2obj[variable_name]
        newvar = GlobalVariable(variable_name)
        registry.name2obj[variable_name] = newvar # registry is now the global scope.
        return newvar

    def declare(self, variable_name: str) -> Variable:
        if variable_name in self.name2obj:
            raise SemanticError(f"Variable {variable_name} was already declared in this scope.")
        newvar = Variable(variable_name)
        self.name2obj[variable_name] = newvar
        return newvar

    def add_parameter(self, variable_name: str) -> Parameter:
        p = Parameter(variable_name)
        self.name2obj[variable_name] = p
        return p

    def create_temporary(self) -> Variable:
        temporary_variable_name = f"t{next(self.temporaries)}"
        while self.variable_exists(temporary_variable_name):
            temporary_variable_name = f"t{next(self.temporaries)}"
        variable = Variable(temporary_variable_name, is_temporary=True)
        self.name2obj[temporary_variable_name] = variable
        return variable

    def __repr__(self):
        variables = [repr(v) for v in self.name2obj.values()]
        outstr = "VariableRegistry(" + ", ".join(variables) + ")"
        if self.parent_registry is not None:
            outstr += " ->\n  " + repr(self.parent_registry)
        return outstr


def text(node: Node) -> str:
    return node.text.decode("utf8")

def syntax_children(node: Node) -> List[Node]:
    """Named children of a node, without comments."""
    return [child for child in node.named_children if child.type != "comment"]

def strip_parentheses(expression: Node) -> Node:
    while expression.type == "parenthesized_expression":
        expression = syntax_children(expression)[0]
    return expression

def convert_leaf(expression: Node, variable_registry: VariableRegistry) -> Optional[VarOperand]:
    if expression.type == "identifier":
        return variable_registry.lookup(text(expression))
    if expression.type == "number_literal":
        return NumberConstant(text(expression))
    if expression.type in ("string_literal", "concatenated_string"):
        return StringLiteral(text(expression)) # includes the quotes
    if expression.type == "char_literal":
        return CharLiteral(text(expression))
    if expression.type in ("true", "false"):
        return BoolLiteral(text(expression).lower())
    if expression.type == "null":
        return NullLiteral()
    return None

ASSIGNMENT_SUBOPS = {
    "+=": "+",
    "-=": "-",
    "*=": "*",
    "/=": "/",
    "%=": "%",
    "<<=": "<<",
    ">>=": ">>",
    "&=": "&",
    "^=": "^",
    "|=": "|"
}

def declarator_name(declarator: Node) -> str:
    """The name of the variable declared by a (possibly nested) declarator."""
    while declarator.type in ("init_declarator", "pointer_declarator", "array_declarator", "function_declarator", "parenthesized_declarator"):
        if declarator.type == "parenthesized_declarator":
            declarator = syntax_children(declarator)[0]
        else:
            declarator = declarator.child_by_field_name("declarator")

    if declarator.type != "identifier":
        raise NotImplementedError(f"Unexpected declarator type: {declarator.type}: {text(declarator)}")
    return text(declarator)


class FunctionLowering:
    """Lowers the statements of one function body into basic blocks.

    Blocks are laid out in the order they are started, which follows the order of the source.
    Operators are appended to the current block; control flow statements end it.
    """
    def __init__(self, variable_registry: VariableRegistry):
        self.scope = variable_registry
        self.blocks: List[BasicBlock] = []
        self.current = self.start_block(BasicBlock([], [], []))
        # (continue target, break target) for each enclosing loop, innermost last.
        self.loop_targets: List[Tuple[BasicBlock, BasicBlock]] = []

    def start_block(self, block: BasicBlock) -> BasicBlock:
        self.blocks.append(block)
        self.current = block
        return block

    def jump_to(self, block: BasicBlock) -> BasicBlock:
        self.current.add_successor(block)
        return self.start_block(block)

    def emit(self, operator: VarOperator):
        self.current.operators.append(operator)

    @contextmanager
    def nested_scope(self):
        outer = self.scope
        self.scope = VariableRegistry(outer)
        try:
            yield self.scope
        finally:
            self.scope = outer

    #
    # Expressions
    #
    def value(self, expression: Node) -> VarOperand:
        """A variable or constant holding the value of the expression."""
        return self.compute(expression, None)

    def compute(self, expression: Node, result: Optional[Variable]) -> VarOperand:
        """Emit the operators that evaluate expression.

        :param result: the variable to store the value in. If None, leaves are returned as they are
            and operations are stored in a new temporary.
        """
        expression = strip_parentheses(expression)

        leaf = convert_leaf(expression, self.scope)
        if leaf is not None:
            if result is None:
                return leaf
            self.emit(VarOperator(COPY_OP, result, [leaf]))
            return result

        if expression.type in ("assignment_expression", "update_expression"):
            if expression.type == "assignment_expression":
                value = self.assign(expression)
            else:
                value = self.update(expression)
            if result is None:
                return value
            self.emit(VarOperator(COPY_OP, result, [value]))
            return result

        if expression.type == "comma_expression":
            self.compute(expression.child_by_field_name("left"), None)
            return self.compute(expression.child_by_field_name("right"), result)

        if result is None:
            result = self.scope.create_temporary()
        opcode, operands, callee = self.operation(expression)
        if opcode == FUNCTION_CALL_OP:
            self.emit(FunctionVarOperator(callee, result, operands))
        else:
            self.emit(VarOperator(opcode, result, operands))
        return result

    def operation(self, expression: Node) -> Tuple[str, List[VarOperand], Optional[Union[str, Variable]]]:
        """Break a non-leaf expression into its opcode, its operands and, for calls, the callee."""
        if expression.type in ("unary_expression", "binary_expression"):
            opcode = text(expression.child_by_field_name("operator"))
            if expression.type == "unary_expression":
                operands = [self.value(expression.child_by_field_name("argument"))]
            else:
                operands = [self.value(expression.child_by_field_name("left")),
                            self.value(expression.child_by_field_name("right"))]
            return opcode, operands, None
        elif expression.type == "pointer_expression":
            opcode = text(expression.child_by_field_name("operator"))
            if opcode == "*":
                opcode = POINTER_DEREFERENCE_OP
            return opcode, [self.value(expression.child_by_field_name("argument"))], None
        elif expression.type == "call_expression":
            callee_node = strip_parentheses(expression.child_by_field_name("function"))
            if callee_node.type == "identifier" and not self.scope.variable_exists(text(callee_node)):
                # A call by name. Declared variables are function pointers.
                callee = text(callee_node)
            else:
                if callee_node.type == "pointer_expression" and text(callee_node.child_by_field_name("operator")) == "*":
                    callee_node = callee_node.child_by_field_name("argument") # (*fnptr)(args)
                callee = self.value(callee_node)
            arguments = [self.value(argument) for argument in syntax_children(expression.child_by_field_name("arguments"))]
            return FUNCTION_CALL_OP, arguments, callee
        elif expression.type == "conditional_expression":
            operands = [self.value(expression.child_by_field_name(field)) for field in ("condition", "consequence", "alternative")]
            return TERNARY_OP, operands, None
        elif expression.type == "field_expression":
            opcode = text(expression.child_by_field_name("operator")) # . or ->
            field = Field(text(expression.child_by_field_name("field")))
            return opcode, [self.value(expression.child_by_field_name("argument")), field], None
        elif expression.type == "cast_expression":
            cast_type = TypeName(text(expression.child_by_field_name("type")))
            return CAST_OP, [cast_type, self.value(expression.child_by_field_name("value"))], None
        elif expression.type == "subscript_expression":
            operands = [self.value(expression.child_by_field_name("argument")),
                        self.value(expression.child_by_field_name("index"))]
            return SUBSCRIPT_OP, operands, None
        elif expression.type == "sizeof_expression":
            type_descriptor = expression.child_by_field_name("type")
            if type_descriptor is not None:
                return SIZEOF_OP, [TypeName(text(type_descriptor))], None
            return SIZEOF_OP, [self.value(expression.child_by_field_name("value"))], None
        elif expression.type == "initializer_list":
            return ARRAY_INITIALIZER_OP, [self.value(element) for element in syntax_children(expression)], None
        elif expression.type == "ERROR":
            raise ParsingError(text(expression))
        else:
            raise NotImplementedError(f"No code yet implemented to handle expressions of type '{expression.type}'")

    def assign(self, expression: Node) -> VarOperand:
        lhs = strip_parentheses(expression.child_by_field_name("left"))
        rhs = expression.child_by_field_name("right")
        operator = text(expression.child_by_field_name("operator"))

        if lhs.type == "identifier":
            target = self.scope.lookup(text(lhs))
            if operator == "=":
                self.compute(rhs, target)
            else:
                self.emit(VarOperator(ASSIGNMENT_SUBOPS[operator], target, [target, self.value(rhs)]))
            return target

        # The lhs is a location such as p->x or a[i]; its value stands in for its address.
        address = self.value(lhs)
        stored = self.value(rhs)
        if operator != "=":
            combined = self.scope.create_temporary()
            self.emit(VarOperator(ASSIGNMENT_SUBOPS[operator], combined, [address, stored]))
            stored = combined
        self.emit(VarOperator(STORE_OP, None, [address, stored]))
        return stored

    def update(self, expression: Node) -> VarOperand:
        argument = strip_parentheses(expression.child_by_field_name("argument"))
        operand = self.value(argument)
        opcode = "+" if text(expression.child_by_field_name("operator")) == "++" else "-"
        prefix = expression.children[0].type in ("++", "--")
        if not isinstance(operand, Variable):
            raise SemanticError(f"Cannot apply update operator to expression \"{operand}\" of type \"{type(operand)}\"")

        previous = None
        if not prefix:
            # Postfix: the expression's value is the one before the update.
            previous = self.scope.create_temporary()
            self.emit(VarOperator(COPY_OP, previous, [operand]))

        if argument.type == "identifier":
            self.emit(VarOperator(opcode, operand, [operand, NumberConstant("1")]))
            updated = operand
        else:
            # A location such as p->x or a[i] must be written back, as in assign.
            updated = self.scope.create_temporary()
            self.emit(VarOperator(opcode, updated, [operand, NumberConstant("1")]))
            self.emit(VarOperator(STORE_OP, None, [operand, updated]))

        return updated if prefix else previous

    #
    # Statements
    #
    def declaration(self, declaration: Node):
        for declarator in declaration.children_by_field_name("declarator"):
            if declarator.type == "function_declarator":
                continue # a prototype
            variable = self.scope.declare(declarator_name(declarator))
            value = declarator.child_by_field_name("value") if declarator.type == "init_declarator" else None
            if value is not None:
                self.compute(value, variable)

    def loop_body(self, body: Node, continue_target: BasicBlock, break_target: BasicBlock):
        self.loop_targets.append((continue_target, break_target))
        self.statement(body)
        self.loop_targets.pop()

    def statement(self, statement: Node):
        if statement.type == "declaration":
            self.declaration(statement)
        elif statement.type == "expression_statement":
            for expression in syntax_children(statement): # empty for a lone ;
                self.compute(expression, None)
        elif statement.type == "compound_statement":
            with self.nested_scope():
                for substatement in syntax_children(statement):
                    self.statement(substatement)
        elif statement.type == "return_statement":
            returned = syntax_children(statement)
            operands = [self.value(returned[0])] if len(returned) > 0 else []
            self.emit(VarOperator(RETURN_OP, None, operands))
            self.start_block(BasicBlock([], [], [])) # Anything after a return is unreachable.
        elif statement.type in ("break_statement", "continue_statement"):
            if len(self.loop_targets) == 0:
                raise SemanticError(f"'{text(statement)}' is not inside a loop.")
            continue_target, break_target = self.loop_targets[-1]
            if statement.type == "break_statement":
                self.emit(VarOperator(BREAK_OP, None, []))
                self.current.add_successor(break_target)
            else:
                self.emit(VarOperator(CONTINUE_OP, None, []))
                self.current.add_successor(continue_target)
            self.start_block(BasicBlock([], [], []))
        elif statement.type == "if_statement":
            self.emit(VarOperator(IF_OP, None, [self.value(statement.child_by_field_name("condition"))]))
            branch = self.current
            join = BasicBlock([], [], [])

            branch.add_successor(self.start_block(BasicBlock([], [], [])))
            self.statement(statement.child_by_field_name("consequence"))
            self.current.add_successor(join)

            alternative = statement.child_by_field_name("alternative")
            if alternative is not None:
                if alternative.type == "else_clause":
                    alternative = syntax_children(alternative)[0]
                branch.add_successor(self.start_block(BasicBlock([], [], [])))
                self.statement(alternative)
                self.current.add_successor(join)
            else:
                branch.add_successor(join)
            self.start_block(join)
        elif statement.type == "while_statement":
            header = self.jump_to(BasicBlock([], [], []))
            self.emit(VarOperator(LOOP_OP, None, [self.value(statement.child_by_field_name("condition"))]))
            exit_block = BasicBlock([], [], [])

            header.add_successor(self.start_block(BasicBlock([], [], [])))
            header.add_successor(exit_block)
            self.loop_body(statement.child_by_field_name("body"), header, exit_block)
            self.current.add_successor(header)
            self.start_block(exit_block)
        elif statement.type == "do_statement":
            body = self.jump_to(BasicBlock([], [], []))
            condition_block = BasicBlock([], [], [])
            exit_block = BasicBlock([], [], [])

            self.loop_body(statement.child_by_field_name("body"), condition_block, exit_block)
            self.jump_to(condition_block)
            self.emit(VarOperator(LOOP_OP, None, [self.value(statement.child_by_field_name("condition"))]))
            self.current.add_successor(body)
            self.current.add_successor(exit_block)
            self.start_block(exit_block)
        elif statement.type == "for_statement":
            with self.nested_scope():
                initializer = statement.child_by_field_name("initializer")
                if initializer is not None:
                    if initializer.type == "declaration":
                        self.declaration(initializer)
                    else:
                        self.compute(initializer, None)

                header = self.jump_to(BasicBlock([], [], []))
                condition = statement.child_by_field_name("condition")
                condition_value = self.value(condition) if condition is not None else NumberConstant("1")
                self.emit(VarOperator(LOOP_OP, None, [condition_value]))
                update_block = BasicBlock([], [], [])
                exit_block = BasicBlock([], [], [])

                header.add_successor(self.start_block(BasicBlock([], [], [])))
                header.add_successor(exit_block)
                self.loop_body(statement.child_by_field_name("body"), update_block, exit_block)

                self.jump_to(update_block)
                update = statement.child_by_field_name("update")
                if update is not None:
                    self.compute(update, None)
                self.current.add_successor(header)
                self.start_block(exit_block)
        elif statement.type in ("comment", "struct_specifier", "type_definition"):
            pass
        elif statement.type == "ERROR":
            raise ParsingError(text(statement))
        else:
            raise NotImplementedError(f"No code for handling statements of type {statement.type}")


def process_function_declaration(declarator: Node, variable_registry: VariableRegistry) -> Tuple[str, List[Parameter]]:
    """Add the function's parameters to the VariableRegistry and return its name and parameters.

    :param declarator: The declarator of a function definition.
    """
    while declarator.type == "pointer_declarator":
        declarator = declarator.child_by_field_name("declarator")
    assert declarator.type == "function_declarator", f"Unexpected function declarator {declarator.type}"

    parameters = []
    for param_node in declarator.child_by_field_name("parameters").named_children:
        if param_node.type == "parameter_declaration":
            param_declarator = param_node.child_by_field_name("declarator")
            if param_declarator is not None: # None for f(void) and unnamed parameters
                parameters.append(variable_registry.add_parameter(declarator_name(param_declarator)))

    return declarator_name(declarator.child_by_field_name("declarator")), parameters

def error_check(node: Node):
    """Raise a ParsingError if tree-sitter had to recover from a syntax error anywhere in this AST.
    """
    if node.type == "ERROR" or node.is_missing:
        raise ParsingError(text(node) if node.type == "ERROR" else f"missing {node.type}")

    for child in node.children:
        error_check(child)

def remove_unreachable_blocks(fn: Function):
    """Remove basic blocks that are unreachable from the entry block, in place.
    """
    reachable: Set[BasicBlock] = set()
    worklist = [fn.entry_block]
    while len(worklist) > 0:
        block = worklist.pop()
        if block in reachable:
            continue
        reachable.add(block)
        worklist.extend(block.successors)

    if len(reachable) < len(fn.basic_blocks):
        for block in fn.basic_blocks:
            if block not in reachable:
                # unreachable blocks may have successors that are reachable.
                for successor in block.successors:
                    successor.predecessors.remove(block)
        fn.basic_blocks = [block for block in fn.basic_blocks if block in reachable]

def function_ast2varform(definition: Node) -> Function:
    """Converts a tree-sitter AST for a function definition into variable-form IR.

    :param definition: The root node of the function definition. Should be of type 'function_definition'.
    """
    assert definition.type == "function_definition"
    error_check(definition)

    global_registry = VariableRegistry()
    function_registry = VariableRegistry(global_registry)
    name, parameters = process_function_declaration(definition.child_by_field_name("declarator"), function_registry)

    lowering = FunctionLowering(function_registry)
    lowering.statement(definition.child_by_field_name("body"))

    fn = Function(name, lowering.blocks, parameters)
    remove_unreachable_blocks(fn)
    return fn

PREPROCESSOR_CONDITIONALS = {"preproc_if", "preproc_ifdef", "preproc_else", "preproc_elif", "preproc_elifdef"}

def function_definitions(node: Node) -> Iterator[Node]:
    """The function definitions among node's children in source order, including those in every
    branch of preprocessor conditionals.
    """
    for child in node.children:
        if child.type == "function_definition":
            yield child
        elif child.type in PREPROCESSOR_CONDITIONALS:
            yield from function_definitions(child)

def parse(code: bytes) -> List[Function]:
    """Parse C code using tree-sitter, and convert each function definition into variable-form IR.
    """
    ast = parser.parse(code)
    assert ast.root_node.type == "translation_unit"
    error_check(ast.root_node)
    return [function_ast2varform(definition) for definition in function_definitions(ast.root_node)]

def build_registry(functions: List[Function]) -> Dict[str, Function]:
    registry: Dict[str, Function] = {}
    for fn in functions:
        if fn.name in registry:
            raise ValueError(f"Function {fn.name} is defined more than once.")
        registry[fn.name] = fn
    return registry
