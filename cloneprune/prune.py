"""Decide whether a cloned function can be pruned in favour of its base function.
"""

import sys
from abc import ABC
from typing import Any, Callable, Dict, List, Literal, Optional, TextIO

from .lang.c import parse as parse_c, build_registry
from .flatten import HostIR, VarFormHost, MalformedFunctionError, flatten
from .equivalence import Verdict, compare, describe_instruction, describe_verdict
from .candidates import CandidateMatcher, NameMatcher, select


#
# Decisions
#
class Decision(ABC):
    recommend_prune = False

    def __eq__(self, other):
        return type(self) == type(other) and vars(self) == vars(other)

    def __hash__(self):
        return hash((type(self), tuple(sorted(vars(self).items()))))

class NoFunctions(Decision):
    def __repr__(self):
        return "NoFunctions()"

class NoBaseFound(Decision):
    def __repr__(self):
        return "NoBaseFound()"

class NoCloneFound(Decision):
    def __init__(self, base_name: str):
        self.base_name = base_name

    def __repr__(self):
        return f"NoCloneFound({self.base_name})"

class Compared(Decision):
    def __init__(self, base_name: str, clone_name: str, verdict: Verdict, recommend_prune: bool):
        self.base_name = base_name
        self.clone_name = clone_name
        self.verdict = verdict
        self.recommend_prune = recommend_prune

    def __repr__(self):
        return f"Compared(base={self.base_name}, clone={self.clone_name}, verdict={self.verdict!r}, recommend_prune={self.recommend_prune})"


def describe_decision(decision: Decision) -> List[str]:
    if isinstance(decision, NoFunctions):
        return ["No functions recorded. Cannot analyze."]
    if isinstance(decision, NoBaseFound):
        return ["No base function found."]
    if isinstance(decision, NoCloneFound):
        return [f"No cloned function found for base function: {decision.base_name}"]
    assert isinstance(decision, Compared), f"Unknown decision type {type(decision)}"
    lines = [f"Base function: {decision.base_name}", f"Cloned function: {decision.clone_name}"]
    lines += describe_verdict(decision.verdict)
    if decision.recommend_prune:
        lines.append("The cloned function is equivalent to the base function. Pruning is recommended.")
    else:
        lines.append("The cloned function is not equivalent to the base function. Pruning is not recommended.")
    return lines


def _emit(sink: Optional[TextIO], lines: List[str]):
    if sink is None:
        return
    for line in lines:
        sink.write(line + "\n")


#####################################
#                                   #
#    Main interface to cloneprune   #
#                                   #
#####################################
def analyze(registry: Dict[str, Any],
            matcher: Optional[CandidateMatcher] = None,
            host: Optional[HostIR] = None,
            sink: Optional[TextIO] = None,
            operand_kinds: bool = False
           ) -> Decision:
    """Find a base function and a clone of it in the registry and decide if the clone is redundant.

    :param registry: maps function names to functions. It is only read.
    :param matcher: how base and clone functions are recognized. Defaults to NameMatcher().
    :param host: how functions are introspected. Defaults to the variable-form IR in cloneprune.ir.
    :param sink: a text stream that receives a human-readable trace of the analysis, if any.
    :param operand_kinds: if True, instructions must also agree on their operand kinds.

    :returns: a Decision. Missing candidates are ordinary outcomes, not errors.
    :raises MalformedFunctionError: if either candidate cannot be flattened.
    """
    if len(registry) == 0:
        decision = NoFunctions()
        _emit(sink, describe_decision(decision))
        return decision

    base_name, clone_name = select(registry, matcher)
    if base_name is None:
        decision = NoBaseFound()
        _emit(sink, describe_decision(decision))
        return decision
    if clone_name is None:
        decision = NoCloneFound(base_name)
        _emit(sink, describe_decision(decision))
        return decision

    sequences = []
    for name in (base_name, clone_name):
        try:
            sequences.append(flatten(registry[name], host, name))
        except MalformedFunctionError as e:
            _emit(sink, [f"Failed to read the IR of function {name}: {e}"])
            raise
    base_instructions, clone_instructions = sequences

    verdict = compare(base_instructions, clone_instructions, operand_kinds=operand_kinds)
    decision = Compared(base_name, clone_name, verdict, recommend_prune=verdict.is_equivalent)
    _emit(sink, describe_decision(decision))
    return decision


def analyze_source(code: str,
                   language: Literal["c"] = "c",
                   base_marker: str = "base",
                   clone_marker: str = "_clone",
                   operand_kinds: bool = False,
                   sink: Optional[TextIO] = None,
                   verbose: bool = False
                  ) -> Decision:
    """Parse source code and analyze the functions it defines.

    :param code: source code containing the base function and its clone.
    :param language: the language the code is written in. Only "c" is supported.
    :param base_marker: substring identifying possible base functions.
    :param clone_marker: suffix that, appended to the base function's name, identifies a clone.
    :param operand_kinds: if True, instructions must also agree on their operand kinds.
    :param sink: a text stream that receives the analysis trace.
    :param verbose: print the IR of the parsed functions and the trace to stdout if no sink is given.
    """
    language = language.lower()
    if language != "c":
        raise ValueError(f"Cloneprune cannot parse language {language}!")

    functions = parse_c(bytes(code, "utf8"))
    if verbose:
        for fn in functions:
            print(f"-------- {fn.name} --------")
            print(fn)
            print()
        if sink is None:
            sink = sys.stdout

    return analyze(build_registry(functions), NameMatcher(base_marker, clone_marker), sink=sink, operand_kinds=operand_kinds)


class ClonePruningPass:
    """Run the analysis once for each function the host is compiling.

    :param registry: the functions available to the analysis.
    :param enabled: whether the pass runs at all.
    :param gate: if given, decides per function whether the pass runs; overrides enabled.
    :param matcher: how base and clone functions are recognized.
    :param host: how functions are introspected.
    :param sink: receives the IR dump of each function and the analysis trace.
    :param operand_kinds: if True, instructions must also agree on their operand kinds.
    """
    name = "clone_pruning"

    def __init__(self,
                 registry: Dict[str, Any],
                 enabled: bool = True,
                 gate: Optional[Callable[[Any], bool]] = None,
                 matcher: Optional[CandidateMatcher] = None,
                 host: Optional[HostIR] = None,
                 sink: Optional[TextIO] = None,
                 operand_kinds: bool = False):
        self.registry = registry
        self.enabled = enabled
        self._gate = gate
        self.matcher = matcher
        self.host = host
        self.sink = sink
        self.operand_kinds = operand_kinds

    def gate(self, function: Any) -> bool:
        if self._gate is not None:
            return self._gate(function)
        return self.enabled

    def execute(self, function: Any) -> Optional[Decision]:
        if not self.gate(function):
            return None

        if self.sink is not None:
            host = self.host if self.host is not None else VarFormHost()
            instructions = flatten(function, host)
            name = host.function_name(function)
            _emit(self.sink, [f"Clone pruning pass is running on function: {name}"])
            for instruction in instructions:
                _emit(self.sink, describe_instruction(instruction, "IR stmt"))

        return analyze(self.registry, self.matcher, self.host, self.sink, self.operand_kinds)
