from .ir import Operand, Instruction, InstructionSequence, Function, BasicBlock
from .flatten import HostIR, VarFormHost, MalformedFunctionError, flatten
from .equivalence import Verdict, Equivalent, Mismatch, Incomparable, compare
from .candidates import CandidateMatcher, NameMatcher, PredicateMatcher, select
from .prune import Decision, NoFunctions, NoBaseFound, NoCloneFound, Compared, ClonePruningPass, analyze, analyze_source
