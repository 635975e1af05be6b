"""
Inferring which parameters a locally defined function mutates.

The body of the function is analyzed with its parameters seeded as
definitions. A parameter is mutated when it reaches, directly or through a
chain of dataflows, an UPDATE of some statement in the body: a store into an
attribute or subscript, a ``del``, an augmented assignment, or a call known
(or conservatively assumed) to mutate its arguments.
"""

import ast
import logging
from typing import List, Optional, Tuple

import networkx as nx

from pydefuse.language.location import location_of
from pydefuse.symbols.specs import FunctionSpec

from .defuse import all_parameters
from .refs import Ref, RefSet, ReferenceType, SymbolType, node_id

LOG = logging.getLogger(__name__)


def parameter_refs(args: ast.arguments) -> RefSet:
    """Every parameter of a signature as a DEFINITION owned by its ``ast.arg``."""
    return RefSet(
        Ref(SymbolType.VARIABLE, ReferenceType.DEFINITION, a.arg, location_of(a), a)
        for a in all_parameters(args)
    )


def parameter_positions(args: ast.arguments, is_method: bool) -> List[Tuple[int, ast.arg]]:
    """
    Number the positional parameters.

    Functions count from 1. Methods give the receiver position 0.
    """
    positional = list(args.posonlyargs) + list(args.args)
    offset = 0 if is_method else 1
    return [(i + offset, a) for i, a in enumerate(positional)]


class ParameterSideEffectAnalysis(object):
    """
    Builds the FunctionSpec of a function definition from the dataflow
    result of its body.
    """

    def __init__(self, definition, result, is_method: bool = False):
        self.definition = definition
        self.result = result
        self.is_method = is_method
        self.closure = nx.transitive_closure(result.graph(), reflexive=False)

    def reaches(self, source: ast.AST, target: ast.AST) -> bool:
        s, t = node_id(source), node_id(target)
        if s == t:
            return True
        return self.closure.has_edge(s, t)

    def mutates(self, param: ast.arg) -> Optional[Ref]:
        """Return the UPDATE ref a parameter flows into, if any."""
        for flow in self.result.dataflows:
            ref = flow.to_ref
            if ref is None or ref.level is not ReferenceType.UPDATE:
                continue
            if self.reaches(param, flow.from_node):
                return ref
        return None

    def run(self) -> FunctionSpec:
        updates = []
        for position, param in parameter_positions(self.definition.args, self.is_method):
            ref = self.mutates(param)
            if ref is not None:
                LOG.debug("%s mutates parameter %s (%s at %s)", self.definition.name, param.arg, ref.name, ref.location)
                updates.append(position)
        return FunctionSpec(self.definition.name, updates=updates)
