"""
The worklist dataflow analyzer.

**Fixpoint:**

Every block keeps the DefUse reaching its entry (its input) and the DefUse
holding after its statements (its output). Blocks are processed in
enumeration order from a worklist. A block's input only grows: it is its
stored input united with its predecessors' outputs. Each statement's refs
are linked to the same-named refs of the running state (producing
dataflows) and then rolled into it with the gen/kill rules of
``DefUse.update``. When a block's output changes, its successors are queued
again. Control dependences mined from the CFG are added at the end.

**Caching:**

Def/use results are cached per statement location for the lifetime of the
analyzer, and the body analysis of each nested function runs once. Trees
without an origin tag are tagged ``<tree N>`` by ``analyze_tree`` so two
sources analyzed in one session never share cache entries. One analyzer is
one session; do not share it between threads.
"""

import ast
import logging
from typing import Any, Dict, List, Optional

import networkx as nx

from pydefuse.analysis.cfg.construction import build_cfg
from pydefuse.analysis.cfg.graph import ControlFlowGraph
from pydefuse.application.config import AnalysisConfig, load_bundled_specs
from pydefuse.application.errors import require
from pydefuse.language.location import location_of, location_string, tag_origin
from pydefuse.symbols.specs import ClassType, FunctionSpec, TypeSpec
from pydefuse.symbols.table import SymbolTable

from .defuse import CallAnalysis, DefAnnotationAnalysis, StatementDefs, StatementUses, walrus_defs
from .refs import Dataflow, DataflowSet, DefUse, ReferenceType, RefSet, node_id
from .sideeffects import ParameterSideEffectAnalysis, parameter_refs

LOG = logging.getLogger(__name__)

_FUNCTIONS = (ast.FunctionDef, ast.AsyncFunctionDef)


class DataflowAnalysisResult(object):
    """
    Dataflows of an analyzed scope and its free references.

    Attributes:
        dataflows: Def/use and control dependence edges between statements
        undefined_refs: Uses never matched to a reaching definition or update
    """

    def __init__(self, dataflows: DataflowSet, undefined_refs: RefSet):
        self.dataflows = dataflows
        self.undefined_refs = undefined_refs
        self._graph = None

    def graph(self) -> nx.DiGraph:
        """The dataflows as a graph over statement ids; nodes carry ``node``."""
        if self._graph is None:
            g = nx.DiGraph()
            for flow in self.dataflows:
                f, t = node_id(flow.from_node), node_id(flow.to_node)
                g.add_node(f, node=flow.from_node)
                g.add_node(t, node=flow.to_node)
                g.add_edge(f, t)
            self._graph = g
        return self._graph

    def _ordered(self, reached) -> List[ast.AST]:
        g = self.graph()
        if not reached:
            return []
        order_key = lambda n: location_of(g.nodes[n]["node"]).sort_key()
        sub = g.subgraph(reached)
        try:
            ordered = list(nx.lexicographical_topological_sort(sub, key=order_key))
        except nx.NetworkXUnfeasible:
            ordered = sorted(reached, key=order_key)
        return [g.nodes[n]["node"] for n in ordered]

    def dependents(self, statement: ast.AST) -> List[ast.AST]:
        """Statements depending on statement, directly or transitively."""
        sid = node_id(statement)
        g = self.graph()
        if sid not in g:
            return []
        return self._ordered(nx.descendants(g, sid) - {sid})

    def dependencies(self, statement: ast.AST) -> List[ast.AST]:
        """Statements statement depends on, directly or transitively."""
        sid = node_id(statement)
        g = self.graph()
        if sid not in g:
            return []
        return self._ordered(nx.ancestors(g, sid) - {sid})


class DataflowAnalyzer(object):
    """
    A def/use dataflow analysis session.

    Args:
        specs: Spec source mapping module names to module specs; the bundled
            specs are used when omitted
        symbol_table: An existing table to use instead of building one
    """

    def __init__(self, specs: Optional[Dict[str, Any]] = None, symbol_table: Optional[SymbolTable] = None):
        if symbol_table is None:
            symbol_table = SymbolTable(specs if specs is not None else load_bundled_specs())
        self.symbol_table = symbol_table
        self._defuse_cache: Dict[str, DefUse] = {}
        self._function_cache: Dict[str, DataflowAnalysisResult] = {}
        self._anonymous_trees = 0
        self._defs = StatementDefs(self)
        self._uses = StatementUses(self)

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> "DataflowAnalyzer":
        return cls(config.load_specs())

    def get_defuse_for_statement(self, statement: ast.AST, defs_for_method_resolution: RefSet = None) -> DefUse:
        key = location_string(require(statement, "statement"))
        cached = self._defuse_cache.get(key)
        if cached is not None:
            return cached

        defs = self.get_defs(statement, defs_for_method_resolution or RefSet())
        result = DefUse(
            defs.filter(lambda r: r.level is ReferenceType.DEFINITION),
            defs.filter(lambda r: r.level is ReferenceType.UPDATE),
            self.get_uses(statement),
        )
        self._defuse_cache[key] = result
        return result

    def get_defs(self, statement: ast.AST, defs_for_method_resolution: RefSet) -> RefSet:
        defs = CallAnalysis(statement, self.symbol_table, defs_for_method_resolution).run()
        defs = defs.union(DefAnnotationAnalysis(statement).run(), walrus_defs(statement))
        return defs.union(self._defs(statement, defs_for_method_resolution))

    def get_uses(self, statement: ast.AST) -> RefSet:
        return self._uses(statement)

    def analyze(self, cfg: ControlFlowGraph, seed_refs: Optional[RefSet] = None) -> DataflowAnalysisResult:
        """
        Run the fixpoint over a CFG.

        Args:
            cfg: The graph to analyze
            seed_refs: Refs defined on entry, such as a function's parameters

        Returns:
            The dataflows and free references of the graph
        """
        require(cfg, "cfg")
        blocks = cfg.blocks
        work = list(reversed(blocks))
        inputs = {b.id: DefUse() for b in blocks}
        outputs = {b.id: DefUse() for b in blocks}
        if seed_refs is not None:
            inputs[cfg.entry.id].update(DefUse(seed_refs))

        dataflows = DataflowSet()
        undefined_refs = RefSet()
        rounds = 0

        while work:
            block = work.pop()
            rounds += 1
            running = inputs[block.id]
            for pred in cfg.predecessors(block):
                if pred.id in outputs:
                    running = running.union(outputs[pred.id])
            inputs[block.id] = running.copy()

            for statement in block.statements:
                defuse = self.get_defuse_for_statement(statement, running.defs)
                flows, defined = defuse.create_flows_from(running)
                dataflows = dataflows.union(flows)
                undefined_refs = undefined_refs.union(defuse.uses).minus(defined)
                running.update(defuse)

            if not outputs[block.id].equals(running):
                outputs[block.id] = running
                for succ in cfg.successors(block):
                    if succ not in work:
                        work.append(succ)

        LOG.debug("dataflow fixpoint over %d blocks took %d steps", len(blocks), rounds)

        cfg.visit_control_dependencies(lambda control, stmt: dataflows.add(Dataflow(control, stmt)))
        return DataflowAnalysisResult(dataflows, undefined_refs)

    def analyze_tree(self, tree: ast.AST) -> DataflowAnalysisResult:
        return self.analyze(build_cfg(self._ensure_origin(require(tree, "tree"))))

    def _ensure_origin(self, tree: ast.AST) -> ast.AST:
        located = next((n for n in ast.walk(tree) if hasattr(n, "lineno")), None)
        if located is not None and getattr(located, "origin", None) is None:
            self._anonymous_trees += 1
            tag_origin(tree, "<tree %d>" % self._anonymous_trees)
        return tree

    def analyze_source(self, source: str, origin: Optional[str] = None) -> DataflowAnalysisResult:
        """Parse, build the CFG of and analyze a module's source text."""
        tree = tag_origin(ast.parse(source), origin)
        return self.analyze_tree(tree)

    def function_result(self, definition) -> DataflowAnalysisResult:
        """Analyze a function body once, with its parameters defined on entry."""
        key = location_string(definition)
        result = self._function_cache.get(key)
        if result is None:
            LOG.debug("analyzing body of %s", definition.name)
            result = self.analyze(build_cfg(definition), parameter_refs(definition.args))
            self._function_cache[key] = result
        return result

    def function_spec(self, definition, is_method: bool = False) -> FunctionSpec:
        """Infer and register the mutation spec of a function."""
        result = self.function_result(definition)
        spec = ParameterSideEffectAnalysis(definition, result, is_method).run()
        if not is_method:
            self.symbol_table.functions[definition.name] = spec
        return spec

    def class_spec(self, definition: ast.ClassDef) -> TypeSpec:
        """Infer the method specs of a class and register the class type."""
        type_spec = TypeSpec(definition.name)
        for member in definition.body:
            if isinstance(member, _FUNCTIONS):
                type_spec.methods.append(self.function_spec(member, is_method=True))
        init = type_spec.method("__init__")
        if init is not None:
            init.returns = definition.name
            init.returns_type = ClassType(type_spec)
        self.symbol_table.types[definition.name] = type_spec
        return type_spec
