"""
Per-statement def/use extraction.

Every statement (or condition expression, or case pattern) owned by a CFG
block is turned into DEFINITION, UPDATE and USE refs:

- Assignment targets are DEFINITIONs. Augmented assignment makes them
  UPDATEs, and so does storing into an attribute or subscript, which mutates
  the base name. Index and key sub-expressions of a target are USEs.
- ``del`` targets are UPDATEs.
- Imports define the bound names and load specs into the symbol table.
- ``def`` and ``class`` define their name. A function body is analyzed on
  its own; its free references become the def's USEs.
- Calls are resolved against the symbol table. A resolved spec marks the
  actual arguments at its mutated positions (or the receiver, position 0)
  as UPDATEs. An unresolved call is assumed to mutate every argument and the
  receiver.
- String literals of the form ``"defs: [...]"`` declare extra definitions.
- Every other name read in the statement is a USE.
"""

import ast
import json
import logging
import re
from typing import Iterator, List, Optional

from pydefuse.language.location import Location, gather_names, location_of
from pydefuse.symbols.specs import ClassType, FunctionSpec
from pydefuse.symbols.table import SymbolTable, dotted_name
from pydefuse.util.typedispatch import TypeDispatcher, defaultdispatch, dispatch

from .refs import Ref, RefSet, ReferenceType, SymbolType

LOG = logging.getLogger(__name__)

_FUNCTIONS = (ast.FunctionDef, ast.AsyncFunctionDef)

# Calls on literals ("x".format(y)) never mutate anything visible.
NO_SIDE_EFFECTS = FunctionSpec("<literal method>")

DEF_ANNOTATION = re.compile(r"^defs: (.*)$", re.DOTALL)


def find_root(node: ast.AST) -> Optional[ast.Name]:
    """The name a reference expression is rooted at: ``a`` for ``a.b[c]``."""
    if isinstance(node, ast.Name):
        return node
    if isinstance(node, (ast.Attribute, ast.Subscript, ast.Starred)):
        return find_root(node.value)
    if isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute):
        return find_root(node.func)
    return None


def evaluated_nodes(node: ast.AST) -> Iterator[ast.AST]:
    """
    Walk the parts of a statement that run when the statement runs.

    Function and lambda bodies are skipped; their decorators, defaults and
    annotations are evaluated in place. Class bodies run at definition time.
    """
    yield node
    if isinstance(node, _FUNCTIONS):
        children = list(node.decorator_list) + _signature_parts(node.args)
        if node.returns is not None:
            children.append(node.returns)
    elif isinstance(node, ast.Lambda):
        children = list(node.args.defaults) + [d for d in node.args.kw_defaults if d is not None]
    else:
        children = list(ast.iter_child_nodes(node))
    for child in children:
        yield from evaluated_nodes(child)


def _signature_parts(args: ast.arguments) -> List[ast.AST]:
    parts = list(args.defaults) + [d for d in args.kw_defaults if d is not None]
    for arg in all_parameters(args):
        if arg.annotation is not None:
            parts.append(arg.annotation)
    return parts


def all_parameters(args: ast.arguments) -> List[ast.arg]:
    params = list(args.posonlyargs) + list(args.args)
    if args.vararg is not None:
        params.append(args.vararg)
    params.extend(args.kwonlyargs)
    if args.kwarg is not None:
        params.append(args.kwarg)
    return params


def use_refs(names, statement: ast.AST) -> RefSet:
    return RefSet(
        Ref(SymbolType.VARIABLE, ReferenceType.USE, n.id, location_of(n), statement)
        for n in names
    )


def resolve_call(call: ast.Call, symbol_table: SymbolTable, defs: RefSet) -> Optional[FunctionSpec]:
    """
    Find the spec of a call.

    Module functions (``np.zeros``) come from imported modules, plain calls
    from the function and class tables, and method calls from the inferred
    type of the receiver, looked up in the defs reaching the call.
    """
    func = call.func
    if isinstance(func, ast.Attribute):
        if isinstance(func.value, ast.Constant):
            return NO_SIDE_EFFECTS
        module = dotted_name(func.value)
        if module is not None and module in symbol_table.modules:
            return symbol_table.lookup_module_function(module, func.attr)
        if isinstance(func.value, ast.Name):
            for ref in defs or ():
                if ref.name == func.value.id and isinstance(ref.inferred_type, ClassType):
                    spec = ref.inferred_type.spec
                    if spec is not None:
                        return spec.method(func.attr)
        return None
    if isinstance(func, ast.Name):
        return symbol_table.lookup_function(func.id)
    return None


class CallAnalysis(object):
    """Collects the UPDATE refs caused by the calls a statement makes."""

    def __init__(self, statement: ast.AST, symbol_table: SymbolTable, defs: RefSet):
        self.statement = statement
        self.symbol_table = symbol_table
        self.variable_defs = defs
        self.defs = RefSet()

    def run(self) -> RefSet:
        for node in evaluated_nodes(self.statement):
            if isinstance(node, ast.Call):
                self.visit_call(node)
        return self.defs

    def mutate(self, name: ast.Name, call: ast.Call) -> None:
        self.defs.add(Ref(SymbolType.MUTATION, ReferenceType.UPDATE, name.id, location_of(call), self.statement))

    def visit_call(self, call: ast.Call) -> None:
        spec = resolve_call(call, self.symbol_table, self.variable_defs)
        if spec is None:
            self.assume_mutates_everything(call)
            return

        for position in spec.updates:
            root = None
            if 0 < position <= len(call.args):
                root = find_root(call.args[position - 1])
            elif position == 0 and isinstance(call.func, ast.Attribute):
                root = find_root(call.func.value)
            if root is not None:
                self.mutate(root, call)

    def assume_mutates_everything(self, call: ast.Call) -> None:
        actuals = list(call.args) + [k.value for k in call.keywords]
        if isinstance(call.func, ast.Attribute):
            actuals.append(call.func.value)
        for actual in actuals:
            root = find_root(actual)
            if root is not None:
                self.mutate(root, call)


class DefAnnotationAnalysis(object):
    """
    Collects definitions declared in string literals.

    A string literal ``"defs: [{\"name\": \"x\", \"pos\": [[0, 4], [0, 5]]}]"``
    defines ``x`` at a position relative to the literal's first line.
    """

    def __init__(self, statement: ast.AST):
        self.statement = statement
        self.defs = RefSet()

    def run(self) -> RefSet:
        for node in ast.walk(self.statement):
            if isinstance(node, ast.Constant) and isinstance(node.value, str):
                self.visit_string(node)
        return self.defs

    def visit_string(self, node: ast.Constant) -> None:
        match = DEF_ANNOTATION.search(node.value)
        if match is None:
            return
        text = match.group(1).replace('\\"', '"')
        try:
            specs = json.loads(text)
            first_line = location_of(node).first_line
            for spec in specs:
                start, end = spec["pos"]
                location = Location(
                    first_line + int(start[0]),
                    int(start[1]),
                    first_line + int(end[0]),
                    int(end[1]),
                    getattr(node, "origin", None),
                )
                self.defs.add(Ref(SymbolType.MAGIC, ReferenceType.DEFINITION, spec["name"], location, self.statement))
        except (ValueError, TypeError, KeyError, IndexError):
            LOG.debug("ignoring malformed def annotation at %s", location_of(node))


def target_defs(target: ast.AST, statement: ast.AST, update: bool = False) -> RefSet:
    """Refs defined by an assignment or ``del`` target."""
    defs = RefSet()
    if isinstance(target, ast.Name):
        level = ReferenceType.UPDATE if update else ReferenceType.DEFINITION
        defs.add(Ref(SymbolType.VARIABLE, level, target.id, location_of(target), statement))
    elif isinstance(target, (ast.Tuple, ast.List)):
        for elt in target.elts:
            defs = defs.union(target_defs(elt, statement, update))
    elif isinstance(target, ast.Starred):
        defs = defs.union(target_defs(target.value, statement, update))
    elif isinstance(target, (ast.Attribute, ast.Subscript)):
        # a[i] = v and a.f = v cannot define anything new, they mutate a.
        root = find_root(target)
        if root is not None:
            defs.add(Ref(SymbolType.VARIABLE, ReferenceType.UPDATE, root.id, location_of(root), statement))
    return defs


def target_uses(target: ast.AST) -> List[ast.Name]:
    """Names read while storing into a target: indices, keys and call parts."""
    if isinstance(target, ast.Name):
        return []
    if isinstance(target, (ast.Tuple, ast.List)):
        return [n for elt in target.elts for n in target_uses(elt)]
    if isinstance(target, ast.Starred):
        return target_uses(target.value)
    if isinstance(target, ast.Subscript):
        return list(gather_names(target.slice)) + target_uses(target.value)
    if isinstance(target, ast.Attribute):
        return target_uses(target.value)
    return list(gather_names(target))


def walrus_defs(statement: ast.AST) -> RefSet:
    defs = RefSet()
    for node in evaluated_nodes(statement):
        if isinstance(node, ast.NamedExpr):
            defs = defs.union(target_defs(node.target, statement))
    return defs


def pattern_defs(pattern: ast.AST) -> RefSet:
    """Names captured by a ``case`` pattern."""
    defs = RefSet()
    for node in ast.walk(pattern):
        name = None
        if isinstance(node, (ast.MatchAs, ast.MatchStar)):
            name = node.name
        elif isinstance(node, ast.MatchMapping):
            name = node.rest
        if name is not None:
            defs.add(Ref(SymbolType.VARIABLE, ReferenceType.DEFINITION, name, location_of(node), pattern))
    return defs


class StatementDefs(TypeDispatcher):
    """
    Computes the DEFINITION and UPDATE refs of a statement.

    Calls into the analyzer for imports, nested functions and classes.
    """

    def __init__(self, analyzer):
        self.analyzer = analyzer

    @property
    def symbol_table(self) -> SymbolTable:
        return self.analyzer.symbol_table

    @defaultdispatch
    def visitOther(self, statement, defs):
        return RefSet()

    @dispatch(ast.Assign)
    def visitAssign(self, statement, defs):
        result = RefSet()
        for target in statement.targets:
            result = result.union(target_defs(target, statement))
        for target in statement.targets:
            self.infer_types(target, statement.value, result, defs)
        return result

    @dispatch(ast.AugAssign)
    def visitAugAssign(self, statement, defs):
        return target_defs(statement.target, statement, update=True)

    @dispatch(ast.AnnAssign)
    def visitAnnAssign(self, statement, defs):
        if statement.value is None:
            return RefSet()
        result = target_defs(statement.target, statement)
        self.infer_types(statement.target, statement.value, result, defs)
        return result

    @dispatch(ast.Delete)
    def visitDelete(self, statement, defs):
        result = RefSet()
        for target in statement.targets:
            result = result.union(target_defs(target, statement, update=True))
        return result

    @dispatch(ast.Import)
    def visitImport(self, statement, defs):
        result = RefSet()
        for alias in statement.names:
            self.symbol_table.import_module(alias.name, alias.asname)
            name = alias.asname or alias.name.split(".")[0]
            result.add(Ref(SymbolType.IMPORT, ReferenceType.DEFINITION, name, location_of(alias), statement))
        return result

    @dispatch(ast.ImportFrom)
    def visitImportFrom(self, statement, defs):
        if statement.module is not None and not statement.level:
            self.symbol_table.import_module_definitions(
                statement.module, [(a.name, a.asname) for a in statement.names]
            )
        else:
            LOG.debug("not resolving relative import at %s", location_of(statement))
        result = RefSet()
        for alias in statement.names:
            if alias.name == "*":
                continue
            name = alias.asname or alias.name
            result.add(Ref(SymbolType.IMPORT, ReferenceType.DEFINITION, name, location_of(alias), statement))
        return result

    @dispatch(_FUNCTIONS)
    def visitFunctionDef(self, statement, defs):
        self.analyzer.function_spec(statement)
        return RefSet([Ref(SymbolType.FUNCTION, ReferenceType.DEFINITION, statement.name, location_of(statement), statement)])

    @dispatch(ast.ClassDef)
    def visitClassDef(self, statement, defs):
        self.analyzer.class_spec(statement)
        return RefSet([Ref(SymbolType.CLASS, ReferenceType.DEFINITION, statement.name, location_of(statement), statement)])

    @dispatch(ast.pattern)
    def visitPattern(self, pattern, defs):
        return pattern_defs(pattern)

    def infer_types(self, target, value, result: RefSet, defs: RefSet) -> None:
        """Tag names bound to a call's result with the callee's return type."""
        if isinstance(target, (ast.Tuple, ast.List)) and isinstance(value, (ast.Tuple, ast.List)):
            for t, v in zip(target.elts, value.elts):
                self.infer_types(t, v, result, defs)
            return
        if not isinstance(target, ast.Name) or not isinstance(value, ast.Call):
            return
        spec = resolve_call(value, self.symbol_table, defs)
        if spec is None or spec.returns_type is None:
            return
        for ref in result:
            if ref.name == target.id and ref.level is ReferenceType.DEFINITION:
                ref.inferred_type = spec.returns_type


class StatementUses(TypeDispatcher):
    """Computes the USE refs of a statement."""

    def __init__(self, analyzer):
        self.analyzer = analyzer

    @defaultdispatch
    def visitOther(self, statement):
        return use_refs(gather_names(statement), statement)

    @dispatch(ast.Assign)
    def visitAssign(self, statement):
        names = list(gather_names(statement.value))
        for target in statement.targets:
            names.extend(target_uses(target))
        return use_refs(names, statement)

    @dispatch(ast.AugAssign)
    def visitAugAssign(self, statement):
        # The old value is read, so every target name is a use, Store context or not.
        names = list(gather_names(statement.value))
        names.extend(n for n in ast.walk(statement.target) if isinstance(n, ast.Name))
        return use_refs(names, statement)

    @dispatch(ast.AnnAssign)
    def visitAnnAssign(self, statement):
        names = list(gather_names(statement.annotation)) + target_uses(statement.target)
        if statement.value is not None:
            names.extend(gather_names(statement.value))
        return use_refs(names, statement)

    @dispatch(_FUNCTIONS)
    def visitFunctionDef(self, statement):
        names = []
        for part in list(statement.decorator_list) + _signature_parts(statement.args):
            names.extend(gather_names(part))
        if statement.returns is not None:
            names.extend(gather_names(statement.returns))
        uses = use_refs(names, statement)
        for ref in self.analyzer.function_result(statement).undefined_refs:
            if ref.level is ReferenceType.USE:
                uses.add(Ref(ref.type, ReferenceType.USE, ref.name, ref.location, statement))
        return uses

    @dispatch(ast.ClassDef)
    def visitClassDef(self, statement):
        names = []
        for part in list(statement.decorator_list) + list(statement.bases) + [k.value for k in statement.keywords]:
            names.extend(gather_names(part))
        uses = use_refs(names, statement)
        for member in statement.body:
            for ref in self(member):
                uses.add(Ref(ref.type, ReferenceType.USE, ref.name, ref.location, statement))
        return uses
