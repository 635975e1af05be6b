"""
The symbol table: side-effect specs visible in the analyzed scope.

The table starts with every definition of the ``__builtins__`` module and
grows as import statements are analyzed. Locally defined functions get an
inferred spec stored in ``functions`` once their body has been analyzed, so
call sites later in the same run treat them like library functions.
"""

import ast
import logging
from typing import Any, Dict, List, Optional, Tuple

from .specs import ClassType, FunctionSpec, ModuleSpec, SpecResolver, TypeSpec

LOG = logging.getLogger(__name__)


def dotted_name(node: ast.AST) -> Optional[str]:
    """Return ``a.b.c`` for a chain of attribute accesses on a name."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = dotted_name(node.value)
        return "%s.%s" % (base, node.attr) if base else None
    return None


class SymbolTable(object):
    """
    Resolves names and call sites to FunctionSpecs.

    Attributes:
        modules: Imported modules by local name (alias or dotted path)
        types: Imported classes by local name
        functions: Imported and inferred function specs by local name
    """

    def __init__(self, json_specs: Dict[str, Any]):
        self.resolver = SpecResolver(json_specs)
        self.modules: Dict[str, ModuleSpec] = {}
        self.types: Dict[str, TypeSpec] = {}
        self.functions: Dict[str, FunctionSpec] = {}
        self.import_module_definitions("__builtins__", [("*", None)])

    def lookup_function(self, name: str) -> Optional[FunctionSpec]:
        spec = self.functions.get(name)
        if spec is not None:
            return spec
        clss = self.types.get(name)
        if clss is not None:
            init = clss.method("__init__")
            if init is not None:
                return init
            return FunctionSpec("__init__", updates=[0], returns=name, returns_type=ClassType(clss))
        return None

    def lookup_module_function(self, module: str, name: str) -> Optional[FunctionSpec]:
        mod = self.modules.get(module)
        return mod.function(name) if mod is not None else None

    def lookup_node(self, func: ast.AST) -> Optional[FunctionSpec]:
        """Resolve the callee expression of a call: ``f`` or ``mod.f``."""
        if isinstance(func, ast.Name):
            return self.lookup_function(func.id)
        if isinstance(func, ast.Attribute):
            module = dotted_name(func.value)
            if module is not None:
                return self.lookup_module_function(module, func.attr)
        return None

    def import_module(self, path: str, alias: Optional[str] = None) -> Optional[ModuleSpec]:
        """Handle ``import path [as alias]``."""
        spec = self.resolver.lookup(path.split("."))
        if spec is None:
            LOG.warning("no spec for module %s", path)
            return None
        self.modules[alias or path] = spec
        return spec

    def import_module_definitions(self, path: str, imports: List[Tuple[str, Optional[str]]]) -> None:
        """
        Handle ``from path import name [as alias], ...``.

        Args:
            path: The dotted module path
            imports: (name, alias) pairs; a name of ``*`` imports everything
        """
        spec = self.resolver.lookup(path.split("."))
        if spec is None:
            LOG.warning("no spec for module %s", path)
            return

        for name, alias in imports:
            if name == "*":
                self.functions.update(spec.functions)
                self.modules.update(spec.modules)
                self.types.update(spec.types)
            elif name in spec.modules:
                self.modules[alias or name] = spec.modules[name]
            elif name in spec.types:
                self.types[alias or name] = spec.types[name]
            elif name in spec.functions:
                self.functions[alias or name] = spec.functions[name]
            else:
                LOG.warning("cannot find %s in module %s", name, path)
