"""Side-effect specs and the symbol table that resolves call sites to them."""

from .specs import ClassType, FunctionSpec, ListType, ModuleSpec, TypeSpec
from .table import SymbolTable, dotted_name

__all__ = [
    "ClassType",
    "FunctionSpec",
    "ListType",
    "ModuleSpec",
    "TypeSpec",
    "SymbolTable",
    "dotted_name",
]
