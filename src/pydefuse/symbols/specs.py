"""
Side-effect specifications for library functions, classes and modules.

A spec source is a nested JSON mapping. Each module lists its ``functions``
(a bare name, or an object with ``name``, ``updates``, ``reads`` and
``returns``), its ``types`` (classes, each with ``methods`` of the same shape)
and nested ``modules``. ``updates`` lists the parameter positions a call
mutates: 0 is the receiver of a method call, 1 the first argument.

Only ``ClassType`` return types drive method resolution at call sites.
``ListType`` results, ``reads`` and ``higherorder`` are informational: they
are resolved and written back by ``FunctionSpec.to_json`` so loaded and
inferred specs round-trip, but calls on a list-typed value are treated as
unresolved.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

LOG = logging.getLogger(__name__)


@dataclass
class TypeSpec:
    name: str
    methods: List["FunctionSpec"] = field(default_factory=list)

    def method(self, name: str) -> Optional["FunctionSpec"]:
        for m in self.methods:
            if m.name == name:
                return m
        return None


@dataclass
class ClassType:
    """The inferred type of a value: an instance of a spec'd class."""
    spec: Optional[TypeSpec]


@dataclass
class ListType:
    element_type: "PythonType"


PythonType = Union[ClassType, ListType]


@dataclass
class FunctionSpec:
    """
    Which parameter positions a function mutates.

    Attributes:
        name: Function or method name
        updates: Mutated parameter positions
        reads: Names the function reads, kept for spec round trips
        returns: Declared return type name
        returns_type: The resolved return type, if returns names a known type
        higherorder: Position of a callable argument, if any
    """
    name: str
    updates: List[int] = field(default_factory=list)
    reads: List[str] = field(default_factory=list)
    returns: Optional[str] = None
    returns_type: Optional[PythonType] = None
    higherorder: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        data = {"name": self.name, "updates": list(self.updates)}
        if self.reads:
            data["reads"] = list(self.reads)
        if self.returns:
            data["returns"] = self.returns
        if self.higherorder is not None:
            data["higherorder"] = self.higherorder
        return data


@dataclass
class ModuleSpec:
    name: str
    functions: Dict[str, FunctionSpec] = field(default_factory=dict)
    types: Dict[str, TypeSpec] = field(default_factory=dict)
    modules: Dict[str, "ModuleSpec"] = field(default_factory=dict)

    def function(self, name: str) -> Optional[FunctionSpec]:
        return self.functions.get(name)


def _positions(updates) -> List[int]:
    positions = []
    for u in updates or ():
        if isinstance(u, bool):
            continue
        if isinstance(u, int):
            positions.append(u)
        elif isinstance(u, str) and u.strip().isdigit():
            positions.append(int(u))
    return positions


def resolve_function(desc) -> FunctionSpec:
    """Turn a function description (a name or an object) into a FunctionSpec."""
    if isinstance(desc, str):
        return FunctionSpec(desc)
    return FunctionSpec(
        name=desc["name"],
        updates=_positions(desc.get("updates")),
        reads=list(desc.get("reads") or []),
        returns=desc.get("returns"),
        higherorder=desc.get("higherorder"),
    )


def resolve_type(name: str, desc) -> TypeSpec:
    desc = desc or {}
    return TypeSpec(name, [resolve_function(m) for m in desc.get("methods") or []])


class SpecResolver(object):
    """
    Resolves raw JSON module descriptions into ModuleSpec objects.

    Return type names are resolved against the module being built, or against
    the top level spec source for dotted ``List[pkg.mod.Type]`` references.
    """

    def __init__(self, json_specs: Dict[str, Any]):
        self.json_specs = json_specs

    def lookup(self, parts: List[str]) -> Optional[ModuleSpec]:
        """Resolve a dotted module path, already split into parts."""
        table = self.json_specs
        desc = None
        for i, part in enumerate(parts):
            if not table or part not in table:
                return None
            desc = table[part]
            if i < len(parts) - 1:
                table = desc.get("modules")
        if desc is None:
            return None
        return self.resolve_module(parts[-1], desc)

    def resolve_module(self, name: str, desc) -> ModuleSpec:
        mod = ModuleSpec(name)
        for f in desc.get("functions") or []:
            spec = resolve_function(f)
            mod.functions[spec.name] = spec
        for tname, tdesc in (desc.get("types") or {}).items():
            mod.types[tname] = resolve_type(tname, tdesc)
        for mname, mdesc in (desc.get("modules") or {}).items():
            mod.modules[mname] = self.resolve_module(mname, mdesc)

        for spec in mod.functions.values():
            if spec.returns:
                spec.returns_type = self.make_type(spec.returns, mod)
        for ty in mod.types.values():
            for spec in ty.methods:
                if spec.returns:
                    spec.returns_type = self.make_type(spec.returns, mod)
        return mod

    def make_type(self, type_string: str, current: ModuleSpec) -> Optional[PythonType]:
        if type_string.startswith("List"):
            element = type_string[type_string.find("[") + 1:type_string.find("]")]
            parts = element.split(".")
            if len(parts) == 1:
                ty = current.types.get(element)
                return ListType(ClassType(ty)) if ty is not None else None
            table = self.json_specs
            desc = None
            for part in parts[:-1]:
                if not table or part not in table:
                    return None
                desc = table[part]
                table = desc.get("modules")
            tdesc = (desc.get("types") or {}).get(parts[-1])
            return ListType(ClassType(resolve_type(parts[-1], tdesc))) if tdesc is not None else None
        ty = current.types.get(type_string)
        return ClassType(ty) if ty is not None else None
