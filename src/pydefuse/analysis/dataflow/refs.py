"""
The reference model: symbol occurrences, def/use triples and dataflows.

A Ref records one occurrence of a name at a definition level. Sets of refs
are keyed by ``name + level + location`` so the same occurrence reached
along different paths is stored once.
"""

import ast
import enum
from typing import Optional, Tuple

from pydefuse.language.location import Location, location_of
from pydefuse.util.keyedset import KeyedSet


class SymbolType(enum.Enum):
    VARIABLE = "VARIABLE"
    CLASS = "CLASS"
    FUNCTION = "FUNCTION"
    IMPORT = "IMPORT"
    MUTATION = "MUTATION"
    MAGIC = "MAGIC"


class ReferenceType(enum.Enum):
    DEFINITION = "DEFINITION"
    UPDATE = "UPDATE"
    USE = "USE"


LEVELS = (ReferenceType.DEFINITION, ReferenceType.UPDATE, ReferenceType.USE)


class Ref(object):
    """
    One occurrence of a symbol.

    Attributes:
        type: What kind of symbol it is
        level: DEFINITION, UPDATE or USE
        name: The symbol name
        location: Where the occurrence is
        node: The statement (or parameter) the occurrence belongs to
        inferred_type: Type of the bound value, when a call's spec names one
    """
    __slots__ = ("type", "level", "name", "location", "node", "inferred_type")

    def __init__(self, type: SymbolType, level: ReferenceType, name: str, location: Location,
                 node: ast.AST, inferred_type=None):
        self.type = type
        self.level = level
        self.name = name
        self.location = location
        self.node = node
        self.inferred_type = inferred_type

    @property
    def key(self) -> str:
        return "%s%s%s" % (self.name, self.level.value, self.location)

    def __repr__(self):
        return "Ref(%s %s %s @%s)" % (self.type.name, self.level.name, self.name, self.location)


class RefSet(KeyedSet[Ref]):
    def __init__(self, items=()):
        super().__init__(lambda r: r.key, items)

    def names(self):
        return {r.name for r in self}


def node_id(node: ast.AST) -> str:
    return str(location_of(node))


class Dataflow(object):
    """
    A dependence of one statement on another.

    ``to_node`` needs the effect of ``from_node``. The refs are the pair that
    justified a def/use edge; control dependences carry none.
    """
    __slots__ = ("from_node", "to_node", "from_ref", "to_ref")

    def __init__(self, from_node: ast.AST, to_node: ast.AST, from_ref: Optional[Ref] = None,
                 to_ref: Optional[Ref] = None):
        self.from_node = from_node
        self.to_node = to_node
        self.from_ref = from_ref
        self.to_ref = to_ref

    @property
    def key(self) -> str:
        return "%s->%s" % (node_id(self.from_node), node_id(self.to_node))

    def __repr__(self):
        return "Dataflow(%s)" % self.key


class DataflowSet(KeyedSet[Dataflow]):
    def __init__(self, items=()):
        super().__init__(lambda d: d.key, items)

    def between(self, from_node: ast.AST, to_node: ast.AST) -> bool:
        return self.has(Dataflow(from_node, to_node))


# Which levels of a statement's refs flow into each running bucket.
GEN_RULES = {
    ReferenceType.USE: (ReferenceType.UPDATE, ReferenceType.DEFINITION),
    ReferenceType.UPDATE: (ReferenceType.DEFINITION,),
    ReferenceType.DEFINITION: (),
}

# Which levels of existing refs a new ref of a level supersedes. A read never
# invalidates a binding.
KILL_RULES = {
    ReferenceType.DEFINITION: (ReferenceType.DEFINITION, ReferenceType.UPDATE),
    ReferenceType.UPDATE: (ReferenceType.DEFINITION, ReferenceType.UPDATE),
    ReferenceType.USE: (),
}


class DefUse(object):
    """Three ref sets, one per level, for a statement or a program point."""
    __slots__ = ("DEFINITION", "UPDATE", "USE")

    def __init__(self, definition: RefSet = None, update: RefSet = None, use: RefSet = None):
        self.DEFINITION = definition if definition is not None else RefSet()
        self.UPDATE = update if update is not None else RefSet()
        self.USE = use if use is not None else RefSet()

    def level(self, level: ReferenceType) -> RefSet:
        return getattr(self, level.name)

    @property
    def defs(self) -> RefSet:
        return self.DEFINITION.union(self.UPDATE)

    @property
    def uses(self) -> RefSet:
        return self.UPDATE.union(self.USE)

    def union(self, that: "DefUse") -> "DefUse":
        return DefUse(
            self.DEFINITION.union(that.DEFINITION),
            self.UPDATE.union(that.UPDATE),
            self.USE.union(that.USE),
        )

    def copy(self) -> "DefUse":
        return DefUse(self.DEFINITION.union(), self.UPDATE.union(), self.USE.union())

    def update(self, new_refs: "DefUse") -> None:
        """Roll a statement's refs into this running state (gen/kill)."""
        for level in LEVELS:
            gen = RefSet().union(*(new_refs.level(g) for g in GEN_RULES[level]))
            current = self.level(level)
            kill = current.filter(
                lambda old: gen.some(lambda g: g.name == old.name and old.level in KILL_RULES[g.level])
            )
            setattr(self, level.name, current.minus(kill).union(gen))

    def equals(self, that: "DefUse") -> bool:
        return all(self.level(l).equals(that.level(l)) for l in LEVELS)

    def __eq__(self, other):
        if not isinstance(other, DefUse):
            return NotImplemented
        return self.equals(other)

    __hash__ = None

    def create_flows_from(self, running: "DefUse") -> Tuple[DataflowSet, RefSet]:
        """
        Link this statement's refs to same-named refs in a running state.

        Returns:
            The new dataflows and the statement refs that were matched
        """
        defined = RefSet()
        flows = DataflowSet()
        for level in LEVELS:
            for to in self.level(level):
                for source in running.level(level):
                    if source.name == to.name:
                        defined.add(to)
                        flows.add(Dataflow(source.node, to.node, source, to))
        return flows, defined

    def __repr__(self):
        return "DefUse(DEFINITION=%r, UPDATE=%r, USE=%r)" % (self.DEFINITION, self.UPDATE, self.USE)
