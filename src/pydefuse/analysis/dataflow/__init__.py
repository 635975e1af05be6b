"""
Def/use dataflow analysis over pydefuse CFGs.

**Module Structure:**
- refs.py: Ref, RefSet, DefUse with the gen/kill rules, Dataflow
- defuse.py: per-statement extraction of DEFINITION/UPDATE/USE refs
- sideeffects.py: inferred mutation specs of nested functions
- analyzer.py: the worklist fixpoint and its result queries
- dump.py: text, DOT and JSON renderings of a result
"""

from .refs import Dataflow, DataflowSet, DefUse, Ref, RefSet, ReferenceType, SymbolType
from .analyzer import DataflowAnalysisResult, DataflowAnalyzer
from .sideeffects import ParameterSideEffectAnalysis
from .dump import DataflowDumper, dump_dataflow

__all__ = [
    "Dataflow",
    "DataflowSet",
    "DefUse",
    "Ref",
    "RefSet",
    "ReferenceType",
    "SymbolType",
    "DataflowAnalysisResult",
    "DataflowAnalyzer",
    "ParameterSideEffectAnalysis",
    "DataflowDumper",
    "dump_dataflow",
]
