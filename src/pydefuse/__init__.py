"""pydefuse: control-flow, control-dependence and def/use dataflow for Python.

The package lowers parsed Python statements (``ast``) into a block control-flow
graph, mines postdominance and control dependence over it, and runs a worklist
dataflow analysis that links definitions and mutations to the statements that
read them.
"""

__version__ = "0.1.0"
