"""
Lowering Python statements into a block Control Flow Graph.

**Construction rules:**

- Linear statements accumulate in the current block. ``def``, ``class`` and
  ``return`` are linear; nested bodies are analyzed later, on demand.
- ``if``/``elif``/``else`` and ``match``/``case``: every condition (or case
  pattern) gets its own block, every branch is lowered recursively, and all
  branch exits meet in a new join block. Without an ``else`` the last
  condition block falls through to the join.
- ``while`` and ``for``: a loop head block links to the body, the body exit
  links back to the head, and the head links to the block after the loop.
  The head of a ``for`` holds a synthesized ``target = iter`` assignment so
  the implicit binding is visible to dataflow.
- ``with``: a resource block holds one synthesized ``as_target = expr``
  assignment per item, followed by the body. Cleanup is not modeled.
- ``try``: raises in the body transfer to a handler dispatch block linking to
  every handler; the normal exit runs through ``else``; ``finally`` sits
  between every exit path and the join block.
- ``break``/``continue``/``raise`` link to the target recorded in the
  Context. The statements after them in the same lexical block are lowered
  into a fresh block nothing links to.
"""

import ast
import logging
from typing import List, Tuple

from pydefuse.application.errors import InternalError, require
from pydefuse.language.location import relocate
from pydefuse.util.typedispatch import TypeDispatcher, defaultdispatch, dispatch

from .graph import Block, Context, ControlFlowGraph

LOG = logging.getLogger(__name__)

_LOOP_STATEMENTS = (ast.For, ast.AsyncFor)
_WITH_STATEMENTS = (ast.With, ast.AsyncWith)
_TRY_STATEMENTS = tuple(t for t in (ast.Try, getattr(ast, "TryStar", None)) if t is not None)


def synthesize_assign(target: ast.AST, value: ast.AST, start: ast.AST, end: ast.AST) -> ast.Assign:
    """Build ``target = value`` spanning from start to end."""
    node = ast.Assign(targets=[target], value=value)
    return relocate(node, start, end)


def synthesize_expr(value: ast.AST) -> ast.Expr:
    return relocate(ast.Expr(value=value), value, value)


class CFGBuilder(TypeDispatcher):
    """
    Lowers statements into a ControlFlowGraph.

    Each handler receives a statement, the current block and the Context and
    returns the block where lowering continues.
    """

    def __init__(self, cfg: ControlFlowGraph):
        self.cfg = cfg
        self.loop_variables: List[List[ast.AST]] = []

    def make_block(self, hint: str, statements=None) -> Block:
        loop_vars = self.loop_variables[-1] if self.loop_variables else None
        return self.cfg.make_block(hint, statements, loop_vars)

    def lower(self, hint: str, statements, context: Context) -> Tuple[Block, Block]:
        """Lower a statement sequence into a fresh entry block.

        Returns:
            The (entry, exit) blocks of the lowered sequence
        """
        require(hint, "hint")
        require(statements, "statements")
        require(context, "context")

        entry = self.make_block(hint)
        last = entry
        for statement in statements:
            last = self(require(statement, "statement"), last, context)
        return entry, last

    @defaultdispatch
    def visitStatement(self, statement, last: Block, context: Context) -> Block:
        last.statements.append(statement)
        return last

    def _jump(self, last: Block, target, what: str) -> Block:
        if target is None:
            raise InternalError("%s without a target block" % what)
        self.cfg.link(last, target)
        return self.make_block("unreachable after %s" % what)

    @dispatch(ast.Break)
    def visitBreak(self, statement, last, context):
        return self._jump(last, context.loop_exit, "break")

    @dispatch(ast.Continue)
    def visitContinue(self, statement, last, context):
        return self._jump(last, context.loop_head, "continue")

    @dispatch(ast.Raise)
    def visitRaise(self, statement, last, context):
        last.statements.append(statement)
        return self._jump(last, context.exception_block, "raise")

    @dispatch(ast.If)
    def visitIf(self, statement, last, context):
        cond = self.make_block("if cond", [statement.test])
        entry, exit = self.lower("if body", statement.body, context)
        self.cfg.link(last, cond, entry)
        join = self.make_block("conditional join")
        self.cfg.link(exit, join)

        last_cond = cond
        orelse = statement.orelse
        while len(orelse) == 1 and isinstance(orelse[0], ast.If):
            elif_ = orelse[0]
            elif_cond = self.make_block("elif cond", [elif_.test])
            self.cfg.link(last_cond, elif_cond)
            entry, exit = self.lower("elif body", elif_.body, context)
            self.cfg.link(elif_cond, entry)
            self.cfg.link(exit, join)
            last_cond = elif_cond
            orelse = elif_.orelse

        if orelse:
            entry, exit = self.lower("else body", orelse, context)
            self.cfg.link(last_cond, entry)
            self.cfg.link(exit, join)
        else:
            self.cfg.link(last_cond, join)
        return join

    @dispatch(ast.Match)
    def visitMatch(self, statement, last, context):
        subject = self.make_block("match subject", [statement.subject])
        self.cfg.link(last, subject)
        join = self.make_block("match join")

        last_cond = subject
        for case in statement.cases:
            tests = [case.pattern] if case.guard is None else [case.pattern, case.guard]
            cond = self.make_block("case cond", tests)
            self.cfg.link(last_cond, cond)
            entry, exit = self.lower("case body", case.body, context)
            self.cfg.link(cond, entry)
            self.cfg.link(exit, join)
            last_cond = cond
        self.cfg.link(last_cond, join)
        return join

    def _loop(self, kind: str, head: Block, loop_vars, statement, last, context) -> Block:
        self.cfg.link(last, head)
        after = self.make_block("%s loop join" % kind)
        self.loop_variables.append(loop_vars)
        entry, exit = self.lower("%s body" % kind, statement.body, context.for_loop(head, after))
        self.loop_variables.pop()
        self.cfg.link(head, entry)
        self.cfg.link(exit, head)
        if statement.orelse:
            else_entry, else_exit = self.lower("%s else body" % kind, statement.orelse, context)
            self.cfg.link(head, else_entry)
            self.cfg.link(else_exit, after)
        else:
            self.cfg.link(head, after)
        return after

    @dispatch(ast.While)
    def visitWhile(self, statement, last, context):
        head = self.make_block("while loop head", [statement.test])
        return self._loop("while", head, [statement.test], statement, last, context)

    @dispatch(_LOOP_STATEMENTS)
    def visitFor(self, statement, last, context):
        head = self.make_block("for loop head", [synthesize_assign(statement.target, statement.iter, statement, statement.iter)])
        return self._loop("for", head, [statement.target], statement, last, context)

    @dispatch(_WITH_STATEMENTS)
    def visitWith(self, statement, last, context):
        resources = []
        for item in statement.items:
            if item.optional_vars is not None:
                resources.append(
                    synthesize_assign(item.optional_vars, item.context_expr, item.context_expr, item.optional_vars)
                )
            else:
                resources.append(synthesize_expr(item.context_expr))
        resource = self.make_block("with", resources)
        self.cfg.link(last, resource)
        entry, exit = self.lower("with body", statement.body, context)
        self.cfg.link(resource, entry)
        return exit

    def _handler_statements(self, handler: ast.ExceptHandler) -> List[ast.AST]:
        if handler.type is None:
            return list(handler.body)
        if handler.name is None:
            return [synthesize_expr(handler.type)] + list(handler.body)
        target = ast.Name(id=handler.name, ctx=ast.Store())
        relocate(target, handler, handler.type)
        return [synthesize_assign(target, handler.type, handler, handler.type)] + list(handler.body)

    @dispatch(_TRY_STATEMENTS)
    def visitTry(self, statement, last, context):
        after = self.make_block("try join")
        exn_context = context
        handler_exits = []
        handler_head = None

        if statement.handlers:
            handler_head = self.make_block("handlers")
            for handler in statement.handlers:
                entry, exit = self.lower("handler body", self._handler_statements(handler), context)
                self.cfg.link(handler_head, entry)
                handler_exits.append(exit)
            exn_context = context.for_excepts(handler_head)

        entry, normal_exit = self.lower("try body", statement.body, exn_context)
        self.cfg.link(last, entry)
        if handler_head is not None:
            self.cfg.link(normal_exit, handler_head)

        if statement.orelse:
            else_entry, else_exit = self.lower("try else body", statement.orelse, context)
            self.cfg.link(normal_exit, else_entry)
            normal_exit = else_exit

        if statement.finalbody:
            final_entry, final_exit = self.lower("finally body", statement.finalbody, context)
            self.cfg.link(normal_exit, final_entry)
            for handler_exit in handler_exits:
                self.cfg.link(handler_exit, final_entry)
            self.cfg.link(final_exit, after)
        else:
            for handler_exit in handler_exits:
                self.cfg.link(handler_exit, after)
            self.cfg.link(normal_exit, after)
        return after


def body_of(node) -> List[ast.AST]:
    """The statement list a CFG is built from."""
    require(node, "node")
    if isinstance(node, (list, tuple)):
        return list(node)
    if isinstance(node, (ast.Module, ast.Interactive, ast.FunctionDef, ast.AsyncFunctionDef)):
        return list(node.body)
    return []


def build_cfg(node) -> ControlFlowGraph:
    """
    Build the CFG of a module, a function body or a statement list.

    Args:
        node: An ``ast.Module``, a function definition or a list of statements

    Returns:
        The ControlFlowGraph, whose entry block holds the first statements

    Raises:
        InternalError: If node is None or a jump has no target
    """
    cfg = ControlFlowGraph()
    builder = CFGBuilder(cfg)
    cfg.exceptional_exit = cfg.make_block("exceptional exit")
    cfg.entry, cfg.exit = builder.lower("entry", body_of(node), Context(exception_block=cfg.exceptional_exit))
    LOG.debug("built CFG with %d blocks (%d reachable)", len(cfg.all_blocks), len(cfg.blocks))
    return cfg
