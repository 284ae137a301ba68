"""pollock/analyzer.py – free variables of an Erlang expression.

A variable is *free* when an expression references it without any
enclosing construct binding it first.  The analyzer walks the tree once,
left to right, threading an immutable :class:`Scope` (a stack of frozen
name sets, innermost last) through every visit.

Binding rules
-------------
* ``P = E`` evaluates ``E`` first, then ``P`` binds into the current
  frame; the names stay visible for the rest of the sequence.
  ``begin ... end`` also binds into the current frame.
* Function, ``fun`` and generator patterns bind *fresh*: a name already
  bound further out is shadowed, not matched.
* ``case``/``receive``/``try ... of`` clause patterns and catch patterns
  treat names that are already bound as uses.  The stacktrace variable
  of a catch pattern always binds fresh.
* ``case``, ``if`` and ``receive`` export the names bound in every one of
  their branches (the ``after`` branch included).  ``try``, ``catch``,
  ``fun`` and comprehensions export nothing.
* Guards never bind.  ``_`` is never bound and never free.
* A reference to an unbound name is reported free and then added to the
  innermost frame, so it is reported once per scope.

Public API
----------
``Scope``
    The immutable scope stack.

``FreeVariableAnalyzer().analyze(root) -> frozenset``
    ``root`` is any expression node or a :class:`~pollock.ast.Function`.

``free_variables(root) -> frozenset``
    Shorthand for the above.

``free_vars(text, start_line=1) -> frozenset``
    Tokenize a snippet, wrap it in ``begin ... end .``, parse, analyze.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, List, Sequence, Set, Tuple

from pollock import ast as A
from pollock import errors
from pollock.errors import AnalysisError
from pollock.lexer import Token, tokenize
from pollock.parser import parse_expression_sequence

logger = logging.getLogger(__name__)

__all__ = [
    "Scope",
    "FreeVariableAnalyzer",
    "free_variables",
    "free_vars",
]


@dataclass(frozen=True, slots=True)
class Scope:
    """Immutable stack of bound-name frames, innermost last."""

    frames: Tuple[FrozenSet[str], ...] = (frozenset(),)

    @property
    def innermost(self) -> FrozenSet[str]:
        return self.frames[-1]

    def is_bound(self, name: str) -> bool:
        return any(name in frame for frame in self.frames)

    def bind(self, names: Iterable[str]) -> "Scope":
        """Add *names* to the innermost frame."""
        return Scope(self.frames[:-1] + (self.frames[-1] | frozenset(names),))

    def push(self, names: Iterable[str] = ()) -> "Scope":
        """Open a new innermost frame holding *names*."""
        return Scope(self.frames + (frozenset(names),))


_CONSTANTS = (A.Atom, A.Integer, A.Float, A.Char, A.String, A.Nil, A.RecordIndex)


class FreeVariableAnalyzer:
    """Single-use free-variable walk.

    Every ``_visit_*`` method takes a node and the scope in force before
    it, and returns the scope in force after it.  The returned scope
    always has the same depth as the one passed in.
    """

    def __init__(self) -> None:
        self._free: Set[str] = set()
        self._dispatch: Dict[type, Callable[[object, Scope], Scope]] = {
            A.Var: self._visit_var,
            A.ListExpr: self._visit_list,
            A.TupleExpr: self._visit_tuple,
            A.Binary: self._visit_binary,
            A.MapExpr: self._visit_map,
            A.RecordExpr: self._visit_record,
            A.RecordAccess: self._visit_record_access,
            A.BinOp: self._visit_binop,
            A.UnaryOp: self._visit_unaryop,
            A.Match: self._visit_match,
            A.Catch: self._visit_catch,
            A.Remote: self._visit_remote,
            A.Call: self._visit_call,
            A.FunRef: self._visit_funref,
            A.Fun: self._visit_fun,
            A.Block: self._visit_block,
            A.Case: self._visit_case,
            A.If: self._visit_if,
            A.Receive: self._visit_receive,
            A.Try: self._visit_try,
            A.ListComp: self._visit_comprehension,
            A.BinComp: self._visit_comprehension,
        }
        for constant in _CONSTANTS:
            self._dispatch[constant] = self._visit_constant

    def analyze(self, root: A.Node) -> FrozenSet[str]:
        self._free = set()
        try:
            if isinstance(root, A.Function):
                for clause in root.clauses:
                    self._function_clause(clause, Scope())
            else:
                self.visit(root, Scope())
        except RecursionError:
            raise AnalysisError(
                A.kind_of(root), getattr(root, "line", None),
                code=errors.TREE_TOO_DEEP, reason="syntax tree nests too deeply",
            ) from None
        logger.debug("%s: %d free variable(s)", A.kind_of(root), len(self._free))
        return frozenset(self._free)

    # ── expressions ─────────────────────────────────────────────────

    def visit(self, node: A.Node, scope: Scope) -> Scope:
        handler = self._dispatch.get(type(node))
        if handler is None:
            raise AnalysisError(A.kind_of(node), getattr(node, "line", None))
        return handler(node, scope)

    def _visit_sequence(self, nodes: Sequence[A.Node], scope: Scope) -> Scope:
        for node in nodes:
            scope = self.visit(node, scope)
        return scope

    def _visit_constant(self, node, scope: Scope) -> Scope:
        return scope

    def _visit_var(self, node: A.Var, scope: Scope) -> Scope:
        if node.is_anonymous or scope.is_bound(node.name):
            return scope
        self._free.add(node.name)
        return scope.bind((node.name,))

    def _visit_list(self, node: A.ListExpr, scope: Scope) -> Scope:
        scope = self._visit_sequence(node.elements, scope)
        if node.tail is not None:
            scope = self.visit(node.tail, scope)
        return scope

    def _visit_tuple(self, node: A.TupleExpr, scope: Scope) -> Scope:
        return self._visit_sequence(node.elements, scope)

    def _visit_binary(self, node: A.Binary, scope: Scope) -> Scope:
        for segment in node.segments:
            scope = self.visit(segment.value, scope)
            if segment.size is not None:
                scope = self.visit(segment.size, scope)
        return scope

    def _visit_map(self, node: A.MapExpr, scope: Scope) -> Scope:
        if node.base is not None:
            scope = self.visit(node.base, scope)
        for map_field in node.fields:
            scope = self.visit(map_field.key, scope)
            scope = self.visit(map_field.value, scope)
        return scope

    def _visit_record(self, node: A.RecordExpr, scope: Scope) -> Scope:
        if node.base is not None:
            scope = self.visit(node.base, scope)
        for record_field in node.fields:
            scope = self.visit(record_field.value, scope)
        return scope

    def _visit_record_access(self, node: A.RecordAccess, scope: Scope) -> Scope:
        return self.visit(node.base, scope)

    def _visit_binop(self, node: A.BinOp, scope: Scope) -> Scope:
        return self.visit(node.right, self.visit(node.left, scope))

    def _visit_unaryop(self, node: A.UnaryOp, scope: Scope) -> Scope:
        return self.visit(node.operand, scope)

    def _visit_match(self, node: A.Match, scope: Scope) -> Scope:
        scope = self.visit(node.body, scope)
        return self.bind_pattern(node.pattern, scope, fresh=False)

    def _visit_catch(self, node: A.Catch, scope: Scope) -> Scope:
        self.visit(node.expr, scope.push())
        return scope

    def _visit_remote(self, node: A.Remote, scope: Scope) -> Scope:
        return self.visit(node.function, self.visit(node.module, scope))

    def _visit_call(self, node: A.Call, scope: Scope) -> Scope:
        scope = self.visit(node.func, scope)
        return self._visit_sequence(node.args, scope)

    def _visit_funref(self, node: A.FunRef, scope: Scope) -> Scope:
        if node.module is not None:
            scope = self.visit(node.module, scope)
        scope = self.visit(node.name, scope)
        return self.visit(node.arity, scope)

    def _visit_fun(self, node: A.Fun, scope: Scope) -> Scope:
        named = (node.name,) if node.name is not None else ()
        for clause in node.clauses:
            self._function_clause(clause, scope.push(named))
        return scope

    def _visit_block(self, node: A.Block, scope: Scope) -> Scope:
        return self._visit_sequence(node.body, scope)

    def _visit_case(self, node: A.Case, scope: Scope) -> Scope:
        scope = self.visit(node.expr, scope)
        branches = [self._match_clause(clause, scope) for clause in node.clauses]
        return _export(scope, branches)

    def _visit_if(self, node: A.If, scope: Scope) -> Scope:
        branches = [self._match_clause(clause, scope) for clause in node.clauses]
        return _export(scope, branches)

    def _visit_receive(self, node: A.Receive, scope: Scope) -> Scope:
        branches = [self._match_clause(clause, scope) for clause in node.clauses]
        if node.timeout is not None:
            scope = self.visit(node.timeout, scope)
            branches.append(self._visit_sequence(node.after, scope.push()))
        return _export(scope, branches)

    def _visit_try(self, node: A.Try, scope: Scope) -> Scope:
        body_scope = self._visit_sequence(node.body, scope.push())
        for clause in node.clauses:
            self._match_clause(clause, body_scope)
        for handler in node.handlers:
            self._handler_clause(handler, scope)
        self._visit_sequence(node.after, scope.push())
        return scope

    def _visit_comprehension(self, node, scope: Scope) -> Scope:
        inner = scope.push()
        for qualifier in node.qualifiers:
            if isinstance(qualifier, (A.Generator, A.BinGenerator)):
                inner = self.visit(qualifier.source, inner)
                inner = self.bind_pattern(qualifier.pattern, inner.push(), fresh=True)
            else:
                inner = self.visit(qualifier, inner)
        self.visit(node.template, inner)
        return scope

    # ── clauses ─────────────────────────────────────────────────────

    def _guards(self, guards: Tuple[Tuple[A.Expr, ...], ...], scope: Scope) -> None:
        for alternative in guards:
            self._visit_sequence(alternative, scope)

    def _function_clause(self, clause: A.Clause, scope: Scope) -> None:
        inner = scope.push()
        for pattern in clause.patterns:
            inner = self.bind_pattern(pattern, inner, fresh=True)
        self._guards(clause.guards, inner)
        self._visit_sequence(clause.body, inner)

    def _match_clause(self, clause: A.Clause, scope: Scope) -> Scope:
        """Case/if/receive/try-of clause; returns the clause's final scope."""
        inner = scope.push()
        for pattern in clause.patterns:
            inner = self.bind_pattern(pattern, inner, fresh=False)
        self._guards(clause.guards, inner)
        return self._visit_sequence(clause.body, inner)

    def _handler_clause(self, clause: A.Clause, scope: Scope) -> None:
        inner = scope.push()
        for pattern in clause.patterns[:2]:
            inner = self.bind_pattern(pattern, inner, fresh=False)
        if len(clause.patterns) > 2:
            inner = self.bind_pattern(clause.patterns[2], inner, fresh=True)
        self._guards(clause.guards, inner)
        self._visit_sequence(clause.body, inner)

    # ── patterns ────────────────────────────────────────────────────

    def bind_pattern(self, node: A.Expr, scope: Scope, fresh: bool) -> Scope:
        """Bind the variables of pattern *node* into the innermost frame.

        With ``fresh`` only the innermost frame counts as already bound,
        so outer names are shadowed.  Embedded expressions (binary sizes,
        map keys) are visited as ordinary uses.
        """
        if isinstance(node, A.Var):
            if node.is_anonymous:
                return scope
            if fresh:
                known = node.name in scope.innermost
            else:
                known = scope.is_bound(node.name)
            return scope if known else scope.bind((node.name,))
        if isinstance(node, _CONSTANTS):
            return scope
        if isinstance(node, A.ListExpr):
            for element in node.elements:
                scope = self.bind_pattern(element, scope, fresh)
            if node.tail is not None:
                scope = self.bind_pattern(node.tail, scope, fresh)
            return scope
        if isinstance(node, A.TupleExpr):
            for element in node.elements:
                scope = self.bind_pattern(element, scope, fresh)
            return scope
        if isinstance(node, A.Binary):
            for segment in node.segments:
                if segment.size is not None:
                    scope = self.visit(segment.size, scope)
                scope = self.bind_pattern(segment.value, scope, fresh)
            return scope
        if isinstance(node, A.MapExpr) and node.base is None:
            for map_field in node.fields:
                scope = self.visit(map_field.key, scope)
                scope = self.bind_pattern(map_field.value, scope, fresh)
            return scope
        if isinstance(node, A.RecordExpr) and node.base is None:
            for record_field in node.fields:
                scope = self.bind_pattern(record_field.value, scope, fresh)
            return scope
        if isinstance(node, A.Match):
            scope = self.bind_pattern(node.pattern, scope, fresh)
            return self.bind_pattern(node.body, scope, fresh)
        if isinstance(node, A.BinOp):
            scope = self.bind_pattern(node.left, scope, fresh)
            return self.bind_pattern(node.right, scope, fresh)
        if isinstance(node, A.UnaryOp):
            return self.bind_pattern(node.operand, scope, fresh)
        raise AnalysisError(A.kind_of(node), getattr(node, "line", None))


def _export(scope: Scope, branches: List[Scope]) -> Scope:
    """Bind into *scope* the names every branch's own frame ended with."""
    if not branches:
        return scope
    common = frozenset.intersection(*(branch.innermost for branch in branches))
    return scope.bind(common)


def free_variables(root: A.Node) -> FrozenSet[str]:
    """Names referenced in *root* but bound by no enclosing construct.

    Raises
    ------
    AnalysisError
        If *root* (or a node inside it) is not an analyzable kind, for
        instance an attribute form or a call in pattern position, or
        when the tree nests deeper than the interpreter stack allows.
    """
    return FreeVariableAnalyzer().analyze(root)


def free_vars(text: str, start_line: int = 1) -> FrozenSet[str]:
    """Free variables of the expression sequence in *text*.

    The snippet is wrapped as ``begin <text> end .`` before parsing, so
    it needs no terminator of its own.
    """
    tokens, end_line = tokenize(text, start_line)
    wrapped = [
        Token.reserved("begin", start_line),
        *tokens,
        Token.reserved("end", end_line),
        Token.dot(end_line),
    ]
    return free_variables(parse_expression_sequence(wrapped))
