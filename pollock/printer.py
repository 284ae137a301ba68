"""pollock/printer.py – syntax trees back to Erlang source text.

The output re-parses to a tree equal to the input (line numbers aside).
Nested operator applications are always parenthesised rather than
relying on precedence, and atoms are quoted only when their bare
spelling would lex as something else.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from pollock import ast as A
from pollock.lexer import RESERVED_WORDS

__all__ = ["Printer", "format_expression", "format_forms", "quote_atom"]


_BARE_ATOM = re.compile(r"[a-zß-öø-ÿ][a-zA-Z0-9_@ß-öø-ÿÀ-ÖØ-Þ]*\Z")

_ESCAPES = {
    "\\": "\\\\", "\b": "\\b", "\x7f": "\\d", "\x1b": "\\e", "\f": "\\f",
    "\n": "\\n", "\r": "\\r", "\t": "\\t", "\v": "\\v",
}

# Nodes that need no parentheses where the grammar wants a primary.
_PRIMARY = (
    A.Atom, A.Var, A.Char, A.String, A.Nil, A.ListExpr, A.TupleExpr,
    A.Binary, A.ListComp, A.BinComp, A.Block, A.Case, A.If, A.Receive,
    A.Try, A.Fun, A.RecordIndex,
)

# Postfix chains: may precede '(' or '#' without parentheses.
_POSTFIX = (A.Call, A.Remote, A.RecordAccess)


def _escape(text: str, quote: str) -> str:
    out = []
    for ch in text:
        if ch == quote:
            out.append("\\" + ch)
        elif ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20:
            out.append(f"\\x{{{ord(ch):X}}}")
        else:
            out.append(ch)
    return "".join(out)


def quote_atom(name: str) -> str:
    """Spell *name* as an atom, quoting when the bare form would not lex."""
    if _BARE_ATOM.match(name) and name not in RESERVED_WORDS:
        return name
    return "'" + _escape(name, "'") + "'"


def _format_float(value: float) -> str:
    text = repr(value)
    if "." not in text:
        mantissa, _, exponent = text.partition("e")
        text = f"{mantissa}.0" + (f"e{exponent}" if exponent else "")
    return text


def _format_char(value: int) -> str:
    ch = chr(value)
    if ch == " ":
        return "$\\s"
    if ch in _ESCAPES or value < 0x20:
        return "$" + _escape(ch, "")
    return "$" + ch


class Printer:
    """Renders nodes; one ``_format_<kind>`` method per node class."""

    def format(self, node: A.Node) -> str:
        method = getattr(self, "_format_" + type(node).__name__.lower(), None)
        if method is None:
            raise TypeError(f"cannot print node of kind {A.kind_of(node)}")
        return method(node)

    def format_forms(self, forms: Iterable[A.Form]) -> str:
        return "".join(self.format(form) + "\n" for form in forms)

    # ── helpers ─────────────────────────────────────────────────────

    def _join(self, nodes: Sequence[A.Node], sep: str = ", ") -> str:
        return sep.join(self.format(node) for node in nodes)

    def _primary(self, node: A.Node) -> str:
        text = self.format(node)
        if isinstance(node, _PRIMARY):
            return text
        if isinstance(node, (A.Integer, A.Float)) and node.value >= 0:
            return text
        if isinstance(node, (A.MapExpr, A.RecordExpr)) and node.base is None:
            return text
        return f"({text})"

    def _postfix_base(self, node: A.Node) -> str:
        if isinstance(node, _POSTFIX):
            return self.format(node)
        if isinstance(node, (A.MapExpr, A.RecordExpr)):
            return self.format(node)
        return self._primary(node)

    def _operand(self, node: A.Node) -> str:
        text = self.format(node)
        if isinstance(node, (A.BinOp, A.Match, A.Catch)):
            return f"({text})"
        return text

    def _guards(self, guards) -> str:
        if not guards:
            return ""
        return " when " + "; ".join(self._join(alt) for alt in guards)

    def _clause(self, clause: A.Clause, head: str) -> str:
        return f"{head}{self._guards(clause.guards)} -> {self._join(clause.body)}"

    def _cr_clauses(self, clauses: Sequence[A.Clause]) -> str:
        return "; ".join(
            self._clause(clause, self._join(clause.patterns)) for clause in clauses
        )

    # ── terms ───────────────────────────────────────────────────────

    def _format_atom(self, node: A.Atom) -> str:
        return quote_atom(node.name)

    def _format_var(self, node: A.Var) -> str:
        return node.name

    def _format_integer(self, node: A.Integer) -> str:
        return str(node.value)

    def _format_float(self, node: A.Float) -> str:
        return _format_float(node.value)

    def _format_char(self, node: A.Char) -> str:
        return _format_char(node.value)

    def _format_string(self, node: A.String) -> str:
        return '"' + _escape(node.value, '"') + '"'

    def _format_nil(self, node: A.Nil) -> str:
        return "[]"

    # ── compound data ───────────────────────────────────────────────

    def _format_listexpr(self, node: A.ListExpr) -> str:
        tail = f" | {self.format(node.tail)}" if node.tail is not None else ""
        return f"[{self._join(node.elements)}{tail}]"

    def _format_tupleexpr(self, node: A.TupleExpr) -> str:
        return "{" + self._join(node.elements) + "}"

    def _segment_value(self, node: A.Expr) -> str:
        if isinstance(node, A.UnaryOp) and node.op in ("-", "+"):
            return node.op + self._primary(node.operand)
        return self._primary(node)

    def _format_binsegment(self, node: A.BinSegment) -> str:
        text = self._segment_value(node.value)
        if node.size is not None:
            text += ":" + self._primary(node.size)
        if node.types:
            text += "/" + "-".join(
                quote_atom(t) if isinstance(t, str) else f"{quote_atom(t[0])}:{t[1]}"
                for t in node.types
            )
        return text

    def _format_binary(self, node: A.Binary) -> str:
        if not node.segments:
            return "<<>>"
        return "<<" + self._join(node.segments) + ">>"

    def _format_mapfield(self, node: A.MapField) -> str:
        arrow = ":=" if node.exact else "=>"
        return f"{self.format(node.key)} {arrow} {self.format(node.value)}"

    def _format_mapexpr(self, node: A.MapExpr) -> str:
        base = self._postfix_base(node.base) if node.base is not None else ""
        return f"{base}#{{{self._join(node.fields)}}}"

    def _format_recordfield(self, node: A.RecordField) -> str:
        name = node.name if node.name == "_" else quote_atom(node.name)
        return f"{name} = {self.format(node.value)}"

    def _format_recordexpr(self, node: A.RecordExpr) -> str:
        base = self._postfix_base(node.base) if node.base is not None else ""
        return f"{base}#{quote_atom(node.name)}{{{self._join(node.fields)}}}"

    def _format_recordaccess(self, node: A.RecordAccess) -> str:
        base = self._postfix_base(node.base)
        return f"{base}#{quote_atom(node.name)}.{quote_atom(node.field)}"

    def _format_recordindex(self, node: A.RecordIndex) -> str:
        return f"#{quote_atom(node.name)}.{quote_atom(node.field)}"

    # ── operators, calls, funs ──────────────────────────────────────

    def _format_binop(self, node: A.BinOp) -> str:
        if node.op == "!":
            right = self._match_body(node.right)
        else:
            right = self._operand(node.right)
        return f"{self._operand(node.left)} {node.op} {right}"

    def _format_unaryop(self, node: A.UnaryOp) -> str:
        operand = self.format(node.operand)
        if isinstance(node.operand, (A.BinOp, A.Match, A.Catch)):
            operand = f"({operand})"
        if node.op in ("not", "bnot") or operand.startswith(("-", "+")):
            return f"{node.op} {operand}"
        return node.op + operand

    def _match_body(self, node: A.Expr) -> str:
        text = self.format(node)
        return f"({text})" if isinstance(node, A.Catch) else text

    def _format_match(self, node: A.Match) -> str:
        return f"{self._operand(node.pattern)} = {self._match_body(node.body)}"

    def _format_catch(self, node: A.Catch) -> str:
        return f"catch {self.format(node.expr)}"

    def _format_remote(self, node: A.Remote) -> str:
        return f"{self._primary(node.module)}:{self._primary(node.function)}"

    def _format_call(self, node: A.Call) -> str:
        return f"{self._postfix_base(node.func)}({self._join(node.args)})"

    def _format_funref(self, node: A.FunRef) -> str:
        target = self._primary(node.name)
        if node.module is not None:
            target = f"{self._primary(node.module)}:{target}"
        return f"fun {target}/{self._primary(node.arity)}"

    def _format_fun(self, node: A.Fun) -> str:
        head = node.name or ""
        clauses = "; ".join(
            self._clause(clause, f"{head}({self._join(clause.patterns)})")
            for clause in node.clauses
        )
        return f"fun {clauses} end"

    # ── blocks ──────────────────────────────────────────────────────

    def _format_block(self, node: A.Block) -> str:
        return f"begin {self._join(node.body)} end"

    def _format_case(self, node: A.Case) -> str:
        return f"case {self.format(node.expr)} of {self._cr_clauses(node.clauses)} end"

    def _format_if(self, node: A.If) -> str:
        clauses = "; ".join(
            f"{'; '.join(self._join(alt) for alt in clause.guards)} -> {self._join(clause.body)}"
            for clause in node.clauses
        )
        return f"if {clauses} end"

    def _format_receive(self, node: A.Receive) -> str:
        parts = ["receive"]
        if node.clauses:
            parts.append(self._cr_clauses(node.clauses))
        if node.timeout is not None:
            parts.append(f"after {self.format(node.timeout)} -> {self._join(node.after)}")
        parts.append("end")
        return " ".join(parts)

    def _handler_head(self, clause: A.Clause) -> str:
        patterns = clause.patterns
        if len(patterns) == 1:
            return self.format(patterns[0])
        return ":".join(self._primary(p) for p in patterns)

    def _format_try(self, node: A.Try) -> str:
        parts = [f"try {self._join(node.body)}"]
        if node.clauses:
            parts.append(f"of {self._cr_clauses(node.clauses)}")
        if node.handlers:
            handlers = "; ".join(
                self._clause(clause, self._handler_head(clause)) for clause in node.handlers
            )
            parts.append(f"catch {handlers}")
        if node.after:
            parts.append(f"after {self._join(node.after)}")
        parts.append("end")
        return " ".join(parts)

    def _format_generator(self, node: A.Generator) -> str:
        return f"{self.format(node.pattern)} <- {self.format(node.source)}"

    def _format_bingenerator(self, node: A.BinGenerator) -> str:
        return f"{self.format(node.pattern)} <= {self.format(node.source)}"

    def _format_listcomp(self, node: A.ListComp) -> str:
        return f"[{self.format(node.template)} || {self._join(node.qualifiers)}]"

    def _format_bincomp(self, node: A.BinComp) -> str:
        template = self._segment_value(node.template)
        return f"<< {template} || {self._join(node.qualifiers)} >>"

    # ── forms ───────────────────────────────────────────────────────

    def _format_function(self, node: A.Function) -> str:
        name = quote_atom(node.name)
        clauses = ";\n".join(
            self._clause(clause, f"{name}({self._join(clause.patterns)})")
            for clause in node.clauses
        )
        return clauses + "."

    def _format_attribute(self, node: A.Attribute) -> str:
        return f"-{quote_atom(node.name)}({self._join(node.args)})."

    def _format_typeattribute(self, node: A.TypeAttribute) -> str:
        return f"-{quote_atom(node.name)} {node.text}."


_PRINTER = Printer()


def format_expression(node: A.Node) -> str:
    """Erlang source for a single expression (or any other node)."""
    return _PRINTER.format(node)


def format_forms(forms: Iterable[A.Form]) -> str:
    """Erlang source for a form sequence, one form per line."""
    return _PRINTER.format_forms(forms)
