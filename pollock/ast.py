"""pollock/ast.py – Abstract syntax for Erlang expressions and forms.

Design invariants
-----------------
* Every node is a frozen dataclass (immutable after construction).
* Children are held in tuples, never lists.
* Every node records the ``line`` it started on.  ``line`` is excluded
  from equality, so two trees with the same shape compare equal no
  matter where they were parsed from.
* The variant set is closed: ``Expr`` and ``Form`` below list every
  node the parser can produce.  Consumers dispatch on the concrete
  class and treat anything else as an error.

Module layout
-------------
§1  Terms (literals, variables)
§2  Compound data (lists, tuples, binaries, maps, records)
§3  Operators, calls and funs
§4  Clauses and block expressions
§5  Top-level forms
§6  Helpers
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Iterator, Optional, Tuple, Union

# ════════════════════════════════════════════════════════════════════════
# §1  Terms
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Atom:
    """A literal atom (``ok``, ``'EXIT'``).  Atoms are never variables."""

    name: str
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Var:
    """A variable reference or binding occurrence (``X``, ``_Acc``, ``_``)."""

    name: str
    line: int = field(default=0, repr=False, compare=False)

    @property
    def is_anonymous(self) -> bool:
        """The universal pattern ``_`` binds nothing."""
        return self.name == "_"


@dataclass(frozen=True, slots=True)
class Integer:
    value: int
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Float:
    value: float
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Char:
    """A character literal ``$c``; ``value`` is the code point."""

    value: int
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class String:
    value: str
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Nil:
    """The empty list ``[]``."""

    line: int = field(default=0, repr=False, compare=False)


# ════════════════════════════════════════════════════════════════════════
# §2  Compound data
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ListExpr:
    """``[E1, E2 | Tail]``; ``tail`` is ``None`` for a proper list."""

    elements: Tuple[Expr, ...]
    tail: Optional[Expr] = None
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class TupleExpr:
    """``{E1, ..., En}``."""

    elements: Tuple[Expr, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class BinSegment:
    """One ``Value:Size/Type-Specifiers`` element of a binary.

    ``types`` holds bare specifier names (``"integer"``) or
    ``("unit", 8)`` pairs.
    """

    value: Expr
    size: Optional[Expr] = None
    types: Tuple[Union[str, Tuple[str, int]], ...] = ()
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Binary:
    """``<<Seg1, Seg2>>``."""

    segments: Tuple[BinSegment, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class MapField:
    """``K => V`` (``exact=False``) or ``K := V`` (``exact=True``)."""

    key: Expr
    value: Expr
    exact: bool = False
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class MapExpr:
    """``#{...}`` or the update ``Base#{...}``."""

    base: Optional[Expr]
    fields: Tuple[MapField, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class RecordField:
    """``name = Value`` inside a record expression (``name`` may be ``_``)."""

    name: str
    value: Expr
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class RecordExpr:
    """``#rec{...}`` or the update ``Base#rec{...}``."""

    base: Optional[Expr]
    name: str
    fields: Tuple[RecordField, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class RecordAccess:
    """``Base#rec.field``."""

    base: Expr
    name: str
    field: str
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class RecordIndex:
    """``#rec.field`` – the field's tuple position."""

    name: str
    field: str
    line: int = field(default=0, repr=False, compare=False)


# ════════════════════════════════════════════════════════════════════════
# §3  Operators, calls and funs
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class BinOp:
    """Infix operator application, including send (``!``)."""

    op: str
    left: Expr
    right: Expr
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class UnaryOp:
    """Prefix operator: ``-``, ``+``, ``not``, ``bnot``."""

    op: str
    operand: Expr
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Match:
    """``Pattern = Body``.  The body is evaluated before the pattern binds."""

    pattern: Expr
    body: Expr
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Catch:
    """``catch Expr``."""

    expr: Expr
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Remote:
    """``Module:Function`` in call position."""

    module: Expr
    function: Expr
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Call:
    """Function application; ``func`` is any expression or a ``Remote``."""

    func: Expr
    args: Tuple[Expr, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class FunRef:
    """``fun name/Arity`` or ``fun Mod:Name/Arity``."""

    module: Optional[Expr]
    name: Expr
    arity: Expr
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Fun:
    """Anonymous function; ``name`` is set for ``fun Name(...) -> ... end``."""

    clauses: Tuple[Clause, ...]
    name: Optional[str] = None
    line: int = field(default=0, repr=False, compare=False)


# ════════════════════════════════════════════════════════════════════════
# §4  Clauses and block expressions
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Clause:
    """``Patterns when Guards -> Body``.

    ``guards`` is a guard sequence: alternatives separated by ``;``, each
    a tuple of tests separated by ``,``.  In ``try ... catch`` handlers
    ``patterns`` holds ``(Reason,)``, ``(Class, Reason)`` or
    ``(Class, Reason, Stacktrace)``.
    """

    patterns: Tuple[Expr, ...]
    guards: Tuple[Tuple[Expr, ...], ...]
    body: Tuple[Expr, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Block:
    """``begin E1, ..., En end`` – also the root of a parsed snippet."""

    body: Tuple[Expr, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Case:
    expr: Expr
    clauses: Tuple[Clause, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class If:
    """``if`` – every clause has empty ``patterns``."""

    clauses: Tuple[Clause, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Receive:
    """``receive Clauses after Timeout -> AfterBody end``."""

    clauses: Tuple[Clause, ...]
    timeout: Optional[Expr] = None
    after: Tuple[Expr, ...] = ()
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Try:
    """``try Body of Clauses catch Handlers after After end``."""

    body: Tuple[Expr, ...]
    clauses: Tuple[Clause, ...] = ()
    handlers: Tuple[Clause, ...] = ()
    after: Tuple[Expr, ...] = ()
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Generator:
    """``Pattern <- ListExpr``."""

    pattern: Expr
    source: Expr
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class BinGenerator:
    """``BinaryPattern <= BinaryExpr``."""

    pattern: Expr
    source: Expr
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class ListComp:
    """``[Template || Qualifiers]``; a qualifier is a generator or a filter."""

    template: Expr
    qualifiers: Tuple[Qualifier, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class BinComp:
    """``<< Template || Qualifiers >>``."""

    template: Expr
    qualifiers: Tuple[Qualifier, ...]
    line: int = field(default=0, repr=False, compare=False)


# ════════════════════════════════════════════════════════════════════════
# §5  Top-level forms
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Function:
    """A function declaration; ``(name, arity)`` is its identity."""

    name: str
    arity: int
    clauses: Tuple[Clause, ...]
    line: int = field(default=0, repr=False, compare=False)

    @property
    def signature(self) -> str:
        return f"{self.name}/{self.arity}"


@dataclass(frozen=True, slots=True)
class Attribute:
    """``-name(Arg1, ..., ArgN).`` with expression arguments."""

    name: str
    args: Tuple[Expr, ...]
    line: int = field(default=0, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class TypeAttribute:
    """``-spec``/``-type``/typed ``-record`` attributes kept as raw text."""

    name: str
    text: str
    line: int = field(default=0, repr=False, compare=False)


# ════════════════════════════════════════════════════════════════════════
# §6  Helpers
# ════════════════════════════════════════════════════════════════════════

Expr = Union[
    Atom, Var, Integer, Float, Char, String, Nil,
    ListExpr, TupleExpr, Binary, MapExpr, RecordExpr, RecordAccess, RecordIndex,
    BinOp, UnaryOp, Match, Catch, Remote, Call, FunRef, Fun,
    Block, Case, If, Receive, Try, ListComp, BinComp,
]

Qualifier = Union[Generator, BinGenerator, Expr]

Form = Union[Function, Attribute, TypeAttribute]

Node = Union[Expr, Form, Clause, BinSegment, MapField, RecordField, Generator, BinGenerator]

#: Every concrete node class, keyed by class name (used by the S-expression codec).
NODE_TYPES = {
    cls.__name__: cls
    for cls in (
        Atom, Var, Integer, Float, Char, String, Nil,
        ListExpr, TupleExpr, BinSegment, Binary, MapField, MapExpr,
        RecordField, RecordExpr, RecordAccess, RecordIndex,
        BinOp, UnaryOp, Match, Catch, Remote, Call, FunRef, Fun,
        Clause, Block, Case, If, Receive, Try,
        Generator, BinGenerator, ListComp, BinComp,
        Function, Attribute, TypeAttribute,
    )
}


_NODE_CLASSES = tuple(NODE_TYPES.values())


def kind_of(node: object) -> str:
    """Node-kind name used in diagnostics."""
    return type(node).__name__


def children(node: Node) -> Iterator[Node]:
    """Yield the direct child nodes of *node* in source order."""
    for f in fields(node):
        if f.name == "line":
            continue
        yield from _nodes_in(getattr(node, f.name))


def _nodes_in(value: object) -> Iterator[Node]:
    if isinstance(value, _NODE_CLASSES):
        yield value  # type: ignore[misc]
    elif isinstance(value, tuple):
        for item in value:
            yield from _nodes_in(item)


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of *node* and all its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(children(current))))
