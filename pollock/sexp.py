"""pollock/sexp.py – S-expression dump of syntax trees.

Every node is written as ``(Kind line field ...)`` with fields in
declaration order.  Field values map as follows:

    node          → nested ``(Kind ...)`` list
    tuple         → list
    str           → string literal
    int / float   → number
    None          → symbol ``none``
    True / False  → symbols ``true`` / ``false``

A form sequence is written as a list of node lists.  The encoding is
lossless, so ``from_sexp(to_sexp(x)) == x`` and line numbers survive
as well.
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Iterable, Tuple, Union

import sexpdata
from sexpdata import ExpectClosingBracket, ExpectNothing, Symbol

from pollock import ast as A

__all__ = ["to_sexp", "from_sexp", "encode", "decode"]

_NONE = Symbol("none")
_TRUE = Symbol("true")
_FALSE = Symbol("false")


def encode(value: Any) -> Any:
    """Convert a node (or field value) to sexpdata-ready Python data."""
    if isinstance(value, A._NODE_CLASSES):
        items = [Symbol(A.kind_of(value)), value.line]
        items.extend(
            encode(getattr(value, f.name)) for f in fields(value) if f.name != "line"
        )
        return items
    if isinstance(value, tuple):
        return [encode(item) for item in value]
    if value is None:
        return _NONE
    if isinstance(value, bool):
        return _TRUE if value else _FALSE
    if isinstance(value, (str, int, float)):
        return value
    raise TypeError(f"cannot encode {type(value).__name__} value {value!r}")


def _symbol_name(value: Any) -> str:
    return value.value() if hasattr(value, "value") else str(value)


def decode(data: Any) -> Any:
    """Inverse of :func:`encode`.

    Raises
    ------
    ValueError
        On unknown node kinds, wrong field counts or stray symbols.
    """
    if isinstance(data, Symbol):
        name = _symbol_name(data)
        if name == "none":
            return None
        if name == "true":
            return True
        if name == "false":
            return False
        raise ValueError(f"unexpected symbol {name!r}")
    if isinstance(data, list):
        if data and isinstance(data[0], Symbol):
            return _decode_node(data)
        return tuple(decode(item) for item in data)
    if isinstance(data, (str, int, float)):
        return data
    raise ValueError(f"unexpected datum {data!r}")


def _decode_node(data: Any) -> A.Node:
    if not (isinstance(data, list) and data and isinstance(data[0], Symbol)):
        raise ValueError(f"expected a node, got {data!r}")
    kind = _symbol_name(data[0])
    cls = A.NODE_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"unknown node kind {kind!r}")
    names = [f.name for f in fields(cls) if f.name != "line"]
    if len(data) != len(names) + 2 or not isinstance(data[1], int):
        raise ValueError(f"malformed {kind} node: expected line and {len(names)} field(s)")
    values = {name: decode(item) for name, item in zip(names, data[2:])}
    return cls(line=data[1], **values)


def to_sexp(tree: Union[A.Node, Iterable[A.Form]]) -> str:
    """Dump a node, or a sequence of forms, as S-expression text."""
    if isinstance(tree, A._NODE_CLASSES):
        return sexpdata.dumps(encode(tree))
    return sexpdata.dumps([encode(form) for form in tree])


def from_sexp(text: str) -> Union[A.Node, Tuple[A.Node, ...]]:
    """Read a dump written by :func:`to_sexp`.

    A single node comes back as that node; a sequence comes back as a
    tuple of nodes.
    """
    if not text.strip():
        raise ValueError("empty S-expression dump")
    try:
        data = sexpdata.loads(text, nil=None, true=None, false=None)
    except (ExpectClosingBracket, ExpectNothing) as exc:
        raise ValueError(f"malformed S-expression: {exc}") from exc
    if not isinstance(data, list):
        raise ValueError("expected a node or a list of nodes")
    if data and isinstance(data[0], Symbol):
        return _decode_node(data)
    return tuple(_decode_node(item) for item in data)
