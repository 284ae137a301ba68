"""pollock/splitter.py – partition a form sequence around one function.

``split_at(forms, name, arity)`` scans left to right and stops at the
first :class:`~pollock.ast.Function` whose ``(name, arity)`` matches.
The result is a :class:`Split` whose three parts concatenate back to the
input, or a falsy :class:`NotFound` value when nothing matches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NamedTuple, Sequence, Tuple, Union

from pollock import ast as A

logger = logging.getLogger(__name__)

__all__ = ["Split", "NotFound", "split_at", "split_forms_at_function"]


class Split(NamedTuple):
    """``before + matched + after`` is the original sequence."""

    before: Tuple[A.Form, ...]
    matched: Tuple[A.Function]
    after: Tuple[A.Form, ...]

    @property
    def function(self) -> A.Function:
        return self.matched[0]


@dataclass(frozen=True, slots=True)
class NotFound:
    """No function ``name/arity`` in the scanned sequence."""

    name: str
    arity: int

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"function {self.name}/{self.arity} not found"


def split_at(
    forms: Sequence[A.Form], name: str, arity: int,
) -> Union[Split, NotFound]:
    forms = tuple(forms)
    for index, form in enumerate(forms):
        if isinstance(form, A.Function) and form.name == name and form.arity == arity:
            logger.debug("split at %s/%d, form #%d", name, arity, index)
            return Split(forms[:index], (form,), forms[index + 1:])
    return NotFound(name, arity)


split_forms_at_function = split_at
