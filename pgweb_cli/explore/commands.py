"""Typed user intents consumed by :class:`~pgweb_cli.explore.session.SessionContext`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .types import ObjectRef


@dataclass(frozen=True, slots=True)
class SelectObject:
    ref: ObjectRef


@dataclass(frozen=True, slots=True)
class SetSort:
    column: str


@dataclass(frozen=True, slots=True)
class ClearSort:
    pass


@dataclass(frozen=True, slots=True)
class SetFilter:
    column: str
    operator: str
    value: str = ""


@dataclass(frozen=True, slots=True)
class ClearFilter:
    pass


@dataclass(frozen=True, slots=True)
class NextPage:
    pass


@dataclass(frozen=True, slots=True)
class PrevPage:
    pass


@dataclass(frozen=True, slots=True)
class GoToPage:
    page: int


@dataclass(frozen=True, slots=True)
class SetRowsLimit:
    limit: int


Command = Union[
    SelectObject, SetSort, ClearSort, SetFilter, ClearFilter, NextPage, PrevPage, GoToPage, SetRowsLimit
]
