"""Parameterized query composition shared by the SQL repositories.

Every builder here threads a 1-based placeholder index through the
fragments it emits, so that a composed :class:`Statement` always carries
exactly one parameter per ``:pN`` marker. Identifiers (columns, sort
fields) are only ever taken from allow-lists defined in code.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from enum import Enum
from itertools import chain
from typing import Any, Callable, Iterable, Mapping, Sequence

from ..db.adapters.base import PLACEHOLDER_PREFIX, placeholder
from ..exceptions import ValidationFailure

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")
_PLACEHOLDER = re.compile(rf":{PLACEHOLDER_PREFIX}(\d+)\b")


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, value: object, default: "SortDirection") -> "SortDirection":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                return default
        return default


@dataclass(frozen=True, slots=True)
class PaginationLimits:
    """Bounds applied when sanitizing caller supplied pagination options."""

    default_limit: int = 50
    max_limit: int = 100
    max_offset: int = 10_000

    def __post_init__(self) -> None:
        if self.default_limit < 1:
            raise ValueError("default_limit must be at least 1")
        if self.max_limit < self.default_limit:
            raise ValueError("max_limit cannot be lower than default_limit")
        if self.max_offset < 0:
            raise ValueError("max_offset cannot be negative")


def _coerce_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # Fractional and non-finite numbers fall back to the default, like "9.9" does.
        if not math.isfinite(value) or not value.is_integer():
            return None
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


@dataclass(frozen=True, slots=True)
class PaginationSpec:
    """Validated limit/offset/sort triple handed to the statement builders.

    Direct construction validates the values. :meth:`from_options` is the
    lenient path for raw caller input: it clamps numbers into range and
    falls back to defaults for anything it cannot use.
    """

    limit: int
    offset: int
    sort_field: str
    sort_direction: SortDirection = SortDirection.DESC

    def __post_init__(self) -> None:
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise ValidationFailure("limit must be a positive integer", field="limit", value=self.limit)
        if isinstance(self.offset, bool) or not isinstance(self.offset, int) or self.offset < 0:
            raise ValidationFailure(
                "offset must be a non-negative integer", field="offset", value=self.offset
            )
        if not _IDENTIFIER.match(self.sort_field):
            raise ValidationFailure(
                "sort field is not a valid column name", field="sort_field", value=self.sort_field
            )
        if not isinstance(self.sort_direction, SortDirection):
            raise ValidationFailure(
                "sort direction must be ASC or DESC",
                field="sort_direction",
                value=self.sort_direction,
            )

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any] | None,
        *,
        sort_fields: Sequence[str],
        default_sort_field: str,
        default_direction: SortDirection = SortDirection.DESC,
        limits: PaginationLimits | None = None,
    ) -> "PaginationSpec":
        limits = limits or PaginationLimits()
        options = options or {}

        limit = _coerce_int(options.get("limit"))
        if limit is None:
            limit = limits.default_limit
        limit = min(max(limit, 1), limits.max_limit)

        offset = _coerce_int(options.get("offset"))
        offset = min(max(offset or 0, 0), limits.max_offset)

        sort_by = options.get("sort_by")
        sort_field = sort_by if isinstance(sort_by, str) and sort_by in sort_fields else default_sort_field
        direction = SortDirection.parse(options.get("sort_order"), default_direction)
        return cls(limit=limit, offset=offset, sort_field=sort_field, sort_direction=direction)

    def clamped(self, limits: PaginationLimits) -> "PaginationSpec":
        """Return this spec with limit and offset pulled inside ``limits``."""

        limit = min(self.limit, limits.max_limit)
        offset = min(self.offset, limits.max_offset)
        if (limit, offset) == (self.limit, self.offset):
            return self
        return replace(self, limit=limit, offset=offset)


@dataclass(frozen=True, slots=True)
class QueryFragment:
    """Text emitted at ``next_index - len(params)`` plus the values it binds."""

    text: str = ""
    params: tuple[Any, ...] = ()
    next_index: int = 1


@dataclass(frozen=True, slots=True)
class FilterField:
    """Allow-listed filter: logical ``name`` mapped onto a predicate template.

    ``template`` holds one ``{}`` slot per placeholder. The filter value is
    bound once per slot, so composite predicates such as the conference
    sub-selects stay in parity with their parameters.
    """

    name: str
    template: str
    arity: int = 1
    transform: Callable[[Any], Any] | None = None

    def __post_init__(self) -> None:
        if self.arity < 1:
            raise ValueError("a filter binds at least one parameter")
        if self.template.count("{}") != self.arity:
            raise ValueError(f"filter '{self.name}' template does not have {self.arity} slot(s)")

    @classmethod
    def equals(cls, name: str, column: str | None = None) -> "FilterField":
        return cls(name, f"{column or name} = {{}}")

    def fragment(self, value: Any, index: int) -> QueryFragment:
        markers = [placeholder(index + offset) for offset in range(self.arity)]
        bound = self.transform(value) if self.transform is not None else value
        return QueryFragment(
            text=self.template.format(*markers),
            params=(bound,) * self.arity,
            next_index=index + self.arity,
        )


def is_present(value: object) -> bool:
    return value is not None and value != ""


def compose_filters(
    fields: Iterable[FilterField],
    filters: Mapping[str, Any] | None,
    start_index: int = 1,
) -> QueryFragment:
    """Append ``AND <predicate>`` for each allow-listed field present in ``filters``.

    Fields are visited in the order given; keys outside the allow-list are
    ignored.
    """

    filters = filters or {}
    text: list[str] = []
    params: list[Any] = []
    index = start_index
    for field in fields:
        value = filters.get(field.name)
        if not is_present(value):
            continue
        fragment = field.fragment(value, index)
        text.append(f" AND {fragment.text}")
        params.extend(fragment.params)
        index = fragment.next_index
    return QueryFragment("".join(text), tuple(params), index)


def order_and_page(
    pagination: PaginationSpec,
    index: int,
    *,
    sort_fields: Sequence[str],
) -> QueryFragment:
    if pagination.sort_field not in sort_fields:
        raise ValidationFailure(
            f"Cannot sort by '{pagination.sort_field}'",
            field="sort_field",
            value=pagination.sort_field,
        )
    text = (
        f" ORDER BY {pagination.sort_field} {pagination.sort_direction.value}"
        f" LIMIT {placeholder(index)} OFFSET {placeholder(index + 1)}"
    )
    return QueryFragment(text, (pagination.limit, pagination.offset), index + 2)


@dataclass(frozen=True, slots=True)
class Statement:
    """Final statement text with its ordered parameters."""

    text: str
    params: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        found = {int(number) for number in _PLACEHOLDER.findall(self.text)}
        if found != set(range(1, len(self.params) + 1)):
            raise ValueError(
                f"statement binds {len(self.params)} parameter(s) but references {sorted(found)}"
            )

    @classmethod
    def compose(cls, head: str, *fragments: QueryFragment) -> "Statement":
        text = head + "".join(fragment.text for fragment in fragments)
        params = tuple(chain.from_iterable(fragment.params for fragment in fragments))
        return cls(text, params)

    @property
    def placeholder_count(self) -> int:
        return len(_PLACEHOLDER.findall(self.text))

    def bind(self) -> dict[str, Any]:
        return {f"{PLACEHOLDER_PREFIX}{index}": value for index, value in enumerate(self.params, start=1)}


def select_allowed(data: Mapping[str, Any], allowed: Iterable[str]) -> dict[str, Any]:
    """Return the entries of ``data`` whose keys are in ``allowed``, in allow-list order."""

    return {key: data[key] for key in allowed if key in data}


__all__ = [
    "FilterField",
    "PaginationLimits",
    "PaginationSpec",
    "QueryFragment",
    "SortDirection",
    "Statement",
    "compose_filters",
    "is_present",
    "order_and_page",
    "select_allowed",
]
