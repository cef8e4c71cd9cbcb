"""Paging and sorting primitives shared by the search operations.

A PageRequest is parsed from raw strings (query-string style) and validated
against the set of sortable fields an entity exposes. Results come back as a
Page carrying both the rows and PageMetadata for navigation.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, List, Mapping, Optional, Sequence, TypeVar

from dsptracker.core.config import FIRST_PAGE, get_default_page_size, get_max_page_size
from dsptracker.core.errors import AllowedValues, Bound, FieldValue, InvalidFieldValueError

T = TypeVar("T")
U = TypeVar("U")


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Sort:
    field: str
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def parse(cls, raw: str, fields: Iterable[str]) -> "Sort":
        """Parse `field` or `field:direction` (both case-insensitive)."""
        allowed = list(fields)
        field_raw, sep, dir_raw = raw.partition(":")
        name = field_raw.strip().lower()
        if name not in allowed:
            raise InvalidFieldValueError(FieldValue("sort:field", field_raw), AllowedValues.choice(allowed))
        if not sep:
            return cls(name)
        try:
            direction = SortDirection(dir_raw.strip().lower())
        except ValueError:
            raise InvalidFieldValueError(
                FieldValue("sort:direction", dir_raw),
                AllowedValues.choice(d.value for d in SortDirection),
            ) from None
        return cls(name, direction)


def _parse_positive(name: str, raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    text = str(raw).strip()
    if not text.isdecimal():
        raise InvalidFieldValueError(FieldValue(name, raw), AllowedValues.integer(min=Bound.including(1)))
    return int(text)


@dataclass(frozen=True)
class PageRequest:
    page: int = FIRST_PAGE
    size: int = field(default_factory=get_default_page_size)
    sorts: Sequence[Sort] = ()

    @classmethod
    def parse(
        cls,
        page: Optional[str] = None,
        size: Optional[str] = None,
        sorts: Iterable[str] = (),
        *,
        fields: Iterable[str],
        default_field: str,
    ) -> "PageRequest":
        """Build a validated request; page is clamped to >= 1 and size to 1..MAX_PAGE_SIZE."""
        allowed = list(fields)
        parsed_sorts = [Sort.parse(s, allowed) for s in sorts]
        if not parsed_sorts:
            parsed_sorts = [Sort(default_field)]
        page_num = _parse_positive("page", page)
        size_num = _parse_positive("size", size)
        if page_num is None:
            page_num = FIRST_PAGE
        if size_num is None:
            size_num = get_default_page_size()
        return cls(
            page=max(page_num, FIRST_PAGE),
            size=min(max(size_num, 1), get_max_page_size()),
            sorts=tuple(parsed_sorts),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size

    def order_by(self, columns: Mapping[str, object], default_field: str) -> List[object]:
        """Translate sorts into SQLAlchemy order_by clauses using the given column map."""
        sorts = self.sorts or (Sort(default_field),)
        clauses = []
        for sort in sorts:
            column = columns[sort.field]
            clauses.append(column.desc() if sort.direction is SortDirection.DESC else column.asc())  # type: ignore[attr-defined]
        return clauses


@dataclass(frozen=True)
class PageMetadata:
    total_results: int
    total_pages: int
    current_page: int
    next_page: Optional[int] = None
    prev_page: Optional[int] = None

    @classmethod
    def build(cls, page: int, size: int, total_results: int) -> "PageMetadata":
        total_pages = math.ceil(total_results / size) if size else 0
        return cls(
            total_results=total_results,
            total_pages=total_pages,
            current_page=page,
            next_page=page + 1 if page < total_pages else None,
            prev_page=page - 1 if page > 1 else None,
        )


@dataclass
class Page(Generic[T]):
    data: List[T]
    metadata: PageMetadata

    def map(self, fn: Callable[[T], U]) -> "Page[U]":
        return Page([fn(item) for item in self.data], self.metadata)


__all__ = [
    "SortDirection",
    "Sort",
    "PageRequest",
    "PageMetadata",
    "Page",
]
