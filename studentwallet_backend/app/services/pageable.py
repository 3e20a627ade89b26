import math
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from app.config import settings

T = TypeVar("T")


@dataclass(frozen=True)
class Pageable:
    """Offset paging: ``number`` is 0-based, ``size`` rows per page."""

    number: int = 0
    size: int = settings.PAGE_SIZE_DEFAULT

    @property
    def offset(self) -> int:
        return self.number * self.size


@dataclass
class Slice(Generic[T]):
    content: list[T] = field(default_factory=list)
    total_elements: int = 0


def _parse(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def create_pageable(number: Any = None, size: Any = None) -> Pageable:
    page_number = _parse(number, 0)
    if page_number < 0:
        page_number = 0
    page_size = _parse(size, settings.PAGE_SIZE_DEFAULT)
    if page_size <= 0 or page_size > settings.PAGE_SIZE_MAX:
        page_size = settings.PAGE_SIZE_DEFAULT
    return Pageable(number=page_number, size=page_size)


def create_page(slice_: Slice[T], pageable: Pageable) -> dict:
    total_pages = math.ceil(slice_.total_elements / pageable.size) if pageable.size else 0
    return {
        "content": slice_.content,
        "page": {
            "size": pageable.size,
            "number": pageable.number,
            "total_elements": slice_.total_elements,
            "total_pages": total_pages,
        },
    }
