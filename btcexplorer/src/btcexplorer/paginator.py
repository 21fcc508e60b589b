"""
Windowed (limit/offset) listing retrieval.
"""

from __future__ import annotations

import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from btcexplorer.exceptions import MalformedResponseError


@dataclass
class Page:
    records: list[Any]
    total: int | None = None  # Total record count, for listings that report it
    leading: list[Any] = field(default_factory=list)  # First page only, placed ahead


PageFetcher = Callable[[int, int], Awaitable[Page]]


class Paginator:
    """
    Fetches every page of a listing, strictly one page at a time.

    fetch(offset, limit) is awaited for each page. Any failure propagates
    immediately and the records gathered so far are dropped.
    """

    def __init__(self, page_size: int):
        if page_size < 1:
            raise ValueError(f"Page size must be positive, got {page_size}")
        self.page_size = page_size

    async def collect(self, fetch: PageFetcher) -> list[Any]:
        """Request pages until one comes back shorter than the page size."""
        records: list[Any] = []
        offset = 0

        while True:
            page = await fetch(offset, self.page_size)
            if offset == 0:
                records.extend(page.leading)
            records.extend(page.records)
            logger.debug(f"Fetched page at offset {offset}: {len(page.records)} records")

            if len(page.records) < self.page_size:
                return records
            offset += self.page_size

    async def collect_counted(self, fetch: PageFetcher) -> list[Any]:
        """
        Request exactly as many pages as the first page's total requires.

        The first page is always fetched since it is what reports the total.
        """
        first = await fetch(0, self.page_size)
        if not isinstance(first.total, int) or isinstance(first.total, bool):
            raise MalformedResponseError(
                f"First page did not report a usable total count: {first.total!r}"
            )

        records: list[Any] = list(first.leading) + list(first.records)
        page_count = max(1, math.ceil(first.total / self.page_size))
        logger.debug(f"Listing reports {first.total} records over {page_count} page(s)")

        for n in range(1, page_count):
            page = await fetch(n * self.page_size, self.page_size)
            records.extend(page.records)

        return records
