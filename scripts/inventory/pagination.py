"""Paginated listing helpers.

Listings are atomic: either every page is fetched or the error of the
failing page is raised and nothing is returned. A partial listing would
silently under-report resources.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, NamedTuple, Optional

from scripts.inventory.errors import PaginationError

logger = logging.getLogger("inventory.pagination")


class Page(NamedTuple):
    items: list[Any]
    next_cursor: Optional[str]
    is_last: bool


FetchPage = Callable[[Optional[str]], Page]


def walk_pages(fetch_page: FetchPage, cursor: Optional[str] = None) -> list[Any]:
    """Call fetch_page until it reports the last page. Returns all items."""
    items: list[Any] = []
    pages = 0
    while True:
        page = fetch_page(cursor)
        pages += 1
        items.extend(page.items)
        if page.is_last:
            break
        if not page.next_cursor:
            raise PaginationError(f"page {pages} is not the last one but has no next cursor")
        cursor = page.next_cursor
    logger.debug("Fetched %d items over %d pages", len(items), pages)
    return items


def paginate(client, method: str, key: str, **kwargs) -> list[Any]:
    """Generic paginator for boto3 APIs."""
    items: list[Any] = []
    paginator = client.get_paginator(method)
    for page in paginator.paginate(**kwargs):
        items.extend(page.get(key, []))
    return items


def s3_configuration_pages(client, method: str, key: str, bucket: str) -> FetchPage:
    """Page fetcher for the S3 bucket configuration listings.

    These operations have no boto3 paginator; they page with
    ContinuationToken / IsTruncated / NextContinuationToken.
    """

    def fetch(cursor: Optional[str]) -> Page:
        kwargs: dict[str, Any] = {"Bucket": bucket}
        if cursor:
            kwargs["ContinuationToken"] = cursor
        resp = getattr(client, method)(**kwargs)
        truncated = bool(resp.get("IsTruncated"))
        return Page(
            items=resp.get(key, []),
            next_cursor=resp.get("NextContinuationToken"),
            is_last=not truncated,
        )

    return fetch
