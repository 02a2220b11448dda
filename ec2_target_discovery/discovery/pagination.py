"""Sequential driver for paginated EC2 API listings."""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..exceptions import InventoryError, ParseError, TransportError
from ..logging_config import log_fields
from . import InventoryTransport

logger = logging.getLogger(__name__)


class PageFetcher:
    """Follows continuation tokens until the API reports no further pages.

    Each page's token comes from the previous response, so pages are fetched
    one at a time. The fetch is all-or-nothing: a transport or parse failure
    on any page discards what was accumulated and raises InventoryError.
    """

    def __init__(self, transport: InventoryTransport):
        self._transport = transport

    def fetch_all(self, action: str, parse: Callable[[bytes], Any]) -> list[Any]:
        """Return the items of every page of ``action``, in page order.

        ``parse`` decodes one raw page into an object exposing ``items`` and
        ``next_page_token``.
        """
        items: list[Any] = []
        page_token = ""
        pages = 0

        while True:
            try:
                data = self._transport.request(action, page_token)
            except TransportError as exc:
                raise InventoryError(f"cannot obtain {action} results: {exc}", action=action) from exc
            try:
                page = parse(data)
            except ParseError as exc:
                raise InventoryError(f"cannot parse {action} results: {exc}", action=action) from exc

            pages += 1
            items.extend(page.items)
            if not page.next_page_token:
                break
            page_token = page.next_page_token

        logger.debug(
            "Fetched %d items for %s in %d page(s)", len(items), action, pages,
            extra=log_fields(action=action, pages=pages),
        )
        return items
