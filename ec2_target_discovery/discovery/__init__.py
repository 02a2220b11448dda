"""EC2 discovery package: the transport Protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class InventoryTransport(Protocol):
    """Protocol that every EC2 API transport must satisfy."""

    def request(self, action: str, page_token: str) -> bytes:
        """Issue one API call and return the raw response body.

        ``page_token`` is empty for the first page of a listing.
        """
        ...
