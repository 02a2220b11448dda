"""Tests for the paginated fetch driver."""

from __future__ import annotations

from unittest.mock import MagicMock, call

import pytest

from ec2_target_discovery.discovery.pagination import PageFetcher
from ec2_target_discovery.discovery.parser import parse_instances_response
from ec2_target_discovery.exceptions import InventoryError, ParseError, TransportError

NS = "http://ec2.amazonaws.com/doc/2016-11-15/"


def _instances_page(*owner_ids: str, next_token: str = "") -> bytes:
    """Build a DescribeInstances page with one empty reservation per owner id."""
    reservations = "".join(
        f"<item><ownerId>{owner}</ownerId><instancesSet/></item>" for owner in owner_ids
    )
    token = f"<nextToken>{next_token}</nextToken>" if next_token else ""
    return (
        f'<DescribeInstancesResponse xmlns="{NS}">'
        f"<reservationSet>{reservations}</reservationSet>{token}"
        f"</DescribeInstancesResponse>"
    ).encode()


def _transport(*pages) -> MagicMock:
    transport = MagicMock()
    transport.request.side_effect = list(pages)
    return transport


class TestPageFetcher:
    def test_single_page(self):
        transport = _transport(_instances_page("o1", "o2"))
        items = PageFetcher(transport).fetch_all("DescribeInstances", parse_instances_response)

        assert [r.owner_id for r in items] == ["o1", "o2"]
        transport.request.assert_called_once_with("DescribeInstances", "")

    def test_three_pages_aggregated_in_order(self):
        transport = _transport(
            _instances_page("o1", next_token="t1"),
            _instances_page("o2", "o3", next_token="t2"),
            _instances_page("o4"),
        )
        items = PageFetcher(transport).fetch_all("DescribeInstances", parse_instances_response)

        assert [r.owner_id for r in items] == ["o1", "o2", "o3", "o4"]
        assert transport.request.call_args_list == [
            call("DescribeInstances", ""),
            call("DescribeInstances", "t1"),
            call("DescribeInstances", "t2"),
        ]

    def test_empty_page_with_token_continues(self):
        transport = _transport(_instances_page(next_token="t1"), _instances_page("o1"))
        items = PageFetcher(transport).fetch_all("DescribeInstances", parse_instances_response)
        assert [r.owner_id for r in items] == ["o1"]

    def test_transport_error_aborts_whole_fetch(self):
        cause = TransportError("HTTP 503 on DescribeInstances", status_code=503)
        transport = _transport(_instances_page("o1", next_token="t1"), cause)

        with pytest.raises(InventoryError, match="cannot obtain DescribeInstances") as excinfo:
            PageFetcher(transport).fetch_all("DescribeInstances", parse_instances_response)

        assert excinfo.value.__cause__ is cause
        assert excinfo.value.action == "DescribeInstances"

    def test_parse_error_aborts_whole_fetch(self):
        transport = _transport(_instances_page("o1", next_token="t1"), b"<broken")

        with pytest.raises(InventoryError, match="cannot parse DescribeInstances") as excinfo:
            PageFetcher(transport).fetch_all("DescribeInstances", parse_instances_response)

        assert isinstance(excinfo.value.__cause__, ParseError)
        assert excinfo.value.__cause__.payload == b"<broken"
        assert transport.request.call_count == 2

    def test_custom_page_shape(self):
        page1 = MagicMock(items=[1, 2], next_page_token="next")
        page2 = MagicMock(items=[3], next_page_token="")
        transport = _transport(b"first", b"second")
        parse = MagicMock(side_effect=[page1, page2])

        items = PageFetcher(transport).fetch_all("ListThings", parse)

        assert items == [1, 2, 3]
        assert parse.call_args_list == [call(b"first"), call(b"second")]
