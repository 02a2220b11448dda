"""Tests for inventory models."""

import dataclasses

import pytest

from ec2_target_discovery.discovery.models import (
    AvailabilityZonesPage,
    Instance,
    InstancesPage,
    NetworkInterface,
    Reservation,
    Tag,
)


class TestInstance:
    def test_defaults_are_empty(self):
        inst = Instance()
        assert inst.private_ip == ""
        assert inst.network_interfaces == ()
        assert inst.tags == ()

    def test_frozen(self):
        inst = Instance(instance_id="i-1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            inst.instance_id = "i-2"  # type: ignore

    def test_equality_is_field_for_field(self):
        a = Instance(instance_id="i-1", tags=(Tag("k", "v"),), network_interfaces=(NetworkInterface("s", ("a",)),))
        b = Instance(instance_id="i-1", tags=(Tag("k", "v"),), network_interfaces=(NetworkInterface("s", ("a",)),))
        assert a == b
        assert hash(a) == hash(b)


class TestPages:
    def test_instances_page_items(self):
        page = InstancesPage(reservations=(Reservation(owner_id="1"),), next_page_token="t")
        assert page.items == (Reservation(owner_id="1"),)

    def test_zones_page_defaults(self):
        page = AvailabilityZonesPage()
        assert page.items == ()
        assert page.next_page_token == ""
