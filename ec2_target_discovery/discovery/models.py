"""Data models for EC2 inventory records decoded from API responses."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Tag:
    key: str = ""
    value: str = ""


@dataclass(frozen=True)
class NetworkInterface:
    subnet_id: str = ""
    ipv6_addresses: tuple[str, ...] = ()


@dataclass(frozen=True)
class Instance:
    """A single EC2 instance as described by DescribeInstances."""

    instance_id: str = ""
    image_id: str = ""
    instance_type: str = ""
    architecture: str = ""
    platform: str = ""
    lifecycle: str = ""  # "spot", "scheduled" or empty for on-demand
    availability_zone: str = ""  # zone name, e.g. "us-east-1a"
    state: str = ""  # "running", "stopped", ...
    private_ip: str = ""
    public_ip: str = ""
    private_dns_name: str = ""
    public_dns_name: str = ""
    vpc_id: str = ""
    subnet_id: str = ""  # primary subnet
    network_interfaces: tuple[NetworkInterface, ...] = ()
    tags: tuple[Tag, ...] = ()


@dataclass(frozen=True)
class Reservation:
    """A group of instances launched together, owned by one account."""

    owner_id: str = ""
    instances: tuple[Instance, ...] = ()


@dataclass(frozen=True)
class AvailabilityZone:
    zone_name: str = ""
    zone_id: str = ""


@dataclass(frozen=True)
class InstancesPage:
    """One DescribeInstances response page."""

    reservations: tuple[Reservation, ...] = ()
    next_page_token: str = ""

    @property
    def items(self) -> tuple[Reservation, ...]:
        return self.reservations


@dataclass(frozen=True)
class AvailabilityZonesPage:
    """One DescribeAvailabilityZones response page."""

    zones: tuple[AvailabilityZone, ...] = ()
    next_page_token: str = ""

    @property
    def items(self) -> tuple[AvailabilityZone, ...]:
        return self.zones
