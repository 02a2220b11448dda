"""Long-lived per-job discovery state shared across discovery cycles."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import EC2Config
from . import InventoryTransport
from .transport import AWSQueryTransport
from .zones import AvailabilityZoneCache


@dataclass(frozen=True)
class DiscoveryConfig:
    """Transport, scrape port and zone cache for one configured EC2 job.

    The zone cache is owned by this value: it is populated on first need and
    never invalidated while the config lives.
    """

    transport: InventoryTransport
    port: int = 80
    zones: AvailabilityZoneCache = field(default_factory=AvailabilityZoneCache)

    @classmethod
    def from_ec2_config(cls, ec2_config: EC2Config) -> DiscoveryConfig:
        return cls(transport=AWSQueryTransport(ec2_config), port=ec2_config.port)
