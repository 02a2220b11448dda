"""EC2 instance discovery: reservations in, target label maps out."""

from __future__ import annotations

import logging
import time

from ..config import EC2Config
from ..logging_config import log_fields
from . import InventoryTransport
from .api_config import DiscoveryConfig
from .labels import build_instance_labels
from .models import Reservation
from .pagination import PageFetcher
from .parser import parse_instances_response
from .transport import DESCRIBE_INSTANCES
from .zones import get_zone_map

logger = logging.getLogger(__name__)


def get_reservations(cfg: DiscoveryConfig) -> list[Reservation]:
    """Return the reservations of every DescribeInstances page, in page order."""
    return PageFetcher(cfg.transport).fetch_all(DESCRIBE_INSTANCES, parse_instances_response)


def get_instances_labels(cfg: DiscoveryConfig) -> list[dict[str, str]]:
    """Return one label map per scrapeable instance visible through ``cfg``.

    Raises InventoryError if any instance page fails; zone lookup failures
    only leave the zone id label empty.
    """
    reservations = get_reservations(cfg)
    zone_map = get_zone_map(cfg)

    label_maps: list[dict[str, str]] = []
    for reservation in reservations:
        for instance in reservation.instances:
            labels = build_instance_labels(instance, reservation.owner_id, cfg.port, zone_map)
            if labels is not None:
                label_maps.append(labels)
    return label_maps


class EC2Discovery:
    """Discovers EC2 instances for one configured job."""

    def __init__(self, ec2_config: EC2Config, transport: InventoryTransport | None = None):
        if transport is None:
            self._cfg = DiscoveryConfig.from_ec2_config(ec2_config)
        else:
            self._cfg = DiscoveryConfig(transport=transport, port=ec2_config.port)

    @property
    def config(self) -> DiscoveryConfig:
        return self._cfg

    def discover_all(self) -> list[dict[str, str]]:
        """Run full discovery and return the target label maps."""
        start = time.monotonic()
        label_maps = get_instances_labels(self._cfg)
        logger.info(
            "Discovery complete",
            extra=log_fields(
                total_targets=len(label_maps),
                elapsed_seconds=round(time.monotonic() - start, 2),
            ),
        )
        return label_maps
