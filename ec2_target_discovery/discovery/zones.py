"""Lazily-populated availability zone name -> zone id cache."""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Mapping

from ..exceptions import DiscoveryError
from ..logging_config import log_fields
from .pagination import PageFetcher
from .parser import parse_availability_zones_response

if TYPE_CHECKING:
    from .api_config import DiscoveryConfig

logger = logging.getLogger(__name__)

DESCRIBE_AVAILABILITY_ZONES = "DescribeAvailabilityZones"


class AvailabilityZoneCache:
    """Resolves the zone map at most once for the lifetime of its owner.

    A failed load is cached as an empty mapping and never retried, so the
    zone id label stays empty rather than failing instance discovery.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._zones: Mapping[str, str] | None = None

    @property
    def resolved(self) -> bool:
        with self._lock:
            return self._zones is not None

    def resolve_once(self, loader: Callable[[], Mapping[str, str]]) -> Mapping[str, str]:
        """Return the cached mapping, calling ``loader`` only on first use.

        Concurrent callers wait on the lock and all receive the same mapping.
        """
        with self._lock:
            if self._zones is not None:
                return self._zones

            try:
                zones = dict(loader())
            except DiscoveryError as exc:
                logger.warning(
                    "Couldn't load availability zones map, so the availability zone id label isn't set: %s",
                    exc,
                )
                zones = {}
            else:
                logger.info("Loaded %d availability zones", len(zones), extra=log_fields(zones=len(zones)))

            self._zones = MappingProxyType(zones)
            return self._zones


def load_zone_map(cfg: DiscoveryConfig) -> dict[str, str]:
    """Fetch every availability zone visible to the config's credentials."""
    zones = PageFetcher(cfg.transport).fetch_all(
        DESCRIBE_AVAILABILITY_ZONES, parse_availability_zones_response,
    )
    return {zone.zone_name: zone.zone_id for zone in zones}


def get_zone_map(cfg: DiscoveryConfig) -> Mapping[str, str]:
    """Return the config's zone map, loading it on first use."""
    return cfg.zones.resolve_once(lambda: load_zone_map(cfg))
