"""Decoders for EC2 Query API XML responses.

Each document shape has its own entry point returning frozen records from
``models``. Elements are matched by local name so the versioned EC2
namespace (``http://ec2.amazonaws.com/doc/<version>/``) does not matter, and
missing elements decode to empty values.
"""

from __future__ import annotations

from lxml import etree

from ..exceptions import ParseError
from .models import (
    AvailabilityZone,
    AvailabilityZonesPage,
    Instance,
    InstancesPage,
    NetworkInterface,
    Reservation,
    Tag,
)

# Payloads echoed into error messages are truncated; ParseError.payload keeps them whole.
_MAX_PAYLOAD_IN_MESSAGE = 1024

_XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)


def parse_instances_response(data: bytes) -> InstancesPage:
    """Decode a DescribeInstancesResponse document."""
    root = _parse_document(data, "DescribeInstancesResponse")
    reservations = tuple(_parse_reservation(item) for item in _items(root, "reservationSet"))
    return InstancesPage(reservations=reservations, next_page_token=_text(root, "nextToken"))


def parse_availability_zones_response(data: bytes) -> AvailabilityZonesPage:
    """Decode a DescribeAvailabilityZonesResponse document."""
    root = _parse_document(data, "DescribeAvailabilityZonesResponse")
    zones = tuple(
        AvailabilityZone(zone_name=_text(item, "zoneName"), zone_id=_text(item, "zoneId"))
        for item in _items(root, "availabilityZoneInfo")
    )
    return AvailabilityZonesPage(zones=zones, next_page_token=_text(root, "nextToken"))


# ── Record decoders ─────────────────────────────────────────────────


def _parse_reservation(el: etree._Element) -> Reservation:
    return Reservation(
        owner_id=_text(el, "ownerId"),
        instances=tuple(_parse_instance(item) for item in _items(el, "instancesSet")),
    )


def _parse_instance(el: etree._Element) -> Instance:
    return Instance(
        instance_id=_text(el, "instanceId"),
        image_id=_text(el, "imageId"),
        instance_type=_text(el, "instanceType"),
        architecture=_text(el, "architecture"),
        platform=_text(el, "platform"),
        lifecycle=_text(el, "instanceLifecycle"),
        availability_zone=_text(_child(el, "placement"), "availabilityZone"),
        state=_text(_child(el, "instanceState"), "name"),
        private_ip=_text(el, "privateIpAddress"),
        public_ip=_text(el, "ipAddress"),
        private_dns_name=_text(el, "privateDnsName"),
        public_dns_name=_text(el, "dnsName"),
        vpc_id=_text(el, "vpcId"),
        subnet_id=_text(el, "subnetId"),
        network_interfaces=tuple(
            _parse_network_interface(item) for item in _items(el, "networkInterfaceSet")
        ),
        tags=tuple(
            Tag(key=_text(item, "key"), value=_text(item, "value")) for item in _items(el, "tagSet")
        ),
    )


def _parse_network_interface(el: etree._Element) -> NetworkInterface:
    addresses = []
    for item in _items(el, "ipv6AddressesSet"):
        # Current API versions nest the address; older ones put it in the item text.
        address = _text(item, "ipv6Address") or (item.text or "").strip()
        if address:
            addresses.append(address)
    return NetworkInterface(subnet_id=_text(el, "subnetId"), ipv6_addresses=tuple(addresses))


# ── XML helpers ─────────────────────────────────────────────────────


def _parse_document(data: bytes, root_name: str) -> etree._Element:
    try:
        root = etree.fromstring(data, parser=_XML_PARSER)
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise ParseError(f"cannot unmarshal {root_name} from {_preview(data)}: {exc}", payload=data) from exc
    if _localname(root) != root_name:
        raise ParseError(
            f"cannot unmarshal {root_name} from {_preview(data)}: "
            f"unexpected root element {_localname(root)!r}",
            payload=data,
        )
    return root


def _preview(data: bytes) -> str:
    if len(data) > _MAX_PAYLOAD_IN_MESSAGE:
        return repr(data[:_MAX_PAYLOAD_IN_MESSAGE]) + "..."
    return repr(data)


def _localname(el: etree._Element) -> str:
    return etree.QName(el).localname


def _child(el: etree._Element | None, name: str) -> etree._Element | None:
    """Return the first direct child element with the given local name."""
    if el is None:
        return None
    for child in el:
        if isinstance(child.tag, str) and _localname(child) == name:
            return child
    return None


def _text(el: etree._Element | None, name: str) -> str:
    child = _child(el, name)
    if child is None or child.text is None:
        return ""
    return child.text


def _items(el: etree._Element | None, set_name: str) -> list[etree._Element]:
    """Return the <item> children of the named set element, in document order."""
    container = _child(el, set_name)
    if container is None:
        return []
    return [c for c in container if isinstance(c.tag, str) and _localname(c) == "item"]
