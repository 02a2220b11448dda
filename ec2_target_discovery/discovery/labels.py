"""Flattening of EC2 instance records into target label maps.

Label names are a fixed contract with the downstream relabeling rules and
must not change.
"""

from __future__ import annotations

import re
from typing import Mapping

from .models import Instance

ADDRESS_LABEL = "__address__"

META_PREFIX = "__meta_ec2_"
ARCHITECTURE_LABEL = META_PREFIX + "architecture"
AMI_LABEL = META_PREFIX + "ami"
AVAILABILITY_ZONE_LABEL = META_PREFIX + "availability_zone"
AVAILABILITY_ZONE_ID_LABEL = META_PREFIX + "availability_zone_id"
INSTANCE_ID_LABEL = META_PREFIX + "instance_id"
INSTANCE_LIFECYCLE_LABEL = META_PREFIX + "instance_lifecycle"
INSTANCE_STATE_LABEL = META_PREFIX + "instance_state"
INSTANCE_TYPE_LABEL = META_PREFIX + "instance_type"
OWNER_ID_LABEL = META_PREFIX + "owner_id"
PLATFORM_LABEL = META_PREFIX + "platform"
PRIMARY_SUBNET_ID_LABEL = META_PREFIX + "primary_subnet_id"
PRIVATE_DNS_NAME_LABEL = META_PREFIX + "private_dns_name"
PRIVATE_IP_LABEL = META_PREFIX + "private_ip"
PUBLIC_DNS_NAME_LABEL = META_PREFIX + "public_dns_name"
PUBLIC_IP_LABEL = META_PREFIX + "public_ip"
VPC_ID_LABEL = META_PREFIX + "vpc_id"
SUBNET_ID_LABEL = META_PREFIX + "subnet_id"
IPV6_ADDRESSES_LABEL = META_PREFIX + "ipv6_addresses"
TAG_LABEL_PREFIX = META_PREFIX + "tag_"

LIST_SEPARATOR = ","

_INVALID_LABEL_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def sanitize_label_name(name: str) -> str:
    """Replace every character that is not valid in a label name with '_'."""
    return _INVALID_LABEL_CHARS.sub("_", name)


def join_host_port(host: str, port: int) -> str:
    """Join host and port, bracketing IPv6 literals."""
    if ":" in host and not host.startswith("["):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def wrap_list(values: list[str]) -> str:
    """Render values as ',a,b,c,' so relabel regexes can anchor on the separator.

    An empty list still renders as ',,'.
    """
    return LIST_SEPARATOR + LIST_SEPARATOR.join(values) + LIST_SEPARATOR


def build_instance_labels(
    instance: Instance,
    owner_id: str,
    port: int,
    zone_map: Mapping[str, str],
) -> dict[str, str] | None:
    """Build the label map for one instance.

    Returns None for instances without a private IP, since they cannot be
    scraped.
    """
    if not instance.private_ip:
        return None

    labels = {
        ADDRESS_LABEL: join_host_port(instance.private_ip, port),
        ARCHITECTURE_LABEL: instance.architecture,
        AMI_LABEL: instance.image_id,
        AVAILABILITY_ZONE_LABEL: instance.availability_zone,
        AVAILABILITY_ZONE_ID_LABEL: zone_map.get(instance.availability_zone, ""),
        INSTANCE_ID_LABEL: instance.instance_id,
        INSTANCE_LIFECYCLE_LABEL: instance.lifecycle,
        INSTANCE_STATE_LABEL: instance.state,
        INSTANCE_TYPE_LABEL: instance.instance_type,
        OWNER_ID_LABEL: owner_id,
        PLATFORM_LABEL: instance.platform,
        PRIMARY_SUBNET_ID_LABEL: instance.subnet_id,
        PRIVATE_DNS_NAME_LABEL: instance.private_dns_name,
        PRIVATE_IP_LABEL: instance.private_ip,
        PUBLIC_DNS_NAME_LABEL: instance.public_dns_name,
        PUBLIC_IP_LABEL: instance.public_ip,
        VPC_ID_LABEL: instance.vpc_id,
    }

    if instance.vpc_id:
        subnets: list[str] = []
        seen_subnets: set[str] = set()
        ipv6_addresses: list[str] = []
        for ni in instance.network_interfaces:
            if ni.subnet_id and ni.subnet_id not in seen_subnets:
                seen_subnets.add(ni.subnet_id)
                subnets.append(ni.subnet_id)
            ipv6_addresses.extend(ni.ipv6_addresses)

        labels[SUBNET_ID_LABEL] = wrap_list(subnets)
        if ipv6_addresses:
            labels[IPV6_ADDRESSES_LABEL] = wrap_list(ipv6_addresses)

    for tag in instance.tags:
        if not tag.key or not tag.value:
            continue
        labels[TAG_LABEL_PREFIX + sanitize_label_name(tag.key)] = tag.value

    return labels
