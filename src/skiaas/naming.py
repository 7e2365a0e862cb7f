"""
Resource naming with a traceable prefix and a random tail.

Every provider resource created for an instance is named
``<tag>-<kind><random>`` so it stays recognizable from the instance tag
while two calls with the same tag never collide.
"""

from __future__ import annotations

import uuid

RESOURCES_NAME_EXTRA_CHARS = 10
MIN_RANDOM_CHARS = 5

VIRTUAL_NETWORK_NAME_BASE = "vnet"
PUBLIC_IP_ADDRESS_NAME_BASE = "ip"
NETWORK_SECURITY_GROUP_NAME_BASE = "sg"
NETWORK_INTERFACE_NAME_BASE = "if"
OS_DISK_NAME_BASE = "os"


def _random_chars(length: int) -> str:
    chars = ""
    while len(chars) < length:
        chars += uuid.uuid4().hex
    return chars[:length]


def random_resource_name(prefix: str, max_length: int) -> str:
    """Return ``prefix`` followed by random hex characters.

    The result is lowercase and exactly ``max_length`` long. When the
    prefix leaves fewer than five characters of room it is truncated so
    the random part keeps at least five.

    Args:
        prefix: Leading, human-readable part of the name.
        max_length: Total length of the generated name.

    Returns:
        The generated name.
    """
    prefix = prefix.lower()
    if max_length <= MIN_RANDOM_CHARS:
        return _random_chars(max_length)
    if max_length < len(prefix) + MIN_RANDOM_CHARS:
        return prefix[: max_length - MIN_RANDOM_CHARS] + _random_chars(MIN_RANDOM_CHARS)
    return prefix + _random_chars(max_length - len(prefix))


def unique_name(base: str, suffix: str) -> str:
    """Build ``base-suffix`` plus a random tail of fixed length."""
    return random_resource_name(
        f"{base}-{suffix}",
        len(base) + len(suffix) + 1 + RESOURCES_NAME_EXTRA_CHARS,
    )


def unique_instance_tag(tag: str, instance_number: int) -> str:
    """Name of replica ``instance_number``; the first replica keeps the tag."""
    if instance_number > 1:
        return f"{tag}{instance_number}"
    return tag


def security_group_name(tag: str) -> str:
    return unique_name(tag, NETWORK_SECURITY_GROUP_NAME_BASE)


def virtual_network_name(tag: str) -> str:
    return unique_name(tag, VIRTUAL_NETWORK_NAME_BASE)


def network_interface_name(tag: str) -> str:
    return unique_name(tag, NETWORK_INTERFACE_NAME_BASE)


def public_ip_name(tag: str) -> str:
    return unique_name(tag, PUBLIC_IP_ADDRESS_NAME_BASE)


def os_disk_name(tag: str) -> str:
    return unique_name(tag, OS_DISK_NAME_BASE)


def script_extension_name(tag: str) -> str:
    return unique_name(tag, "")
