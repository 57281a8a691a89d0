"""Name-to-resource lookups over Exoscale listings."""

import re
from collections.abc import Iterable

from .errors import ResourceNotFound
from .types import AntiAffinityGroup, InstanceType, SecurityGroup, Template

TEMPLATE_SIZE_GIB = 10
DEFAULT_INSTANCE_FAMILY = "standard"

_TEMPLATE_NAME_RE = re.compile(r"^Linux (?P<name>.+?) (?P<version>[0-9.]+)\b")


def find_by_name(items: Iterable[dict], name: str, kind: str) -> dict:
    """Return the first item whose id or name equals ``name``.

    :raises ResourceNotFound: If nothing matches
    """
    for item in items:
        if item.get("id") == name or item.get("name") == name:
            return item
    raise ResourceNotFound(kind, name)


def template_short_name(name: str) -> str | None:
    """Derive the short key of a "Linux <Family> <Version> ..." template name.

    "Linux Ubuntu 24.04 LTS 64-bit" -> "ubuntu-24.04"

    :return: Short key, or None if the name does not follow the convention
    """
    match = _TEMPLATE_NAME_RE.match(name)
    if not match:
        return None
    family = "-".join(match.group("name").lower().split())
    return f"{family}-{match.group('version')}"


def find_template(templates: Iterable[Template], image: str) -> Template:
    """Pick the 10 GiB template matching ``image`` by full name or short key."""
    wanted = image.strip().lower()
    for template in templates:
        if (template.get("size") or 0) >> 30 != TEMPLATE_SIZE_GIB:
            continue
        name = template.get("name", "")
        if name.lower() == wanted:
            return template
        short = template_short_name(name)
        if short is not None and short == wanted:
            return template
    raise ResourceNotFound("template", image)


def find_instance_type(types: Iterable[InstanceType], key: str) -> InstanceType:
    """Find an instance type by id or by "family.size" (bare size means standard)."""
    family, _, size = key.strip().lower().rpartition(".")
    family = family or DEFAULT_INSTANCE_FAMILY
    for instance_type in types:
        if instance_type.get("id") == key:
            return instance_type
        if (
            instance_type.get("family", "").lower() == family
            and instance_type.get("size", "").lower() == size
        ):
            return instance_type
    raise ResourceNotFound("instance type", key)


def find_security_group(groups: Iterable[SecurityGroup], name: str) -> SecurityGroup:
    return find_by_name(groups, name, "security group")


def find_anti_affinity_group(
    groups: Iterable[AntiAffinityGroup], name: str
) -> AntiAffinityGroup:
    return find_by_name(groups, name, "anti-affinity group")
