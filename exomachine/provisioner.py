"""Find-or-create for security groups and anti-affinity groups."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .errors import APIError, DriverError, OperationFailed, ResourceNotFound
from .finder import find_anti_affinity_group, find_security_group
from .operations import wait_for_operation
from .types import FlowDirection, RuleProtocol
from .utils import debug, log

CREATED_BY = "created by exomachine"
CONFLICT_STATUS = 409
DUAL_STACK = ("0.0.0.0/0", "::/0")


@dataclass(frozen=True)
class Rule:
    description: str
    protocol: RuleProtocol
    start_port: int
    end_port: int


# Exposed to IPv4 and IPv6 any.
PUBLIC_RULES = (
    Rule("SSH", "tcp", 22, 22),
    Rule("Docker", "tcp", 2376, 2376),
    Rule("(Legacy) Standalone Swarm", "tcp", 3376, 3376),
    Rule("Rancher webhook", "tcp", 8443, 8443),
    Rule("Kubernetes API", "tcp", 6443, 6443),
    Rule("HTTP", "tcp", 80, 80),
    Rule("HTTPS", "tcp", 443, 443),
    Rule("NodePort range (TCP)", "tcp", 30000, 32767),
    Rule("NodePort range (UDP)", "udp", 30000, 32767),
)

# Sourced from the security group itself.
INTERNAL_RULES = (
    Rule("RKE2 supervisor API", "tcp", 9345, 9345),
    Rule("etcd client/peer", "tcp", 2379, 2380),
    Rule("Calico Typha", "tcp", 5473, 5473),
    Rule("kubelet / kube components", "tcp", 10250, 10252),
    Rule("kube-proxy", "tcp", 10256, 10256),
    Rule("Node exporter metrics", "tcp", 9796, 9796),
    Rule("Calico BGP", "tcp", 179, 179),
    Rule("Calico VXLAN", "udp", 4789, 4789),
    Rule("Flannel VXLAN", "udp", 8472, 8472),
)


class CreateOutcome(Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already-exists"


@dataclass(frozen=True)
class CreateResult:
    """Result of a creation attempt; any other failure is raised."""

    outcome: CreateOutcome
    resource_id: str | None = None


def is_conflict(err: DriverError) -> bool:
    """True when the platform rejected a create because the name is taken."""
    if isinstance(err, OperationFailed):
        return err.reason == "conflict"
    if isinstance(err, APIError):
        response = getattr(err.__cause__, "response", None)
        if response is not None:
            return response.status_code == CONFLICT_STATUS
        return err.detail.startswith(f"Client error {CONFLICT_STATUS}")
    return False


def _attempt(create: Callable[[], str | None]) -> CreateResult:
    try:
        return CreateResult(CreateOutcome.CREATED, create())
    except (APIError, OperationFailed) as e:
        if is_conflict(e):
            return CreateResult(CreateOutcome.ALREADY_EXISTS)
        raise


def _ensure(
    kind: str,
    name: str,
    lookup: Callable[[], str],
    create: Callable[[], str | None],
    populate: Callable[[str], None] | None = None,
) -> str:
    try:
        return lookup()
    except ResourceNotFound:
        pass

    log(f"{kind.capitalize()} '{name}' does not exist. Creating it...")
    result = _attempt(create)
    if result.outcome is CreateOutcome.ALREADY_EXISTS:
        log(f"{kind.capitalize()} '{name}' already exists, looking it up again")
        return lookup()
    resource_id = result.resource_id
    if resource_id is None:
        debug(f"Create of {kind} '{name}' returned no id, looking it up")
        resource_id = lookup()
    if populate is not None:
        populate(resource_id)
    return resource_id


def add_rule(
    session,
    sg_id: str,
    rule: Rule,
    direction: FlowDirection = "ingress",
    **source,
) -> None:
    """Add one rule and wait for it to apply.

    :param direction: ingress or egress
    :param source: Either network='<cidr>' or security_group={...}
    """
    op = session.add_rule_to_security_group(
        id=sg_id,
        flow_direction=direction,
        description=rule.description,
        protocol=rule.protocol,
        start_port=rule.start_port,
        end_port=rule.end_port,
        **source,
    )
    wait_for_operation(session, op)


def create_security_group(session, name: str) -> str:
    op = session.create_security_group(name=name, description=CREATED_BY)
    return wait_for_operation(session, op)


def apply_baseline_rules(session, sg_id: str, name: str) -> None:
    """Populate a freshly created security group with the baseline rules.

    Each rule is its own operation. A failure part way leaves the group
    partially populated and is raised as is.
    """
    self_source = {"id": sg_id, "name": name, "visibility": "private"}

    for rule in PUBLIC_RULES:
        for cidr in DUAL_STACK:
            add_rule(session, sg_id, rule, network=cidr)

    for rule in INTERNAL_RULES:
        add_rule(session, sg_id, rule, security_group=self_source)


def create_anti_affinity_group(session, name: str) -> str:
    op = session.create_anti_affinity_group(name=name, description=CREATED_BY)
    return wait_for_operation(session, op)


def ensure_security_group(session, name: str) -> str:
    """Return the id of security group ``name``, creating it if absent.

    Concurrent callers creating the same new name are not serialized here;
    a conflicting create is answered by looking the group up again.
    """

    def lookup() -> str:
        groups = session.list_security_groups().get("security-groups", [])
        return find_security_group(groups, name)["id"]

    sg_id = _ensure(
        "security group",
        name,
        lookup,
        lambda: create_security_group(session, name),
        lambda new_id: apply_baseline_rules(session, new_id, name),
    )
    debug(f"Security group {name} = {sg_id}")
    return sg_id


def ensure_anti_affinity_group(session, name: str) -> str:
    """Return the id of anti-affinity group ``name``, creating it if absent."""

    def lookup() -> str:
        groups = session.list_anti_affinity_groups().get("anti-affinity-groups", [])
        return find_anti_affinity_group(groups, name)["id"]

    ag_id = _ensure(
        "anti-affinity group",
        name,
        lookup,
        lambda: create_anti_affinity_group(session, name),
    )
    debug(f"Anti-affinity group {name} = {ag_id}")
    return ag_id
