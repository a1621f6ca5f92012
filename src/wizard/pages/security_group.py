"""
Create Security Group wizard

Collects:
- Basic details: name, description, VPC
- Inbound rules (source CIDR per rule)
- Outbound rules (destination CIDR per rule)
"""

from typing import Any, Dict, List, Mapping, Optional

from ..definition import Step, WizardDefinition
from ..fields import FieldSpec, FieldType, static_options
from ..validation import (
    CidrBlock,
    InOptions,
    Items,
    Length,
    NotPattern,
    OneOf,
    Pattern,
    Predicate,
    Required,
    StepPredicate,
    When,
)
from .inventory import vpc_options

PROTOCOLS = [
    ("tcp", "TCP"),
    ("udp", "UDP"),
    ("icmp", "ICMP"),
    ("all", "All traffic"),
]

# Common rule presets
RULE_PRESETS = {
    "ssh": {"protocol": "tcp", "port_range": "22", "source": "0.0.0.0/0", "description": "SSH"},
    "http": {"protocol": "tcp", "port_range": "80", "source": "0.0.0.0/0", "description": "HTTP"},
    "https": {"protocol": "tcp", "port_range": "443", "source": "0.0.0.0/0", "description": "HTTPS"},
    "mysql": {"protocol": "tcp", "port_range": "3306", "source": "10.0.0.0/8", "description": "MySQL (private)"},
    "postgres": {"protocol": "tcp", "port_range": "5432", "source": "10.0.0.0/8", "description": "PostgreSQL (private)"},
    "redis": {"protocol": "tcp", "port_range": "6379", "source": "10.0.0.0/8", "description": "Redis (private)"},
}

MAX_RULES = 60


def _ports_in_range(value: Any, _item: Mapping[str, Any]) -> bool:
    parts = [int(p) for p in str(value).split("-")]
    low, high = parts[0], parts[-1]
    return 0 <= low <= high <= 65535


def _needs_ports(item: Mapping[str, Any]) -> bool:
    return item.get("protocol") in ("tcp", "udp")


def rule_fields(peer: str):
    """Item specs for one rule; `peer` is "source" or "destination"."""
    return (
        FieldSpec(
            "protocol",
            "Protocol",
            FieldType.SELECT,
            options=static_options(PROTOCOLS),
            rules=[Required(), OneOf([p[0] for p in PROTOCOLS])],
        ),
        FieldSpec(
            "port_range",
            "Port range",
            rules=[
                When(_needs_ports, Required("Port range is required for TCP and UDP")),
                Pattern(r"[0-9]{1,5}(-[0-9]{1,5})?", "Port range must be a port or a range like 8000-8080"),
                Predicate(_ports_in_range, "Port range must be between 0 and 65535"),
            ],
        ),
        FieldSpec(peer, peer.capitalize(), rules=[Required(), CidrBlock(0, 32)]),
        FieldSpec("description", "Description", rules=[Length(maximum=255)]),
    )


def preset_rule(name: str, peer: str = "source") -> Dict[str, str]:
    rule = dict(RULE_PRESETS[name])
    if peer != "source":
        rule[peer] = rule.pop("source")
    return rule


def _total_rules(store: Mapping[str, Any]) -> bool:
    return len(store.get("inbound_rules") or []) <= MAX_RULES


def _normalize(rules: Optional[List[Dict[str, Any]]], peer: str) -> List[Dict[str, Any]]:
    normalized = []
    for rule in rules or []:
        ports = str(rule.get("port_range") or "").split("-")
        entry = {"protocol": rule["protocol"], peer: rule[peer], "description": rule.get("description", "")}
        if ports[0]:
            entry["from_port"] = int(ports[0])
            entry["to_port"] = int(ports[-1])
        normalized.append(entry)
    return normalized


def assemble(values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "group_name": values["group_name"],
        "description": values["description"],
        "vpc_id": values["vpc_id"],
        "ingress": _normalize(values.get("inbound_rules"), "source"),
        "egress": _normalize(values.get("outbound_rules"), "destination"),
    }


DEFINITION = WizardDefinition(
    id="create-security-group",
    title="Create security group",
    resource_type="security-group",
    steps=(
        Step(
            "details",
            "Basic details",
            fields=(
                FieldSpec(
                    "group_name",
                    "Security group name",
                    rules=[
                        Required(),
                        Length(maximum=255),
                        NotPattern(r"^sg-", "Security group name cannot start with sg-"),
                    ],
                ),
                FieldSpec("description", "Description", rules=[Required(), Length(maximum=255)]),
                FieldSpec(
                    "vpc_id",
                    "VPC",
                    FieldType.SELECT,
                    options=vpc_options,
                    rules=[Required("Select a VPC"), InOptions()],
                ),
            ),
        ),
        Step(
            "inbound",
            "Inbound rules",
            fields=(
                FieldSpec(
                    "inbound_rules",
                    "Inbound rules",
                    FieldType.STRUCT_LIST,
                    default=[preset_rule("ssh")],
                    rules=[Items(*rule_fields("source"))],
                ),
            ),
            rules=(StepPredicate(_total_rules, f"A security group can have at most {MAX_RULES} inbound rules", key="inbound_rules"),),
        ),
        Step(
            "outbound",
            "Outbound rules",
            fields=(
                FieldSpec(
                    "outbound_rules",
                    "Outbound rules",
                    FieldType.STRUCT_LIST,
                    default=[{"protocol": "all", "port_range": "", "destination": "0.0.0.0/0", "description": ""}],
                    rules=[Items(*rule_fields("destination"))],
                ),
            ),
        ),
        Step("review", "Review"),
    ),
    assemble=assemble,
)
