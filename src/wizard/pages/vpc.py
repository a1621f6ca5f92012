"""
Create VPC wizard

Collects:
- VPC settings: name tag, IPv4 CIDR, optional IPv6 CIDR, tenancy and whether
  to create the VPC only
- Subnets (optional): Availability Zones, public/private subnet counts, NAT
  gateways, S3 gateway endpoint
- DNS options
"""

from typing import Any, Dict, Mapping

from ..definition import Step, WizardDefinition
from ..fields import FieldSpec, FieldType, static_options
from ..validation import CidrBlock, Length, NumberRange, OneOf, Required, StepPredicate, When

RESOURCE_CHOICES = [
    ("vpc-only", "VPC only"),
    ("vpc-and-more", "VPC and more"),
]

TENANCY_CHOICES = [
    ("default", "Default"),
    ("dedicated", "Dedicated"),
]

NAT_CHOICES = [
    ("none", "None"),
    ("single-az", "In 1 AZ"),
    ("per-az", "1 per AZ"),
]

IPV6_CHOICES = [
    ("none", "No IPv6 CIDR block"),
    ("amazon", "Amazon-provided IPv6 CIDR block"),
]

ENDPOINT_CHOICES = [
    ("none", "None"),
    ("s3", "S3 Gateway"),
]


def _with_subnets(store: Mapping[str, Any]) -> bool:
    return store.get("resources") == "vpc-and-more"


def _subnet_counts_fit(store: Mapping[str, Any]) -> bool:
    """Each subnet count is 0 or a multiple of the AZ count."""
    if not _with_subnets(store):
        return True
    try:
        azs = int(store.get("az_count") or 0)
        counts = [int(store.get("public_subnet_count") or 0), int(store.get("private_subnet_count") or 0)]
    except (TypeError, ValueError):
        return True
    if azs <= 0:
        return True
    return all(count % azs == 0 for count in counts)


def _has_subnets(store: Mapping[str, Any]) -> bool:
    if not _with_subnets(store):
        return True
    try:
        return int(store.get("public_subnet_count") or 0) + int(store.get("private_subnet_count") or 0) > 0
    except (TypeError, ValueError):
        return True


def _nat_needs_public_subnet(store: Mapping[str, Any]) -> bool:
    if store.get("nat_gateways", "none") == "none":
        return True
    try:
        return int(store.get("public_subnet_count") or 0) > 0
    except (TypeError, ValueError):
        return True


def assemble(values: Dict[str, Any]) -> Dict[str, Any]:
    payload = {
        "name": values["name"],
        "cidr_block": values["cidr_block"],
        "amazon_provided_ipv6_cidr_block": values.get("ipv6_cidr") == "amazon",
        "instance_tenancy": values["tenancy"],
        "enable_dns_hostnames": bool(values.get("dns_hostnames")),
        "enable_dns_support": bool(values.get("dns_resolution")),
    }
    if _with_subnets(values):
        payload["subnets"] = {
            "availability_zones": int(values["az_count"]),
            "public": int(values.get("public_subnet_count") or 0),
            "private": int(values.get("private_subnet_count") or 0),
            "nat_gateways": values.get("nat_gateways") or "none",
            "vpc_endpoints": ["s3"] if values.get("vpc_endpoints") == "s3" else [],
        }
    return payload


DEFINITION = WizardDefinition(
    id="create-vpc",
    title="Create VPC",
    resource_type="vpc",
    steps=(
        Step(
            "vpc_settings",
            "VPC settings",
            fields=(
                FieldSpec(
                    "resources",
                    "Resources to create",
                    FieldType.SELECT,
                    default="vpc-only",
                    options=static_options(RESOURCE_CHOICES),
                    rules=[Required(), OneOf([c[0] for c in RESOURCE_CHOICES])],
                ),
                FieldSpec(
                    "name",
                    "Name tag",
                    rules=[Required("VPC name is required"), Length(maximum=255)],
                ),
                FieldSpec(
                    "cidr_block",
                    "IPv4 CIDR block",
                    default="10.0.0.0/16",
                    rules=[Required("CIDR block is required"), CidrBlock(16, 28)],
                ),
                FieldSpec(
                    "ipv6_cidr",
                    "IPv6 CIDR block",
                    FieldType.SELECT,
                    default="none",
                    options=static_options(IPV6_CHOICES),
                    rules=[Required(), OneOf([c[0] for c in IPV6_CHOICES])],
                ),
                FieldSpec(
                    "tenancy",
                    "Tenancy",
                    FieldType.SELECT,
                    default="default",
                    options=static_options(TENANCY_CHOICES),
                    rules=[Required()],
                ),
            ),
        ),
        Step(
            "subnets",
            "Subnets",
            "Only used when creating the VPC and more.",
            optional=True,
            fields=(
                FieldSpec(
                    "az_count",
                    "Number of Availability Zones",
                    FieldType.NUMBER,
                    default=2,
                    depends_on={"resources"},
                    rules=[When(_with_subnets, Required(), NumberRange(1, 3))],
                ),
                FieldSpec(
                    "public_subnet_count",
                    "Number of public subnets",
                    FieldType.NUMBER,
                    default=2,
                    depends_on={"resources"},
                    rules=[When(_with_subnets, NumberRange(0, 6))],
                ),
                FieldSpec(
                    "private_subnet_count",
                    "Number of private subnets",
                    FieldType.NUMBER,
                    default=2,
                    depends_on={"resources"},
                    rules=[When(_with_subnets, NumberRange(0, 6))],
                ),
                FieldSpec(
                    "nat_gateways",
                    "NAT gateways",
                    FieldType.SELECT,
                    default="none",
                    depends_on={"resources"},
                    options=static_options(NAT_CHOICES),
                ),
                FieldSpec(
                    "vpc_endpoints",
                    "VPC endpoints",
                    FieldType.SELECT,
                    default="none",
                    depends_on={"resources"},
                    options=static_options(ENDPOINT_CHOICES),
                    rules=[When(_with_subnets, OneOf([c[0] for c in ENDPOINT_CHOICES]))],
                ),
            ),
            rules=(
                StepPredicate(_has_subnets, "Create at least one subnet", key="public_subnet_count"),
                StepPredicate(
                    _subnet_counts_fit,
                    "Subnet counts must be 0 or a multiple of the number of Availability Zones",
                    key="private_subnet_count",
                ),
                StepPredicate(
                    _nat_needs_public_subnet,
                    "NAT gateways need at least one public subnet",
                    key="nat_gateways",
                ),
            ),
        ),
        Step(
            "dns",
            "DNS options",
            fields=(
                FieldSpec("dns_hostnames", "DNS hostnames", FieldType.BOOLEAN, default=True),
                FieldSpec("dns_resolution", "DNS resolution", FieldType.BOOLEAN, default=True),
            ),
            rules=(
                StepPredicate(
                    lambda store: not store.get("dns_hostnames") or bool(store.get("dns_resolution")),
                    "DNS hostnames require DNS resolution",
                    key="dns_hostnames",
                ),
            ),
        ),
        Step("review", "Review"),
    ),
    assemble=assemble,
)
