"""
Launch Instance wizard

Steps:
1. Name and AMI
2. Instance type and count
3. Key pair
4. Network settings - VPC, subnet and security groups (both filtered by VPC)
5. Storage - block device mappings
6. Advanced details (optional) - user data
7. Review - summary with cost estimate
"""

import math
from typing import Any, Dict, Mapping, Optional

from ..definition import Step, WizardDefinition
from ..fields import FieldSpec, FieldType, Option, ResetPolicy, static_options
from ..summary import SummarySection
from ..validation import (
    InOptions,
    Items,
    Length,
    NumberRange,
    OneOf,
    Pattern,
    Required,
    StepPredicate,
)
from .inventory import (
    AMIS,
    INSTANCE_TYPES,
    KEY_PAIRS,
    instance_type,
    security_group_options,
    subnet_options,
    vpc_options,
)

HOURS_PER_MONTH = 730
STORAGE_PRICE_PER_GB_MONTH = 0.08
MIN_ROOT_VOLUME_GIB = 8

VOLUME_TYPES = [
    ("gp3", "General Purpose SSD (gp3)"),
    ("gp2", "General Purpose SSD (gp2)"),
    ("io2", "Provisioned IOPS SSD (io2)"),
    ("io1", "Provisioned IOPS SSD (io1)"),
    ("st1", "Throughput Optimized HDD (st1)"),
    ("sc1", "Cold HDD (sc1)"),
]

DEFAULT_VOLUMES = [
    {
        "device_name": "/dev/xvda",
        "volume_type": "gp3",
        "volume_size": MIN_ROOT_VOLUME_GIB,
        "encrypted": True,
        "delete_on_termination": True,
    }
]


def _ami_options(_upstream):
    return [Option(ami["id"], ami["name"], {"platform": ami["platform"]}) for ami in AMIS]


def _instance_type_options(_upstream):
    return [
        Option(
            item["name"],
            f"{item['name']} - {item['vcpus']} vCPU, {item['memory_gib']} GiB RAM",
            {"family": item["family"], "price_per_hour": item["price_per_hour"]},
        )
        for item in INSTANCE_TYPES
    ]


def _key_pair_options(_upstream):
    return [Option(pair["name"], f"{pair['name']} ({pair['type']})") for pair in KEY_PAIRS]


def _as_number(value: Any, fallback: float = 0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def _root_volume_large_enough(store: Mapping[str, Any]) -> bool:
    volumes = store.get("volumes") or []
    if not volumes or not isinstance(volumes[0], Mapping):
        return True
    size = volumes[0].get("volume_size")
    try:
        return float(size) >= MIN_ROOT_VOLUME_GIB
    except (TypeError, ValueError):
        # Reported by the per-item rules
        return True


def estimate_cost(values: Mapping[str, Any]) -> Dict[str, float]:
    """Hourly and monthly on-demand price plus monthly EBS storage."""
    count = max(int(_as_number(values.get("instance_count"), 1)), 1)
    hourly = instance_type(values.get("instance_type") or "").get("price_per_hour", 0.0) * count
    storage_gb = sum(
        _as_number(volume.get("volume_size"))
        for volume in values.get("volumes") or []
        if isinstance(volume, Mapping)
    )
    return {
        "hourly": round(hourly, 4),
        "monthly_compute": round(hourly * HOURS_PER_MONTH, 2),
        "monthly_storage": round(storage_gb * STORAGE_PRICE_PER_GB_MONTH * count, 2),
    }


def cost_section(store: Mapping[str, Any]) -> Optional[SummarySection]:
    if not store.get("instance_type"):
        return None
    cost = estimate_cost(store)
    return SummarySection(
        "Cost estimate",
        (
            ("Hourly", f"${cost['hourly']:.4f}"),
            ("Monthly (compute)", f"${cost['monthly_compute']:.2f}"),
            ("Monthly (storage)", f"${cost['monthly_storage']:.2f}"),
        ),
    )


def assemble(values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": values["name"],
        "image_id": values["ami_id"],
        "instance_type": values["instance_type"],
        "instance_count": int(_as_number(values.get("instance_count"), 1)),
        "key_name": values.get("key_pair"),
        "network": {
            "vpc_id": values["vpc_id"],
            "subnet_id": values["subnet_id"],
            "security_group_ids": list(values.get("security_group_ids") or []),
            "associate_public_ip": bool(values.get("public_ip")),
        },
        "block_device_mappings": values.get("volumes") or [],
        "user_data": values.get("user_data") or "",
        "cost_estimate": estimate_cost(values),
    }


VOLUME_FIELDS = (
    FieldSpec(
        "device_name",
        "Device name",
        rules=[Required(), Pattern(r"/dev/(sd|xvd)[a-z]", "Device name must look like /dev/xvda")],
    ),
    FieldSpec(
        "volume_type",
        "Volume type",
        FieldType.SELECT,
        options=static_options(VOLUME_TYPES),
        rules=[Required(), OneOf([v[0] for v in VOLUME_TYPES])],
    ),
    FieldSpec("volume_size", "Volume size", FieldType.NUMBER, rules=[Required(), NumberRange(1, 16384)]),
)

DEFINITION = WizardDefinition(
    id="launch-instance",
    title="Launch an instance",
    resource_type="instance",
    steps=(
        Step(
            "name_and_ami",
            "Name and AMI",
            "Name the instance and choose the machine image it boots from.",
            fields=(
                FieldSpec("name", "Name", rules=[Required(), Length(maximum=255)]),
                FieldSpec(
                    "ami_id",
                    "AMI",
                    FieldType.SELECT,
                    options=_ami_options,
                    rules=[Required("Select an AMI"), InOptions()],
                ),
            ),
        ),
        Step(
            "instance_type",
            "Instance type",
            fields=(
                FieldSpec(
                    "instance_type",
                    "Instance type",
                    FieldType.SELECT,
                    default="t3.micro",
                    options=_instance_type_options,
                    rules=[Required(), InOptions()],
                ),
                FieldSpec(
                    "instance_count",
                    "Number of instances",
                    FieldType.NUMBER,
                    default=1,
                    rules=[Required(), NumberRange(1, 20)],
                ),
            ),
        ),
        Step(
            "key_pair",
            "Key pair (login)",
            fields=(
                FieldSpec(
                    "key_pair",
                    "Key pair",
                    FieldType.SELECT,
                    options=_key_pair_options,
                    rules=[Required("Select a key pair"), InOptions()],
                ),
            ),
        ),
        Step(
            "network",
            "Network settings",
            fields=(
                FieldSpec("vpc_id", "VPC", FieldType.SELECT, options=vpc_options, rules=[Required("Select a VPC")]),
                FieldSpec(
                    "subnet_id",
                    "Subnet",
                    FieldType.SELECT,
                    depends_on={"vpc_id"},
                    options=subnet_options("vpc_id"),
                    rules=[Required("Select a subnet"), InOptions()],
                ),
                FieldSpec(
                    "security_group_ids",
                    "Security groups",
                    FieldType.MULTI_SELECT,
                    depends_on={"vpc_id"},
                    options=security_group_options("vpc_id"),
                    reset=ResetPolicy.RECOMPUTE,
                    rules=[Required("Select at least one security group"), InOptions()],
                ),
                FieldSpec("public_ip", "Auto-assign public IP", FieldType.BOOLEAN, default=True),
            ),
        ),
        Step(
            "storage",
            "Configure storage",
            fields=(
                FieldSpec(
                    "volumes",
                    "Volumes",
                    FieldType.STRUCT_LIST,
                    default=DEFAULT_VOLUMES,
                    rules=[Required("Add at least one volume"), Items(*VOLUME_FIELDS)],
                ),
            ),
            rules=(
                StepPredicate(
                    _root_volume_large_enough,
                    f"Root volume must be at least {MIN_ROOT_VOLUME_GIB} GiB",
                    key="volumes[0].volume_size",
                ),
            ),
        ),
        Step(
            "advanced",
            "Advanced details",
            optional=True,
            fields=(
                FieldSpec(
                    "user_data",
                    "User data",
                    rules=[Length(maximum=16384, message="User data must be 16 KB or less")],
                ),
            ),
        ),
        Step("review", "Review and launch"),
    ),
    assemble=assemble,
    review_sections=(cost_section,),
)

