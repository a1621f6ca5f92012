"""
Create Route Table wizard

The route target choices depend on both the target type and the VPC, so
changing either one clears the selected target.
"""

from typing import Any, Dict, Mapping

from ..definition import Step, WizardDefinition
from ..fields import FieldSpec, FieldType, Option, ResetPolicy, static_options
from ..validation import CidrBlock, InOptions, Length, Required
from .inventory import INTERNET_GATEWAYS, NAT_GATEWAYS, subnet_options, vpc_options

TARGET_TYPES = [
    ("local", "local"),
    ("internet-gateway", "Internet Gateway"),
    ("nat-gateway", "NAT Gateway"),
]


def _target_options(upstream: Mapping[str, Any]):
    vpc_id = upstream.get("vpc_id")
    target_type = upstream.get("target_type")
    if not vpc_id or not target_type:
        return []
    if target_type == "local":
        return [Option("local", "local")]
    gateways = INTERNET_GATEWAYS if target_type == "internet-gateway" else NAT_GATEWAYS
    return [Option(g["id"], g["id"]) for g in gateways if g["vpc_id"] == vpc_id]


def assemble(values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": values["name"],
        "vpc_id": values["vpc_id"],
        "subnet_associations": list(values.get("subnet_ids") or []),
        "routes": [
            {
                "destination_cidr": values["destination_cidr"].strip(),
                "target_type": values["target_type"],
                "target_id": values["target_id"],
            }
        ],
    }


DEFINITION = WizardDefinition(
    id="create-route-table",
    title="Create route table",
    resource_type="route-table",
    steps=(
        Step(
            "details",
            "Route table settings",
            fields=(
                FieldSpec("name", "Name", rules=[Required(), Length(maximum=255)]),
                FieldSpec("vpc_id", "VPC", FieldType.SELECT, options=vpc_options, rules=[Required("Select a VPC"), InOptions()]),
            ),
        ),
        Step(
            "associations",
            "Subnet associations",
            optional=True,
            fields=(
                FieldSpec(
                    "subnet_ids",
                    "Subnets",
                    FieldType.MULTI_SELECT,
                    depends_on={"vpc_id"},
                    options=subnet_options("vpc_id"),
                    reset=ResetPolicy.RECOMPUTE,
                    rules=[InOptions()],
                ),
            ),
        ),
        Step(
            "routes",
            "Routes",
            fields=(
                FieldSpec(
                    "destination_cidr",
                    "Destination",
                    default="0.0.0.0/0",
                    rules=[Required(), CidrBlock(0, 32)],
                ),
                FieldSpec(
                    "target_type",
                    "Target type",
                    FieldType.SELECT,
                    default="internet-gateway",
                    options=static_options(TARGET_TYPES),
                    rules=[Required()],
                ),
                FieldSpec(
                    "target_id",
                    "Target",
                    FieldType.SELECT,
                    depends_on={"vpc_id", "target_type"},
                    options=_target_options,
                    rules=[Required("Select a route target"), InOptions()],
                ),
            ),
        ),
        Step("review", "Review"),
    ),
    assemble=assemble,
)
