"""
Create EKS Cluster wizard

Collects:
- Cluster: name, Kubernetes version, cluster service role
- Networking: VPC, subnets in at least two Availability Zones, security groups
"""

from typing import Any, Dict

from ..definition import Step, WizardDefinition
from ..fields import FieldSpec, FieldType, Option, ResetPolicy, static_options
from ..validation import DistinctMetadata, InOptions, Length, Pattern, Required
from .inventory import IAM_ROLES, security_group_options, subnet_options, vpc_options

K8S_VERSIONS = [
    ("1.29", "1.29 (Default)"),
    ("1.28", "1.28"),
    ("1.27", "1.27"),
    ("1.26", "1.26"),
]


def _role_options(_upstream):
    return [Option(role["arn"], role["name"]) for role in IAM_ROLES]


def assemble(values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": values["cluster_name"],
        "version": values["version"],
        "role_arn": values["role_arn"],
        "resources_vpc_config": {
            "vpc_id": values["vpc_id"],
            "subnet_ids": list(values["subnet_ids"]),
            "security_group_ids": list(values.get("security_group_ids") or []),
        },
    }


DEFINITION = WizardDefinition(
    id="create-eks-cluster",
    title="Create EKS cluster",
    resource_type="eks-cluster",
    steps=(
        Step(
            "cluster",
            "Configure cluster",
            fields=(
                FieldSpec(
                    "cluster_name",
                    "Cluster name",
                    rules=[
                        Required(),
                        Length(maximum=100),
                        Pattern(
                            r"[0-9A-Za-z][A-Za-z0-9_-]*",
                            "Cluster name must start with a letter or number and contain only letters, numbers, hyphens and underscores",
                        ),
                    ],
                ),
                FieldSpec(
                    "version",
                    "Kubernetes version",
                    FieldType.SELECT,
                    default="1.29",
                    options=static_options(K8S_VERSIONS),
                    rules=[Required(), InOptions()],
                ),
                FieldSpec(
                    "role_arn",
                    "Cluster service role",
                    FieldType.SELECT,
                    options=_role_options,
                    rules=[Required("Select a cluster service role"), InOptions()],
                ),
            ),
        ),
        Step(
            "networking",
            "Specify networking",
            fields=(
                FieldSpec("vpc_id", "VPC", FieldType.SELECT, options=vpc_options, rules=[Required("Select a VPC")]),
                FieldSpec(
                    "subnet_ids",
                    "Subnets",
                    FieldType.MULTI_SELECT,
                    depends_on={"vpc_id"},
                    options=subnet_options("vpc_id"),
                    reset=ResetPolicy.RECOMPUTE,
                    rules=[InOptions()],
                ),
                FieldSpec(
                    "security_group_ids",
                    "Security groups",
                    FieldType.MULTI_SELECT,
                    depends_on={"vpc_id"},
                    options=security_group_options("vpc_id"),
                    reset=ResetPolicy.RECOMPUTE,
                    rules=[InOptions()],
                ),
            ),
            rules=(
                DistinctMetadata(
                    "subnet_ids",
                    "availability_zone",
                    minimum=2,
                    distinct=2,
                    message="Select at least 2 subnets in different availability zones",
                ),
            ),
        ),
        Step("review", "Review and create"),
    ),
    assemble=assemble,
)
