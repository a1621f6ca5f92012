"""
Account inventory the wizards select from.

Static, module-level collections standing in for an account's existing
resources. Option providers only read these; nothing in the engine writes
to them.
"""

from typing import Any, Dict, List, Mapping, Sequence

from ..fields import Option

REGIONS = [
    ("us-east-1", "US East (N. Virginia)"),
    ("us-east-2", "US East (Ohio)"),
    ("us-west-2", "US West (Oregon)"),
    ("eu-west-1", "Europe (Ireland)"),
    ("ap-south-1", "Asia Pacific (Mumbai)"),
]

AVAILABILITY_ZONES = ["us-east-1a", "us-east-1b", "us-east-1c"]

AMIS = [
    {"id": "ami-0c02fb55956c7d316", "name": "Amazon Linux 2023", "platform": "linux"},
    {"id": "ami-0fc5d935ebf8bc3bc", "name": "Ubuntu Server 22.04 LTS", "platform": "linux"},
    {"id": "ami-0e4d9ed95865f3b40", "name": "Debian 12", "platform": "linux"},
    {"id": "ami-0be0e902919675894", "name": "Windows Server 2022 Base", "platform": "windows"},
]

INSTANCE_TYPES = [
    {"name": "t3.micro", "family": "general", "vcpus": 2, "memory_gib": 1, "price_per_hour": 0.0104},
    {"name": "t3.small", "family": "general", "vcpus": 2, "memory_gib": 2, "price_per_hour": 0.0208},
    {"name": "t3.medium", "family": "general", "vcpus": 2, "memory_gib": 4, "price_per_hour": 0.0416},
    {"name": "m5.large", "family": "general", "vcpus": 2, "memory_gib": 8, "price_per_hour": 0.096},
    {"name": "c5.large", "family": "compute", "vcpus": 2, "memory_gib": 4, "price_per_hour": 0.085},
    {"name": "r5.large", "family": "memory", "vcpus": 2, "memory_gib": 16, "price_per_hour": 0.126},
]

KEY_PAIRS = [
    {"name": "default-key", "type": "rsa"},
    {"name": "deploy-key", "type": "ed25519"},
]

VPCS = [
    {"id": "vpc-0a1b2c3d4e5f60001", "name": "production", "cidr": "10.0.0.0/16"},
    {"id": "vpc-0a1b2c3d4e5f60002", "name": "staging", "cidr": "10.1.0.0/16"},
    {"id": "vpc-0a1b2c3d4e5f60003", "name": "sandbox", "cidr": "172.31.0.0/16"},
]

SUBNETS = [
    {"id": "subnet-0aa0000000000001", "vpc_id": "vpc-0a1b2c3d4e5f60001", "name": "prod-public-a",
     "cidr": "10.0.1.0/24", "availability_zone": "us-east-1a"},
    {"id": "subnet-0aa0000000000002", "vpc_id": "vpc-0a1b2c3d4e5f60001", "name": "prod-public-b",
     "cidr": "10.0.2.0/24", "availability_zone": "us-east-1b"},
    {"id": "subnet-0aa0000000000003", "vpc_id": "vpc-0a1b2c3d4e5f60001", "name": "prod-private-a",
     "cidr": "10.0.11.0/24", "availability_zone": "us-east-1a"},
    {"id": "subnet-0bb0000000000001", "vpc_id": "vpc-0a1b2c3d4e5f60002", "name": "staging-a",
     "cidr": "10.1.1.0/24", "availability_zone": "us-east-1a"},
    {"id": "subnet-0bb0000000000002", "vpc_id": "vpc-0a1b2c3d4e5f60002", "name": "staging-c",
     "cidr": "10.1.3.0/24", "availability_zone": "us-east-1c"},
    {"id": "subnet-0cc0000000000001", "vpc_id": "vpc-0a1b2c3d4e5f60003", "name": "sandbox-a",
     "cidr": "172.31.0.0/20", "availability_zone": "us-east-1a"},
]

SECURITY_GROUPS = [
    {"id": "sg-0aa00000000000001", "vpc_id": "vpc-0a1b2c3d4e5f60001", "name": "default"},
    {"id": "sg-0aa00000000000002", "vpc_id": "vpc-0a1b2c3d4e5f60001", "name": "web"},
    {"id": "sg-0bb00000000000001", "vpc_id": "vpc-0a1b2c3d4e5f60002", "name": "default"},
    {"id": "sg-0cc00000000000001", "vpc_id": "vpc-0a1b2c3d4e5f60003", "name": "default"},
]

INTERNET_GATEWAYS = [
    {"id": "igw-0aa00000000000001", "vpc_id": "vpc-0a1b2c3d4e5f60001"},
    {"id": "igw-0bb00000000000001", "vpc_id": "vpc-0a1b2c3d4e5f60002"},
]

NAT_GATEWAYS = [
    {"id": "nat-0aa00000000000001", "vpc_id": "vpc-0a1b2c3d4e5f60001"},
]

IAM_ROLES = [
    {"name": "eksClusterRole", "arn": "arn:aws:iam::123456789012:role/eksClusterRole"},
    {"name": "AmazonEKSServiceRole", "arn": "arn:aws:iam::123456789012:role/AmazonEKSServiceRole"},
]

KMS_KEYS = [
    {"id": "alias/aws/s3", "label": "aws/s3 (AWS managed)"},
    {"id": "alias/app-data", "label": "app-data (customer managed)"},
]

EXISTING_BUCKETS = ["logs-archive", "static-assets", "terraform-state"]


def vpc_options(_upstream: Mapping[str, Any]) -> Sequence[Option]:
    return [
        Option(vpc["id"], f"{vpc['name']} ({vpc['cidr']})", {"cidr": vpc["cidr"]})
        for vpc in VPCS
    ]


def subnets_in_vpc(vpc_id: str) -> List[Dict[str, Any]]:
    return [subnet for subnet in SUBNETS if subnet["vpc_id"] == vpc_id]


def subnet_options(vpc_field: str = "vpc_id"):
    """Subnets of the VPC selected in `vpc_field`."""

    def _provider(upstream: Mapping[str, Any]) -> Sequence[Option]:
        return [
            Option(
                subnet["id"],
                f"{subnet['name']} ({subnet['availability_zone']}, {subnet['cidr']})",
                {"availability_zone": subnet["availability_zone"], "cidr": subnet["cidr"]},
            )
            for subnet in subnets_in_vpc(upstream.get(vpc_field))
        ]

    return _provider


def security_group_options(vpc_field: str = "vpc_id"):
    """Security groups of the VPC selected in `vpc_field`."""

    def _provider(upstream: Mapping[str, Any]) -> Sequence[Option]:
        vpc_id = upstream.get(vpc_field)
        return [
            Option(group["id"], f"{group['name']} ({group['id']})")
            for group in SECURITY_GROUPS
            if group["vpc_id"] == vpc_id
        ]

    return _provider


def region_options(_upstream: Mapping[str, Any]) -> Sequence[Option]:
    return [Option(code, f"{name} ({code})") for code, name in REGIONS]


def instance_type(name: str) -> Dict[str, Any]:
    for item in INSTANCE_TYPES:
        if item["name"] == name:
            return item
    return {}
