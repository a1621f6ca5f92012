import pytest

from wizard import WizardController
from wizard.errors import UnknownWizardError
from wizard.pages import WIZARDS, get_definition, list_wizards
from wizard.pages import bucket, eks_cluster, identity_provider, launch_instance, route_table, security_group, vpc
from wizard.validation import StepValidator

VPC_PROD = "vpc-0a1b2c3d4e5f60001"
VPC_STAGING = "vpc-0a1b2c3d4e5f60002"
VPC_SANDBOX = "vpc-0a1b2c3d4e5f60003"


def _step_errors(definition, step_id, **values):
    store = definition.default_store(values)
    return dict(StepValidator(definition).validate_step(step_id, store).errors)


def test_catalog_lists_every_wizard():
    assert set(WIZARDS) == {
        "launch-instance",
        "create-vpc",
        "create-bucket",
        "create-security-group",
        "create-route-table",
        "add-identity-provider",
        "create-eks-cluster",
    }
    assert [d.id for d in list_wizards()][0] == "launch-instance"
    assert get_definition("create-vpc") is vpc.DEFINITION


def test_unknown_wizard():
    with pytest.raises(UnknownWizardError) as excinfo:
        get_definition("create-teapot")

    assert isinstance(excinfo.value, KeyError)
    assert str(excinfo.value) == "Unknown wizard: create-teapot"


# --- Launch instance ---


@pytest.mark.asyncio
async def test_launch_instance_end_to_end(recording_create):
    controller = WizardController(launch_instance.DEFINITION, create_operation=recording_create)

    controller.set_field("name", "web-1")
    controller.set_field("ami_id", "ami-0c02fb55956c7d316")
    assert controller.request_next()
    assert controller.request_next()
    controller.set_field("key_pair", "default-key")
    assert controller.request_next()
    controller.set_field("vpc_id", VPC_PROD)
    controller.set_field("subnet_id", "subnet-0aa0000000000001")
    controller.set_field("security_group_ids", ["sg-0aa00000000000001"])
    assert controller.request_next()
    assert controller.request_next()
    assert controller.request_next()
    assert controller.active_step.id == "review"

    outcome = await controller.submit()

    assert outcome.succeeded
    payload = recording_create.calls[0]
    assert payload["image_id"] == "ami-0c02fb55956c7d316"
    assert payload["instance_count"] == 1
    assert payload["network"] == {
        "vpc_id": VPC_PROD,
        "subnet_id": "subnet-0aa0000000000001",
        "security_group_ids": ["sg-0aa00000000000001"],
        "associate_public_ip": True,
    }
    assert payload["block_device_mappings"][0]["volume_size"] == 8


def test_launch_instance_subnets_follow_vpc(recording_create):
    controller = WizardController(launch_instance.DEFINITION, create_operation=recording_create)

    controller.set_field("vpc_id", VPC_PROD)
    prod_subnets = [o.id for o in controller.options("subnet_id")]
    controller.set_field("subnet_id", prod_subnets[0])
    controller.set_field("security_group_ids", ["sg-0aa00000000000001", "sg-0aa00000000000002"])
    controller.set_field("vpc_id", VPC_STAGING)

    assert prod_subnets == ["subnet-0aa0000000000001", "subnet-0aa0000000000002", "subnet-0aa0000000000003"]
    assert controller.get("subnet_id") is None
    assert controller.get("security_group_ids") == []
    assert [o.id for o in controller.options("subnet_id")] == ["subnet-0bb0000000000001", "subnet-0bb0000000000002"]


def test_launch_instance_root_volume_minimum():
    errors = _step_errors(
        launch_instance.DEFINITION,
        "storage",
        volumes=[{"device_name": "/dev/xvda", "volume_type": "gp3", "volume_size": 4}],
    )

    assert errors == {"volumes[0].volume_size": "Root volume must be at least 8 GiB"}


def test_launch_instance_volume_items_are_checked():
    errors = _step_errors(
        launch_instance.DEFINITION,
        "storage",
        volumes=[
            {"device_name": "/dev/xvda", "volume_type": "gp3", "volume_size": 8},
            {"device_name": "xvdb", "volume_type": "magnetic", "volume_size": 10},
        ],
    )

    assert errors == {
        "volumes[1].device_name": "Device name must look like /dev/xvda",
        "volumes[1].volume_type": "Volume type must be one of: gp3, gp2, io2, io1, st1, sc1",
    }


def test_launch_instance_cost_estimate():
    cost = launch_instance.estimate_cost(
        {"instance_type": "t3.small", "instance_count": 2, "volumes": [{"volume_size": 8}, {"volume_size": 20}]}
    )

    assert cost["hourly"] == pytest.approx(0.0416)
    assert cost["monthly_compute"] == pytest.approx(30.37)
    assert cost["monthly_storage"] == pytest.approx(4.48)


def test_launch_instance_cost_estimate_ignores_non_finite_input():
    cost = launch_instance.estimate_cost(
        {"instance_type": "t3.small", "instance_count": float("nan"), "volumes": [{"volume_size": "inf"}]}
    )

    assert cost == {"hourly": pytest.approx(0.0208), "monthly_compute": pytest.approx(15.18), "monthly_storage": 0}


def test_launch_instance_review_has_cost_section(recording_create):
    controller = WizardController(launch_instance.DEFINITION, create_operation=recording_create)

    sections = {s.title: s for s in controller.summary()}

    assert sections["Cost estimate"].items == (
        ("Hourly", "$0.0104"),
        ("Monthly (compute)", "$7.59"),
        ("Monthly (storage)", "$0.64"),
    )
    assert ("Volumes", "1 item(s)") in sections["Configure storage"].items


# --- VPC ---


@pytest.mark.parametrize(
    "cidr, message",
    [
        ("10.0.0.0/16", None),
        ("10.0.0.0/28", None),
        ("10.0.0.0/8", "CIDR block must be between /16 and /28"),
        ("10.0.0.0", "Invalid CIDR block format. Example: 10.0.0.0/16"),
    ],
)
def test_vpc_cidr(cidr, message):
    errors = _step_errors(vpc.DEFINITION, "vpc_settings", name="main", cidr_block=cidr)

    assert errors.get("cidr_block") == message


def test_vpc_subnet_counts_must_fit_availability_zones():
    errors = _step_errors(
        vpc.DEFINITION,
        "subnets",
        resources="vpc-and-more",
        az_count=2,
        public_subnet_count=3,
        private_subnet_count=2,
    )

    assert errors == {
        "private_subnet_count": "Subnet counts must be 0 or a multiple of the number of Availability Zones"
    }


def test_vpc_subnets_ignored_for_vpc_only():
    assert _step_errors(vpc.DEFINITION, "subnets", resources="vpc-only", az_count=9) == {}
    payload = vpc.DEFINITION.build_payload(dict(vpc.DEFINITION.default_store({"name": "main"})))
    assert "subnets" not in payload
    assert payload["cidr_block"] == "10.0.0.0/16"


def test_vpc_ipv6_and_endpoints_in_payload():
    values = vpc.DEFINITION.default_store(
        {"name": "main", "resources": "vpc-and-more", "ipv6_cidr": "amazon", "vpc_endpoints": "s3"}
    )

    payload = vpc.DEFINITION.build_payload(dict(values))

    assert payload["amazon_provided_ipv6_cidr_block"] is True
    assert payload["subnets"]["vpc_endpoints"] == ["s3"]

    defaults = vpc.DEFINITION.build_payload(dict(vpc.DEFINITION.default_store({"name": "main"})))
    assert defaults["amazon_provided_ipv6_cidr_block"] is False


def test_vpc_rejects_unknown_ipv6_and_endpoint_choices():
    assert _step_errors(vpc.DEFINITION, "vpc_settings", name="main", ipv6_cidr="byoip") == {
        "ipv6_cidr": "IPv6 CIDR block must be one of: none, amazon"
    }
    assert "vpc_endpoints" in _step_errors(
        vpc.DEFINITION, "subnets", resources="vpc-and-more", vpc_endpoints="dynamodb"
    )
    assert _step_errors(vpc.DEFINITION, "subnets", resources="vpc-only", vpc_endpoints="dynamodb") == {}


def test_vpc_dns_hostnames_need_resolution():
    errors = _step_errors(vpc.DEFINITION, "dns", dns_hostnames=True, dns_resolution=False)

    assert errors == {"dns_hostnames": "DNS hostnames require DNS resolution"}


def test_vpc_resource_change_resets_subnet_settings(recording_create):
    controller = WizardController(vpc.DEFINITION, create_operation=recording_create)
    controller.set_field("resources", "vpc-and-more")
    controller.set_field("az_count", 3)

    controller.set_field("resources", "vpc-only")

    assert controller.get("az_count") == 2


# --- Bucket ---


@pytest.mark.parametrize(
    "name, message",
    [
        ("my-new-bucket", None),
        ("", "Bucket name is required"),
        ("ab", "Bucket name must be between 3 and 63 characters long"),
        ("My-Bucket", "Bucket name can contain only lowercase letters, numbers, dots (.) and hyphens (-)"),
        ("-bucket", "Bucket name must begin and end with a letter or number"),
        ("my..bucket", "Bucket name must not contain two adjacent periods"),
        ("192.168.1.1", "Bucket name must not be formatted as an IP address"),
        ("logs-archive", "Bucket name already exists"),
    ],
)
def test_bucket_name_rules(name, message):
    errors = _step_errors(bucket.DEFINITION, "general", bucket_name=name)

    assert errors.get("bucket_name") == message


def test_bucket_kms_key_depends_on_encryption_type(recording_create):
    controller = WizardController(bucket.DEFINITION, create_operation=recording_create)

    assert controller.options("kms_key_id") == ()
    controller.set_field("encryption_type", "sse-kms")
    assert [o.id for o in controller.options("kms_key_id")] == ["alias/aws/s3", "alias/app-data"]
    assert _step_errors(bucket.DEFINITION, "encryption", encryption_type="sse-kms") == {
        "kms_key_id": "Choose an AWS KMS key"
    }

    controller.set_field("kms_key_id", "alias/app-data")
    controller.set_field("encryption_type", "sse-s3")

    assert controller.get("kms_key_id") is None


def test_bucket_public_access_needs_acknowledgement():
    errors = _step_errors(bucket.DEFINITION, "public_access", block_public_access=False)

    assert errors == {
        "acknowledge_public": "Acknowledge that the bucket and its objects might become public"
    }
    assert _step_errors(bucket.DEFINITION, "public_access", block_public_access=False, acknowledge_public=True) == {}


def test_bucket_payload_collects_tags():
    values = dict(
        bucket.DEFINITION.default_store(
            {"bucket_name": "my-new-bucket", "tags": [{"key": "env", "value": "dev"}, {"key": "", "value": "x"}]}
        )
    )

    payload = bucket.DEFINITION.build_payload(values)

    assert payload["tags"] == {"env": "dev"}
    assert payload["encryption"] == {"type": "sse-s3", "bucket_key": True}


# --- Security group ---


def test_security_group_rule_items():
    errors = _step_errors(
        security_group.DEFINITION,
        "inbound",
        inbound_rules=[
            security_group.preset_rule("https"),
            {"protocol": "tcp", "port_range": "", "source": "0.0.0.0/0"},
            {"protocol": "udp", "port_range": "70000", "source": "10.0.0.0/8"},
            {"protocol": "icmp", "port_range": "", "source": "10.0.0.300/8"},
        ],
    )

    assert errors == {
        "inbound_rules[1].port_range": "Port range is required for TCP and UDP",
        "inbound_rules[2].port_range": "Port range must be between 0 and 65535",
        "inbound_rules[3].source": "Invalid CIDR block format. Example: 10.0.0.0/16",
    }


def test_security_group_name_cannot_look_like_an_id():
    errors = _step_errors(security_group.DEFINITION, "details", group_name="sg-web", description="web", vpc_id=VPC_PROD)

    assert errors == {"group_name": "Security group name cannot start with sg-"}


def test_security_group_payload():
    values = dict(
        security_group.DEFINITION.default_store(
            {"group_name": "web", "description": "Web tier", "vpc_id": VPC_PROD}
        )
    )

    payload = security_group.DEFINITION.build_payload(values)

    assert payload["ingress"] == [
        {"protocol": "tcp", "source": "0.0.0.0/0", "description": "SSH", "from_port": 22, "to_port": 22}
    ]
    assert payload["egress"] == [{"protocol": "all", "destination": "0.0.0.0/0", "description": ""}]
    assert security_group.preset_rule("http", "destination")["destination"] == "0.0.0.0/0"


# --- Route table ---


def test_route_targets_follow_type_and_vpc(recording_create):
    controller = WizardController(route_table.DEFINITION, create_operation=recording_create)

    controller.set_field("vpc_id", VPC_PROD)
    assert [o.id for o in controller.options("target_id")] == ["igw-0aa00000000000001"]
    controller.set_field("target_id", "igw-0aa00000000000001")

    controller.set_field("target_type", "nat-gateway")
    assert controller.get("target_id") is None
    assert [o.id for o in controller.options("target_id")] == ["nat-0aa00000000000001"]

    controller.set_field("vpc_id", VPC_SANDBOX)
    assert controller.options("target_id") == ()


def test_route_table_subnet_associations_recompute(recording_create):
    controller = WizardController(route_table.DEFINITION, create_operation=recording_create)
    controller.set_field("vpc_id", VPC_PROD)
    controller.set_field("subnet_ids", ["subnet-0aa0000000000001"])

    controller.set_field("vpc_id", VPC_STAGING)

    assert controller.get("subnet_ids") == []


# --- Identity provider ---


def test_oidc_issuer_must_use_https():
    errors = _step_errors(
        identity_provider.DEFINITION,
        "configure",
        provider_type="oidc",
        provider_name="google",
        issuer_url="http://accounts.google.com",
        audience="client-1",
    )

    assert errors == {"issuer_url": "Provider URL must use HTTPS"}


def test_saml_needs_metadata_url():
    errors = _step_errors(identity_provider.DEFINITION, "configure", provider_name="okta")

    assert errors == {"metadata_url": "Metadata URL is required"}


def test_provider_name_characters():
    errors = _step_errors(
        identity_provider.DEFINITION,
        "configure",
        provider_name="my provider",
        metadata_url="https://idp.example.com/saml/metadata",
    )

    assert errors == {
        "provider_name": "Provider name can only contain alphanumeric characters and the following: +=,.@-"
    }


def test_switching_provider_type_clears_type_specific_fields(recording_create):
    controller = WizardController(identity_provider.DEFINITION, create_operation=recording_create)
    controller.set_field("provider_type", "oidc")
    controller.set_field("issuer_url", "https://accounts.google.com")

    controller.set_field("provider_type", "saml")

    assert controller.get("issuer_url") == ""


# --- EKS cluster ---


def test_eks_subnets_must_span_two_availability_zones():
    same_az = _step_errors(
        eks_cluster.DEFINITION,
        "networking",
        vpc_id=VPC_PROD,
        subnet_ids=["subnet-0aa0000000000001", "subnet-0aa0000000000003"],
    )
    spread = _step_errors(
        eks_cluster.DEFINITION,
        "networking",
        vpc_id=VPC_PROD,
        subnet_ids=["subnet-0aa0000000000001", "subnet-0aa0000000000002"],
    )

    assert same_az == {"subnet_ids": "Select at least 2 subnets in different availability zones"}
    assert spread == {}


def test_eks_cluster_name_rules():
    errors = _step_errors(eks_cluster.DEFINITION, "cluster", cluster_name="-bad", role_arn=None)

    assert errors == {
        "cluster_name": "Cluster name must start with a letter or number and contain only letters, numbers, hyphens and underscores",
        "role_arn": "Select a cluster service role",
    }
