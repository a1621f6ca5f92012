import sys
from pathlib import Path
from unittest.mock import patch

import fakeredis
import pytest

# --- PATH SETUP ---
# Ensure src is in the Python path for imports
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from app.core.redis_client import RedisClient  # noqa: E402
from wizard import FieldSpec, FieldType, Option, Step, WizardController, WizardDefinition  # noqa: E402
from wizard.validation import CidrBlock, Required  # noqa: E402

VPC_SUBNETS = {
    "vpc-a": [("subnet-a1", "us-east-1a"), ("subnet-a2", "us-east-1b")],
    "vpc-b": [("subnet-b1", "us-east-1a"), ("subnet-b2", "us-east-1c")],
}


def vpc_choices(_upstream):
    return [Option("vpc-a", "VPC A"), Option("vpc-b", "VPC B")]


def subnets_of_vpc(upstream):
    return [
        Option(subnet_id, subnet_id, {"availability_zone": az})
        for subnet_id, az in VPC_SUBNETS.get(upstream.get("vpc"), [])
    ]


class _FakeRedis:
    def __init__(self):
        self.status_events = []

    def publish_status(self, event_type, data=None, wizard_id=None, request_id=None, **extra_fields):
        payload = {"type": event_type, "data": data or {}, "request_id": request_id}
        payload.update(extra_fields)
        self.status_events.append(payload)


class RecordingCreate:
    """Create operation that records payloads and returns sequential ids."""

    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = fail_with

    async def __call__(self, payload):
        self.calls.append(payload)
        if self.fail_with is not None:
            raise self.fail_with
        return f"res-{len(self.calls)}"


@pytest.fixture
def fake_redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def fake_redis(fake_redis_server):
    # decode_responses=True is important for our app
    return fakeredis.FakeRedis(server=fake_redis_server, decode_responses=True)


@pytest.fixture(autouse=True)
def patch_redis_client(fake_redis):
    # Reset singleton before test
    RedisClient._instance = None

    # Patch redis.Redis so RedisClient() gets the fake instance
    with patch("redis.Redis", return_value=fake_redis):
        yield

    # Reset singleton after test
    RedisClient._instance = None
    fake_redis.flushall()


@pytest.fixture
def redis_client_wrapper(patch_redis_client):
    """Return the application's RedisClient wrapper."""
    return RedisClient()


@pytest.fixture
def fake_status():
    return _FakeRedis()


@pytest.fixture
def name_network_review():
    """Three steps: Name (required), Network (optional, CIDR), Review."""
    return WizardDefinition(
        id="name-network-review",
        title="Name, network, review",
        steps=(
            Step("name", "Name", fields=(FieldSpec("name", "Name", rules=[Required()]),)),
            Step(
                "network",
                "Network",
                optional=True,
                fields=(FieldSpec("cidr", "CIDR block", rules=[CidrBlock(16, 28)]),),
            ),
            Step("review", "Review"),
        ),
    )


@pytest.fixture
def vpc_subnet_definition():
    """VPC select on step one; subnet select filtered by VPC on step two."""
    return WizardDefinition(
        id="vpc-subnet",
        title="VPC and subnet",
        steps=(
            Step(
                "vpc",
                "VPC",
                fields=(FieldSpec("vpc", "VPC", FieldType.SELECT, options=vpc_choices, rules=[Required()]),),
            ),
            Step(
                "subnet",
                "Subnet",
                fields=(
                    FieldSpec(
                        "subnet",
                        "Subnet",
                        FieldType.SELECT,
                        depends_on={"vpc"},
                        options=subnets_of_vpc,
                        rules=[Required()],
                    ),
                ),
            ),
            Step("review", "Review"),
        ),
    )


@pytest.fixture
def recording_create():
    return RecordingCreate()


@pytest.fixture
def make_controller(recording_create):
    def _make(definition, **kwargs):
        kwargs.setdefault("create_operation", recording_create)
        return WizardController(definition, **kwargs)

    return _make
