import json

from app.core.config import CHANNEL_STATUS
from app.core.redis_client import RedisClient, WizardStatusPublisher


def _next_message(pubsub):
    for _ in range(10):
        message = pubsub.get_message(ignore_subscribe_messages=True, timeout=0.1)
        if message:
            return message
    return None


def test_singleton(redis_client_wrapper):
    assert RedisClient() is redis_client_wrapper
    assert redis_client_wrapper.client is not None


def test_publish_status_reaches_status_channel(redis_client_wrapper, fake_redis):
    pubsub = fake_redis.pubsub()
    pubsub.subscribe(CHANNEL_STATUS)

    redis_client_wrapper.publish_status(
        "submission", {"resource_id": "vpc-1"}, request_id="req-1", status="success"
    )

    event = redis_client_wrapper.parse_pubsub_message(_next_message(pubsub))
    assert event == {
        "type": "submission",
        "data": {"resource_id": "vpc-1"},
        "request_id": "req-1",
        "status": "success",
    }


def test_wizard_status_publisher_adds_wizard_id(redis_client_wrapper, fake_redis):
    pubsub = fake_redis.pubsub()
    pubsub.subscribe(CHANNEL_STATUS)

    WizardStatusPublisher("create-vpc").publish_status("submission", {}, request_id="req-2", status="in_progress")

    event = json.loads(_next_message(pubsub)["data"])
    assert event["wizard_id"] == "create-vpc"
    assert event["status"] == "in_progress"


def test_parse_pubsub_message_ignores_garbage(redis_client_wrapper):
    assert redis_client_wrapper.parse_pubsub_message(None) is None
    assert redis_client_wrapper.parse_pubsub_message({"data": "not json"}) is None
    assert redis_client_wrapper.parse_pubsub_message({"data": "[1, 2]"}) is None
    assert redis_client_wrapper.parse_pubsub_message({"data": '{"type": "x"}'}) == {"type": "x"}


def test_publish_without_connection_is_a_no_op(redis_client_wrapper):
    redis_client_wrapper.client = None

    redis_client_wrapper.publish_status("submission", {"resource_id": "vpc-1"})

    assert list(redis_client_wrapper.iter_events()) == []


def test_iter_events_filters_by_wizard_request_and_type(redis_client_wrapper):
    vpc = WizardStatusPublisher("create-vpc", redis_client_wrapper)
    bucket = WizardStatusPublisher("create-bucket", redis_client_wrapper)
    checks = []

    def stop_check():
        checks.append(1)
        if len(checks) == 1:
            # Subscribed by now, so everything below is delivered
            vpc.publish_status("submission", {"resource_id": "vpc-1"}, request_id="req-1", status="success")
            bucket.publish_status("submission", {}, request_id="req-1", status="success")
            vpc.publish_status("submission", {}, request_id="req-2", status="success")
            vpc.publish_status("heartbeat", {}, request_id="req-1")
            redis_client_wrapper.publish(CHANNEL_STATUS, "not json")
            vpc.publish_status("submission", {"message": "no request"}, status="in_progress")
        return len(checks) > 20

    events = list(
        redis_client_wrapper.iter_events(
            wizard_id="create-vpc",
            request_id="req-1",
            allowed_types={"submission"},
            timeout=0.01,
            stop_check=stop_check,
        )
    )

    assert [e["data"] for e in events] == [{"resource_id": "vpc-1"}, {"message": "no request"}]
    assert all(e["wizard_id"] == "create-vpc" for e in events)


def test_iter_events_stops_when_caller_stops(redis_client_wrapper):
    checks = []

    def stop_check():
        checks.append(1)
        if len(checks) == 1:
            redis_client_wrapper.publish_status("submission", {"n": 1})
            redis_client_wrapper.publish_status("submission", {"n": 2})
        return False

    events = redis_client_wrapper.iter_events(timeout=0.01, stop_check=stop_check)
    first = next(events)
    events.close()

    assert first["data"] == {"n": 1}
