import json
import logging
import threading
import redis
from typing import Callable, Dict, Any, Optional, Iterable, Set

from .config import REDIS_HOST, REDIS_PORT, REDIS_DB, CHANNEL_STATUS

logger = logging.getLogger(__name__)

class RedisClient:
    """
    Process-wide Redis connection used to broadcast wizard status events.

    When Redis is unreachable the client keeps `client = None` and every
    publish becomes a no-op, so wizards keep working without a broker.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super(RedisClient, cls).__new__(cls)
                cls._instance._init_connection()
            return cls._instance

    def _init_connection(self):
        try:
            self.client = redis.Redis(
                host=REDIS_HOST,
                port=REDIS_PORT,
                db=REDIS_DB,
                decode_responses=True
            )
            self.client.ping()
            logger.info("Connected to Redis successfully.")
        except redis.ConnectionError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self.client = None

    def publish(self, channel: str, message: Any):
        """Publish a message to a channel. Message is JSON serialized automatically."""
        if not self.client:
            return

        if not isinstance(message, str):
            try:
                message = json.dumps(message, default=str)
            except (TypeError, ValueError):
                logger.warning("Dropping unserializable message for %s", channel)
                return

        try:
            self.client.publish(channel, message)
        except Exception as e:
            logger.error(f"Error publishing to {channel}: {e}")

    def _build_event(self, event_type: str, data: Optional[Dict[str, Any]] = None,
                     wizard_id: Optional[str] = None, request_id: Optional[str] = None,
                     **extra_fields: Any) -> Dict[str, Any]:
        payload = {"type": event_type, "data": data or {}}
        if wizard_id:
            payload["wizard_id"] = wizard_id
        if request_id:
            payload["request_id"] = request_id
        payload.update(extra_fields)
        return payload

    def publish_status(self, event_type: str, data: Optional[Dict[str, Any]] = None,
                       wizard_id: Optional[str] = None, request_id: Optional[str] = None,
                       **extra_fields: Any):
        """Publish a status update to the status channel."""
        payload = self._build_event(event_type, data, wizard_id, request_id, **extra_fields)
        self.publish(CHANNEL_STATUS, payload)

    def parse_pubsub_message(self, message: Any) -> Optional[Dict[str, Any]]:
        """Safely parse a pubsub message into a dict payload."""
        if not isinstance(message, dict):
            return None
        raw = message.get("data")
        if raw is None:
            return None
        try:
            payload = json.loads(raw) if isinstance(raw, str) else raw
        except json.JSONDecodeError:
            return None
        return payload if isinstance(payload, dict) else None

    def iter_events(
        self,
        channel: str = CHANNEL_STATUS,
        wizard_id: Optional[str] = None,
        request_id: Optional[str] = None,
        allowed_types: Optional[Set[str]] = None,
        timeout: float = 0.5,
        stop_check: Optional[Callable[[], bool]] = None,
    ) -> Iterable[Dict[str, Any]]:
        """
        Iterate parsed status events as they arrive.

        Events can be narrowed to one wizard, one request and a set of event
        types. Runs until `stop_check` returns True or the caller stops
        iterating.
        """
        if not self.client:
            return
        pubsub = self.client.pubsub()
        pubsub.subscribe(channel)
        try:
            while True:
                if stop_check and stop_check():
                    break
                msg = pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=timeout
                )
                if not msg:
                    continue
                data = self.parse_pubsub_message(msg)
                if not data:
                    continue
                if wizard_id is not None and data.get("wizard_id") != wizard_id:
                    continue
                if request_id is not None and data.get("request_id") and data.get("request_id") != request_id:
                    continue
                if allowed_types and data.get("type") not in allowed_types:
                    continue
                yield data
        finally:
            pubsub.close()


class WizardStatusPublisher:
    """
    Binds a wizard id to the shared RedisClient.

    Handed to SubmissionPipeline as its status publisher so every event
    carries the wizard it came from.
    """

    def __init__(self, wizard_id: str, client: Optional[RedisClient] = None):
        self.wizard_id = wizard_id
        self.client = client or RedisClient()

    def publish_status(self, event_type: str, data: Optional[Dict[str, Any]] = None,
                       request_id: Optional[str] = None, **extra_fields: Any):
        self.client.publish_status(
            event_type, data, wizard_id=self.wizard_id, request_id=request_id, **extra_fields
        )
