from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional, Tuple

from paho.mqtt import client as mqtt_client

from alarm_clock.services.logging import setup_logging

TAG = __name__
logger = setup_logging()


def publish_json(
    broker_url: Optional[str],
    topic: str,
    payload: Dict[str, Any],
    timeout: float = 5.0,
) -> bool:
    """
    Publish one JSON message and disconnect.

    Args:
        broker_url: MQTT broker URL (e.g., "mqtt://host:1883"). Falls back to env MQTT_URL.
        topic: Topic to publish on
        payload: JSON-serializable message body
        timeout: Seconds to wait for the publish to complete

    Returns:
        True if publish succeeded, False otherwise
    """
    host, port = _parse_broker(broker_url)
    client = mqtt_client.Client(mqtt_client.CallbackAPIVersion.VERSION2)
    try:
        logger.bind(tag=TAG).debug(f"Connecting to MQTT broker {host}:{port} for {topic}")
        client.connect(host, port, keepalive=30)
        client.loop_start()

        result = client.publish(topic, json.dumps(payload), qos=1)
        result.wait_for_publish(timeout)
        ok = result.is_published()
        if ok:
            logger.bind(tag=TAG).info(f"Published {payload.get('type')} to {topic}")
        else:
            logger.bind(tag=TAG).warning(
                f"MQTT publish not confirmed within {timeout}s on topic {topic}"
            )
        return ok
    except Exception as e:
        logger.bind(tag=TAG).error(
            f"MQTT publish to {host}:{port} on {topic} failed: {type(e).__name__}: {e}"
        )
        return False
    finally:
        try:
            client.loop_stop()
            client.disconnect()
        except Exception:
            pass


def _parse_broker(broker_url: Optional[str]) -> Tuple[str, int]:
    url = broker_url or os.environ.get("MQTT_URL", "mqtt://localhost:1883")
    if url.startswith("mqtt://"):
        url = url.replace("mqtt://", "tcp://", 1)
    if not url.startswith(("tcp://", "ws://", "wss://", "ssl://")):
        url = "tcp://" + url
    try:
        _, rest = url.split("://", 1)
        if ":" in rest:
            host, port_str = rest.split(":", 1)
            port = int(port_str)
        else:
            host = rest
            port = 1883
        return host, port
    except Exception:
        return "localhost", 1883
