# app/core/kafka_producer.py

import json
from kafka import KafkaProducer
from app.core.config import settings


def create_kafka_producer() -> KafkaProducer:
    """
    Build the long-lived producer used by the notifier.
    Values are JSON-encoded; datetimes fall back to str().
    """
    return KafkaProducer(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        value_serializer=lambda v: json.dumps(v, default=str).encode("utf-8"),
        key_serializer=lambda k: k.encode("utf-8") if k else None,
        # Fail fast so a broker outage never stalls a request
        request_timeout_ms=5000,
        max_block_ms=2000,
    )
