"""Partitioning, SCRAM authentication, Kafka client settings, schema-registry framing and connector statistics for moving NATS messages to Kafka."""

__version__ = "0.1.0"