# natskafka

Building blocks for moving messages from NATS to Kafka: choosing partitions,
authenticating with SCRAM, describing a Kafka client's SASL and TLS settings,
framing record values for a schema registry, and keeping per-connector
statistics.

## Install

```
pip install natskafka
```

To run the tests:

```
pip install "natskafka[test]"
pytest
```

## Modules

### `natskafka.packing`

- `pack_int32(value)` packs a signed 32-bit integer into four big-endian bytes;
  values outside that range raise `ValueError`.
- `unpack_int32(data)` reads a signed 32-bit big-endian integer from the first
  four bytes of `data` (bytes, or a `str` taken one character per byte); fewer
  than four bytes raise `ValueError`.

### `natskafka.partitioner`

`LeastBytesPartitioner` sends each message to the partition that has received
the fewest bytes so far.

- `partition(key, value, num_partitions)` adjusts its counters to the current
  partition count (dropping vanished partitions, adding new ones at zero),
  picks the partition with the fewest bytes, adds the key and value lengths to
  it and returns its number. A non-positive count raises `ValueError`.
- `find_partition_with_min_bytes()` returns the counter key with the fewest
  bytes, or `None` when there are no counters.
- `requires_consistency()` is always `False`.

### `natskafka.stats`

- `Histogram(max_bins=60)` is a bounded streaming histogram: `add(value)`
  records a value, `quantile(q)` approximates a quantile (0 when empty), and
  `count` is the number of values recorded.
- `ConnectorStatsHolder(name, connector_id)` is a thread-safe counter for one
  connector: `add_message_in`, `add_message_out`, `add_connect`,
  `add_disconnect`, `add_request_time` and `add_request`. Request times are a
  `timedelta` or a number of nanoseconds and feed a running average and the
  histogram. `stats()` refreshes the 50/75/90/95 % quantiles and returns a
  copy as a `ConnectorStats`.
- `ConnectorStats.to_dict()` and `BridgeStats.to_dict()` give the JSON field
  names (`msg_in`, `rma`, `q50`, `current_time`, `connectors`, ...).

### `natskafka.scram`

`ScramClient(hash_name="sha256", *, min_iterations=4096, nonce_factory=None)`
runs the client side of a SCRAM conversation: `begin(username, password, authzid)`,
then `step(challenge)` for each server message (the first with an empty
challenge), and `done()` once the server's signature has been verified.
Credentials are SASLprep-normalised. Any failure raises `ScramError`.

### `natskafka.kafka_config`

- `sasl_mechanism_for(name)` maps `scram-sha256`, `scram-sha-256` or `sha256`
  to `SaslMechanism.SCRAM_SHA_256`, the `512` forms to
  `SaslMechanism.SCRAM_SHA_512`, and anything else to `SaslMechanism.PLAIN`.
- `security_settings(sasl, tls_context)` turns a `SaslSettings` and an optional
  `ssl.SSLContext` into a `ClientSecurity`: SASL is on when a user is set; with
  SASL on and `insecure_skip_verify` set, TLS is on without certificate checks;
  otherwise a given context turns TLS on. SCRAM mechanisms get a
  `scram_client_factory`.
- `net_info(sasl_on, tls_on, tls_skip_verify)` and `ClientSecurity.net_info()`
  return text such as `"SASL enabled, TLS enabled (insecure skip verify)"`.
- `Message` and `RecordHeader` hold Kafka messages; `convert_headers(headers)`
  copies headers into a list (an empty list for `None`).
- `TopicExistsError` and `is_topic_exist(err)`, which also looks through the
  exception's cause and context chain.
- `ErroredProducer(err)` raises `err` from `write` and `close`.

### `natskafka.wire`

Schema-registry framing: a zero magic byte, the schema id as a big-endian
32-bit integer, then the body.

- `frame_payload(schema_id, body)` and `unframe_payload(payload)`.
- `encode_varint(value)` and `decode_varint(data, offset=0)` for zig-zag
  varints; `build_message_indexes(message_type_names, full_name)` and
  `decode_message_indexes(payload)` for the protobuf message-index prefix (an
  empty array stands for index 0).
- `SchemaType.parse(name)` maps `json` and `protobuf` in any case, and anything
  else to `AVRO`.
- `Schema` and an in-memory `SchemaRegistry` with `get_schema`,
  `get_schema_by_version` and `get_latest_schema`.
- `PayloadCodec` passes bytes through; `JsonSchemaCodec` sends JSON unchanged
  and validates received JSON against the schema with `jsonschema`.
- `SchemaSerializer(registry, subject, schema_type=SchemaType.AVRO, version=0, codec=None)`
  encodes with the given version, or the latest when `version` is 0, and frames
  the result. `SchemaDeserializer(registry, schema_type=SchemaType.AVRO, codec=None)`
  unframes, looks up the schema by id and decodes. Without a codec, only JSON
  schemas are handled; other types raise `SchemaError`.

## Example

```python
from datetime import timedelta

from natskafka.partitioner import LeastBytesPartitioner
from natskafka.stats import ConnectorStatsHolder
from natskafka.wire import Schema, SchemaRegistry, SchemaSerializer, SchemaDeserializer, SchemaType

partitioner = LeastBytesPartitioner()
first = partitioner.partition(b"key", b"hello world", 3)

holder = ConnectorStatsHolder("NATS:test to Kafka:events", "connector-1")
holder.add_request(11, 11, timedelta(milliseconds=2))
print(holder.stats().to_dict())

registry = SchemaRegistry([Schema(id=1, text='{"type": "object"}', subject="events", version=1)])
framed = SchemaSerializer(registry, "events", SchemaType.JSON).serialize(b'{"a": 1}')
print(SchemaDeserializer(registry, SchemaType.JSON).deserialize(framed))
```

## What this package does not do

- It does not connect to NATS or Kafka, and has no command to run a bridge:
  there are no producers, consumers, subscriptions or topic administration
  here, only the settings and message types they would use.
- It does not load configuration files, serve monitoring endpoints, or
  restart failed connections.
- It has no logging of its own.
- `SchemaRegistry` is in memory; it does not talk to a registry server.
- Avro and protobuf bodies are not encoded or decoded; supply a `PayloadCodec`
  for them.