"""Schema-registry framing of Kafka record values.

A framed value is a zero magic byte, the schema id as a big-endian 32-bit
integer, then the encoded body. Protobuf bodies are further prefixed with a
varint-encoded array of message type indexes.
"""

from __future__ import annotations

import enum
import json
import struct
from dataclasses import dataclass
from typing import Iterable, Sequence

import jsonschema

_MAGIC = 0
_HEADER = struct.Struct(">BI")
_MAX_VARINT_LEN = 10


class SchemaError(Exception):
    """Raised when a payload cannot be framed, unframed, encoded or decoded."""


class SchemaType(enum.Enum):
    """Kinds of schema a registry subject can hold."""

    AVRO = "AVRO"
    JSON = "JSON"
    PROTOBUF = "PROTOBUF"

    @classmethod
    def parse(cls, name: str) -> SchemaType:
        """Map a configured name, in any case, to a type; anything unrecognised is AVRO."""
        upper = name.upper()
        if upper == cls.JSON.value:
            return cls.JSON
        if upper == cls.PROTOBUF.value:
            return cls.PROTOBUF
        return cls.AVRO


@dataclass(frozen=True)
class Schema:
    """One registered schema."""

    id: int
    text: str
    subject: str = ""
    version: int = 0


class SchemaRegistry:
    """An in-memory schema registry, looked up by id or by subject and version."""

    def __init__(self, schemas: Iterable[Schema] = ()) -> None:
        self._by_id: dict[int, Schema] = {}
        self._by_subject: dict[str, dict[int, Schema]] = {}
        for schema in schemas:
            self._by_id[schema.id] = schema
            if schema.subject:
                self._by_subject.setdefault(schema.subject, {})[schema.version] = schema

    def get_schema(self, schema_id: int) -> Schema:
        try:
            return self._by_id[schema_id]
        except KeyError:
            raise SchemaError(f"schema {schema_id} not found") from None

    def get_schema_by_version(self, subject: str, version: int) -> Schema:
        try:
            return self._by_subject[subject][version]
        except KeyError:
            raise SchemaError(f"subject {subject!r} has no version {version}") from None

    def get_latest_schema(self, subject: str) -> Schema:
        versions = self._by_subject.get(subject)
        if not versions:
            raise SchemaError(f"subject {subject!r} not found")
        return versions[max(versions)]


class PayloadCodec:
    """Turns message values into schema-encoded bodies and back; this one passes bytes through."""

    def encode(self, schema: Schema, payload: bytes) -> bytes:
        return bytes(payload)

    def decode(self, schema: Schema, payload: bytes) -> bytes:
        return bytes(payload)


class JsonSchemaCodec(PayloadCodec):
    """JSON bodies: sent unchanged, validated against the schema when received."""

    def encode(self, schema: Schema, payload: bytes) -> bytes:
        return bytes(payload)

    def decode(self, schema: Schema, payload: bytes) -> bytes:
        try:
            document = json.loads(schema.text)
            validator_class = jsonschema.validators.validator_for(document)
            validator_class.check_schema(document)
        except (ValueError, jsonschema.exceptions.SchemaError) as exc:
            raise SchemaError(f"unable to parse json schema: {exc}") from exc
        try:
            message = json.loads(payload)
        except ValueError as exc:
            raise SchemaError(f"unable to parse json message: {exc}") from exc
        try:
            validator_class(document).validate(message)
        except jsonschema.exceptions.ValidationError as exc:
            raise SchemaError(f"json message validation failed: {exc.message}") from exc
        return bytes(payload)


def encode_varint(value: int) -> bytes:
    """Encode a signed integer as a zig-zag varint."""
    if not -(1 << 63) <= value < (1 << 63):
        raise ValueError(f"{value} does not fit in a signed 64-bit integer")
    unsigned = (value << 1) ^ (value >> 63)
    unsigned &= (1 << 64) - 1
    out = bytearray()
    while unsigned >= 0x80:
        out.append((unsigned & 0x7F) | 0x80)
        unsigned >>= 7
    out.append(unsigned)
    return bytes(out)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a zig-zag varint at ``offset``; return the value and the offset after it."""
    unsigned = 0
    shift = 0
    for count, byte in enumerate(data[offset:], start=1):
        if count == _MAX_VARINT_LEN and byte > 1:
            raise SchemaError("varint overflows a 64-bit integer")
        unsigned |= (byte & 0x7F) << shift
        if byte < 0x80:
            value = (unsigned >> 1) ^ -(unsigned & 1)
            return value, offset + count
        if count == _MAX_VARINT_LEN:
            raise SchemaError("varint overflows a 64-bit integer")
        shift += 7
    raise SchemaError("truncated varint")


def build_message_indexes(message_type_names: Sequence[str], full_name: str) -> bytes:
    """Build the protobuf message index array for a fully qualified message name.

    Each dot-separated part of the name that matches a top-level message type
    contributes that type's position; the array is prefixed by its length.
    """
    indexes = [
        message_type_names.index(part)
        for part in full_name.split(".")
        if part in message_type_names
    ]
    return encode_varint(len(indexes)) + b"".join(encode_varint(i) for i in indexes)


def decode_message_indexes(payload: bytes) -> tuple[list[int], bytes]:
    """Split a protobuf body into its message index array and the message bytes.

    An empty array stands for the single index 0.
    """
    length, offset = decode_varint(payload, 0)
    if length < 0:
        raise SchemaError(f"unable to read arrayLength: negative length {length}")
    indexes: list[int] = []
    for _ in range(length):
        try:
            index, offset = decode_varint(payload, offset)
        except SchemaError as exc:
            raise SchemaError(f"unable to read messageTypeID: {exc}") from exc
        indexes.append(index)
    if not indexes:
        indexes.append(0)
    remaining = bytes(payload[offset:])
    if not remaining:
        raise SchemaError("unable to read remaining payload: no message bytes")
    return indexes, remaining


def frame_payload(schema_id: int, body: bytes) -> bytes:
    """Prefix a body with the magic byte and the schema id."""
    return _HEADER.pack(_MAGIC, schema_id & 0xFFFFFFFF) + bytes(body)


def unframe_payload(payload: bytes) -> tuple[int, bytes]:
    """Split a framed value into its schema id and body."""
    if not payload or payload[0] != _MAGIC:
        raise SchemaError("failed to deserialize payload: magic byte is not 0")
    if len(payload) < _HEADER.size:
        raise SchemaError("failed to deserialize payload: missing schema id")
    _, schema_id = _HEADER.unpack_from(payload)
    return schema_id, bytes(payload[_HEADER.size :])


def _codec_for(schema_type: SchemaType, codec: PayloadCodec | None) -> PayloadCodec:
    if codec is not None:
        return codec
    if schema_type is SchemaType.JSON:
        return JsonSchemaCodec()
    raise SchemaError(f"no codec available for {schema_type.value} schemas")


class SchemaSerializer:
    """Encodes outgoing values with a subject's schema and frames them."""

    def __init__(
        self,
        registry: SchemaRegistry,
        subject: str,
        schema_type: SchemaType = SchemaType.AVRO,
        version: int = 0,
        codec: PayloadCodec | None = None,
    ) -> None:
        self.registry = registry
        self.subject = subject
        self.schema_type = schema_type
        self.version = version
        self.codec = _codec_for(schema_type, codec)

    def serialize(self, payload: bytes) -> bytes:
        """Encode ``payload`` with the configured version, or the latest when it is 0."""
        if self.version != 0:
            schema = self.registry.get_schema_by_version(self.subject, self.version)
        else:
            schema = self.registry.get_latest_schema(self.subject)
        return frame_payload(schema.id, self.codec.encode(schema, payload))


class SchemaDeserializer:
    """Unframes incoming values and decodes them with the schema they name."""

    def __init__(
        self,
        registry: SchemaRegistry,
        schema_type: SchemaType = SchemaType.AVRO,
        codec: PayloadCodec | None = None,
    ) -> None:
        self.registry = registry
        self.schema_type = schema_type
        self.codec = _codec_for(schema_type, codec)

    def deserialize(self, payload: bytes) -> bytes:
        schema_id, body = unframe_payload(payload)
        schema = self.registry.get_schema(schema_id)
        return self.codec.decode(schema, body)