"""Kafka client settings shared by producers, consumers and managers, and message types."""

from __future__ import annotations

import enum
import functools
import ssl
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable

from natskafka.scram import ScramClient


class SaslMechanism(enum.Enum):
    """SASL mechanisms the bridge can use with Kafka."""

    PLAIN = "PLAIN"
    SCRAM_SHA_256 = "SCRAM-SHA-256"
    SCRAM_SHA_512 = "SCRAM-SHA-512"

    @property
    def hash_name(self) -> str | None:
        """The SCRAM hash, or None for PLAIN."""
        return {
            SaslMechanism.SCRAM_SHA_256: "sha256",
            SaslMechanism.SCRAM_SHA_512: "sha512",
        }.get(self)


_SHA256_NAMES = frozenset({"scram-sha256", "scram-sha-256", "sha256"})
_SHA512_NAMES = frozenset({"scram-sha512", "scram-sha-512", "sha512"})


def sasl_mechanism_for(name: str) -> SaslMechanism:
    """Map a configured mechanism name to a mechanism; anything unrecognised is PLAIN."""
    if name in _SHA256_NAMES:
        return SaslMechanism.SCRAM_SHA_256
    if name in _SHA512_NAMES:
        return SaslMechanism.SCRAM_SHA_512
    return SaslMechanism.PLAIN


@dataclass
class SaslSettings:
    """SASL settings of a connector."""

    user: str = ""
    password: str | None = None
    mechanism: str = ""
    insecure_skip_verify: bool = False


@dataclass
class ClientSecurity:
    """The SASL and TLS settings a Kafka client is built with."""

    sasl_enabled: bool = False
    sasl_handshake: bool = False
    mechanism: SaslMechanism | None = None
    user: str = ""
    password: str | None = None
    scram_client_factory: Callable[[], ScramClient] | None = None
    tls_enabled: bool = False
    tls_context: ssl.SSLContext | None = None
    tls_skip_verify: bool = False

    def net_info(self) -> str:
        """Describe whether SASL and TLS are enabled."""
        return net_info(self.sasl_enabled, self.tls_enabled, self.tls_skip_verify)


def _insecure_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def security_settings(sasl: SaslSettings, tls_context: ssl.SSLContext | None) -> ClientSecurity:
    """Work out SASL and TLS settings from a connector's SASL settings and its TLS context.

    SASL is on when a user is set. If SASL is on and verification is to be
    skipped, TLS is enabled without certificate checks; otherwise a given TLS
    context enables TLS.
    """
    security = ClientSecurity(tls_skip_verify=sasl.insecure_skip_verify)

    if sasl.user:
        mechanism = sasl_mechanism_for(sasl.mechanism)
        security.sasl_enabled = True
        security.sasl_handshake = True
        security.mechanism = mechanism
        if mechanism.hash_name is not None:
            security.scram_client_factory = functools.partial(ScramClient, mechanism.hash_name)
        security.user = sasl.user
        security.password = sasl.password if sasl.password is not None else ""

    if security.sasl_enabled and sasl.insecure_skip_verify:
        security.tls_enabled = True
        security.tls_context = _insecure_context()
    elif tls_context is not None:
        security.tls_enabled = True
        security.tls_context = tls_context

    return security


def net_info(sasl_on: bool, tls_on: bool, tls_skip_verify: bool) -> str:
    """Describe whether SASL and TLS are enabled."""
    sasl_info = "SASL enabled" if sasl_on else "SASL disabled"
    tls_info = "TLS enabled" if tls_on else "TLS disabled"
    if tls_skip_verify:
        tls_info += " (insecure skip verify)"
    return f"{sasl_info}, {tls_info}"


@dataclass(frozen=True)
class RecordHeader:
    """One Kafka record header."""

    key: bytes
    value: bytes


@dataclass
class Message:
    """A Kafka message."""

    topic: str = ""
    partition: int = 0
    offset: int = 0
    key: bytes = b""
    value: bytes = b""
    headers: list[RecordHeader] = field(default_factory=list)


def convert_headers(headers: Iterable[RecordHeader] | None) -> list[RecordHeader]:
    """Copy consumed record headers into a message's header list."""
    if headers is None:
        return []
    return [replace(header) for header in headers]


class TopicExistsError(Exception):
    """Raised when creating a topic that already exists."""

    def __init__(self, topic: str) -> None:
        super().__init__(f"topic {topic!r} already exists")
        self.topic = topic


def is_topic_exist(err: BaseException | None) -> bool:
    """True if ``err`` or an exception it was raised from is a TopicExistsError."""
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, TopicExistsError):
            return True
        seen.add(id(err))
        err = err.__cause__ or err.__context__
    return False


class ErroredProducer:
    """A producer that fails every call with the error it was made with."""

    def __init__(self, err: BaseException) -> None:
        self.err = err

    def write(self, message: Message) -> None:
        raise self.err

    def close(self) -> None:
        raise self.err