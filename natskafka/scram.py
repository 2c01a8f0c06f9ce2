"""Client side of the SCRAM-SHA-256 and SCRAM-SHA-512 SASL exchanges."""

from __future__ import annotations

import base64
import binascii
import enum
import hashlib
import hmac
import secrets
import stringprep
import unicodedata
from typing import Callable

_PROHIBITED = (
    stringprep.in_table_c12,
    stringprep.in_table_c21,
    stringprep.in_table_c22,
    stringprep.in_table_c3,
    stringprep.in_table_c4,
    stringprep.in_table_c5,
    stringprep.in_table_c6,
    stringprep.in_table_c7,
    stringprep.in_table_c8,
    stringprep.in_table_c9,
    stringprep.in_table_a1,
)


class ScramError(Exception):
    """Raised when a SCRAM exchange cannot continue."""


class _State(enum.Enum):
    IDLE = "idle"
    CLIENT_FIRST = "client-first"
    CLIENT_FINAL = "client-final"
    VERIFY = "verify"
    DONE = "done"
    FAILED = "failed"


def _saslprep(text: str) -> str:
    mapped = "".join(
        " " if stringprep.in_table_c12(char) else char
        for char in text
        if not stringprep.in_table_b1(char)
    )
    normalized = unicodedata.normalize("NFKC", mapped)
    for char in normalized:
        if any(check(char) for check in _PROHIBITED):
            raise ScramError(f"prohibited character {char!r} in credentials")
    if any(stringprep.in_table_d1(char) for char in normalized):
        if any(stringprep.in_table_d2(char) for char in normalized):
            raise ScramError("credentials mix left-to-right and right-to-left text")
        if not (stringprep.in_table_d1(normalized[0]) and stringprep.in_table_d1(normalized[-1])):
            raise ScramError("right-to-left credentials must start and end with right-to-left text")
    return normalized


def _escape(name: str) -> str:
    return name.replace("=", "=3D").replace(",", "=2C")


def _default_nonce() -> str:
    return base64.b64encode(secrets.token_bytes(24)).decode("ascii")


def _parse_attributes(message: str) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for part in message.split(","):
        if len(part) < 2 or part[1] != "=":
            raise ScramError(f"malformed SCRAM attribute {part!r}")
        attributes.setdefault(part[0], part[2:])
    return attributes


def _b64decode(text: str, what: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ScramError(f"invalid base64 in {what}") from exc


class ScramClient:
    """One SCRAM conversation: ``begin`` it, then ``step`` through the server's challenges."""

    def __init__(
        self,
        hash_name: str = "sha256",
        *,
        min_iterations: int = 4096,
        nonce_factory: Callable[[], str] | None = None,
    ) -> None:
        try:
            hashlib.new(hash_name)
        except ValueError as exc:
            raise ValueError(f"unknown hash {hash_name!r}") from exc
        self.hash_name = hash_name
        self.min_iterations = min_iterations
        self._nonce_factory = nonce_factory or _default_nonce
        self._state = _State.IDLE
        self._username = ""
        self._password = ""
        self._authzid = ""
        self._nonce = ""
        self._gs2_header = ""
        self._client_first_bare = ""
        self._server_signature = b""

    def begin(self, username: str, password: str, authzid: str) -> None:
        """Prepare the credentials and start a fresh conversation."""
        self._username = _saslprep(username)
        self._password = _saslprep(password)
        self._authzid = _saslprep(authzid) if authzid else ""
        self._state = _State.CLIENT_FIRST

    def step(self, challenge: str) -> str:
        """Answer a server challenge; the first call takes an empty challenge."""
        handlers = {
            _State.CLIENT_FIRST: self._client_first,
            _State.CLIENT_FINAL: self._client_final,
            _State.VERIFY: self._verify,
        }
        handler = handlers.get(self._state)
        if handler is None:
            if self._state is _State.IDLE:
                raise ScramError("conversation has not begun")
            raise ScramError(f"conversation is already {self._state.value}")
        try:
            return handler(challenge)
        except ScramError:
            self._state = _State.FAILED
            raise

    def done(self) -> bool:
        """True once the server's signature has been verified."""
        return self._state is _State.DONE

    def _hmac(self, key: bytes, message: bytes) -> bytes:
        return hmac.new(key, message, self.hash_name).digest()

    def _client_first(self, _challenge: str) -> str:
        self._nonce = self._nonce_factory()
        authz = f"a={_escape(self._authzid)}" if self._authzid else ""
        self._gs2_header = f"n,{authz},"
        self._client_first_bare = f"n={_escape(self._username)},r={self._nonce}"
        self._state = _State.CLIENT_FINAL
        return self._gs2_header + self._client_first_bare

    def _client_final(self, server_first: str) -> str:
        attributes = _parse_attributes(server_first)
        if "m" in attributes:
            raise ScramError("server requires an unsupported SCRAM extension")
        try:
            nonce, salt_text, iterations_text = attributes["r"], attributes["s"], attributes["i"]
        except KeyError as exc:
            raise ScramError(f"server-first message lacks attribute {exc.args[0]!r}") from exc
        if not nonce.startswith(self._nonce):
            raise ScramError("server nonce did not extend client nonce")
        try:
            iterations = int(iterations_text)
        except ValueError as exc:
            raise ScramError(f"invalid iteration count {iterations_text!r}") from exc
        if iterations < self.min_iterations:
            raise ScramError(
                f"server requested {iterations} iterations, fewer than the minimum {self.min_iterations}"
            )
        salt = _b64decode(salt_text, "salt")

        channel_binding = base64.b64encode(self._gs2_header.encode("utf-8")).decode("ascii")
        without_proof = f"c={channel_binding},r={nonce}"
        auth_message = f"{self._client_first_bare},{server_first},{without_proof}".encode("utf-8")

        salted = hashlib.pbkdf2_hmac(self.hash_name, self._password.encode("utf-8"), salt, iterations)
        client_key = self._hmac(salted, b"Client Key")
        stored_key = hashlib.new(self.hash_name, client_key).digest()
        client_signature = self._hmac(stored_key, auth_message)
        proof = bytes(a ^ b for a, b in zip(client_key, client_signature))
        server_key = self._hmac(salted, b"Server Key")
        self._server_signature = self._hmac(server_key, auth_message)

        self._state = _State.VERIFY
        return f"{without_proof},p={base64.b64encode(proof).decode('ascii')}"

    def _verify(self, server_final: str) -> str:
        attributes = _parse_attributes(server_final)
        if "e" in attributes:
            raise ScramError(f"server error: {attributes['e']}")
        if "v" not in attributes:
            raise ScramError("server-final message lacks a verifier")
        signature = _b64decode(attributes["v"], "server signature")
        if not hmac.compare_digest(signature, self._server_signature):
            raise ScramError("server signature did not match")
        self._state = _State.DONE
        return ""