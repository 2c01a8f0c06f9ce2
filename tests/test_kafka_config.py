import ssl

import pytest

from natskafka.kafka_config import (
    ClientSecurity,
    ErroredProducer,
    Message,
    RecordHeader,
    SaslMechanism,
    SaslSettings,
    TopicExistsError,
    convert_headers,
    is_topic_exist,
    net_info,
    sasl_mechanism_for,
    security_settings,
)
from natskafka.scram import ScramClient


def test_convert_to_msg_header_ok():
    consumer_headers = [
        RecordHeader(key=f"key-{i}".encode(), value=f"value-{i}".encode()) for i in range(3)
    ]
    message_headers = convert_headers(consumer_headers)
    assert len(message_headers) == len(consumer_headers)
    for original, copied in zip(consumer_headers, message_headers):
        assert copied.value == original.value
        assert copied.key == original.key


def test_convert_to_msg_header_null():
    assert convert_headers(None) == []


@pytest.mark.parametrize(
    "name, expected",
    [
        ("scram-sha256", SaslMechanism.SCRAM_SHA_256),
        ("scram-sha-256", SaslMechanism.SCRAM_SHA_256),
        ("sha256", SaslMechanism.SCRAM_SHA_256),
        ("scram-sha512", SaslMechanism.SCRAM_SHA_512),
        ("scram-sha-512", SaslMechanism.SCRAM_SHA_512),
        ("sha512", SaslMechanism.SCRAM_SHA_512),
        ("", SaslMechanism.PLAIN),
        ("plain", SaslMechanism.PLAIN),
        ("SHA256", SaslMechanism.PLAIN),
    ],
)
def test_sasl_mechanism_for(name, expected):
    assert sasl_mechanism_for(name) is expected


def test_no_user_no_tls_disables_everything():
    security = security_settings(SaslSettings(), None)
    assert security.sasl_enabled is False
    assert security.tls_enabled is False
    assert security.mechanism is None
    assert security.net_info() == "SASL disabled, TLS disabled"


def test_sasl_user_enables_sasl_with_scram_factory():
    password = "password"
    security = security_settings(SaslSettings(user="user", password=password, mechanism="sha512"), None)
    assert security.sasl_enabled and security.sasl_handshake
    assert security.mechanism is SaslMechanism.SCRAM_SHA_512
    assert security.user == "user"
    assert security.password == password
    client = security.scram_client_factory()
    assert isinstance(client, ScramClient) and client.hash_name == "sha512"
    assert security.net_info() == "SASL enabled, TLS disabled"


def test_plain_mechanism_has_no_scram_factory():
    password = "password"
    security = security_settings(SaslSettings(user="user", password=password), None)
    assert security.mechanism is SaslMechanism.PLAIN
    assert security.scram_client_factory is None


def test_sasl_insecure_skip_verify_enables_unverified_tls():
    password = "password"
    given = ssl.create_default_context()
    security = security_settings(
        SaslSettings(user="user", password=password, insecure_skip_verify=True), given
    )
    assert security.tls_enabled
    assert security.tls_context is not given
    assert security.tls_context.verify_mode == ssl.CERT_NONE
    assert security.tls_context.check_hostname is False
    assert security.net_info() == "SASL enabled, TLS enabled (insecure skip verify)"


def test_tls_context_used_without_sasl():
    given = ssl.create_default_context()
    security = security_settings(SaslSettings(), given)
    assert security.tls_enabled
    assert security.tls_context is given
    assert security.net_info() == "SASL disabled, TLS enabled"


def test_skip_verify_without_user_does_not_force_tls():
    security = security_settings(SaslSettings(insecure_skip_verify=True), None)
    assert security.tls_enabled is False
    assert security.tls_skip_verify is True
    assert security.net_info() == "SASL disabled, TLS disabled (insecure skip verify)"


def test_net_info_function_matches_method():
    security = ClientSecurity(sasl_enabled=True, tls_enabled=True)
    assert net_info(True, True, False) == "SASL enabled, TLS enabled"
    assert security.net_info() == net_info(True, True, False)


def test_is_topic_exist_direct_and_chained():
    assert is_topic_exist(TopicExistsError("orders"))
    try:
        try:
            raise TopicExistsError("orders")
        except TopicExistsError as inner:
            raise RuntimeError("create failed") from inner
    except RuntimeError as outer:
        chained = outer
    assert is_topic_exist(chained)
    assert not is_topic_exist(RuntimeError("other"))
    assert not is_topic_exist(None)


def test_topic_exists_error_keeps_topic():
    assert TopicExistsError("orders").topic == "orders"


def test_errored_producer_raises_its_error():
    err = ConnectionError("no brokers")
    producer = ErroredProducer(err)
    with pytest.raises(ConnectionError) as info:
        producer.write(Message(topic="t", value=b"v"))
    assert info.value is err
    with pytest.raises(ConnectionError):
        producer.close()


def test_message_defaults():
    message = Message()
    assert message.headers == []
    assert message.key == b"" and message.value == b""
    assert message.partition == 0 and message.offset == 0