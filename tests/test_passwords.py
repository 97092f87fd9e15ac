import base64

import pytest

from libapp.config import Config
from libapp.passwords import hash_password, verify_password


def make_config(**overrides):
    password = "password"
    values = dict(
        jwt_secret="secret",
        jwt_expiration=24,
        db_host="localhost",
        db_port="5432",
        db_user="user",
        db_password=password,
        db_name="library",
        memory=1024,
        iterations=1,
        parallelism=1,
        key_length=32,
        salt_length=16,
    )
    values.update(overrides)
    return Config(**values)


def _decode(part):
    return base64.b64decode(part + "=" * (-len(part) % 4))


@pytest.fixture
def config():
    return make_config()


def test_round_trip(config):
    password = "password"
    encoded = hash_password(password, config)
    assert verify_password(password, encoded, config) is True


def test_wrong_password_is_rejected(config):
    encoded = hash_password("password", config)
    assert verify_password("secret", encoded, config) is False


def test_empty_password_round_trip(config):
    encoded = hash_password("", config)
    assert verify_password("", encoded, config) is True
    assert verify_password("password", encoded, config) is False


def test_encoded_form_is_two_unpadded_base64_parts(config):
    encoded = hash_password("password", config)
    salt_part, hash_part = encoded.split(".")
    assert "=" not in encoded
    assert len(_decode(salt_part)) == config.salt_length
    assert len(_decode(hash_part)) == config.key_length


def test_lengths_follow_config():
    config = make_config(salt_length=24, key_length=48)
    salt_part, hash_part = hash_password("password", config).split(".")
    assert len(_decode(salt_part)) == 24
    assert len(_decode(hash_part)) == 48


def test_salt_is_random(config):
    first = hash_password("password", config)
    second = hash_password("password", config)
    assert first != second
    assert first.split(".")[0] != second.split(".")[0]
    assert verify_password("password", first, config)
    assert verify_password("password", second, config)


def test_missing_separator_is_rejected(config):
    encoded = hash_password("password", config)
    assert verify_password("password", encoded.replace(".", ""), config) is False


def test_invalid_base64_is_rejected(config):
    assert verify_password("password", "!!!.???", config) is False


def test_padded_base64_is_rejected(config):
    salt_part, hash_part = hash_password("password", config).split(".")
    padded = salt_part + "==" + "." + hash_part
    assert verify_password("password", padded, config) is False


def test_extra_separator_is_rejected(config):
    encoded = hash_password("password", config)
    assert verify_password("password", encoded + ".extra", config) is False


@pytest.mark.parametrize(
    "overrides",
    [{"iterations": 2}, {"memory": 2048}, {"key_length": 16}],
)
def test_different_parameters_do_not_verify(config, overrides):
    encoded = hash_password("password", config)
    assert verify_password("password", encoded, make_config(**overrides)) is False