"""Unit tests for auth/passwords.py -- bcrypt hash and verify."""

from auth.passwords import PasswordHasher

hasher = PasswordHasher(rounds=4)


def test_hash_is_not_plaintext():
    digest = hasher.hash("longenough1")
    assert digest != "longenough1"
    assert digest.startswith("$2")


def test_hash_is_salted():
    assert hasher.hash("longenough1") != hasher.hash("longenough1")


def test_verify_roundtrip():
    digest = hasher.hash("longenough1")
    assert hasher.verify("longenough1", digest)
    assert not hasher.verify("longenough2", digest)


def test_verify_malformed_digest_is_false():
    assert hasher.verify("longenough1", "not-a-bcrypt-hash") is False


def test_verify_dummy_always_false():
    assert hasher.verify_dummy("authsession_timing_dummy") is False


def test_rounds_are_fixed_per_instance():
    assert "$04$" in hasher.hash("x")
