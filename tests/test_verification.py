"""Tests for appstore webhook signatures (HMAC-SHA512 over sorted params)."""

from __future__ import annotations

import hashlib
import hmac
import logging

import pytest
from hypothesis import assume, given
from hypothesis import strategies as st

from shop_appstore.billing.verification import canonicalize, sign_payload, verify_payload

SECRET = "appstore-test-secret"

_keys = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=12).filter(
    lambda k: k != "hash"
)
_values = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)), min_size=0, max_size=20
)
_params = st.dictionaries(_keys, _values, min_size=1, max_size=8)


class TestCanonicalize:
    def test_sorted_pairs_without_hash(self):
        params = {"shop": "s1", "action": "install", "hash": "xyz", "timestamp": "1"}
        assert canonicalize(params) == "action=install&shop=s1&timestamp=1"

    def test_no_url_encoding(self):
        params = {"shop_url": "https://a.example.com/?x=1&y=2"}
        assert canonicalize(params) == "shop_url=https://a.example.com/?x=1&y=2"

    def test_non_string_values_rendered(self):
        assert canonicalize({"b": 2, "a": None}) == "a=&b=2"


class TestSignPayload:
    def test_matches_reference_hmac(self):
        params = {"action": "billing_install", "shop": "s1", "timestamp": "1700000000"}
        expected = hmac.new(
            SECRET.encode(),
            b"action=billing_install&shop=s1&timestamp=1700000000",
            hashlib.sha512,
        ).hexdigest()
        assert sign_payload(params, SECRET) == expected

    def test_lowercase_hex_sha512(self):
        digest = sign_payload({"a": "1"}, SECRET)
        assert len(digest) == 128
        assert digest == digest.lower()


class TestVerifyPayload:
    @given(_params)
    def test_signed_params_verify(self, params):
        signed = {**params, "hash": sign_payload(params, SECRET)}
        assert verify_payload(signed, SECRET) is True

    @given(_params, st.data())
    def test_tampered_value_fails(self, params, data):
        signed = {**params, "hash": sign_payload(params, SECRET)}
        key = data.draw(st.sampled_from(sorted(params)))
        replacement = data.draw(_values)
        assume(replacement != params[key])
        signed[key] = replacement
        assert verify_payload(signed, SECRET) is False

    @given(_params, st.integers(min_value=0, max_value=127))
    def test_flipped_hash_character_fails(self, params, position):
        digest = sign_payload(params, SECRET)
        flipped = "0" if digest[position] != "0" else "1"
        tampered = digest[:position] + flipped + digest[position + 1 :]
        assert verify_payload({**params, "hash": tampered}, SECRET) is False

    def test_uppercase_hash_rejected(self):
        params = {"action": "install"}
        signed = {**params, "hash": sign_payload(params, SECRET).upper()}
        assert verify_payload(signed, SECRET) is False

    def test_wrong_secret_fails(self):
        params = {"action": "install"}
        signed = {**params, "hash": sign_payload(params, SECRET)}
        assert verify_payload(signed, "other-secret") is False

    def test_missing_hash_fails(self):
        assert verify_payload({"action": "install"}, SECRET) is False

    def test_empty_secret_rejects(self):
        """No secret configured -> always reject (fail-closed)."""
        params = {"action": "install"}
        signed = {**params, "hash": sign_payload(params, "")}
        assert verify_payload(signed, "") is False

    def test_input_not_mutated(self):
        params = {"action": "install", "hash": "abc"}
        verify_payload(params, SECRET)
        assert params == {"action": "install", "hash": "abc"}


class TestScalarRendering:
    def test_integral_float_rendered_without_fraction(self):
        assert canonicalize({"amount": 10.0, "rate": 2.5}) == "amount=10&rate=2.5"

    def test_bool_rendered_like_php(self):
        assert canonicalize({"a": True, "b": False}) == "a=1&b="

    def test_float_payload_verifies_against_integer_text(self):
        signed = {"amount": 10.0, "hash": sign_payload({"amount": "10"}, SECRET)}
        assert verify_payload(signed, SECRET) is True

    @pytest.mark.parametrize("value", [{"b": "1"}, ["1", "2"]])
    def test_nested_value_cannot_be_signed(self, value):
        with pytest.raises(TypeError):
            sign_payload({"a": value}, SECRET)

    def test_nested_value_fails_verification(self, caplog):
        signed = {"a": {"b": "1"}, "hash": sign_payload({"a": "x"}, SECRET)}
        with caplog.at_level(logging.WARNING, logger="shop_appstore.billing.verification"):
            assert verify_payload(signed, SECRET) is False
        assert "non-scalar" in caplog.text
