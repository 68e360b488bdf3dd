"""Tests for hash utilities and canonicalization rules."""

import hashlib

import pytest
from lazymerge.kernel.hash_utils import (
    canonicalize_json,
    hash_canonical,
    CanonicalizationError,
)


class TestCanonicalizeJson:
    """Tests for canonicalize_json function."""

    def test_simple_dict_sorts_keys(self):
        """Object keys should be sorted."""
        obj = {"b": 2, "a": 1, "c": 3}
        result = canonicalize_json(obj)
        assert result == '{"a":1,"b":2,"c":3}'

    def test_nested_dict_sorts_recursively(self):
        """Nested object keys should be sorted recursively."""
        obj = {"z": {"b": 2, "a": 1}, "a": {"d": 4, "c": 3}}
        result = canonicalize_json(obj)
        assert result == '{"a":{"c":3,"d":4},"z":{"a":1,"b":2}}'

    def test_array_preserves_order(self):
        """Arrays should preserve order."""
        assert canonicalize_json({"items": [3, 1, 2]}) == '{"items":[3,1,2]}'

    def test_tuples_become_arrays(self):
        assert canonicalize_json({"numbers": (1, 2)}) == '{"numbers":[1,2]}'

    def test_string_normalization_nfc(self):
        """Strings should be normalized to NFC."""
        decomposed = "cafe\u0301"
        assert canonicalize_json({"text": decomposed}) == canonicalize_json({"text": "caf\u00e9"})

    def test_bool_and_null(self):
        assert canonicalize_json({"packed": True, "oneof": None}) == '{"oneof":null,"packed":true}'

    def test_floats_rejected(self):
        """Floats have no canonical form and are banned."""
        with pytest.raises(CanonicalizationError, match="fields"):
            canonicalize_json({"fields": [{"number": 1.0}]})

    def test_non_string_keys_rejected(self):
        with pytest.raises(CanonicalizationError):
            canonicalize_json({1: "x"})

    def test_non_json_types_rejected(self):
        with pytest.raises(CanonicalizationError, match="bytes"):
            canonicalize_json({"payload": b"\x00"})


class TestHashCanonical:
    """Tests for hash_canonical."""

    def test_prefix_and_digest(self):
        expected = hashlib.sha256(b'{"a":1}').hexdigest()
        assert hash_canonical({"a": 1}) == f"sha256:{expected}"

    def test_key_order_does_not_change_hash(self):
        assert hash_canonical({"a": 1, "b": 2}) == hash_canonical({"b": 2, "a": 1})

    def test_array_order_changes_hash(self):
        assert hash_canonical([1, 2]) != hash_canonical([2, 1])
