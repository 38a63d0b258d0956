"""
Tests for rbac_admin/permissions/codec.py

Coverage targets:
- encode/decode with canonical ordering
- has/add/remove flag
- Display names and chmod-style formatting
- Unknown high bits preserved
"""

from itertools import combinations

import pytest

from rbac_admin.permissions.codec import (
    ALL_FLAGS_CODE,
    add_flag,
    code_name,
    decode,
    encode,
    format_code,
    has_flag,
    is_single_flag,
    names_of,
    remove_flag,
)
from rbac_admin.permissions.types import CANONICAL_FLAGS, PermissionFlag


# ========== Encode / Decode ==========

class TestEncodeDecode:
    """Tests for encode() and decode()"""

    def test_empty_encodes_to_zero(self):
        assert encode([]) == 0
        assert encode(set()) == 0

    def test_encode_examples(self):
        assert encode({PermissionFlag.READ}) == 1
        assert encode({PermissionFlag.READ, PermissionFlag.WRITE}) == 3
        assert encode({PermissionFlag.READ, PermissionFlag.WRITE, PermissionFlag.DELETE, PermissionFlag.UPDATE}) == 15
        assert encode(CANONICAL_FLAGS) == ALL_FLAGS_CODE == 63

    def test_decode_uses_canonical_order(self):
        assert decode(49) == [PermissionFlag.READ, PermissionFlag.APPROVE, PermissionFlag.REJECT]
        assert decode(63) == list(CANONICAL_FLAGS)

    def test_decode_zero(self):
        assert decode(0) == []

    def test_round_trip_every_subset(self):
        """encode(decode(c)) == c for every combination of the six flags"""
        for size in range(len(CANONICAL_FLAGS) + 1):
            for subset in combinations(CANONICAL_FLAGS, size):
                code = encode(subset)
                assert encode(decode(code)) == code

    def test_unknown_bits_not_masked(self):
        """decode reports known flags only; raw bit operations keep the rest"""
        code = 64 | 5
        assert decode(code) == [PermissionFlag.READ, PermissionFlag.DELETE]
        assert add_flag(code, PermissionFlag.WRITE) == 64 | 7
        assert remove_flag(code, PermissionFlag.READ) == 64 | 4
        assert has_flag(code, 64)


# ========== Flag Operations ==========

class TestFlagOperations:

    def test_has_flag(self):
        assert has_flag(11, PermissionFlag.UPDATE)
        assert not has_flag(11, PermissionFlag.DELETE)

    def test_add_flag_is_idempotent(self):
        assert add_flag(1, PermissionFlag.READ) == 1
        assert add_flag(1, PermissionFlag.DELETE) == 5

    def test_remove_flag(self):
        assert remove_flag(15, PermissionFlag.DELETE) == 11
        assert remove_flag(11, PermissionFlag.DELETE) == 11

    @pytest.mark.parametrize("value,expected", [(1, True), (32, True), (64, True), (0, False), (3, False), (-4, False)])
    def test_is_single_flag(self, value, expected):
        assert is_single_flag(value) is expected


# ========== Names ==========

class TestNames:

    def test_names_of(self):
        assert names_of(11) == ["Read", "Write", "Update"]

    def test_code_name(self):
        assert code_name(3) == "Read + Write"
        assert code_name(0) == "No permissions"

    def test_format_code(self):
        assert format_code(7) == "007"
        assert format_code(63) == "063"
