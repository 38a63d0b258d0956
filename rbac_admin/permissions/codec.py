"""
Permission Code Codec

Bitwise encode/decode of permission flags into an integer code.
Unknown high bits are never masked: decode only reports the six known
flags, but add/remove/has operate on the raw integer.

Examples:
- READ only = 1
- READ + WRITE = 3
- READ + WRITE + DELETE + UPDATE = 15
- All permissions = 63
"""

from typing import Iterable, List

from .types import PermissionFlag, CANONICAL_FLAGS


FLAG_NAMES = {
    PermissionFlag.READ: "Read",
    PermissionFlag.WRITE: "Write",
    PermissionFlag.DELETE: "Delete",
    PermissionFlag.UPDATE: "Update",
    PermissionFlag.APPROVE: "Approve",
    PermissionFlag.REJECT: "Reject",
}

ALL_FLAGS_CODE = 63


def encode(flags: Iterable[int]) -> int:
    """Bitwise OR of all flags; an empty collection encodes to 0."""
    code = 0
    for flag in flags:
        code |= int(flag)
    return code


def decode(code: int) -> List[PermissionFlag]:
    """Known flags held by code, in canonical order."""
    return [flag for flag in CANONICAL_FLAGS if code & flag == flag]


def has_flag(code: int, flag: int) -> bool:
    return (code & flag) == flag


def add_flag(code: int, flag: int) -> int:
    return code | flag


def remove_flag(code: int, flag: int) -> int:
    return code & ~flag


def names_of(code: int) -> List[str]:
    """Display names of the flags held by code, in canonical order."""
    return [FLAG_NAMES[flag] for flag in decode(code)]


def code_name(code: int) -> str:
    """e.g. 11 -> "Read + Write + Update" """
    return " + ".join(names_of(code)) or "No permissions"


def format_code(code: int) -> str:
    """Numeric code zero-padded to three digits, chmod style."""
    return str(code).zfill(3)


def flags_of(permissions: Iterable) -> int:
    """OR of the flags of a collection of Permission models."""
    return encode(permission.flag for permission in permissions)


def is_single_flag(value: int) -> bool:
    """True if value occupies exactly one bit"""
    return value > 0 and value & (value - 1) == 0
