""" Compact Int serialization, limited to 32-bit values """
from embit import compact

from .base import IntegerTooLargeError


def to_bytes(i: int) -> bytes:
    """encodes an integer as a compact int of at most 5 bytes"""
    if i >= 0x100000000:
        raise IntegerTooLargeError("integer too large: {}".format(i))
    return compact.to_bytes(i)
