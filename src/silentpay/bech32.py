"""
Bech32 and Bech32m encoding, see BIP-173 and BIP-350.

Adapted from the reference implementation at
https://github.com/sipa/bech32/tree/master/ref/python
"""
from .base import (
    BadChecksumError,
    InvalidDataError,
    InvalidHrpError,
    MixedCaseError,
    NoSeparatorError,
)


class Encoding:
    """Enumeration type to list the various supported encodings."""

    BECH32 = 1
    BECH32M = 2


CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
SEPARATOR = "1"
CHECKSUM_LENGTH = 6
BECH32_CONST = 1
BECH32M_CONST = 0x2BC830A3

_CONSTANTS = {
    Encoding.BECH32: BECH32_CONST,
    Encoding.BECH32M: BECH32M_CONST,
}


def bech32_polymod(values):
    """Internal function that computes the Bech32 checksum."""
    generator = [0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3]
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ value
        for i in range(5):
            chk ^= generator[i] if ((top >> i) & 1) else 0
    return chk


def bech32_hrp_expand(hrp):
    """Expand the HRP into values for checksum computation."""
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def bech32_verify_checksum(hrp, data, encoding=Encoding.BECH32M):
    """Verify a checksum given HRP and converted data characters."""
    return bech32_polymod(bech32_hrp_expand(hrp) + data) == _CONSTANTS[encoding]


def bech32_create_checksum(encoding, hrp, data):
    """Compute the checksum values given HRP and data."""
    values = bech32_hrp_expand(hrp) + data
    polymod = bech32_polymod(values + [0] * CHECKSUM_LENGTH) ^ _CONSTANTS[encoding]
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(CHECKSUM_LENGTH)]


def bech32_encode(encoding, hrp, data):
    """Compute a Bech32 or Bech32m string given HRP and data values."""
    combined = list(data) + bech32_create_checksum(encoding, hrp, list(data))
    return hrp + SEPARATOR + "".join([CHARSET[d] for d in combined])


def bech32_decode(bech, encoding=Encoding.BECH32M):
    """
    Validate a Bech32/Bech32m string of the given encoding
    and return (hrp, data) with the checksum stripped.
    """
    if bech.lower() != bech and bech.upper() != bech:
        raise MixedCaseError("Mixed case in bech32 string")
    bech = bech.lower()
    pos = bech.rfind(SEPARATOR)
    if pos < 0:
        raise NoSeparatorError("No separator found in bech32 string")
    hrp = bech[:pos]
    if len(hrp) == 0 or any(ord(x) < 33 or ord(x) > 126 for x in hrp):
        raise InvalidHrpError("Invalid human-readable part: %r" % hrp)
    data_part = bech[pos + 1 :]
    if len(data_part) < CHECKSUM_LENGTH + 1 or not all(
        x in CHARSET for x in data_part
    ):
        raise InvalidDataError("Invalid data part")
    data = [CHARSET.find(x) for x in data_part]
    if not bech32_verify_checksum(hrp, data, encoding):
        raise BadChecksumError("Invalid bech32 checksum")
    return hrp, data[:-CHECKSUM_LENGTH]


def convertbits(data, frombits, tobits, pad=True):
    """
    General power-of-2 base conversion.
    Without padding an incomplete trailing group is dropped
    and the leftover bits are not checked.
    """
    acc = 0
    bits = 0
    ret = []
    maxv = (1 << tobits) - 1
    max_acc = (1 << (frombits + tobits - 1)) - 1
    for value in data:
        if value < 0 or (value >> frombits):
            raise InvalidDataError("Value %d does not fit in %d bits" % (value, frombits))
        acc = ((acc << frombits) | value) & max_acc
        bits += frombits
        while bits >= tobits:
            bits -= tobits
            ret.append((acc >> bits) & maxv)
    if pad and bits:
        ret.append((acc << (tobits - bits)) & maxv)
    return ret


def to_base32(data):
    """bytes -> list of 5-bit words"""
    return convertbits(data, 8, 5, pad=True)


def from_base32(words):
    """list of 5-bit words -> bytes"""
    return bytes(convertbits(words, 5, 8, pad=False))
