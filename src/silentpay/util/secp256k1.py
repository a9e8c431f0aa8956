"""
secp256k1 helpers on top of embit's libsecp256k1 binding.

Points are the 64-byte pubkey structures of embit.util.secp256k1,
scalars are ints. ValueErrors from the binding are mapped to CurveError
subclasses. The point at infinity has no representation: any operation
that would produce it raises InfinityError.
"""
from collections import namedtuple

from embit.util import secp256k1 as _secp

from ..base import (
    CurveError,
    InfinityError,
    InvalidPointError,
    NotOnCurveError,
    OutOfRangeError,
    ScalarOutOfRangeError,
)

Curve = namedtuple("Curve", ["p", "n", "g"])

SECP256K1 = Curve(
    p=0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F,
    n=0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
    # compressed generator
    g=bytes.fromhex(
        "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    ),
)

EC_COMPRESSED = _secp.EC_COMPRESSED
EC_UNCOMPRESSED = _secp.EC_UNCOMPRESSED


# ---------------------------------------------------------------- scalars


def scalar_add(a, b, curve=SECP256K1):
    return (a + b) % curve.n


def scalar_mul(a, b, curve=SECP256K1):
    return (a * b) % curve.n


def scalar_negate(a, curve=SECP256K1):
    return (curve.n - a) % curve.n


def scalar_from_bytes(b, curve=SECP256K1):
    """Parses a 32-byte big-endian scalar, it must be in [0, n)"""
    if len(b) != 32:
        raise ScalarOutOfRangeError("Scalar should be 32 bytes, got %d" % len(b))
    s = int.from_bytes(b, "big")
    if s >= curve.n:
        raise ScalarOutOfRangeError("Scalar is not below the curve order")
    return s


def scalar_to_bytes(s):
    return s.to_bytes(32, "big")


def _nonzero_scalar(scalar, curve):
    k = scalar % curve.n
    if k == 0:
        raise InfinityError("Multiplication by a zero scalar")
    return scalar_to_bytes(k)


# ---------------------------------------------------------------- secrets


def seckey_negate(secret: bytes) -> bytes:
    return _secp.ec_privkey_negate(secret)


def seckey_tweak_add(secret: bytes, tweak: int, curve=SECP256K1) -> bytes:
    try:
        return _secp.ec_privkey_add(secret, scalar_to_bytes(tweak % curve.n))
    except ValueError as e:
        raise ScalarOutOfRangeError(str(e))


# ---------------------------------------------------------------- points


def has_odd_y(point):
    return point_to_sec(point)[0] == 0x03


def point_negate(point):
    return _secp.ec_pubkey_negate(point)


def point_combine(points):
    """Sum of a non-empty list of points"""
    if len(points) == 0:
        raise CurveError("Nothing to combine")
    if len(points) == 1:
        return points[0]
    try:
        return _secp.ec_pubkey_combine(*points)
    except ValueError as e:
        raise InfinityError(str(e))


def point_add(p1, p2):
    return point_combine([p1, p2])


def point_sub(p1, p2):
    return point_add(p1, point_negate(p2))


def point_mul(scalar, point, curve=SECP256K1):
    tweak = _nonzero_scalar(scalar, curve)
    # the binding multiplies in place
    result = bytes(bytearray(point))
    try:
        _secp.ec_pubkey_tweak_mul(result, tweak)
    except ValueError as e:
        raise CurveError(str(e))
    return result


def point_tweak_add(point, scalar, curve=SECP256K1):
    """point + scalar*G"""
    try:
        return _secp.ec_pubkey_add(point, scalar_to_bytes(scalar % curve.n))
    except ValueError as e:
        raise InfinityError(str(e))


def generator_mul(scalar, curve=SECP256K1):
    return _secp.ec_pubkey_create(_nonzero_scalar(scalar, curve))


def lift_x(x, curve=SECP256K1):
    """Point with the given x coordinate and even y"""
    if not 0 <= x < curve.p:
        raise OutOfRangeError("x is not below the field size")
    try:
        return _secp.ec_pubkey_parse(b"\x02" + x.to_bytes(32, "big"))
    except ValueError:
        raise NotOnCurveError("No point with this x coordinate")


# ---------------------------------------------------------------- serialization


def point_from_sec(sec):
    try:
        return _secp.ec_pubkey_parse(bytes(sec))
    except ValueError as e:
        raise InvalidPointError(str(e))


def point_to_sec(point, flag=EC_COMPRESSED):
    return _secp.ec_pubkey_serialize(point, flag)


def point_to_xonly(point):
    return point_to_sec(point)[1:]


def point_from_xonly(xonly, curve=SECP256K1):
    if len(xonly) != 32:
        raise InvalidPointError("x-only key should be 32 bytes")
    return lift_x(int.from_bytes(xonly, "big"), curve)


def is_on_curve(sec):
    """True if the serialized point parses"""
    try:
        point_from_sec(sec)
    except InvalidPointError:
        return False
    return True
