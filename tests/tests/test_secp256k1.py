from unittest import TestCase

from ecdsa import SECP256k1
from embit import ec
from embit.base import EmbitError

from silentpay.base import (
    CurveError,
    InfinityError,
    InvalidPointError,
    NotOnCurveError,
    OutOfRangeError,
    ScalarOutOfRangeError,
    SilentPayError,
)
from silentpay.ec import PrivateKey, PublicKey
from silentpay.util import secp256k1

P = secp256k1.SECP256K1.p
N = secp256k1.SECP256K1.n
G = secp256k1.point_from_sec(secp256k1.SECP256K1.g)
GX = int.from_bytes(secp256k1.SECP256K1.g[1:], "big")

SCALARS = [
    1,
    2,
    3,
    0xDEADBEEF,
    0x0F694E068028A717F8AF6B9411F9A133DD3565258714CC226594B34DB90C1F2C,
    N - 1,
]


def sec(point):
    return secp256k1.point_to_sec(point)


def ecdsa_sec(k):
    point = k * SECP256k1.generator
    return bytes([2 + (point.y() & 1)]) + point.x().to_bytes(32, "big")


def is_quadratic_residue(v):
    return pow(v, (P - 1) // 2, P) == 1


class CurveTest(TestCase):
    def test_generator_mul_matches_ecdsa(self):
        """ Scalar multiplication agrees with the ecdsa library """
        for k in SCALARS:
            assert sec(secp256k1.generator_mul(k)) == ecdsa_sec(k)

    def test_point_add(self):
        two_g = secp256k1.point_add(G, G)
        assert sec(two_g) == ecdsa_sec(2)
        three_g = secp256k1.point_add(two_g, G)
        assert sec(three_g) == ecdsa_sec(3)
        assert sec(secp256k1.point_sub(three_g, G)) == sec(two_g)
        assert sec(secp256k1.point_combine([G, G, G])) == sec(three_g)
        assert secp256k1.point_combine([G]) == G

    def test_point_mul_distributes(self):
        a, b = SCALARS[3], SCALARS[4]
        lhs = secp256k1.generator_mul(secp256k1.scalar_add(a, b))
        rhs = secp256k1.point_add(secp256k1.generator_mul(a), secp256k1.generator_mul(b))
        assert sec(lhs) == sec(rhs)
        ab = secp256k1.point_mul(b, secp256k1.generator_mul(a))
        assert sec(ab) == ecdsa_sec(secp256k1.scalar_mul(a, b))

    def test_point_mul_keeps_input(self):
        point = secp256k1.generator_mul(3)
        before = sec(point)
        secp256k1.point_mul(5, point)
        assert sec(point) == before

    def test_point_tweak_add(self):
        point = secp256k1.generator_mul(SCALARS[3])
        tweaked = secp256k1.point_tweak_add(point, SCALARS[4])
        assert sec(tweaked) == ecdsa_sec(SCALARS[3] + SCALARS[4])
        assert sec(secp256k1.point_tweak_add(point, 0)) == sec(point)
        with self.assertRaises(InfinityError):
            secp256k1.point_tweak_add(G, N - 1)

    def test_negation(self):
        for k in SCALARS:
            point = secp256k1.generator_mul(k)
            negated = secp256k1.generator_mul(secp256k1.scalar_negate(k))
            assert sec(negated) == sec(secp256k1.point_negate(point))
            assert secp256k1.has_odd_y(negated) != secp256k1.has_odd_y(point)
        assert secp256k1.scalar_negate(0) == 0

    def test_infinity_raises(self):
        with self.assertRaises(InfinityError):
            secp256k1.point_add(G, secp256k1.point_negate(G))
        with self.assertRaises(InfinityError):
            secp256k1.point_sub(G, G)
        with self.assertRaises(InfinityError):
            secp256k1.generator_mul(0)
        with self.assertRaises(InfinityError):
            secp256k1.generator_mul(N)
        with self.assertRaises(InfinityError):
            secp256k1.point_mul(N, G)
        with self.assertRaises(CurveError):
            secp256k1.point_combine([])

    def test_lift_x_even_y(self):
        """ lift_x returns the even-y point with the same x """
        for k in SCALARS:
            point = secp256k1.generator_mul(k)
            x = secp256k1.point_to_xonly(point)
            lifted = secp256k1.lift_x(int.from_bytes(x, "big"))
            assert sec(lifted) == b"\x02" + x
            assert not secp256k1.has_odd_y(lifted)
            assert sec(lifted) in (sec(point), sec(secp256k1.point_negate(point)))
            assert secp256k1.point_from_xonly(x) == lifted
        assert sec(secp256k1.lift_x(GX)) == secp256k1.SECP256K1.g

    def test_lift_x_out_of_range(self):
        with self.assertRaises(OutOfRangeError):
            secp256k1.lift_x(P)
        with self.assertRaises(OutOfRangeError):
            secp256k1.lift_x(2**256 - 1)

    def test_lift_x_not_on_curve(self):
        x = 1
        while is_quadratic_residue((x**3 + 7) % P):
            x += 1
        with self.assertRaises(NotOnCurveError):
            secp256k1.lift_x(x)
        with self.assertRaises(NotOnCurveError):
            secp256k1.point_from_xonly(x.to_bytes(32, "big"))
        with self.assertRaises(InvalidPointError):
            secp256k1.point_from_sec(b"\x02" + x.to_bytes(32, "big"))
        assert not secp256k1.is_on_curve(b"\x02" + x.to_bytes(32, "big"))
        assert secp256k1.is_on_curve(secp256k1.SECP256K1.g)

    def test_sec_roundtrip(self):
        for k in SCALARS:
            point = secp256k1.generator_mul(k)
            for flag in (secp256k1.EC_COMPRESSED, secp256k1.EC_UNCOMPRESSED):
                encoded = secp256k1.point_to_sec(point, flag)
                assert len(encoded) == (33 if flag == secp256k1.EC_COMPRESSED else 65)
                assert sec(secp256k1.point_from_sec(encoded)) == sec(point)

    def test_invalid_sec(self):
        x = secp256k1.SECP256K1.g[1:]
        for encoded in [b"\x05" + x, b"\x02" + x[:-1], b"", b"\x04" + x + x]:
            with self.assertRaises(InvalidPointError):
                secp256k1.point_from_sec(encoded)
        with self.assertRaises(InvalidPointError):
            secp256k1.point_from_xonly(x[:-1])

    def test_scalar_from_bytes(self):
        assert secp256k1.scalar_from_bytes(b"\x00" * 31 + b"\x05") == 5
        with self.assertRaises(ScalarOutOfRangeError):
            secp256k1.scalar_from_bytes(N.to_bytes(32, "big"))
        with self.assertRaises(ScalarOutOfRangeError):
            secp256k1.scalar_from_bytes(b"\x01" * 31)

    def test_errors_are_embit_errors(self):
        assert issubclass(SilentPayError, EmbitError)
        with self.assertRaises(EmbitError):
            secp256k1.point_from_sec(b"")


class KeysTest(TestCase):
    def test_private_key_range(self):
        for secret in (0, N, b"\x00" * 32, N.to_bytes(32, "big")):
            with self.assertRaises(ScalarOutOfRangeError):
                PrivateKey(secret)
        assert int(PrivateKey(N - 1)) == N - 1

    def test_private_key_from_string(self):
        key = PrivateKey.from_string("0x" + "00" * 31 + "01")
        assert int(key) == 1
        assert key.get_public_key().sec() == secp256k1.SECP256K1.g
        assert key.to_string() == "00" * 31 + "01"
        assert key.to_string() not in repr(key)

    def test_keys_are_embit_keys(self):
        key = PrivateKey(SCALARS[4])
        assert isinstance(key, ec.PrivateKey)
        assert isinstance(key.get_public_key(), ec.PublicKey)
        embit_key = ec.PrivateKey(key.secret)
        assert key.get_public_key() == embit_key.get_public_key()
        assert key.sec() == embit_key.sec()

    def test_public_key_parse(self):
        pub = PrivateKey(3).get_public_key()
        assert PublicKey.parse(pub.sec()) == pub
        assert PublicKey.from_string(pub.to_string()) == pub
        assert PublicKey.from_xonly(pub.xonly()).xonly() == pub.xonly()
        assert len(pub.sec()) == 33
        assert len(pub.xonly()) == 32
        uncompressed = secp256k1.point_to_sec(pub.point, secp256k1.EC_UNCOMPRESSED)
        assert PublicKey.parse(uncompressed).sec() == pub.sec()
        with self.assertRaises(InvalidPointError):
            PublicKey.parse(b"\x05" * 33)

    def test_public_key_hash(self):
        pub = PrivateKey(3).get_public_key()
        same = PublicKey.parse(pub.sec())
        assert len({pub, same, -pub}) == 2

    def test_public_key_arithmetic(self):
        one = PrivateKey(1).get_public_key()
        two = PrivateKey(2).get_public_key()
        assert one + one == two
        assert two - one == one
        assert one.tweak_add(1) == two
        assert one.tweak_mul(2) == two
        assert (-one).has_odd_y() != one.has_odd_y()
        with self.assertRaises(InfinityError):
            one - one

    def test_shared_point_symmetry(self):
        a = PrivateKey(SCALARS[3])
        b = PrivateKey(SCALARS[4])
        assert a.shared_point(b.get_public_key()) == b.shared_point(a.get_public_key())
        expected = PrivateKey(SCALARS[3] * SCALARS[4] % N).get_public_key()
        assert a.shared_point(b.get_public_key()) == expected

    def test_private_key_tweaks(self):
        key = PrivateKey(SCALARS[4])
        assert key.tweak_add(5).get_public_key() == key.get_public_key().tweak_add(5)
        assert key.tweak_mul(5).get_public_key() == key.get_public_key().tweak_mul(5)
        assert key.negate().get_public_key() == -key.get_public_key()
        assert isinstance(key.tweak_add(5), PrivateKey)
        with self.assertRaises(ScalarOutOfRangeError):
            PrivateKey(1).tweak_add(N - 1)
