from binascii import hexlify, unhexlify

from embit import ec

from .base import ScalarOutOfRangeError
from .util import secp256k1


class PublicKey(ec.PublicKey):
    """Compressed embit public key with the point arithmetic silent payments need"""

    def __init__(self, point: bytes):
        """Use PublicKey.parse or PublicKey.from_xonly to create from bytes"""
        super().__init__(point, compressed=True)

    @property
    def point(self) -> bytes:
        return self._point

    @classmethod
    def parse(cls, sec: bytes):
        return cls(secp256k1.point_from_sec(sec))

    @classmethod
    def from_xonly(cls, xonly: bytes):
        """Lifts a 32-byte x-only key to the even-y point"""
        return cls(secp256k1.point_from_xonly(xonly))

    @classmethod
    def combine(cls, pubkeys):
        return cls(secp256k1.point_combine([pub.point for pub in pubkeys]))

    def has_odd_y(self) -> bool:
        return secp256k1.has_odd_y(self._point)

    def tweak_add(self, tweak: int):
        """Returns self + tweak*G"""
        return type(self)(secp256k1.point_tweak_add(self._point, tweak))

    def tweak_mul(self, scalar: int):
        return type(self)(secp256k1.point_mul(scalar, self._point))

    def __add__(self, other):
        return type(self)(secp256k1.point_add(self._point, other.point))

    def __sub__(self, other):
        return type(self)(secp256k1.point_sub(self._point, other.point))

    def __neg__(self):
        return type(self)(secp256k1.point_negate(self._point))

    def __eq__(self, other):
        return isinstance(other, ec.PublicKey) and self.sec() == other.sec()

    def __hash__(self):
        return hash(self.sec())


class PrivateKey(ec.PrivateKey):
    def __init__(self, secret):
        """Creates a private key from 32 bytes or an int in [1, n)"""
        if isinstance(secret, (bytes, bytearray)):
            secret = secp256k1.scalar_from_bytes(bytes(secret))
        if not 0 < secret < secp256k1.SECP256K1.n:
            raise ScalarOutOfRangeError("Private key is out of range")
        super().__init__(secp256k1.scalar_to_bytes(secret))

    def __int__(self):
        return int.from_bytes(self._secret, "big")

    def to_string(self):
        """Hex of the secret, embit's WIF needs a network"""
        return hexlify(self._secret).decode()

    @classmethod
    def from_string(cls, s):
        if s.startswith("0x"):
            s = s[2:]
        return cls.parse(unhexlify(s))

    def get_public_key(self) -> PublicKey:
        return PublicKey(secp256k1.generator_mul(int(self)))

    def negate(self):
        return type(self)(secp256k1.seckey_negate(self._secret))

    def tweak_add(self, tweak: int):
        return type(self)(secp256k1.seckey_tweak_add(self._secret, tweak))

    def tweak_mul(self, tweak: int):
        return type(self)(secp256k1.scalar_mul(int(self), tweak))

    def shared_point(self, pub: PublicKey) -> PublicKey:
        """ECDH point secret*pub, not hashed"""
        return pub.tweak_mul(int(self))

    def __repr__(self):
        # never print the secret itself
        return "PrivateKey(%s)" % self.get_public_key()
