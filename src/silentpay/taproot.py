"""
BIP-341 Taproot output keys and P2TR addresses.

A script tree is either a single leaf script (bytes) or a list/tuple
of at most two subtrees.
"""
from embit.base import EmbitError
from embit.hashes import tagged_hash

from . import bech32, compact
from .base import FormatError, ScalarOutOfRangeError, TooManyBranchesError
from .ec import PrivateKey, PublicKey
from .networks import get_network
from .util import secp256k1

TAPROOT_WITNESS_VERSION = 1
LEAF_VERSION_TAPSCRIPT = 0xC0


def tapleaf_hash(script: bytes, leaf_version=LEAF_VERSION_TAPSCRIPT) -> bytes:
    return tagged_hash(
        "TapLeaf", bytes([leaf_version]) + compact.to_bytes(len(script)) + script
    )


def tapbranch_hash(a: bytes, b: bytes) -> bytes:
    if b < a:
        a, b = b, a
    return tagged_hash("TapBranch", a + b)


def merkle_root(tree) -> bytes:
    """Root hash of a script tree, empty bytes for an empty tree"""
    if isinstance(tree, (bytes, bytearray)):
        return tapleaf_hash(bytes(tree))
    if len(tree) == 0:
        return b""
    if len(tree) == 1:
        return merkle_root(tree[0])
    if len(tree) == 2:
        return tapbranch_hash(merkle_root(tree[0]), merkle_root(tree[1]))
    raise TooManyBranchesError("Script tree node can't have more than 2 branches")


def taproot_tweak(pub: PublicKey, merkle_root: bytes = None) -> int:
    h = tagged_hash("TapTweak", pub.xonly() + (merkle_root or b""))
    t = int.from_bytes(h, "big")
    if t >= secp256k1.SECP256K1.n:
        raise ScalarOutOfRangeError("Taproot tweak is out of range")
    return t


def tweak_output_key(pub: PublicKey, merkle_root: bytes = None):
    """
    Returns (output_key, parity) where output_key is
    lift_x(x(pub)) + tweak*G and parity is 1 for odd y.
    """
    internal = PublicKey.from_xonly(pub.xonly())
    output = internal.tweak_add(taproot_tweak(internal, merkle_root))
    return output, int(output.has_odd_y())


def tweak_private_key(secret, merkle_root: bytes = None) -> PrivateKey:
    """
    Private key for the x-only output key of tweak_output_key,
    normalized so that its public key has even y.
    """
    if not isinstance(secret, PrivateKey):
        secret = PrivateKey(secret)
    try:
        tweaked = secret.taproot_tweak(merkle_root or b"")
    except EmbitError as e:
        raise ScalarOutOfRangeError(str(e))
    return PrivateKey(tweaked.secret)


def script_pubkey(pub: PublicKey) -> bytes:
    """OP_1 <32-byte x-only key>"""
    return b"\x51\x20" + pub.xonly()


def xonly_from_script(script: bytes):
    """Returns the x-only output key of a P2TR script or None"""
    if len(script) == 34 and script[:2] == b"\x51\x20":
        return script[2:]
    return None


def to_taproot_address(pub: PublicKey, network="main", tweak=True, scripts=None) -> str:
    if tweak:
        root = merkle_root(scripts) if scripts is not None else None
        pub, _ = tweak_output_key(pub, root)
    hrp = get_network(network)["bech32"]
    data = [TAPROOT_WITNESS_VERSION] + bech32.to_base32(pub.xonly())
    return bech32.bech32_encode(bech32.Encoding.BECH32M, hrp, data)


def address_to_script(address: str) -> bytes:
    """Decodes a P2TR address into its scriptPubKey"""
    hrp, data = bech32.bech32_decode(address, bech32.Encoding.BECH32M)
    if not data or data[0] != TAPROOT_WITNESS_VERSION:
        raise FormatError("Not a witness v1 address")
    program = bech32.from_base32(data[1:])
    if len(program) != 32:
        raise FormatError("Invalid taproot program length")
    return b"\x51\x20" + program
