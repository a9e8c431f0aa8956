"""
BIP-352: Silent Payments
see: https://github.com/bitcoin/bips/blob/master/bip-0352.mediawiki

Senders derive one-time taproot outputs for a receiver's reusable address,
receivers find them again by scanning and recover the private keys to spend.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from embit import bip32, bip39
from embit.hashes import tagged_hash

from . import bech32, taproot
from .base import (
    CurveError,
    FormatError,
    InvalidPrefixError,
    MissingTweakDataError,
    ProtocolError,
    ScalarOutOfRangeError,
    UnsupportedVersionError,
)
from .ec import PrivateKey, PublicKey
from .networks import SP_PREFIXES, get_network
from .util import secp256k1

logger = logging.getLogger(__name__)

SILENT_PAYMENT_VERSION = 0

# BIP-352 derivation paths, the coin type is 1 on every network
# unless KeyPair.from_hd is given another one
BIP352_COIN_TYPE = 1
SCAN_PATH = "m/352h/{coin}h/0h/1h/0"
SPEND_PATH = "m/352h/{coin}h/0h/0h/0"


def _to_scalar(h: bytes) -> int:
    s = int.from_bytes(h, "big")
    if s >= secp256k1.SECP256K1.n:
        raise ScalarOutOfRangeError("Hash is not a valid scalar")
    return s


def _private_key(key) -> PrivateKey:
    if isinstance(key, PrivateKey):
        return key
    if isinstance(key, str):
        return PrivateKey.from_string(key)
    return PrivateKey(key)


def _public_key(key) -> PublicKey:
    """Accepts PublicKey, sec bytes, x-only bytes or their hex"""
    if isinstance(key, PublicKey):
        return key
    if isinstance(key, str):
        key = bytes.fromhex(key)
    if len(key) == 32:
        return PublicKey.from_xonly(key)
    return PublicKey.parse(key)


def ser_uint32(i: int) -> bytes:
    return i.to_bytes(4, "big")


def shared_secret_tweak(ecdh_secret: PublicKey, k: int) -> int:
    """t_k = hash_BIP0352/SharedSecret(ser_P(ecdh_secret) || ser_32(k))"""
    return _to_scalar(
        tagged_hash("BIP0352/SharedSecret", ecdh_secret.sec() + ser_uint32(k))
    )


def generate_label(b_scan, m: int) -> int:
    """Label tweak hash_BIP0352/Label(ser_256(b_scan) || ser_32(m))"""
    return _to_scalar(
        tagged_hash("BIP0352/Label", _private_key(b_scan).secret + ser_uint32(m))
    )


@dataclass(frozen=True)
class Outpoint:
    """Reference to a spent output, txid in the usual display order"""

    txid: bytes
    vout: int

    def __post_init__(self):
        if isinstance(self.txid, str):
            object.__setattr__(self, "txid", bytes.fromhex(self.txid))
        if len(self.txid) != 32:
            raise ValueError("txid should be 32 bytes")
        if not 0 <= self.vout < 2**32:
            raise ValueError("vout should be a 32-bit unsigned integer")

    def serialize(self) -> bytes:
        return self.txid[::-1] + self.vout.to_bytes(4, "little")


def compute_input_hash(outpoints: Iterable[Outpoint], a_sum: PublicKey) -> int:
    """input_hash = hash_BIP0352/Inputs(smallest_outpoint || ser_P(A))"""
    serialized = [outpoint.serialize() for outpoint in outpoints]
    if not serialized:
        raise ProtocolError("Input hash needs at least one outpoint")
    return _to_scalar(tagged_hash("BIP0352/Inputs", min(serialized) + a_sum.sec()))


@dataclass(frozen=True)
class SilentPaymentAddress:
    scan_pubkey: PublicKey
    spend_pubkey: PublicKey
    network: str = "main"
    version: int = SILENT_PAYMENT_VERSION

    def __post_init__(self):
        if self.version != SILENT_PAYMENT_VERSION:
            raise UnsupportedVersionError(
                "Only version %d is supported" % SILENT_PAYMENT_VERSION
            )
        get_network(self.network)

    @property
    def hrp(self) -> str:
        return get_network(self.network)["sp"]

    def to_address(self) -> str:
        data = bech32.to_base32(self.scan_pubkey.sec() + self.spend_pubkey.sec())
        return bech32.bech32_encode(
            bech32.Encoding.BECH32M, self.hrp, [self.version] + data
        )

    @classmethod
    def from_address(cls, address: str):
        hrp, words = bech32.bech32_decode(address, bech32.Encoding.BECH32M)
        if hrp not in SP_PREFIXES:
            raise InvalidPrefixError("Invalid prefix: %s" % hrp)
        if not words:
            raise FormatError("Missing version")
        version = words[0]
        if version != SILENT_PAYMENT_VERSION:
            raise UnsupportedVersionError("Unsupported version: %d" % version)
        keys = bech32.from_base32(words[1:])
        if len(keys) != 66:
            raise FormatError("Expected two 33-byte keys, got %d bytes" % len(keys))
        return cls(
            scan_pubkey=PublicKey.parse(keys[:33]),
            spend_pubkey=PublicKey.parse(keys[33:]),
            network=SP_PREFIXES[hrp],
            version=version,
        )

    def __str__(self):
        return self.to_address()


def generate_silent_payment_address(
    B_scan: PublicKey, B_m: PublicKey, network: str = "main", version: int = 0
) -> str:
    """
    Generates the recipient's reusable silent payment address for a given:
        * scanning pubkey `B_scan`
        * spending pubkey `B_m` (optionally labeled)
    """
    return SilentPaymentAddress(B_scan, B_m, network, version).to_address()


@dataclass(frozen=True)
class Destination:
    address: SilentPaymentAddress
    amount: int = 0

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError("Amount can't be negative")

    @classmethod
    def from_address(cls, address: str, amount: int = 0):
        return cls(SilentPaymentAddress.from_address(address), amount)

    def __str__(self):
        return str(self.address)


@dataclass(frozen=True)
class Label:
    """
    Label with index m. The tweak defaults to m itself,
    use Label.from_scan_key for the BIP-352 hashed label tweak.

    The tweak must be in [1, n), so Label(0) raises ScalarOutOfRangeError.
    The m=0 change label is built with Label.from_scan_key(b_scan, 0)
    or KeyPair.label(0).
    """

    index: int
    tweak: Optional[int] = None

    def __post_init__(self):
        if not 0 <= self.index < 2**32:
            raise ValueError("Label index should be a 32-bit unsigned integer")
        if self.tweak is None:
            object.__setattr__(self, "tweak", self.index)
        if not 0 < self.tweak < secp256k1.SECP256K1.n:
            raise ScalarOutOfRangeError("Label tweak is out of range")

    @classmethod
    def from_scan_key(cls, b_scan, index: int):
        return cls(index, generate_label(b_scan, index))

    @property
    def point(self) -> PublicKey:
        return PublicKey(secp256k1.generator_mul(self.tweak))


def precompute_labels(labels: Iterable[Label]) -> Dict[bytes, Label]:
    """Lookup table from the compressed label point to the label"""
    return {label.point.sec(): label for label in labels}


@dataclass(frozen=True)
class KeyPair:
    """Receiver's scan and spend private keys with the matching address"""

    scan_key: PrivateKey
    spend_key: PrivateKey
    network: str = "main"
    address: SilentPaymentAddress = field(init=False)

    def __post_init__(self):
        object.__setattr__(
            self,
            "address",
            SilentPaymentAddress(
                self.scan_key.get_public_key(),
                self.spend_key.get_public_key(),
                self.network,
            ),
        )

    @classmethod
    def from_private_keys(cls, b_scan, b_spend, network="main"):
        return cls(_private_key(b_scan), _private_key(b_spend), network)

    @classmethod
    def from_hd(cls, root, network="main", coin_type=BIP352_COIN_TYPE):
        """
        Derives scan and spend keys from a BIP-32 root at
        m/352'/coin_type'/0'/1'/0 and m/352'/coin_type'/0'/0'/0.
        `root.derive(path).key.secret` must return the 32-byte private key.
        """
        scan = root.derive(SCAN_PATH.format(coin=coin_type)).key.secret
        spend = root.derive(SPEND_PATH.format(coin=coin_type)).key.secret
        return cls(PrivateKey(scan), PrivateKey(spend), network)

    @classmethod
    def from_mnemonic(
        cls, mnemonic: str, password: str = "", network="main", coin_type=BIP352_COIN_TYPE
    ):
        seed = bip39.mnemonic_to_seed(mnemonic, password)
        return cls.from_hd(bip32.HDKey.from_seed(seed), network, coin_type)

    def label(self, m: int) -> Label:
        return Label.from_scan_key(self.scan_key, m)

    def labeled_address(self, m: int) -> SilentPaymentAddress:
        """Address with spend key B_m = B_spend + label(m)*G"""
        return SilentPaymentAddress(
            self.address.scan_pubkey,
            self.address.spend_pubkey.tweak_add(self.label(m).tweak),
            self.network,
        )


@dataclass(frozen=True)
class InputKeyInfo:
    """Private key of a transaction input being spent by the sender"""

    private_key: PrivateKey
    is_taproot: bool = False
    tweak: bool = False

    def signing_key(self) -> PrivateKey:
        key = _private_key(self.private_key)
        if self.is_taproot:
            if self.tweak:
                key = taproot.tweak_private_key(key)
            # x-only keys are always even
            if key.get_public_key().has_odd_y():
                key = key.negate()
        return key


@dataclass(frozen=True)
class TxOutput:
    """Candidate output to scan"""

    script_pubkey: bytes
    value: int

    @classmethod
    def from_address(cls, address: str, value: int):
        return cls(taproot.address_to_script(address), value)

    @property
    def xonly(self) -> Optional[bytes]:
        return taproot.xonly_from_script(self.script_pubkey)


@dataclass(frozen=True)
class SentOutput:
    address: str
    amount: int


@dataclass(frozen=True)
class ScanMatch:
    address: str
    amount: int
    tweak: int
    label: Optional[int] = None


class SilentPaymentBuilder:
    """
    One session per transaction.

    Receiver side: pass the outpoints and the input public keys,
    or a precomputed receiver tweak. The tweak is either the tweak data
    point (input_hash*A) or a scalar t_k used directly for spending.
    Sender side: pass the outpoints and call create_outputs with the
    input private keys.
    """

    def __init__(
        self,
        outpoints: Iterable[Outpoint] = (),
        public_keys=None,
        network: str = "main",
        receiver_tweak=None,
    ):
        get_network(network)
        outpoints = tuple(outpoints)
        tweak_data, tweak_scalar = None, None
        if receiver_tweak is not None:
            tweak_data, tweak_scalar = self._parse_receiver_tweak(receiver_tweak)
        a_sum, input_hash = None, None
        if public_keys is not None:
            public_keys = tuple(_public_key(pub) for pub in public_keys)
            if receiver_tweak is None:
                a_sum = PublicKey.combine(public_keys)
                input_hash = compute_input_hash(outpoints, a_sum)
                logger.debug("A_sum %s, input hash %064x", a_sum, input_hash)
        self.outpoints = outpoints
        self.public_keys = public_keys
        self.network = network
        self.receiver_tweak = receiver_tweak
        self.a_sum = a_sum
        self.input_hash = input_hash
        self._tweak_data = tweak_data
        self._tweak_scalar = tweak_scalar

    @staticmethod
    def _parse_receiver_tweak(tweak):
        if isinstance(tweak, PublicKey):
            return tweak, None
        if isinstance(tweak, int):
            if not 0 <= tweak < secp256k1.SECP256K1.n:
                raise ScalarOutOfRangeError("Receiver tweak is out of range")
            return None, tweak
        if isinstance(tweak, str):
            tweak = bytes.fromhex(tweak)
        if len(tweak) == 32:
            return None, secp256k1.scalar_from_bytes(tweak)
        return PublicKey.parse(tweak), None

    def tweak_data(self) -> PublicKey:
        """input_hash*A_sum, or the receiver tweak point if one was given"""
        if self._tweak_data is not None:
            return self._tweak_data
        if self.a_sum is None:
            raise MissingTweakDataError("Session has no input public keys or tweak data")
        return self.a_sum.tweak_mul(self.input_hash)

    def create_outputs(
        self,
        input_infos: Iterable[InputKeyInfo],
        destinations: Iterable[Destination],
    ) -> Dict[str, List[SentOutput]]:
        """
        Creates a taproot output for every destination.
        Returns a dict from silent payment address to the list of outputs
        created for it, in the order destinations were given.
        """
        keys = [info.signing_key() for info in input_infos]
        if not keys:
            raise ProtocolError("Can't create outputs without inputs")
        a_sum = PrivateKey(sum(int(key) for key in keys) % secp256k1.SECP256K1.n)
        input_hash = compute_input_hash(self.outpoints, a_sum.get_public_key())
        partial_secret = a_sum.tweak_mul(input_hash)

        groups = {}
        for destination in destinations:
            groups.setdefault(destination.address.scan_pubkey, []).append(destination)

        result = {}
        for scan_pubkey, group in groups.items():
            ecdh_secret = partial_secret.shared_point(scan_pubkey)
            logger.debug("creating %d outputs for scan key %s", len(group), scan_pubkey)
            for k, destination in enumerate(group):
                t_k = shared_secret_tweak(ecdh_secret, k)
                P_k = destination.address.spend_pubkey.tweak_add(t_k)
                output = SentOutput(
                    taproot.to_taproot_address(
                        P_k, destination.address.network, tweak=False
                    ),
                    destination.amount,
                )
                result.setdefault(str(destination), []).append(output)
        return result

    def scan_outputs(
        self,
        b_scan,
        B_spend,
        outputs: Iterable[TxOutput],
        labels=None,
    ) -> Dict[str, ScanMatch]:
        """
        Finds the outputs paying to (b_scan, B_spend).
        labels is an iterable of Label or a table from precompute_labels.
        Returns a dict from x-only output key hex to the match.
        """
        b_scan = _private_key(b_scan)
        B_spend = _public_key(B_spend)
        ecdh_secret = b_scan.shared_point(self.tweak_data())
        if labels is not None and not isinstance(labels, dict):
            labels = precompute_labels(labels)

        remaining = []
        for output in outputs:
            xonly = output.xonly
            # only taproot outputs can be silent payments
            if xonly is not None:
                remaining.append((xonly, output))

        matches = {}
        k = 0
        while remaining:
            t_k = shared_secret_tweak(ecdh_secret, k)
            P_k = B_spend.tweak_add(t_k)
            found = self._find_match(P_k, t_k, remaining, labels)
            if found is None:
                break
            i, match = found
            xonly, _ = remaining.pop(i)
            matches[xonly.hex()] = match
            logger.debug("found output %s at k=%d label=%s", xonly.hex(), k, match.label)
            k += 1
        return matches

    def _find_match(self, P_k, t_k, remaining, labels):
        target = P_k.xonly()
        for i, (xonly, output) in enumerate(remaining):
            if xonly == target:
                address = taproot.to_taproot_address(P_k, self.network, tweak=False)
                return i, ScanMatch(address, output.value, t_k)
        if not labels:
            return None
        for i, (xonly, output) in enumerate(remaining):
            try:
                output_key = PublicKey.from_xonly(xonly)
            except CurveError:
                # not a point, can't be ours
                continue
            # x-only output: the sender's point may have either parity
            for candidate in (output_key, -output_key):
                label = labels.get((candidate - P_k).sec())
                if label is not None:
                    P_km = P_k.tweak_add(label.tweak)
                    address = taproot.to_taproot_address(
                        P_km, self.network, tweak=False
                    )
                    tweak = secp256k1.scalar_add(t_k, label.tweak)
                    return i, ScanMatch(address, output.value, tweak, label.index)
        return None

    def spend_outputs(self, b_scan, b_spend, tweak: Optional[int] = None) -> str:
        """
        Private key hex for a received output: (b_spend + t) mod n.
        Without an explicit tweak or a scalar receiver tweak
        only the k=0 output can be recovered.
        """
        b_spend = _private_key(b_spend)
        if tweak is None:
            tweak = self._tweak_scalar
        if tweak is None:
            ecdh_secret = _private_key(b_scan).shared_point(self.tweak_data())
            tweak = shared_secret_tweak(ecdh_secret, 0)
        return b_spend.tweak_add(tweak).to_string()
