from embit.base import EmbitError


class SilentPayError(EmbitError):
    """Generic silentpay error"""

    pass


class FormatError(SilentPayError):
    """Malformed bech32 string or silent payment address"""

    pass


class MixedCaseError(FormatError):
    pass


class NoSeparatorError(FormatError):
    pass


class InvalidHrpError(FormatError):
    pass


class InvalidDataError(FormatError):
    pass


class BadChecksumError(FormatError):
    pass


class InvalidPrefixError(FormatError):
    pass


class UnsupportedVersionError(FormatError):
    pass


class CurveError(SilentPayError):
    """Invalid field element, point or scalar"""

    pass


class OutOfRangeError(CurveError):
    pass


class NotOnCurveError(CurveError):
    pass


class InvalidPointError(CurveError):
    pass


class ScalarOutOfRangeError(CurveError):
    pass


class InfinityError(CurveError):
    pass


class ProtocolError(SilentPayError):
    pass


class TooManyBranchesError(ProtocolError):
    pass


class IntegerTooLargeError(ProtocolError):
    pass


class MissingTweakDataError(ProtocolError):
    pass

