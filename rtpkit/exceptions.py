"""Exceptions raised while parsing and building RTP packets."""


class RTPError(Exception):
    """Base class for every error raised by this package."""


class HeaderSizeInsufficientError(RTPError, ValueError):
    """The buffer is too short to hold the RTP header."""


class HeaderSizeInsufficientForExtensionError(RTPError, ValueError):
    """The buffer is too short to hold the header extension it announces."""


class TooSmallError(RTPError, ValueError):
    """The buffer is too small for the structure being parsed."""


class HeaderExtensionNotFoundError(RTPError, LookupError):
    """The requested header extension does not exist or has the wrong profile."""


class HeaderExtensionsNotEnabledError(RTPError):
    """Header extensions are not enabled on this header."""


class ExtensionIDRangeError(RTPError, ValueError):
    """The extension ID is outside the range allowed by its profile."""


class ExtensionSizeError(RTPError, ValueError):
    """The extension payload has a size its profile cannot encode."""


class InvalidPaddingError(RTPError, ValueError):
    """The padding bit is set but the padding size is zero."""


class ShortBufferError(RTPError, ValueError):
    """The destination buffer is too small to receive the encoded data."""