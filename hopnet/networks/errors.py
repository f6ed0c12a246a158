class HopfieldError(ValueError):
    """Base class for every precondition failure raised by the network code."""


class InvalidSizeError(HopfieldError):
    pass


class UnsupportedMethodError(HopfieldError):
    pass


class UnsupportedModeError(HopfieldError):
    pass


class EmptyInputError(HopfieldError):
    """No patterns were supplied to store."""


class EmptyPatternError(HopfieldError):
    """A pattern is missing (None) or has no elements."""


class DimensionMismatchError(HopfieldError):
    pass


class InvalidIterationCountError(HopfieldError):
    pass


class InvalidNoiseLevelError(HopfieldError):
    pass
