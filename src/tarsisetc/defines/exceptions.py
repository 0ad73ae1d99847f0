class EtcError(Exception):
    """Base class for all errors raised by the exposure time calculator."""


class ConfigurationError(EtcError, RuntimeError):
    """
    Raised when the calculator is asked to work with a setup that does not
    exist: unknown detector, arm, coating or slice, a missing data file, or
    a computation requested before its inputs were provided.
    """


class InvalidParameterError(EtcError, ValueError):
    """
    Raised by setters when a parameter is outside its physical range. The
    previous state of the object is left untouched.
    """
