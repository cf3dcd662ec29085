"""Exceptions raised by the validation layer."""


class NugateError(Exception):
    """Base class for nugate errors."""


class ConfigError(NugateError):
    """Configuration file or environment value is invalid."""


class HookInputError(NugateError):
    """Hook payload on stdin is not usable."""
