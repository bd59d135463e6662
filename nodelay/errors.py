"""Error wrapping helpers."""


class CausedError(Exception):
    """An error that prefixes an inner error's message with a cause text."""

    def __init__(self, cause, inner):
        super().__init__(cause, inner)
        self.cause = cause
        self.inner = inner
        self.__cause__ = inner

    def __str__(self):
        return f"{self.cause}{self.inner}"


def cause(message, err):
    """Wrap ``err`` so that its message is prefixed with ``message``."""
    return CausedError(message, err)


def unwrap(err):
    """Follow the chain of wrapped errors down to the innermost one."""
    while err.__cause__ is not None:
        err = err.__cause__
    return err