"""Errors raised by the LC-3 core.

Every decode or I/O failure is fatal to the current run: the run loop does
not skip or retry a bad word, it lets the exception reach the host.
"""


class LC3Error(Exception):
    """Base class for all machine errors."""


class UnknownRegister(LC3Error, ValueError):
    def __init__(self, value: int):
        self.value = value
        super().__init__(f"'{value}' is not a known register")


class UnknownInstruction(LC3Error, ValueError):
    def __init__(self, value: int):
        self.value = value
        super().__init__(f"'0x{value:X}' is not a known instruction")


class UnknownTrapRoutine(LC3Error, ValueError):
    def __init__(self, value: int):
        self.value = value
        super().__init__(f"'0x{value:X}' is not a known trap routine")


class LC3IOError(LC3Error, IOError):
    """Wraps a failure of the input or output stream (closed, short read)."""

    def __init__(self, cause):
        self.cause = cause
        super().__init__(f"IO error: {cause}")


class UnreachableInstruction(RuntimeError):
    """A reserved or RTI instruction was handed to the executor.

    The run loop rejects these words before execution, so reaching this is a
    bug in the caller rather than in the loaded program.
    """
