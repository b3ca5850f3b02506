from enum import IntEnum
from typing import List, Protocol, Tuple

from Config import static_arch_values
from Errors import UnknownRegister


class Register(IntEnum):
    R0 = 0
    R1 = 1
    R2 = 2
    R3 = 3
    R4 = 4
    R5 = 5
    R6 = 6
    R7 = 7
    PC = 8
    COND = 9

    @classmethod
    def from_code(cls, code: int) -> "Register":
        """Map a raw register field to a register, 0-7 general, 8 PC, 9 COND."""
        try:
            return cls(code)
        except ValueError:
            raise UnknownRegister(code) from None


class ConditionFlag(IntEnum):
    POSITIVE = static_arch_values.flags.positive
    ZERO = static_arch_values.flags.zero
    NEGATIVE = static_arch_values.flags.negative


class RegisterFile(Protocol):
    def get(self, register: Register) -> int: ...

    def set(self, register: Register, value: int) -> None: ...

    def next_instruction(self) -> int: ...

    def update_flags(self, register: Register) -> None: ...


class Registers:
    """The LC-3 register file: R0-R7, the program counter and the condition code."""

    def __init__(self):
        self._values: List[int] = [0] * len(Register)
        self._values[Register.PC] = static_arch_values.program_start

    def get(self, register: Register) -> int:
        return self._values[register]

    def set(self, register: Register, value: int) -> None:
        self._values[register] = value & static_arch_values.word_mask

    @property
    def pc(self) -> int:
        return self._values[Register.PC]

    @pc.setter
    def pc(self, value: int) -> None:
        self.set(Register.PC, value)

    def next_instruction(self) -> int:
        """Return the address of the word to fetch and advance the PC past it."""
        address = self._values[Register.PC]
        self.set(Register.PC, address + 1)
        return address

    def update_flags(self, register: Register) -> None:
        value = self.get(register)
        if value == 0:
            flag = ConditionFlag.ZERO
        elif value >> 15:
            flag = ConditionFlag.NEGATIVE
        else:
            flag = ConditionFlag.POSITIVE
        self._values[Register.COND] = int(flag)

    def snapshot(self) -> Tuple[int, ...]:
        return tuple(self._values)

    def __repr__(self) -> str:
        return "Registers(" + ", ".join(f"{reg.name}=0x{val:04x}" for reg, val in zip(Register, self._values)) + ")"
