from array import array
from typing import Optional, Protocol

from Config import static_arch_values
from Errors import LC3IOError


class InputStream(Protocol):
    def read(self, size: int) -> bytes: ...


class OutputStream(Protocol):
    def write(self, data: bytes) -> int: ...

    def flush(self) -> None: ...


class MemoryBus(Protocol):
    def read(self, address: int, input: Optional[InputStream] = None) -> int: ...

    def write(self, address: int, value: int) -> None: ...

    def max(self) -> int: ...


class Memory:
    """65536 words of flat, unprotected memory.

    Reading the keyboard status register polls the input stream for one byte
    and refreshes both keyboard registers before the stored value is returned.
    """

    def __init__(self):
        self.memory = array('H', [0]) * static_arch_values.memory_size

    def read(self, address: int, input: Optional[InputStream] = None) -> int:
        address &= static_arch_values.word_mask
        if address == static_arch_values.mmio.kbsr and input is not None:
            self._poll_keyboard(input)
        return self.memory[address]

    def write(self, address: int, value: int) -> None:
        self.memory[address & static_arch_values.word_mask] = value & static_arch_values.word_mask

    def max(self) -> int:
        return static_arch_values.word_mask

    def _poll_keyboard(self, input: InputStream) -> None:
        # A zero byte means no key is waiting.
        try:
            data = input.read(1)
        except OSError as e:
            raise LC3IOError(e) from e
        if not data:
            raise LC3IOError(EOFError("input stream ended while polling the keyboard"))
        if data[0] != 0:
            self.memory[static_arch_values.mmio.kbsr] = static_arch_values.mmio.key_ready
            self.memory[static_arch_values.mmio.kbdr] = data[0]
        else:
            self.memory[static_arch_values.mmio.kbsr] = 0
