import logging
import sys
from io import BytesIO
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional, Tuple

from Config import static_arch_values
from Errors import LC3Error, LC3IOError, UnknownInstruction
from Instructions import UNEXECUTABLE, Instruction, MachineState, decode, execute
from Memory import InputStream, Memory, OutputStream
from Registers import Register, Registers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceRecord:
    """One executed instruction, captured just before it runs."""
    address: int
    word: int
    instruction: Instruction
    registers: Tuple[int, ...]


class LC3Emulator:
    def __init__(
        self,
        input: Optional[InputStream] = None,
        output: Optional[OutputStream] = None,
        trace: Optional[Callable[[TraceRecord], None]] = None,
    ):
        """Initialize the LC-3 emulator with zeroed memory and the PC at the program origin."""
        self.registers = Registers()
        self.memory = Memory()
        self.input = input if input is not None else sys.stdin.buffer
        self.output = output if output is not None else sys.stdout.buffer
        self.trace = trace
        self.state = MachineState.RUNNING

    def load_program(self, source: BinaryIO) -> int:
        """Load a program image: a big-endian origin word followed by big-endian words.

        Returns the origin address. A trailing odd byte raises LC3IOError.
        """
        origin_bytes = self._read_exact(source, 2)
        if len(origin_bytes) != 2:
            raise LC3IOError(EOFError("program image is missing its origin address"))
        origin = int.from_bytes(origin_bytes, "big")

        address = origin
        count = 0
        while True:
            chunk = self._read_exact(source, 2)
            if not chunk:
                break
            if len(chunk) != 2:
                raise LC3IOError(EOFError(f"program image ends mid-word after {count} words"))
            self.memory.write(address, int.from_bytes(chunk, "big"))
            address = (address + 1) & static_arch_values.word_mask
            count += 1

        logger.info("Loaded %d words at origin 0x%04x", count, origin)
        return origin

    def load_program_from_bytes(self, image: bytes) -> int:
        """Load a program from an in-memory image."""
        return self.load_program(BytesIO(image))

    def load_program_from_binary_file(self, filename: str) -> int:
        """Load a program from a binary object file."""
        with open(filename, 'rb') as f:
            return self.load_program(f)

    @staticmethod
    def _read_exact(source: BinaryIO, size: int) -> bytes:
        # Keep reading until size bytes arrive or the stream is exhausted.
        data = b''
        try:
            while len(data) < size:
                chunk = source.read(size - len(data))
                if not chunk:
                    break
                data += chunk
        except OSError as e:
            raise LC3IOError(e) from e
        return data

    def step(self) -> MachineState:
        """Fetch, decode and execute a single instruction."""
        if self.state is MachineState.HALTED:
            return self.state

        address = self.registers.next_instruction()
        word = self.memory.read(address, self.input)
        instruction = decode(word)
        if isinstance(instruction, UNEXECUTABLE):
            raise UnknownInstruction(word)

        if self.trace is not None:
            self.trace(TraceRecord(address, word, instruction, self.registers.snapshot()))

        self.state = execute(instruction, self.registers, self.memory, self.input, self.output)
        return self.state

    def run(self) -> MachineState:
        """Run the loaded program until HALT or until the PC reaches the top of memory."""
        if self.state is MachineState.HALTED:
            return self.state

        while self.state is MachineState.RUNNING:
            if self.registers.pc >= self.memory.max():
                logger.info("PC reached 0x%04x, stopping", self.registers.pc)
                break
            try:
                self.step()
            except LC3Error as e:
                logger.error("Aborting at 0x%04x: %s", (self.registers.pc - 1) & static_arch_values.word_mask, e)
                raise

        if self.state is MachineState.HALTED:
            logger.info("Machine halted at 0x%04x", self.registers.pc)
        return self.state

    def print_state(self) -> None:
        """Print the current state of the emulator."""
        print(f"PC: {self.registers.pc:04x} ({self.state.value})")
        print("Registers:")
        print(" | ".join([f"{reg.name}: 0x{self.registers.get(reg):04x}" for reg in Register]))

    def reset(self) -> None:
        """Reset the emulator to its initial state."""
        self.registers = Registers()
        self.memory = Memory()
        self.state = MachineState.RUNNING
