"""
LC-3 instruction set: decoding, encoding and execution.

A machine word decodes into one of the frozen dataclasses below. Offsets are
stored already sign extended to 16 bits, so executing an instruction is plain
wrapping addition on the program counter or a base register.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Dict, Optional, Union

from Config import static_arch_values
from Errors import LC3IOError, UnknownInstruction, UnknownTrapRoutine, UnreachableInstruction
from Memory import InputStream, MemoryBus, OutputStream
from Registers import Register, RegisterFile

MASK = static_arch_values.word_mask
OP = static_arch_values.OpCodes


class MachineState(Enum):
    RUNNING = "running"
    HALTED = "halted"


class TrapRoutine(IntEnum):
    GETC = static_arch_values.traps.getc
    OUT = static_arch_values.traps.out
    PUTS = static_arch_values.traps.puts
    IN = static_arch_values.traps.in_
    PUTSP = static_arch_values.traps.putsp
    HALT = static_arch_values.traps.halt

    @classmethod
    def from_vector(cls, vector: int) -> "TrapRoutine":
        try:
            return cls(vector)
        except ValueError:
            raise UnknownTrapRoutine(vector) from None


def sign_extend(value: int, bit_count: int) -> int:
    """Sign extend the low `bit_count` bits of value to a 16-bit word."""
    if (value >> (bit_count - 1)) & 1:
        value |= 0xFFFF << bit_count
    return value & MASK


@dataclass(frozen=True)
class Immediate:
    value: int


Operand = Union[Immediate, Register]


@dataclass(frozen=True)
class Add:
    destination: Register
    source1: Register
    source2: Operand


@dataclass(frozen=True)
class And:
    destination: Register
    source1: Register
    source2: Operand


@dataclass(frozen=True)
class Not:
    destination: Register
    source1: Register


@dataclass(frozen=True)
class Branch:
    condition_flag: int  # n z p bits, as in ConditionFlag
    pc_offset: int


@dataclass(frozen=True)
class Jump:
    source: Register


@dataclass(frozen=True)
class JumpSubroutine:
    pc_offset: int


@dataclass(frozen=True)
class JumpSubroutineRegister:
    source: Register


@dataclass(frozen=True)
class Load:
    destination: Register
    pc_offset: int


@dataclass(frozen=True)
class LoadIndirect:
    destination: Register
    pc_offset: int


@dataclass(frozen=True)
class LoadRegister:
    destination: Register
    source1: Register
    offset: int


@dataclass(frozen=True)
class LoadEffectiveAddress:
    destination: Register
    pc_offset: int


@dataclass(frozen=True)
class Store:
    source: Register
    pc_offset: int


@dataclass(frozen=True)
class StoreIndirect:
    source: Register
    pc_offset: int


@dataclass(frozen=True)
class StoreRegister:
    source1: Register
    source2: Register
    offset: int


@dataclass(frozen=True)
class Trap:
    routine: TrapRoutine


@dataclass(frozen=True)
class ReturnFromInterrupt:
    pass


@dataclass(frozen=True)
class Reserved:
    pass


Instruction = Union[
    Add, And, Not, Branch, Jump, JumpSubroutine, JumpSubroutineRegister,
    Load, LoadIndirect, LoadRegister, LoadEffectiveAddress,
    Store, StoreIndirect, StoreRegister, Trap, ReturnFromInterrupt, Reserved,
]

UNEXECUTABLE = (ReturnFromInterrupt, Reserved)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _reg(word: int, shift: int) -> Register:
    return Register.from_code((word >> shift) & 0x7)


def _alu_operands(word: int):
    if (word >> 5) & 0x1:
        source2 = Immediate(sign_extend(word & 0x1F, 5))
    else:
        source2 = _reg(word, 0)
    return _reg(word, 9), _reg(word, 6), source2


def _decode_br(word: int) -> Instruction:
    return Branch(condition_flag=(word >> 9) & 0x7, pc_offset=sign_extend(word & 0x1FF, 9))


def _decode_add(word: int) -> Instruction:
    return Add(*_alu_operands(word))


def _decode_and(word: int) -> Instruction:
    return And(*_alu_operands(word))


def _decode_ld(word: int) -> Instruction:
    return Load(_reg(word, 9), sign_extend(word & 0x1FF, 9))


def _decode_ldi(word: int) -> Instruction:
    return LoadIndirect(_reg(word, 9), sign_extend(word & 0x1FF, 9))


def _decode_lea(word: int) -> Instruction:
    return LoadEffectiveAddress(_reg(word, 9), sign_extend(word & 0x1FF, 9))


def _decode_st(word: int) -> Instruction:
    return Store(_reg(word, 9), sign_extend(word & 0x1FF, 9))


def _decode_sti(word: int) -> Instruction:
    return StoreIndirect(_reg(word, 9), sign_extend(word & 0x1FF, 9))


def _decode_ldr(word: int) -> Instruction:
    return LoadRegister(_reg(word, 9), _reg(word, 6), sign_extend(word & 0x3F, 6))


def _decode_str(word: int) -> Instruction:
    return StoreRegister(_reg(word, 9), _reg(word, 6), sign_extend(word & 0x3F, 6))


def _decode_jsr(word: int) -> Instruction:
    # bit 11 selects JSR (pc relative) over JSRR (base register)
    if (word >> 11) & 0x1:
        return JumpSubroutine(sign_extend(word & 0x7FF, 11))
    return JumpSubroutineRegister(_reg(word, 6))


def _decode_not(word: int) -> Instruction:
    return Not(_reg(word, 9), _reg(word, 6))


def _decode_jmp(word: int) -> Instruction:
    return Jump(_reg(word, 6))


def _decode_trap(word: int) -> Instruction:
    return Trap(TrapRoutine.from_vector(word & 0xFF))


_DECODERS: Dict[int, Callable[[int], Instruction]] = {
    OP.br: _decode_br,
    OP.add: _decode_add,
    OP.ld: _decode_ld,
    OP.st: _decode_st,
    OP.jsr: _decode_jsr,
    OP.and_: _decode_and,
    OP.ldr: _decode_ldr,
    OP.str_: _decode_str,
    OP.rti: lambda word: ReturnFromInterrupt(),
    OP.not_: _decode_not,
    OP.ldi: _decode_ldi,
    OP.sti: _decode_sti,
    OP.jmp: _decode_jmp,
    OP.res: lambda word: Reserved(),
    OP.lea: _decode_lea,
    OP.trap: _decode_trap,
}


def decode(word: int) -> Instruction:
    """Decode a 16-bit machine word.

    Raises UnknownRegister or UnknownTrapRoutine for malformed fields.
    """
    decoder = _DECODERS.get((word >> 12) & 0xF)
    if decoder is None:
        raise UnknownInstruction(word)
    return decoder(word)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def _pc9(offset: int) -> int:
    return offset & 0x1FF


def _alu_word(opcode: int, instruction) -> int:
    word = (opcode << 12) | (instruction.destination << 9) | (instruction.source1 << 6)
    if isinstance(instruction.source2, Immediate):
        return word | (1 << 5) | (instruction.source2.value & 0x1F)
    return word | instruction.source2


def encode(instruction: Instruction) -> int:
    """Build the machine word for an instruction; the inverse of decode."""
    if isinstance(instruction, Add):
        return _alu_word(OP.add, instruction)
    if isinstance(instruction, And):
        return _alu_word(OP.and_, instruction)
    if isinstance(instruction, Not):
        return (OP.not_ << 12) | (instruction.destination << 9) | (instruction.source1 << 6) | 0x3F
    if isinstance(instruction, Branch):
        return (OP.br << 12) | ((instruction.condition_flag & 0x7) << 9) | _pc9(instruction.pc_offset)
    if isinstance(instruction, Jump):
        return (OP.jmp << 12) | (instruction.source << 6)
    if isinstance(instruction, JumpSubroutine):
        return (OP.jsr << 12) | (1 << 11) | (instruction.pc_offset & 0x7FF)
    if isinstance(instruction, JumpSubroutineRegister):
        return (OP.jsr << 12) | (instruction.source << 6)
    if isinstance(instruction, Load):
        return (OP.ld << 12) | (instruction.destination << 9) | _pc9(instruction.pc_offset)
    if isinstance(instruction, LoadIndirect):
        return (OP.ldi << 12) | (instruction.destination << 9) | _pc9(instruction.pc_offset)
    if isinstance(instruction, LoadEffectiveAddress):
        return (OP.lea << 12) | (instruction.destination << 9) | _pc9(instruction.pc_offset)
    if isinstance(instruction, LoadRegister):
        return (OP.ldr << 12) | (instruction.destination << 9) | (instruction.source1 << 6) | (instruction.offset & 0x3F)
    if isinstance(instruction, Store):
        return (OP.st << 12) | (instruction.source << 9) | _pc9(instruction.pc_offset)
    if isinstance(instruction, StoreIndirect):
        return (OP.sti << 12) | (instruction.source << 9) | _pc9(instruction.pc_offset)
    if isinstance(instruction, StoreRegister):
        return (OP.str_ << 12) | (instruction.source1 << 9) | (instruction.source2 << 6) | (instruction.offset & 0x3F)
    if isinstance(instruction, Trap):
        return (OP.trap << 12) | instruction.routine
    if isinstance(instruction, ReturnFromInterrupt):
        return OP.rti << 12
    if isinstance(instruction, Reserved):
        return OP.res << 12
    raise TypeError(f"Cannot encode {instruction!r}")


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def _read_byte(input: InputStream) -> int:
    try:
        data = input.read(1)
    except OSError as e:
        raise LC3IOError(e) from e
    if not data:
        raise LC3IOError(EOFError("input stream ended while waiting for a character"))
    return data[0]


def _write(output: OutputStream, data: bytes) -> None:
    try:
        output.write(data)
    except OSError as e:
        raise LC3IOError(e) from e


def _flush(output: OutputStream) -> None:
    try:
        output.flush()
    except OSError as e:
        raise LC3IOError(e) from e


def _operand(registers: RegisterFile, source2: Operand) -> int:
    if isinstance(source2, Immediate):
        return source2.value
    return registers.get(source2)


def _pc_relative(registers: RegisterFile, offset: int) -> int:
    return (registers.get(Register.PC) + offset) & MASK


def _execute_add(instr: Add, registers, memory, input, output):
    result = registers.get(instr.source1) + _operand(registers, instr.source2)
    registers.set(instr.destination, result & MASK)
    registers.update_flags(instr.destination)


def _execute_and(instr: And, registers, memory, input, output):
    registers.set(instr.destination, registers.get(instr.source1) & _operand(registers, instr.source2))
    registers.update_flags(instr.destination)


def _execute_not(instr: Not, registers, memory, input, output):
    registers.set(instr.destination, ~registers.get(instr.source1) & MASK)
    registers.update_flags(instr.destination)


def _execute_branch(instr: Branch, registers, memory, input, output):
    if instr.condition_flag & registers.get(Register.COND):
        registers.set(Register.PC, _pc_relative(registers, instr.pc_offset))


def _execute_jump(instr: Jump, registers, memory, input, output):
    registers.set(Register.PC, registers.get(instr.source))


def _execute_jsr(instr: JumpSubroutine, registers, memory, input, output):
    registers.set(Register.R7, registers.get(Register.PC))
    registers.set(Register.PC, _pc_relative(registers, instr.pc_offset))


def _execute_jsrr(instr: JumpSubroutineRegister, registers, memory, input, output):
    # R7 is written first, so JSRR R7 lands on the instruction after the call
    registers.set(Register.R7, registers.get(Register.PC))
    registers.set(Register.PC, registers.get(instr.source))


def _execute_load(instr: Load, registers, memory, input, output):
    registers.set(instr.destination, memory.read(_pc_relative(registers, instr.pc_offset), input))
    registers.update_flags(instr.destination)


def _execute_load_indirect(instr: LoadIndirect, registers, memory, input, output):
    address = memory.read(_pc_relative(registers, instr.pc_offset), input)
    registers.set(instr.destination, memory.read(address, input))
    registers.update_flags(instr.destination)


def _execute_load_register(instr: LoadRegister, registers, memory, input, output):
    address = (registers.get(instr.source1) + instr.offset) & MASK
    registers.set(instr.destination, memory.read(address, input))
    registers.update_flags(instr.destination)


def _execute_lea(instr: LoadEffectiveAddress, registers, memory, input, output):
    registers.set(instr.destination, _pc_relative(registers, instr.pc_offset))
    registers.update_flags(instr.destination)


def _execute_store(instr: Store, registers, memory, input, output):
    memory.write(_pc_relative(registers, instr.pc_offset), registers.get(instr.source))


def _execute_store_indirect(instr: StoreIndirect, registers, memory, input, output):
    address = memory.read(_pc_relative(registers, instr.pc_offset), input)
    memory.write(address, registers.get(instr.source))


def _execute_store_register(instr: StoreRegister, registers, memory, input, output):
    address = (registers.get(instr.source2) + instr.offset) & MASK
    memory.write(address, registers.get(instr.source1))


def _trap_getc(registers, memory, input, output):
    registers.set(Register.R0, _read_byte(input))


def _trap_out(registers, memory, input, output):
    _write(output, bytes([registers.get(Register.R0) & 0xFF]))


def _trap_puts(registers, memory, input, output):
    address = registers.get(Register.R0)
    word = memory.read(address, input)
    while word != 0:
        _write(output, bytes([word & 0xFF]))
        address = (address + 1) & MASK
        word = memory.read(address, input)
    _flush(output)


def _trap_in(registers, memory, input, output):
    _flush(output)
    registers.set(Register.R0, _read_byte(input))


def _trap_putsp(registers, memory, input, output):
    address = registers.get(Register.R0)
    word = memory.read(address, input)
    while word != 0:
        _write(output, bytes([word & 0xFF, word >> 8]))
        address = (address + 1) & MASK
        word = memory.read(address, input)
    _flush(output)


def _trap_halt(registers, memory, input, output):
    _flush(output)
    return MachineState.HALTED


_TRAPS = {
    TrapRoutine.GETC: _trap_getc,
    TrapRoutine.OUT: _trap_out,
    TrapRoutine.PUTS: _trap_puts,
    TrapRoutine.IN: _trap_in,
    TrapRoutine.PUTSP: _trap_putsp,
    TrapRoutine.HALT: _trap_halt,
}


def _execute_trap(instr: Trap, registers, memory, input, output):
    return _TRAPS[instr.routine](registers, memory, input, output)


_EXECUTORS = {
    Add: _execute_add,
    And: _execute_and,
    Not: _execute_not,
    Branch: _execute_branch,
    Jump: _execute_jump,
    JumpSubroutine: _execute_jsr,
    JumpSubroutineRegister: _execute_jsrr,
    Load: _execute_load,
    LoadIndirect: _execute_load_indirect,
    LoadRegister: _execute_load_register,
    LoadEffectiveAddress: _execute_lea,
    Store: _execute_store,
    StoreIndirect: _execute_store_indirect,
    StoreRegister: _execute_store_register,
    Trap: _execute_trap,
}


def execute(
    instruction: Instruction,
    registers: RegisterFile,
    memory: MemoryBus,
    input: InputStream,
    output: OutputStream,
) -> MachineState:
    """Apply one decoded instruction to the machine.

    Returns MachineState.HALTED after the HALT trap and MachineState.RUNNING
    otherwise. Stream failures surface as LC3IOError.
    """
    executor: Optional[Callable] = _EXECUTORS.get(type(instruction))
    if executor is None:
        raise UnreachableInstruction(f"{instruction!r} must never be executed")
    return executor(instruction, registers, memory, input, output) or MachineState.RUNNING
