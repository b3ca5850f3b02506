from dataclasses import dataclass
from typing import List, Optional

from Errors import LC3Error
from Instructions import (
    Add, And, Branch, Immediate, Jump, JumpSubroutine, JumpSubroutineRegister,
    Load, LoadEffectiveAddress, LoadIndirect, LoadRegister, Not, Reserved,
    ReturnFromInterrupt, Store, StoreIndirect, StoreRegister, Trap, decode,
)
from Registers import Register


@dataclass
class CodeWord:
    address: int
    word: int
    text: str


def get_reg(register: Register) -> str:
    return register.name


def get_signed(value: int) -> str:
    """Render a sign extended 16-bit offset as LC-3 decimal immediate."""
    if value & 0x8000:
        value -= 0x10000
    return f"#{value}"


def _operand(source2) -> str:
    if isinstance(source2, Immediate):
        return get_signed(source2.value)
    return get_reg(source2)


def _branch_mnemonic(condition_flag: int) -> str:
    suffix = ""
    if condition_flag & 0x4:
        suffix += "n"
    if condition_flag & 0x2:
        suffix += "z"
    if condition_flag & 0x1:
        suffix += "p"
    return "BR" + suffix


def describe_instruction(instruction, address: Optional[int] = None) -> str:
    desc = f"0x{address:04x}: " if address is not None else ""

    if isinstance(instruction, Add):
        desc += f"ADD {get_reg(instruction.destination)}, {get_reg(instruction.source1)}, {_operand(instruction.source2)}"
    elif isinstance(instruction, And):
        desc += f"AND {get_reg(instruction.destination)}, {get_reg(instruction.source1)}, {_operand(instruction.source2)}"
    elif isinstance(instruction, Not):
        desc += f"NOT {get_reg(instruction.destination)}, {get_reg(instruction.source1)}"
    elif isinstance(instruction, Branch):
        if instruction.condition_flag == 0:
            desc += "NOP"
        else:
            desc += f"{_branch_mnemonic(instruction.condition_flag)} {get_signed(instruction.pc_offset)}"
    elif isinstance(instruction, Jump):
        desc += "RET" if instruction.source == Register.R7 else f"JMP {get_reg(instruction.source)}"
    elif isinstance(instruction, JumpSubroutine):
        desc += f"JSR {get_signed(instruction.pc_offset)}"
    elif isinstance(instruction, JumpSubroutineRegister):
        desc += f"JSRR {get_reg(instruction.source)}"
    elif isinstance(instruction, Load):
        desc += f"LD {get_reg(instruction.destination)}, {get_signed(instruction.pc_offset)}"
    elif isinstance(instruction, LoadIndirect):
        desc += f"LDI {get_reg(instruction.destination)}, {get_signed(instruction.pc_offset)}"
    elif isinstance(instruction, LoadRegister):
        desc += f"LDR {get_reg(instruction.destination)}, {get_reg(instruction.source1)}, {get_signed(instruction.offset)}"
    elif isinstance(instruction, LoadEffectiveAddress):
        desc += f"LEA {get_reg(instruction.destination)}, {get_signed(instruction.pc_offset)}"
    elif isinstance(instruction, Store):
        desc += f"ST {get_reg(instruction.source)}, {get_signed(instruction.pc_offset)}"
    elif isinstance(instruction, StoreIndirect):
        desc += f"STI {get_reg(instruction.source)}, {get_signed(instruction.pc_offset)}"
    elif isinstance(instruction, StoreRegister):
        desc += f"STR {get_reg(instruction.source1)}, {get_reg(instruction.source2)}, {get_signed(instruction.offset)}"
    elif isinstance(instruction, Trap):
        desc += f"TRAP x{int(instruction.routine):02X} ; ({instruction.routine.name})"
    elif isinstance(instruction, ReturnFromInterrupt):
        desc += "RTI"
    elif isinstance(instruction, Reserved):
        desc += "RESERVED"
    else:
        desc += f"Unknown Instruction: {instruction!r}"

    return desc


def parse_code_segment(image: bytes) -> List[CodeWord]:
    """Disassemble a program image (origin word followed by code words)."""
    if len(image) < 2 or len(image) % 2 != 0:
        raise ValueError("Invalid program image length, must be an even number of bytes")

    origin = int.from_bytes(image[0:2], "big")
    code = []
    for i in range(2, len(image), 2):
        address = (origin + i // 2 - 1) & 0xFFFF
        word = int.from_bytes(image[i:i + 2], "big")
        try:
            text = describe_instruction(decode(word), address)
        except LC3Error as e:
            # data words are listed raw
            text = f"0x{address:04x}: .FILL x{word:04X} ; ({e})"
        code.append(CodeWord(address, word, text))

    return code
