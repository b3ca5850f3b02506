from dataclasses import dataclass

# ANSI color codes for terminal output
class Colors:
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    MAGENTA = '\033[95m'
    CYAN = '\033[96m'
    WHITE = '\033[97m'
    GRAY = '\033[90m'

@dataclass
class static_arch_values:
    program_start: int = 0x3000
    memory_size: int = 0x10000
    word_mask: int = 0xFFFF

    # Memory mapped keyboard registers
    class mmio:
        kbsr: int = 0xFE00  # keyboard status
        kbdr: int = 0xFE02  # keyboard data
        key_ready: int = 1 << 15

    # opcodes (top 4 bits of the word)
    class OpCodes:
        br: int = 0x0
        add: int = 0x1
        ld: int = 0x2
        st: int = 0x3
        jsr: int = 0x4
        and_: int = 0x5
        ldr: int = 0x6
        str_: int = 0x7
        rti: int = 0x8
        not_: int = 0x9
        ldi: int = 0xA
        sti: int = 0xB
        jmp: int = 0xC
        res: int = 0xD
        lea: int = 0xE
        trap: int = 0xF

    # Trap vectors
    class traps:
        getc: int = 0x20
        out: int = 0x21
        puts: int = 0x22
        in_: int = 0x23
        putsp: int = 0x24
        halt: int = 0x25

    # Condition codes
    class flags:
        positive: int = 0x01
        zero: int = 0x02
        negative: int = 0x04
