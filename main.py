#!/usr/bin/env python3
"""
LC-3 Architecture Emulator

Runs an LC-3 object file (big-endian origin word followed by code words) with:
- Keyboard input through GETC/IN and the memory mapped keyboard registers
- Console output through OUT/PUTS/PUTSP
- An optional per-instruction trace (--debug)
- A disassembly listing of the image (--disassemble)
"""

import argparse
import logging
import os
import sys
from contextlib import contextmanager

from Config import Colors
from Errors import LC3Error
from Instructions import MachineState
from Lc3Emu import LC3Emulator, TraceRecord
from Registers import Register
from parse_code import describe_instruction, parse_code_segment

logger = logging.getLogger(__name__)


def parse_args(args):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="LC-3 Emulator")
    parser.add_argument("program", help="Path to the LC-3 object file")
    parser.add_argument("-d", "--debug", action="store_true", help="Trace every executed instruction")
    parser.add_argument("-s", "--stdin", help="File to read machine input from (optional)", default=None)
    parser.add_argument("--disassemble", action="store_true", help="Print a listing of the program and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log loader and run loop events")
    return parser.parse_args(args)


def validate_args(args):
    """Validate command line arguments."""
    if not os.path.isfile(args.program):
        print(f"Error: program file '{args.program}' does not exist.", file=sys.stderr)
        sys.exit(1)
    if args.stdin and not os.path.isfile(args.stdin):
        print(f"Error: input file '{args.stdin}' does not exist.", file=sys.stderr)
        sys.exit(1)


def format_trace(record: TraceRecord) -> str:
    register_display = ", ".join(
        [f"{Colors.BLUE}{reg.name}{Colors.RESET}:{Colors.BOLD}{record.registers[reg]:04x}{Colors.RESET}" for reg in Register]
    )
    return (
        f"{Colors.CYAN}[DEBUG]{Colors.RESET} {Colors.MAGENTA}PC: {record.address:04x}{Colors.RESET}, "
        f"Instruction: {Colors.YELLOW}{record.word:04x}{Colors.RESET} {describe_instruction(record.instruction)}\n"
        f"{Colors.CYAN}[DEBUG]{Colors.RESET} Registers: {register_display}"
    )


def print_trace(record: TraceRecord) -> None:
    print(format_trace(record), file=sys.stderr)


@contextmanager
def raw_terminal(stream):
    """Put a terminal into unbuffered, no-echo mode and always restore it."""
    if not stream.isatty():
        yield
        return

    import termios
    import tty

    fd = stream.fileno()
    saved = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSANOW, saved)


def disassemble(filename: str) -> None:
    with open(filename, 'rb') as f:
        image = f.read()
    for code_word in parse_code_segment(image):
        print(code_word.text)


def run(args) -> int:
    if args.disassemble:
        disassemble(args.program)
        return 0

    trace = print_trace if args.debug else None
    stdin_file = open(args.stdin, 'rb') if args.stdin else None
    try:
        emulator = LC3Emulator(input=stdin_file or sys.stdin.buffer, output=sys.stdout.buffer, trace=trace)
        emulator.load_program_from_binary_file(args.program)
        with raw_terminal(sys.stdin if stdin_file is None else stdin_file):
            state = emulator.run()
    except LC3Error as e:
        sys.stdout.flush()
        print(f"{Colors.RED}Error: {e}{Colors.RESET}", file=sys.stderr)
        return 1
    finally:
        if stdin_file is not None:
            stdin_file.close()

    if args.debug:
        emulator.print_state()
    if state is not MachineState.HALTED:
        logger.info("Program stopped without HALT")
    return 0


def main():
    """Main function to run the emulator."""
    args = parse_args(sys.argv[1:])  # Skip script name
    validate_args(args)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format='%(asctime)s - %(levelname)s - %(message)s')

    sys.exit(run(args))


if __name__ == "__main__":
    main()
