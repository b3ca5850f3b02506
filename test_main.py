import io
import os
import tempfile
import unittest
from unittest import mock

import main


class BinaryStdout(io.TextIOWrapper):
    def __init__(self):
        super().__init__(io.BytesIO(), encoding="utf-8")

    def value(self):
        self.flush()
        return self.buffer.getvalue()


class TestMain(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def write_file(self, name, data):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def test_parse_args(self):
        args = main.parse_args(["-d", "-s", "in.txt", "prog.obj"])
        self.assertTrue(args.debug)
        self.assertEqual(args.stdin, "in.txt")
        self.assertEqual(args.program, "prog.obj")
        self.assertFalse(args.disassemble)

    def test_validate_missing_program(self):
        args = main.parse_args([os.path.join(self.tmpdir.name, "missing.obj")])
        with mock.patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit) as ctx:
                main.validate_args(args)
        self.assertEqual(ctx.exception.code, 1)

    def test_run_echo_program_with_stdin_file(self):
        program = self.write_file("echo.obj", bytes([0x30, 0x00, 0xF0, 0x20, 0xF0, 0x21, 0xF0, 0x25]))
        stdin = self.write_file("input.txt", b"z")
        stdout = BinaryStdout()
        with mock.patch("sys.stdout", stdout):
            code = main.run(main.parse_args(["-s", stdin, program]))
        self.assertEqual(code, 0)
        self.assertEqual(stdout.value(), b"z")

    def test_run_reports_core_error(self):
        program = self.write_file("bad.obj", bytes([0x30, 0x00, 0xF0, 0x26]))
        stdin = self.write_file("input.txt", b"")
        stderr = io.StringIO()
        with mock.patch("sys.stdout", BinaryStdout()), mock.patch("sys.stderr", stderr):
            code = main.run(main.parse_args(["-s", stdin, program]))
        self.assertEqual(code, 1)
        self.assertIn("is not a known trap routine", stderr.getvalue())

    def test_debug_trace_goes_to_stderr(self):
        program = self.write_file("halt.obj", bytes([0x30, 0x00, 0xF0, 0x25]))
        stdin = self.write_file("input.txt", b"")
        stdout = BinaryStdout()
        stderr = io.StringIO()
        with mock.patch("sys.stdout", stdout), mock.patch("sys.stderr", stderr):
            main.run(main.parse_args(["-d", "-s", stdin, program]))
        self.assertIn("TRAP x25 ; (HALT)", stderr.getvalue())
        self.assertIn(b"PC: 3001", stdout.value())

    def test_disassemble(self):
        program = self.write_file("hello.obj", bytes([0x30, 0x00, 0xE0, 0x02, 0xF0, 0x22]))
        stdout = io.StringIO()
        with mock.patch("sys.stdout", stdout):
            code = main.run(main.parse_args(["--disassemble", program]))
        self.assertEqual(code, 0)
        self.assertEqual(stdout.getvalue().splitlines(), ["0x3000: LEA R0, #2", "0x3001: TRAP x22 ; (PUTS)"])


if __name__ == '__main__':
    unittest.main()
