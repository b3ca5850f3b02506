import unittest

from Config import static_arch_values
from Errors import UnknownRegister
from Registers import ConditionFlag, Register, Registers


class TestRegisters(unittest.TestCase):

    def setUp(self):
        self.registers = Registers()

    def test_default(self):
        self.assertEqual(self.registers.get(Register.PC), static_arch_values.program_start)
        for reg in Register:
            if reg is not Register.PC:
                self.assertEqual(self.registers.get(reg), 0)

    def test_set_get(self):
        self.assertEqual(self.registers.get(Register.R0), 0)
        self.registers.set(Register.R0, 12)
        self.assertEqual(self.registers.get(Register.R0), 12)

    def test_set_wraps_to_word(self):
        self.registers.set(Register.R3, 0x1FFFF)
        self.assertEqual(self.registers.get(Register.R3), 0xFFFF)

    def test_next_instruction(self):
        self.assertEqual(self.registers.next_instruction(), 0x3000)
        self.assertEqual(self.registers.pc, 0x3001)

    def test_next_instruction_wraps(self):
        self.registers.pc = 0xFFFF
        self.assertEqual(self.registers.next_instruction(), 0xFFFF)
        self.assertEqual(self.registers.pc, 0x0000)

    def test_update_flags(self):
        cases = [
            (0x0000, ConditionFlag.ZERO),
            (0x0001, ConditionFlag.POSITIVE),
            (0x7FFF, ConditionFlag.POSITIVE),
            (0x8000, ConditionFlag.NEGATIVE),
            (0xFFFF, ConditionFlag.NEGATIVE),
        ]
        for value, flag in cases:
            with self.subTest(value=value):
                self.registers.set(Register.R1, value)
                self.registers.update_flags(Register.R1)
                self.assertEqual(self.registers.get(Register.COND), flag)

    def test_update_flags_sets_exactly_one_flag(self):
        for value in range(0, 0x10000, 0x0101):
            self.registers.set(Register.R2, value)
            self.registers.update_flags(Register.R2)
            cond = self.registers.get(Register.COND)
            self.assertEqual(bin(cond).count("1"), 1)

    def test_from_code(self):
        self.assertIs(Register.from_code(7), Register.R7)
        self.assertIs(Register.from_code(9), Register.COND)
        with self.assertRaises(UnknownRegister) as ctx:
            Register.from_code(10)
        self.assertEqual(ctx.exception.value, 10)
        self.assertEqual(str(ctx.exception), "'10' is not a known register")

    def test_snapshot_is_a_copy(self):
        snapshot = self.registers.snapshot()
        self.registers.set(Register.R0, 5)
        self.assertEqual(snapshot[Register.R0], 0)
        self.assertEqual(len(snapshot), 10)


if __name__ == '__main__':
    unittest.main()
