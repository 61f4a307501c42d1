"""Integration tests for the sample programs."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from tinyram import V1_000, V2_00, FaultCode, assemble, load_program, run

PROGRAMS = Path(__file__).parent.parent / "programs"


class TestCollatzProgram:
    """Test collatz.tr - V1.000, W=63, K=8."""

    @pytest.fixture
    def program(self):
        return load_program(PROGRAMS / "collatz.tr")

    def test_parameters_from_header(self, program):
        assert program.config.dialect is V1_000
        assert program.config.word_size == 63
        assert program.config.registers == 8

    def test_collatz_6(self, program):
        """6 -> 3 -> 10 -> 5 -> 16 -> 8 -> 4 -> 2 -> 1 takes 8 iterations."""
        result = run(program, tape0=[6])

        assert result.halt_code == 0
        assert result.registers[4] == 8
        assert result.registers[0] == 1
        # store r0, r4 writes the counter at address r0 == 1
        assert result.memory[1] == 8

    def test_collatz_32768(self, program):
        """Powers of two halve straight down: 2^15 takes 15 iterations."""
        result = run(program, tape0=[32768])
        assert result.registers[4] == 15

    def test_collatz_27(self, program):
        result = run(program, tape0=[27])
        assert result.registers[4] == 111


class TestFibonacciProgram:
    """Test fibonacci.tr - V2.00 Harvard, cmpa + cnjmp loop."""

    @pytest.fixture
    def program(self):
        return load_program(PROGRAMS / "fibonacci.tr")

    def test_parameters_from_header(self, program):
        assert program.config.dialect is V2_00
        assert program.config.harvard is True
        assert program.config.word_size == 32
        assert program.config.registers == 5

    def test_fibonacci_5(self, program):
        """With F(0) = F(1) = 1, F(5) = 8."""
        result = run(program, tape0=[5])
        assert result.halt_code == 0
        assert result.memory[0] == 8

    @pytest.mark.parametrize("n,expected", [(0, 1), (1, 1), (2, 2), (10, 89), (20, 10946)])
    def test_fibonacci_values(self, program, n, expected):
        assert run(program, tape0=[n]).memory[0] == expected


class TestReverseTapeProgram:
    """Test reverse_tape.tr - V1.000, W=8, K=3."""

    @pytest.fixture
    def program(self):
        return load_program(PROGRAMS / "reverse_tape.tr")

    def test_reverse_three_words(self, program):
        result = run(program, tape0=[10, 20, 30])

        assert result.halt_code == 0
        assert result.memory[0] == 4
        assert result.memory[2:5] == [30, 20, 10]

    def test_empty_tape(self, program):
        result = run(program)
        assert result.halt_code == 0
        assert result.memory[0] == 1

    def test_tape_end_is_not_a_fault(self, program):
        result = run(program, tape0=[1, 2, 3, 4, 5])
        assert result.fault is None
        assert result.memory[2:7] == [5, 4, 3, 2, 1]


class TestInlinePrograms:
    """Test small programs written inline."""

    def test_sum_tape(self):
        program = assemble("""
            ; TinyRAM V=2.00 W=16 K=2
            _loop:
                read r1, 0
                cjmp _done
                add r0, r0, r1
                jmp _loop
            _done:
                answer r0
        """)
        assert run(program, tape0=[1, 2, 3, 4]).halt_code == 10

    def test_advice_tape(self):
        """Auxiliary tape supplies a divisor that is checked against tape 0."""
        program = assemble("""
            ; TinyRAM V=2.00 W=32 K=3
                read r0, 0
                read r1, 1
                umod r2, r0, r1
                cmpe r2, 0
                cjmp _ok
                answer 1
            _ok:
                answer 0
        """)
        assert run(program, tape0=[91], tape1=[7]).halt_code == 0
        assert run(program, tape0=[91], tape1=[5]).halt_code == 1
        assert run(program, tape0=[91], tape1=[0]).fault.code is FaultCode.DIVIDE_BY_ZERO
