"""Tests for the command line runner."""

import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

import pytest
from main import EXIT_ERROR, EXIT_FAULT, EXIT_OK, main

PROGRAMS = ROOT / "programs"


class TestCLI:
    """Test main() end to end."""

    def test_run_with_tape_file(self, capsys):
        code = main([str(PROGRAMS / "collatz.tr"), "--tape", str(PROGRAMS / "collatz_tape.txt")])
        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "Answer: 0" in out
        assert "r4=8" in out

    def test_inline_input_quiet(self, capsys):
        code = main([str(PROGRAMS / "fibonacci.tr"), "--input", "5", "--quiet"])
        assert code == EXIT_OK
        assert capsys.readouterr().out.strip() == "0"

    def test_trace_output(self, capsys):
        code = main([str(PROGRAMS / "reverse_tape.tr"), "--input", "1", "2", "--trace"])
        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "TINYRAM EXECUTION TRACE" in out
        assert "read r1, 0" in out

    def test_step_limit_fault(self, tmp_path, capsys):
        program = tmp_path / "loop.tr"
        program.write_text("; TinyRAM V=2.00 W=16 K=2\n_loop:\njmp _loop\n")
        code = main([str(program), "--step-limit", "50"])
        assert code == EXIT_FAULT
        assert "STEP_LIMIT_EXCEEDED" in capsys.readouterr().out

    def test_assembly_error(self, tmp_path, capsys):
        program = tmp_path / "bad.tr"
        program.write_text("; TinyRAM V=2.00 W=16 K=2\njmp _missing\n")
        code = main([str(program)])
        assert code == EXIT_ERROR
        assert "Line 2: Undefined label '_missing'" in capsys.readouterr().err

    def test_missing_program(self, capsys):
        assert main(["does_not_exist.tr"]) == EXIT_ERROR

    def test_tape_and_input_conflict(self):
        with pytest.raises(SystemExit):
            main([str(PROGRAMS / "collatz.tr"), "--tape", "t.txt", "--input", "1"])
