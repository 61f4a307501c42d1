"""Tests for the TinyRAM assembler."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from tinyram import V1_000, V2_00, AssemblyFault, ConfigurationError, MachineConfig, Opcode
from tinyram.assembler import (
    OperandKind,
    assemble,
    load_tape,
    parse_header,
    parse_tape,
    strip_comment,
)


@pytest.fixture
def config():
    return MachineConfig(word_size=16, registers=4, dialect=V2_00)


class TestHeader:
    """Test parsing of the '; TinyRAM ...' header."""

    def test_v1_header(self):
        header = parse_header("; TinyRAM V=1.000 W=63 K=8")
        assert header.dialect is V1_000
        assert header.word_size == 63
        assert header.registers == 8
        assert header.harvard is False

    def test_v2_harvard_header(self):
        header = parse_header("; TinyRAM V=2.00 M=hv W=32 K=5")
        assert header.dialect is V2_00
        assert header.memory_model == "hv"
        assert header.harvard is True

    def test_header_to_config(self):
        config = parse_header("; TinyRAM V=2.00 M=hv W=32 K=5").to_config(step_limit=10)
        assert config.word_size == 32
        assert config.registers == 5
        assert config.harvard is True
        assert config.step_limit == 10

    def test_plain_comment_is_not_header(self):
        assert parse_header(";;; Collatz") is None
        assert parse_header("mov r0, 1") is None

    def test_missing_parameter(self):
        with pytest.raises(AssemblyFault, match="missing K="):
            parse_header("; TinyRAM V=1.000 W=63")

    def test_unsupported_version(self):
        with pytest.raises(AssemblyFault, match="Unsupported TinyRAM version"):
            parse_header("; TinyRAM V=3.0 W=16 K=4")

    def test_unknown_memory_model(self):
        with pytest.raises(AssemblyFault, match="memory model"):
            parse_header("; TinyRAM V=2.00 M=xx W=16 K=4")

    def test_non_integer_word_size(self):
        with pytest.raises(AssemblyFault) as exc:
            parse_header("; TinyRAM V=2.00 W=wide K=4", line_no=3)
        assert exc.value.line == 3

    def test_header_configures_assembly(self):
        program = assemble("; TinyRAM V=1.000 W=8 K=3\nmov r2, 255\nanswer 0\n")
        assert program.config.word_size == 8
        assert program.config.registers == 3
        assert program.config.dialect is V1_000
        assert program.header is not None

    def test_no_header_and_no_config(self):
        with pytest.raises(AssemblyFault, match="Machine parameters unknown"):
            assemble("answer 0")

    def test_invalid_header_parameters(self):
        with pytest.raises(AssemblyFault) as exc:
            assemble("; TinyRAM V=2.00 W=12 K=4\nanswer 0")
        assert exc.value.line == 1

    def test_explicit_config_overrides_header(self, config):
        program = assemble("; TinyRAM V=1.000 W=8 K=3\nmov r3, 300\nanswer 0", config)
        assert program.config is config
        assert program[0].operands[1].value == 300

    def test_non_header_tinyram_comment_with_config(self, config):
        program = assemble("; TinyRAM demo program\nanswer 3\n", config)
        assert program.header is None
        assert len(program) == 1
        assert program[0].opcode is Opcode.ANSWER

    def test_non_header_tinyram_comment_without_config(self):
        with pytest.raises(AssemblyFault, match="Malformed header parameter 'demo'") as exc:
            assemble("; TinyRAM demo program\nanswer 3\n")
        assert exc.value.line == 1

    def test_invalid_explicit_config(self):
        with pytest.raises(ConfigurationError):
            assemble("answer 0", MachineConfig(registers=0))


class TestLinesAndComments:
    """Test comment stripping, blank lines and labels."""

    def test_strip_comment(self):
        assert strip_comment("  add r1, r1, 1   ; increment") == "add r1, r1, 1"
        assert strip_comment("; only a comment") == ""
        assert strip_comment("_loop:   ;") == "_loop:"

    def test_blank_and_comment_lines_skipped(self, config):
        program = assemble("\n\n; hello\n   \nanswer 0\n", config)
        assert len(program) == 1
        assert program[0].line == 5

    def test_label_binds_next_instruction(self, config):
        program = assemble("""
            mov r0, 1
        _loop:
        _also:
            add r0, r0, 1
            answer 0
        """, config)
        assert program.labels == {"_loop": 1, "_also": 1}

    def test_label_at_end(self, config):
        program = assemble("jmp _end\n_end:", config)
        assert program.labels["_end"] == 1

    def test_labels_are_case_sensitive(self, config):
        with pytest.raises(AssemblyFault, match="Undefined label '_End'"):
            assemble("_end:\njmp _End", config)

    def test_symbol_table_is_read_only(self, config):
        program = assemble("_start:\nanswer 0", config)
        with pytest.raises(TypeError):
            program.labels["_start"] = 5

    def test_duplicate_label(self, config):
        with pytest.raises(AssemblyFault) as exc:
            assemble("_a:\nanswer 0\n_a:\nanswer 1", config)
        assert exc.value.line == 3
        assert "Duplicate label" in str(exc.value)

    def test_register_name_as_label(self, config):
        with pytest.raises(AssemblyFault, match="cannot be used as a label"):
            assemble("r1:\nanswer 0", config)


class TestInstructions:
    """Test mnemonics and operand classification."""

    def test_three_operand(self, config):
        instr = assemble("add r1, r2, 7", config)[0]
        assert instr.opcode is Opcode.ADD
        kinds = [op.kind for op in instr.operands]
        assert kinds == [OperandKind.REGISTER, OperandKind.REGISTER, OperandKind.IMMEDIATE]
        assert [op.value for op in instr.operands] == [1, 2, 7]

    def test_mnemonic_case_insensitive(self, config):
        assert assemble("MOV r0, 1", config)[0].opcode is Opcode.MOV
        assert assemble("Store.W 4, r0", config)[0].opcode is Opcode.STORE_W

    def test_store_takes_address_first(self, config):
        instr = assemble("store.w 8, r3", config)[0]
        assert instr.operands[0].kind is OperandKind.IMMEDIATE
        assert instr.operands[1].kind is OperandKind.REGISTER

    def test_negative_immediate_twos_complement(self, config):
        instr = assemble("mov r0, -1", config)[0]
        assert instr.operands[1].value == -1
        assert str(instr) == "mov r0, -1"

    def test_negative_immediate_too_small(self, config):
        with pytest.raises(AssemblyFault, match="does not fit in 16 bits"):
            assemble("mov r0, -32769", config)

    def test_immediate_too_large(self, config):
        with pytest.raises(AssemblyFault, match="does not fit in 16 bits"):
            assemble("mov r0, 65536", config)

    def test_forward_reference_resolved(self, config):
        program = assemble("""
            jmp _end
            mov r0, 1
        _end:
            answer r0
        """, config)
        target = program[0].operands[0]
        assert target.kind is OperandKind.LABEL
        assert target.label == "_end"
        assert target.value == 2

    def test_backward_reference_resolved(self, config):
        program = assemble("_top:\nadd r0, r0, 1\ncjmp _top\nanswer 0", config)
        assert program[1].operands[0].value == 0

    def test_str_round_trips_to_mnemonic(self, config):
        instr = assemble("_x:\ncmpe r1, _x", config)[0]
        assert str(instr) == "cmpe r1, _x"


class TestAssemblyFaults:
    """Every malformed unit fails as a whole with a line number."""

    def test_unknown_mnemonic(self, config):
        with pytest.raises(AssemblyFault) as exc:
            assemble("mov r0, 1\nfrobnicate r1\n", config)
        assert exc.value.line == 2

    def test_register_out_of_range(self, config):
        with pytest.raises(AssemblyFault, match="Register 'r4' does not exist") as exc:
            assemble("\nmov r4, 1", config)
        assert exc.value.line == 2

    def test_undefined_label(self, config):
        with pytest.raises(AssemblyFault, match="Undefined label '_nowhere'") as exc:
            assemble("mov r0, 1\ncjmp _nowhere\nanswer 0", config)
        assert exc.value.line == 2

    def test_wrong_operand_count(self, config):
        with pytest.raises(AssemblyFault, match="takes 3 operand"):
            assemble("add r0, r1", config)

    def test_register_required(self, config):
        with pytest.raises(AssemblyFault, match="Expected a register"):
            assemble("mov 5, r1", config)

    def test_empty_operand(self, config):
        with pytest.raises(AssemblyFault, match="Empty operand"):
            assemble("add r0, , r1", config)

    def test_invalid_operand(self, config):
        with pytest.raises(AssemblyFault, match="Invalid operand"):
            assemble("mov r0, 1x", config)

    def test_cnjmp_not_in_v1(self):
        config = MachineConfig(word_size=16, registers=4, dialect=V1_000)
        with pytest.raises(AssemblyFault, match="not available in TinyRAM V1.000"):
            assemble("_a:\ncnjmp _a", config)

    def test_program_longer_than_pc_range(self):
        config = MachineConfig(word_size=8, registers=2, dialect=V1_000)
        source = "mov r0, 1\n" * 256 + "answer 0\n"
        with pytest.raises(AssemblyFault, match="257 instructions") as exc:
            assemble(source, config)
        assert exc.value.line == 257

    def test_program_filling_pc_range(self):
        config = MachineConfig(word_size=8, registers=2, dialect=V1_000)
        program = assemble("mov r0, 1\n" * 255 + "answer 0\n", config)
        assert len(program) == 256

    def test_store_w_not_in_v1(self):
        config = MachineConfig(word_size=16, registers=4, dialect=V1_000)
        with pytest.raises(AssemblyFault, match="not available"):
            assemble("store.w 0, r0", config)


class TestTapes:
    """Test tape file parsing."""

    def test_parse_tape(self):
        assert parse_tape("10\n20\n\n; comment\n30 ; last\n") == [10, 20, 30]

    def test_parse_tape_invalid(self):
        with pytest.raises(ValueError, match="Line 2"):
            parse_tape("1\nabc\n")

    def test_load_tape(self, tmp_path):
        path = tmp_path / "tape.txt"
        path.write_text("6\n")
        assert load_tape(path) == [6]
