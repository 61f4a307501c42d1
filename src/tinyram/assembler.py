"""Assembler: TinyRAM source text to an executable Program.

Source format (one statement per line):

    ; TinyRAM V=2.00 M=hv W=32 K=5      optional header, first line
    _loop:                              label, bound to the next instruction
        add r1, r1, 1   ; comment       mnemonic and comma-separated operands

Operands are registers (``r<N>``), decimal immediates or label names.
Assembly is two passes: the first builds the instruction list and the symbol
table, the second resolves label references, so forward references are
legal. Any problem raises an AssemblyFault carrying the line number; a
partial program is never returned.
"""

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from .config import MachineConfig
from .dialect import DialectPolicy, dialect_for_version
from .errors import AssemblyFault, ConfigurationError
from .opcodes import Opcode


logger = logging.getLogger(__name__)

HEADER_RE = re.compile(r"^;\s*TinyRAM\b(?P<params>.*)$")
COMMENT_RE = re.compile(r"(?<!\\);")
LABEL_DEF_RE = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*:$")
STATEMENT_RE = re.compile(r"^(?P<mnemonic>\S+)(?:\s+(?P<operands>.*))?$")
REGISTER_RE = re.compile(r"^[rR](?P<index>\d+)$")
IMMEDIATE_RE = re.compile(r"^-?\d+$")
IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

MEMORY_MODELS = {"hv": True, "vn": False}


class OperandKind(Enum):
    REGISTER = "register"
    IMMEDIATE = "immediate"
    LABEL = "label"


@dataclass(frozen=True)
class Operand:
    """One instruction operand.

    Attributes:
        kind: Register, immediate or label reference
        value: Register index, immediate as written (negatives are masked to
            the running machine's W at execution), or resolved label address
            (None until the label is resolved)
        label: Label name for label references
    """
    kind: OperandKind
    value: Optional[int]
    label: Optional[str] = None

    @classmethod
    def register(cls, index: int) -> "Operand":
        return cls(OperandKind.REGISTER, index)

    @classmethod
    def immediate(cls, value: int) -> "Operand":
        return cls(OperandKind.IMMEDIATE, value)

    @property
    def is_register(self) -> bool:
        return self.kind is OperandKind.REGISTER

    def __str__(self) -> str:
        if self.kind is OperandKind.REGISTER:
            return f"r{self.value}"
        if self.kind is OperandKind.LABEL:
            return self.label
        return str(self.value)


@dataclass(frozen=True)
class Instruction:
    """An assembled instruction.

    Attributes:
        opcode: Opcode
        operands: Operands in source order
        line: 1-based source line number
        text: Source text without the comment
    """
    opcode: Opcode
    operands: Tuple[Operand, ...]
    line: int
    text: str

    def __str__(self) -> str:
        if not self.operands:
            return self.opcode.mnemonic
        return f"{self.opcode.mnemonic} {', '.join(str(op) for op in self.operands)}"


@dataclass(frozen=True)
class ProgramHeader:
    """Parameters declared by a ``; TinyRAM ...`` header line."""
    version: str
    dialect: DialectPolicy
    word_size: int
    registers: int
    memory_model: Optional[str] = None

    @property
    def harvard(self) -> bool:
        return MEMORY_MODELS.get(self.memory_model, False)

    def to_config(self, **overrides) -> MachineConfig:
        config = MachineConfig(
            word_size=self.word_size,
            registers=self.registers,
            dialect=self.dialect,
            harvard=self.harvard,
        )
        return config.with_overrides(**overrides)


@dataclass(frozen=True)
class Program:
    """An assembled program.

    Attributes:
        instructions: Instructions in address order
        labels: Read-only symbol table, label name -> instruction index
        config: Machine parameters the program was assembled against
        header: Parsed header line, if the source had one
        entry: Address of the first instruction to execute
    """
    instructions: Tuple[Instruction, ...]
    labels: Mapping[str, int]
    config: MachineConfig
    header: Optional[ProgramHeader] = None
    entry: int = 0

    def __len__(self) -> int:
        return len(self.instructions)

    def __getitem__(self, address: int) -> Instruction:
        return self.instructions[address]


def strip_comment(line: str) -> str:
    """Drop everything from the first unescaped ``;``."""
    return COMMENT_RE.split(line, maxsplit=1)[0].strip()


def parse_header(line: str, line_no: int = 1) -> Optional[ProgramHeader]:
    """Parse a ``; TinyRAM V=... [M=...] W=... K=...`` line.

    Returns:
        ProgramHeader, or None if the line is not a TinyRAM header

    Raises:
        AssemblyFault: If the line is a malformed header
    """
    match = HEADER_RE.match(line.strip())
    if not match:
        return None

    params: Dict[str, str] = {}
    for token in match.group("params").split():
        key, sep, value = token.partition("=")
        if not sep or not value:
            raise AssemblyFault(f"Malformed header parameter '{token}'", line_no)
        key = key.upper()
        if key not in ("V", "M", "W", "K"):
            raise AssemblyFault(f"Unknown header parameter '{key}'", line_no)
        params[key] = value

    for key in ("V", "W", "K"):
        if key not in params:
            raise AssemblyFault(
                f"Header is missing {key}=; expected '; TinyRAM V=<version> [M=<hv|vn>] W=<bits> K=<registers>'",
                line_no
            )

    try:
        dialect = dialect_for_version(params["V"])
    except ConfigurationError as e:
        raise AssemblyFault(str(e), line_no) from None

    memory_model = params.get("M")
    if memory_model is not None and memory_model not in MEMORY_MODELS:
        raise AssemblyFault(f"Unknown memory model '{memory_model}'", line_no)

    try:
        word_size = int(params["W"])
        registers = int(params["K"])
    except ValueError:
        raise AssemblyFault("W and K must be decimal integers", line_no) from None

    return ProgramHeader(
        version=params["V"],
        dialect=dialect,
        word_size=word_size,
        registers=registers,
        memory_model=memory_model,
    )


class _Assembler:
    """Two-pass assembler state for one source unit."""

    def __init__(self, config: MachineConfig):
        self.config = config
        self.policy = config.policy
        self.instructions: List[Instruction] = []
        self.labels: Dict[str, int] = {}
        self.label_lines: Dict[str, int] = {}

    def parse_line(self, raw: str, line_no: int) -> None:
        line = strip_comment(raw)
        if not line:
            return

        label_match = LABEL_DEF_RE.match(line)
        if label_match:
            self.define_label(label_match.group("name"), line_no)
            return

        statement = STATEMENT_RE.match(line)
        mnemonic = statement.group("mnemonic")
        opcode = Opcode.from_mnemonic(mnemonic)
        if opcode is None:
            raise AssemblyFault(f"Invalid content '{line}'", line_no)
        if not self.policy.allows(opcode):
            raise AssemblyFault(
                f"'{opcode.mnemonic}' is not available in TinyRAM {self.policy.name}", line_no
            )

        operand_text = statement.group("operands")
        tokens = [t.strip() for t in operand_text.split(",")] if operand_text else []
        if len(tokens) != opcode.arity:
            raise AssemblyFault(
                f"'{opcode.mnemonic}' takes {opcode.arity} operand(s), got {len(tokens)}", line_no
            )

        operands = tuple(
            self.parse_operand(token, kind, line_no)
            for token, kind in zip(tokens, opcode.signature)
        )
        self.instructions.append(Instruction(opcode, operands, line_no, line))

    def define_label(self, name: str, line_no: int) -> None:
        if REGISTER_RE.match(name):
            raise AssemblyFault(f"Register name '{name}' cannot be used as a label", line_no)
        if name in self.labels:
            raise AssemblyFault(
                f"Duplicate label: '{name}' (first defined on line {self.label_lines[name]})",
                line_no
            )
        self.labels[name] = len(self.instructions)
        self.label_lines[name] = line_no

    def parse_operand(self, token: str, kind: str, line_no: int) -> Operand:
        """Classify one operand token against its signature letter."""
        if not token:
            raise AssemblyFault("Empty operand", line_no)

        register = REGISTER_RE.match(token)
        if register:
            index = int(register.group("index"))
            if index >= self.config.registers:
                raise AssemblyFault(
                    f"Register 'r{index}' does not exist (K={self.config.registers})", line_no
                )
            return Operand.register(index)

        if kind in ("D", "R"):
            raise AssemblyFault(f"Expected a register, got '{token}'", line_no)

        if IMMEDIATE_RE.match(token):
            return Operand.immediate(self.parse_immediate(token, line_no))

        if IDENT_RE.match(token):
            return Operand(OperandKind.LABEL, None, label=token)

        raise AssemblyFault(f"Invalid operand '{token}'", line_no)

    def parse_immediate(self, token: str, line_no: int) -> int:
        value = int(token)
        bits = self.config.word_size
        if not -(1 << (bits - 1)) <= value < (1 << bits):
            raise AssemblyFault(f"Immediate {value} does not fit in {bits} bits", line_no)
        return value

    def resolve(self) -> Tuple[Instruction, ...]:
        """Second pass: bind every label reference to its address."""
        resolved = []
        for instr in self.instructions:
            if any(op.kind is OperandKind.LABEL for op in instr.operands):
                operands = tuple(self.resolve_operand(op, instr.line) for op in instr.operands)
                instr = replace(instr, operands=operands)
            resolved.append(instr)
        return tuple(resolved)

    def resolve_operand(self, operand: Operand, line_no: int) -> Operand:
        if operand.kind is not OperandKind.LABEL:
            return operand
        if operand.label not in self.labels:
            raise AssemblyFault(f"Undefined label '{operand.label}'", line_no)
        address = self.labels[operand.label]
        if address > self.config.word_mask:
            raise AssemblyFault(
                f"Label '{operand.label}' address {address} does not fit in "
                f"{self.config.word_size} bits",
                line_no
            )
        return replace(operand, value=address)


def assemble(source: str, config: Optional[MachineConfig] = None) -> Program:
    """Assemble TinyRAM source text.

    Args:
        source: Program text
        config: Machine parameters; when omitted they come from the header

    Returns:
        Program ready to run

    Raises:
        AssemblyFault: On any syntax, register, immediate or label error
        ConfigurationError: If an explicit config is invalid
    """
    lines = source.splitlines()

    header = None
    header_line = 1
    for line_no, line in enumerate(lines, start=1):
        if line.strip():
            header_line = line_no
            try:
                header = parse_header(line, line_no)
            except AssemblyFault:
                if config is None:
                    raise
                # Explicit parameters given; treat it as an ordinary comment
                logger.debug("Ignoring unparseable header on line %d: %s", line_no, line.strip())
            break

    if config is None:
        if header is None:
            raise AssemblyFault(
                "Machine parameters unknown: add a '; TinyRAM V=... W=... K=...' header "
                "or pass a MachineConfig",
                1
            )
        try:
            config = header.to_config().validate()
        except ConfigurationError as e:
            raise AssemblyFault(str(e), header_line) from None
    else:
        config.validate()

    assembler = _Assembler(config)
    for line_no, line in enumerate(lines, start=1):
        assembler.parse_line(line, line_no)
    instructions = assembler.resolve()
    if len(instructions) > config.word_mask + 1:
        raise AssemblyFault(
            f"Program has {len(instructions)} instructions; a {config.word_size}-bit PC "
            f"addresses at most {config.word_mask + 1}",
            instructions[config.word_mask + 1].line
        )

    logger.info(
        "Assembled %d instructions, %d labels (TinyRAM %s W=%d K=%d)",
        len(instructions), len(assembler.labels),
        config.dialect.name, config.word_size, config.registers
    )
    return Program(
        instructions=instructions,
        labels=MappingProxyType(dict(assembler.labels)),
        config=config,
        header=header,
    )


def parse_tape(text: str) -> List[int]:
    """Parse tape contents: one decimal word per line.

    Blank lines and ``;`` comments are ignored.

    Raises:
        ValueError: If a line is not a non-negative integer
    """
    tape = []
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = strip_comment(raw)
        if not line:
            continue
        if not line.isdigit():
            raise ValueError(f"Line {line_no}: invalid tape word '{line}'")
        tape.append(int(line))
    return tape


def load_program(path: Union[str, Path], config: Optional[MachineConfig] = None) -> Program:
    """Read and assemble a ``.tr`` program file."""
    path = Path(path)
    logger.info("Processing file %s", path)
    return assemble(path.read_text(), config)


def load_tape(path: Union[str, Path]) -> List[int]:
    """Read a tape file."""
    path = Path(path)
    logger.info("Loading tape from %s", path)
    tape = parse_tape(path.read_text())
    logger.info("Tape loaded with %d entries", len(tape))
    return tape
