"""TinyRAM: assembler and virtual machine for the TinyRAM instruction set.

This package gives semantics to programs written for the TinyRAM register
machine (dialects V1.000 and V2.00): an assembler turns mnemonic source text
into a Program, and an execution engine runs it against a W-bit register
file, word/byte addressable memory and two input tapes.

Pipeline:
    SOURCE -> ASSEMBLE -> PROGRAM -> FETCH -> DECODE -> EXECUTE -> STATE
                 |                                        |
           [two-pass labels]                    [OpcodeRegistry handlers]

Modules:
    errors: AssemblyFault, RuntimeFault, FaultCode
    words: WordArithmetic (W-bit ALU with flag rules)
    opcodes: Opcode enumeration and operand signatures
    dialect: DialectPolicy for V1.000 / V2.00
    config: MachineConfig
    assembler: assemble(), Program, tape parsing
    memory: Memory and Tape
    state: MachineState
    registry: OpcodeRegistry (per-opcode semantics)
    machine: TinyRAMMachine, run(), RunResult
"""

__version__ = "0.1.0"

from .assembler import Program, assemble, load_program, load_tape, parse_tape
from .config import MachineConfig
from .dialect import V1_000, V2_00, AddressUnit, DialectPolicy, dialect_for_version
from .errors import AssemblyFault, ConfigurationError, FaultCode, RuntimeFault, TinyRAMError
from .machine import RunResult, TinyRAMMachine, run
from .opcodes import Opcode
from .state import MachineState

__all__ = [
    "AddressUnit",
    "AssemblyFault",
    "ConfigurationError",
    "DialectPolicy",
    "FaultCode",
    "MachineConfig",
    "MachineState",
    "Opcode",
    "Program",
    "RunResult",
    "RuntimeFault",
    "TinyRAMError",
    "TinyRAMMachine",
    "V1_000",
    "V2_00",
    "assemble",
    "dialect_for_version",
    "load_program",
    "load_tape",
    "parse_tape",
    "run",
]
