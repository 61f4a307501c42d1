"""MachineState: mutable state of one TinyRAM run.

State Components:
    - Registers: r0..r(K-1), unsigned W-bit words
    - Flag: single condition bit set by compare/ALU instructions
    - PC: index of the next instruction
    - Memory: word array (see memory.Memory)
    - Tapes: primary (0) and auxiliary (1) input
    - Halted / halt code / fault: termination status
    - Step count: number of executed instructions

The execution engine is the only writer. A fresh state is created for every
run with create_initial_state().
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .config import MachineConfig
from .errors import ConfigurationError, RuntimeFault
from .memory import Memory, Tape
from .words import WordArithmetic


PRIMARY_TAPE = 0
AUXILIARY_TAPE = 1


@dataclass
class MachineState:
    """State of a TinyRAM machine.

    Attributes:
        word_size: Word width W in bits
        registers: Register values (length K)
        flag: Condition flag
        pc: Program counter (instruction index)
        memory: Machine memory
        tapes: (primary, auxiliary) input tapes
        halted: Whether the machine has stopped
        halt_code: Exit code of the answer instruction, if any
        fault: Runtime fault that stopped the machine, if any
        step_count: Number of executed instructions
    """
    word_size: int
    registers: List[int]
    memory: Memory
    tapes: Tuple[Tape, Tape] = field(default_factory=lambda: (Tape(), Tape()))
    flag: bool = False
    pc: int = 0
    halted: bool = False
    halt_code: Optional[int] = None
    fault: Optional[RuntimeFault] = None
    step_count: int = 0

    @property
    def word_mask(self) -> int:
        return (1 << self.word_size) - 1

    def get_register(self, index: int) -> int:
        """Get value of register ``r<index>``.

        Raises:
            IndexError: If the register doesn't exist
        """
        if not 0 <= index < len(self.registers):
            raise IndexError(f"Invalid register: r{index}")
        return self.registers[index]

    def set_register(self, index: int, value: int) -> None:
        """Write a register, wrapping the value to W bits.

        Raises:
            IndexError: If the register doesn't exist
        """
        if not 0 <= index < len(self.registers):
            raise IndexError(f"Invalid register: r{index}")
        self.registers[index] = value & self.word_mask

    def halt(self, code: Optional[int] = None, fault: Optional[RuntimeFault] = None) -> None:
        self.halted = True
        self.halt_code = code
        self.fault = fault

    def snapshot(self) -> dict:
        """Copy of the register file and control state for tracing.

        Memory is left out; the run result carries the final memory.
        """
        return {
            "registers": list(self.registers),
            "pc": self.pc,
            "flag": self.flag,
            "halted": self.halted,
            "step_count": self.step_count,
        }

    def validate(self) -> bool:
        """Check state integrity.

        Checks:
            - Every register holds an int that fits in W bits
            - PC and step count are non-negative
            - Flag is a bool
        """
        for value in self.registers:
            if not isinstance(value, int) or not 0 <= value <= self.word_mask:
                return False
        if self.pc < 0 or self.pc > self.word_mask:
            return False
        if not isinstance(self.flag, bool):
            return False
        return self.step_count >= 0

    def dump_registers(self) -> List[int]:
        return list(self.registers)

    def __str__(self) -> str:
        regs = " ".join(f"r{i}={v}" for i, v in enumerate(self.registers))
        status = ""
        if self.fault is not None:
            status = f" FAULT({self.fault.code.name})"
        elif self.halted:
            status = f" ANSWER({self.halt_code})"
        return f"[Step {self.step_count}] pc={self.pc} flag={int(self.flag)} {regs}{status}"


def create_initial_state(
    config: MachineConfig,
    tape0: Iterable[int] = (),
    tape1: Iterable[int] = ()
) -> MachineState:
    """Create a fresh state for a run.

    Registers and flag start cleared, PC at 0, memory zero-filled except for
    the preloaded segment.

    Raises:
        ConfigurationError: If a tape word doesn't fit in W bits
    """
    alu = WordArithmetic(config.word_size)
    tapes = []
    for number, words in enumerate((tape0, tape1)):
        words = tuple(words)
        for value in words:
            if not alu.fits(value):
                raise ConfigurationError(
                    f"Tape {number} word {value} does not fit in {config.word_size} bits"
                )
        tapes.append(Tape(words))

    memory = Memory(
        config.memory_words,
        config.word_size,
        preload=config.preload,
        read_only=config.harvard
    )
    return MachineState(
        word_size=config.word_size,
        registers=[0] * config.registers,
        memory=memory,
        tapes=(tapes[0], tapes[1]),
    )
