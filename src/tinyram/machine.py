"""TinyRAMMachine: fetch-decode-execute engine.

Pipeline per step:
    FETCH (instruction at PC) -> DECODE (opcode + operands) ->
    EXECUTE (registry handler) -> ADVANCE (PC + 1 unless the handler jumped)

The machine halts when ``answer`` executes (normal termination) or when a
runtime fault is raised. A fault stops execution immediately; nothing is
rolled back, so the state at the fault is available for inspection.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .assembler import Instruction, Program
from .config import MachineConfig
from .errors import ConfigurationError, FaultCode, RuntimeFault
from .registry import OpcodeRegistry
from .state import MachineState, create_initial_state
from .words import WordArithmetic


logger = logging.getLogger(__name__)


@dataclass
class TraceEntry:
    """One fetch-decode-execute step.

    Attributes:
        step: Step number (0-indexed)
        pc: Address of the executed instruction
        instruction: Executed instruction (None if the fetch itself faulted)
        pre_state: State snapshot before execution
        post_state: State snapshot after execution
        error: Fault message if the step faulted
    """
    step: int
    pc: int
    instruction: Optional[Instruction]
    pre_state: dict
    post_state: dict
    error: Optional[str] = None


@dataclass
class RunResult:
    """Observable outcome of a run.

    Attributes:
        halt_code: Exit code of ``answer`` (None when the run faulted)
        registers: Final register values
        memory: Final memory words
        step_count: Number of executed instructions
        flag: Final flag
        pc: Final program counter
        fault: Runtime fault that stopped the run, if any
    """
    halt_code: Optional[int]
    registers: List[int]
    memory: List[int]
    step_count: int
    flag: bool = False
    pc: int = 0
    fault: Optional[RuntimeFault] = None
    trace: List[TraceEntry] = field(default_factory=list, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        """True when the program halted through ``answer``."""
        return self.fault is None and self.halt_code is not None

    @property
    def exit_code(self) -> int:
        """Answer code, or the negative fault code."""
        if self.fault is not None:
            return int(self.fault.code)
        return self.halt_code


class TinyRAMMachine:
    """Execution engine for an assembled TinyRAM program.

    Attributes:
        program: Program being executed
        config: Machine configuration
        registry: Opcode handlers
        state: Current machine state (None until reset)
        trace: Recorded steps (only when config.trace is set)
    """

    def __init__(self, program: Program, config: Optional[MachineConfig] = None):
        """Create a machine.

        Args:
            program: Assembled program
            config: Machine parameters (defaults to the program's own)
        """
        self.program = program
        self.config = (config or program.config).validate()
        self._check_program()
        self.alu = WordArithmetic(self.config.word_size)
        self.registry = OpcodeRegistry(self.alu, self.config.policy)
        self.state: Optional[MachineState] = None
        self.trace: List[TraceEntry] = []

    def _check_program(self) -> None:
        """Reject a program assembled for a larger machine than this config."""
        if self.config is self.program.config:
            return
        if len(self.program) > self.config.word_mask + 1:
            raise ConfigurationError(
                f"Program has {len(self.program)} instructions; a {self.config.word_size}-bit "
                f"PC addresses at most {self.config.word_mask + 1}"
            )
        lowest = -(1 << (self.config.word_size - 1))
        for instr in self.program.instructions:
            for operand in instr.operands:
                if operand.is_register and operand.value >= self.config.registers:
                    raise ConfigurationError(
                        f"Line {instr.line}: register r{operand.value} does not exist "
                        f"(K={self.config.registers})"
                    )
                if not operand.is_register and not lowest <= operand.value <= self.config.word_mask:
                    raise ConfigurationError(
                        f"Line {instr.line}: operand {operand.value} does not fit in "
                        f"{self.config.word_size} bits"
                    )
            if not self.config.policy.allows(instr.opcode):
                raise ConfigurationError(
                    f"Line {instr.line}: '{instr.opcode.mnemonic}' is not available in "
                    f"TinyRAM {self.config.dialect.name}"
                )

    def reset(self, tape0: Iterable[int] = (), tape1: Iterable[int] = ()) -> MachineState:
        """Start over with fresh state and the given tapes."""
        self.state = create_initial_state(self.config, tape0, tape1)
        self.state.pc = self.program.entry
        self.trace = []
        return self.state

    def step(self) -> Optional[TraceEntry]:
        """Execute a single instruction.

        Returns:
            TraceEntry when tracing is enabled, else None

        Raises:
            RuntimeError: If the machine was not reset or has halted
        """
        state = self.state
        if state is None:
            raise RuntimeError("Machine not started: call reset() first")
        if state.halted:
            raise RuntimeError("Machine is halted")

        pc = state.pc
        pre_state = state.snapshot() if self.config.trace else None
        instruction = None
        error = None

        try:
            # FETCH
            if not 0 <= pc < len(self.program):
                raise RuntimeFault(
                    FaultCode.PC_OUT_OF_BOUNDS,
                    f"no instruction at address {pc} (program has {len(self.program)})"
                )
            instruction = self.program[pc]

            # DECODE + EXECUTE
            target = self.registry.execute(state, instruction.opcode, instruction.operands)
            state.step_count += 1
            next_pc = pc + 1 if target is None else target
            if next_pc > self.config.word_mask:
                raise RuntimeFault(
                    FaultCode.PC_OUT_OF_BOUNDS,
                    f"next address {next_pc} does not fit in {self.config.word_size} bits"
                )
            state.pc = next_pc
        except RuntimeFault as fault:
            fault.pc = pc
            error = str(fault)
            state.halt(fault=fault)
            logger.warning("Runtime fault: %s", fault)

        if state.halted and state.fault is None:
            logger.info("TinyRAM halted with answer %d after %d steps", state.halt_code, state.step_count)
        logger.debug("%s", state)

        if not self.config.trace:
            return None
        entry = TraceEntry(
            step=len(self.trace),
            pc=pc,
            instruction=instruction,
            pre_state=pre_state,
            post_state=state.snapshot(),
            error=error,
        )
        self.trace.append(entry)
        return entry

    def run(
        self,
        tape0: Iterable[int] = (),
        tape1: Iterable[int] = (),
        step_limit: Optional[int] = None
    ) -> RunResult:
        """Reset and run until ``answer``, a fault, or the step limit.

        Args:
            tape0: Primary input tape
            tape1: Auxiliary input tape
            step_limit: Overrides config.step_limit

        Returns:
            RunResult; faults are reported in ``result.fault``
        """
        self.reset(tape0, tape1)
        limit = step_limit if step_limit is not None else self.config.step_limit
        state = self.state

        logger.info("TinyRAM %s started (W=%d K=%d, %d instructions)",
                    self.config.dialect.name, self.config.word_size,
                    self.config.registers, len(self.program))

        while not state.halted:
            if limit is not None and state.step_count >= limit:
                fault = RuntimeFault(
                    FaultCode.STEP_LIMIT_EXCEEDED,
                    f"step limit ({limit}) exceeded",
                    pc=state.pc
                )
                state.halt(fault=fault)
                logger.warning("Runtime fault: %s", fault)
                break
            self.step()

        return self.result()

    def result(self) -> RunResult:
        """Snapshot the current state as a RunResult."""
        state = self.state
        if state is None:
            raise RuntimeError("Machine not started: call reset() first")
        return RunResult(
            halt_code=state.halt_code,
            registers=state.dump_registers(),
            memory=state.memory.snapshot(),
            step_count=state.step_count,
            flag=state.flag,
            pc=state.pc,
            fault=state.fault,
            trace=list(self.trace),
        )

    def get_summary(self) -> Dict:
        """Execution summary of the current state."""
        if self.state is None:
            raise RuntimeError("Machine not started: call reset() first")
        return {
            "steps": self.state.step_count,
            "halted": self.state.halted,
            "halt_code": self.state.halt_code,
            "fault": self.state.fault.code.name if self.state.fault else None,
            "registers": self.state.dump_registers(),
            "flag": self.state.flag,
            "pc": self.state.pc,
            "trace_length": len(self.trace),
        }


def run(
    program: Program,
    config: Optional[MachineConfig] = None,
    tape0: Iterable[int] = (),
    tape1: Iterable[int] = (),
    step_limit: Optional[int] = None
) -> RunResult:
    """Run a program on a fresh machine.

    Args:
        program: Assembled program
        config: Machine parameters (defaults to the program's own)
        tape0: Primary input tape
        tape1: Auxiliary input tape
        step_limit: Maximum executed instructions

    Returns:
        RunResult with halt code, final registers and memory, step count
        and fault (None on normal halt)
    """
    return TinyRAMMachine(program, config).run(tape0, tape1, step_limit)
