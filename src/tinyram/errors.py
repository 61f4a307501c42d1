"""Fault taxonomy for the TinyRAM virtual machine.

Faults:
    AssemblyFault: malformed source, reported with its line number
    RuntimeFault: halting error raised while a program executes
    ConfigurationError: invalid machine parameters or tape contents

Runtime fault codes are negative so they can never be confused with an
exit code chosen by a program's ``answer`` instruction.
"""

from enum import IntEnum
from typing import Optional


class FaultCode(IntEnum):
    """Distinguished halt codes for runtime faults."""
    DIVIDE_BY_ZERO = -1
    MEMORY_OUT_OF_BOUNDS = -2
    READ_ONLY_MEMORY = -3
    PC_OUT_OF_BOUNDS = -4
    STEP_LIMIT_EXCEEDED = -5


class TinyRAMError(Exception):
    """Base class for every error raised by this package."""


class AssemblyFault(TinyRAMError):
    """Source text could not be assembled.

    Attributes:
        message: Description of the problem
        line: 1-based source line number (None when not tied to a line)
    """

    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"Line {self.line}: {self.message}"


class RuntimeFault(TinyRAMError):
    """Execution stopped on a fault.

    Attributes:
        code: FaultCode identifying the fault
        message: Description of the problem
        pc: Program counter of the faulting instruction (filled in by the engine)
    """

    def __init__(self, code: FaultCode, message: str, pc: Optional[int] = None):
        self.code = code
        self.message = message
        self.pc = pc
        super().__init__(str(self))

    def __str__(self) -> str:
        where = f" at pc={self.pc}" if self.pc is not None else ""
        return f"{self.code.name}{where}: {self.message}"


class ConfigurationError(TinyRAMError, ValueError):
    """Machine parameters or tape contents are invalid."""
