"""MachineConfig: parameters of a TinyRAM machine.

    W (word_size): word width in bits
    K (registers): number of general-purpose registers
    dialect: DialectPolicy (V1.000 or V2.00)
    harvard: "M=hv" memory model; the preloaded segment becomes read-only
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from .dialect import AddressUnit, DialectPolicy, V2_00
from .errors import ConfigurationError
from .opcodes import SUFFIXED_MEMORY_OPCODES
from .words import MAX_WORD_SIZE


DEFAULT_MEMORY_WORDS = 4096


@dataclass(frozen=True)
class MachineConfig:
    """Configuration for one machine.

    Attributes:
        word_size: Word width W in bits (1..64)
        registers: Register count K
        dialect: Dialect policy
        harvard: Whether the preloaded memory segment is read-only
        memory_words: Memory size in words
        preload: Words loaded at address 0 before execution
        step_limit: Maximum executed instructions (None for no limit)
        address_unit: Override for the dialect's suffixed addressing unit
        trace: Record a TraceEntry for every step
    """
    word_size: int = 32
    registers: int = 8
    dialect: DialectPolicy = V2_00
    harvard: bool = False
    memory_words: int = DEFAULT_MEMORY_WORDS
    preload: Tuple[int, ...] = field(default_factory=tuple)
    step_limit: Optional[int] = None
    address_unit: Optional[AddressUnit] = None
    trace: bool = False

    def __post_init__(self):
        # Accept any iterable for preload but store a tuple
        if not isinstance(self.preload, tuple):
            object.__setattr__(self, "preload", tuple(self.preload))

    @property
    def policy(self) -> DialectPolicy:
        """Dialect policy with the address unit override applied."""
        if self.address_unit is None:
            return self.dialect
        return self.dialect.with_address_unit(self.address_unit)

    @property
    def word_mask(self) -> int:
        return (1 << self.word_size) - 1

    def with_overrides(self, **changes) -> "MachineConfig":
        """Return a copy with the given non-None fields replaced."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)

    def validate(self) -> "MachineConfig":
        """Check the parameters and return self.

        Raises:
            ConfigurationError: If any parameter is out of range
        """
        if not 1 <= self.word_size <= MAX_WORD_SIZE:
            raise ConfigurationError(
                f"Word size W must be between 1 and {MAX_WORD_SIZE}, got {self.word_size}"
            )
        if self.registers < 1:
            raise ConfigurationError(f"Register count K must be positive, got {self.registers}")
        if self.memory_words < 1:
            raise ConfigurationError(f"Memory size must be positive, got {self.memory_words}")
        if len(self.preload) > self.memory_words:
            raise ConfigurationError(
                f"Preloaded segment ({len(self.preload)} words) exceeds memory "
                f"({self.memory_words} words)"
            )
        for value in self.preload:
            if not 0 <= value <= self.word_mask:
                raise ConfigurationError(f"Preloaded word {value} does not fit in {self.word_size} bits")
        if self.step_limit is not None and self.step_limit < 0:
            raise ConfigurationError(f"Step limit must not be negative, got {self.step_limit}")

        policy = self.policy
        uses_bytes = (policy.suffixed_address_unit is AddressUnit.BYTE
                      and any(policy.allows(op) for op in SUFFIXED_MEMORY_OPCODES))
        if uses_bytes and self.word_size % 8 != 0:
            raise ConfigurationError(
                f"Byte addressing requires a word size divisible by 8, got {self.word_size}"
            )
        return self
