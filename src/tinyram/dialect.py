"""DialectPolicy: the differences between TinyRAM V1.000 and V2.00.

Two axes vary between dialects:
    - Which opcodes are legal. V1.000 has no ``cnjmp`` and no suffixed
      memory opcodes; V2.00 has the full set.
    - The addressing unit of the suffixed memory opcodes (``store.w`` and
      friends). V2.00 addresses bytes scaled by W/8. Bare ``store``/``load``
      always address words.

Flag, compare and jump mechanics are identical across dialects; the policy
is a capability filter only.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import FrozenSet

from .errors import ConfigurationError
from .opcodes import Opcode, SUFFIXED_MEMORY_OPCODES


class AddressUnit(Enum):
    WORD = "word"
    BYTE = "byte"


@dataclass(frozen=True)
class DialectPolicy:
    """Capabilities of a TinyRAM dialect.

    Attributes:
        name: Display name (e.g. "V2.00")
        version: Numeric version
        opcodes: Legal opcodes
        suffixed_address_unit: Unit used by store.w/load.w/store.b/load.b
    """
    name: str
    version: float
    opcodes: FrozenSet[Opcode]
    suffixed_address_unit: AddressUnit = AddressUnit.BYTE

    def allows(self, opcode: Opcode) -> bool:
        return opcode in self.opcodes

    def with_address_unit(self, unit: AddressUnit) -> "DialectPolicy":
        return replace(self, suffixed_address_unit=unit)

    def __str__(self) -> str:
        return self.name


V1_000 = DialectPolicy(
    name="V1.000",
    version=1.0,
    opcodes=frozenset(op for op in Opcode
                      if op is not Opcode.CNJMP and op not in SUFFIXED_MEMORY_OPCODES),
    suffixed_address_unit=AddressUnit.WORD,
)

V2_00 = DialectPolicy(
    name="V2.00",
    version=2.0,
    opcodes=frozenset(Opcode),
    suffixed_address_unit=AddressUnit.BYTE,
)

DIALECTS = (V1_000, V2_00)


def dialect_for_version(version: str) -> DialectPolicy:
    """Resolve a header version string ("1.000", "2.00", "2") to a dialect.

    Raises:
        ConfigurationError: If the version is not a number or not supported
    """
    try:
        number = float(version)
    except ValueError:
        raise ConfigurationError(f"Invalid TinyRAM version: {version!r}") from None

    for dialect in DIALECTS:
        if dialect.version == number:
            return dialect
    raise ConfigurationError(f"Unsupported TinyRAM version: {version}")
