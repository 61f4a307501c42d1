"""Opcode: the closed TinyRAM instruction set.

Each opcode carries its mnemonic and an operand signature. Signature letters:
    D: destination register
    R: source register
    A: any operand (register, immediate or label)

Store opcodes take their address first: ``store.w A, R``.
"""

from enum import Enum
from typing import Dict, Optional


class Opcode(Enum):
    # Bitwise
    AND = "and"
    OR = "or"
    XOR = "xor"
    NOT = "not"

    # Integer
    ADD = "add"
    SUB = "sub"
    MULL = "mull"
    UMULH = "umulh"
    SMULH = "smulh"
    UDIV = "udiv"
    UMOD = "umod"

    # Shift
    SHL = "shl"
    SHR = "shr"

    # Compare
    CMPE = "cmpe"
    CMPA = "cmpa"
    CMPAE = "cmpae"
    CMPG = "cmpg"
    CMPGE = "cmpge"

    # Move
    MOV = "mov"
    CMOV = "cmov"

    # Jump
    JMP = "jmp"
    CJMP = "cjmp"
    CNJMP = "cnjmp"

    # Memory
    STORE = "store"
    LOAD = "load"
    STORE_W = "store.w"
    LOAD_W = "load.w"
    STORE_B = "store.b"
    LOAD_B = "load.b"

    # Input
    READ = "read"

    # Answer
    ANSWER = "answer"

    @property
    def mnemonic(self) -> str:
        return self.value

    @property
    def signature(self) -> str:
        return SIGNATURES[self]

    @property
    def arity(self) -> int:
        return len(SIGNATURES[self])

    @classmethod
    def from_mnemonic(cls, mnemonic: str) -> Optional["Opcode"]:
        """Look up an opcode by mnemonic, case-insensitively."""
        return _BY_MNEMONIC.get(mnemonic.lower())


ALU_OPCODES = frozenset({
    Opcode.AND, Opcode.OR, Opcode.XOR,
    Opcode.ADD, Opcode.SUB, Opcode.MULL, Opcode.UMULH, Opcode.SMULH,
    Opcode.UDIV, Opcode.UMOD, Opcode.SHL, Opcode.SHR,
})

COMPARE_OPCODES = frozenset({
    Opcode.CMPE, Opcode.CMPA, Opcode.CMPAE, Opcode.CMPG, Opcode.CMPGE,
})

JUMP_OPCODES = frozenset({Opcode.JMP, Opcode.CJMP, Opcode.CNJMP})

# Memory opcodes addressed in the dialect's suffixed addressing unit
SUFFIXED_MEMORY_OPCODES = frozenset({
    Opcode.STORE_W, Opcode.LOAD_W, Opcode.STORE_B, Opcode.LOAD_B,
})

SIGNATURES: Dict[Opcode, str] = {
    **{op: "DRA" for op in ALU_OPCODES},
    **{op: "RA" for op in COMPARE_OPCODES},
    **{op: "A" for op in JUMP_OPCODES},
    Opcode.NOT: "DA",
    Opcode.MOV: "DA",
    Opcode.CMOV: "DA",
    Opcode.LOAD: "DA",
    Opcode.LOAD_W: "DA",
    Opcode.LOAD_B: "DA",
    Opcode.READ: "DA",
    Opcode.STORE: "AR",
    Opcode.STORE_W: "AR",
    Opcode.STORE_B: "AR",
    Opcode.ANSWER: "A",
}

_BY_MNEMONIC: Dict[str, Opcode] = {op.value: op for op in Opcode}
