"""OpcodeRegistry: semantics of every TinyRAM opcode.

Each opcode maps to a handler ``(state, operands) -> Optional[int]`` that
mutates the machine state and returns the next PC when it jumps (None means
fall through to pc + 1). Handlers raise RuntimeFault on faults; the engine
catches it and halts.

The registry is frozen after initialization so no handler can be swapped
during a run. Every machine builds its own registry; there is no shared
instance.
"""

from typing import Callable, Dict, FrozenSet, Optional, Sequence

from .assembler import Operand
from .dialect import AddressUnit, DialectPolicy
from .opcodes import ALU_OPCODES, COMPARE_OPCODES, Opcode
from .state import AUXILIARY_TAPE, PRIMARY_TAPE, MachineState
from .words import WordArithmetic


Handler = Callable[[MachineState, Sequence[Operand]], Optional[int]]


class OpcodeRegistry:
    """Frozen mapping from opcode to handler.

    Attributes:
        alu: WordArithmetic for the machine's word size
        policy: Dialect policy (decides the suffixed addressing unit)
    """

    def __init__(self, alu: WordArithmetic, policy: DialectPolicy):
        self.alu = alu
        self.policy = policy
        self._handlers: Dict[Opcode, Handler] = {}
        self._frozen = False
        self._register_all()
        self.freeze()

    def _register_all(self) -> None:
        for opcode in ALU_OPCODES:
            self.register(opcode, self._alu_handler(opcode))
        for opcode in COMPARE_OPCODES:
            self.register(opcode, self._compare_handler(opcode))

        self.register(Opcode.NOT, self._op_not)

        # Data movement
        self.register(Opcode.MOV, self._op_mov)
        self.register(Opcode.CMOV, self._op_cmov)

        # Control flow
        self.register(Opcode.JMP, self._op_jmp)
        self.register(Opcode.CJMP, self._op_cjmp)
        self.register(Opcode.CNJMP, self._op_cnjmp)

        # Memory
        self.register(Opcode.STORE, self._op_store)
        self.register(Opcode.LOAD, self._op_load)
        self.register(Opcode.STORE_W, self._op_store_w)
        self.register(Opcode.LOAD_W, self._op_load_w)
        self.register(Opcode.STORE_B, self._op_store_b)
        self.register(Opcode.LOAD_B, self._op_load_b)

        # Input and termination
        self.register(Opcode.READ, self._op_read)
        self.register(Opcode.ANSWER, self._op_answer)

    def register(self, opcode: Opcode, handler: Handler) -> None:
        """Register a handler.

        Raises:
            RuntimeError: If the registry is frozen
            ValueError: If the opcode already has a handler
        """
        if self._frozen:
            raise RuntimeError("Cannot register handlers: registry is frozen")
        if opcode in self._handlers:
            raise ValueError(f"Handler already registered: {opcode.mnemonic}")
        self._handlers[opcode] = handler

    def freeze(self) -> None:
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def opcodes(self) -> FrozenSet[Opcode]:
        return frozenset(self._handlers)

    def execute(self, state: MachineState, opcode: Opcode, operands: Sequence[Operand]) -> Optional[int]:
        """Run one handler.

        Returns:
            Jump target, or None to fall through

        Raises:
            KeyError: If the opcode has no handler
            RuntimeFault: If the instruction faults
        """
        if opcode not in self._handlers:
            raise KeyError(f"Unknown opcode: {opcode}")
        return self._handlers[opcode](state, operands)

    # =========================================================================
    # Operand access
    # =========================================================================

    def resolve(self, state: MachineState, operand: Operand) -> int:
        """Value of an operand: register contents or the immediate/address.

        Negative immediates are taken in two's complement.
        """
        if operand.is_register:
            return state.get_register(operand.value)
        return self.alu.from_signed(operand.value)

    def _suffixed_word_index(self, state: MachineState, address: int) -> int:
        if self.policy.suffixed_address_unit is AddressUnit.BYTE:
            return state.memory.word_index(address)
        return address

    # =========================================================================
    # Arithmetic, bitwise and compare
    # =========================================================================

    def _alu_handler(self, opcode: Opcode) -> Handler:
        name = {Opcode.AND: "and_", Opcode.OR: "or_"}.get(opcode, opcode.mnemonic)
        operation = getattr(self.alu, name)

        def handler(state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
            """rD := rA <op> B; flag := derived flag."""
            dest, src, arg = operands
            result, flag = operation(self.resolve(state, src), self.resolve(state, arg))
            state.set_register(dest.value, result)
            state.flag = flag
            return None

        handler.__name__ = f"_op_{opcode.name.lower()}"
        return handler

    def _compare_handler(self, opcode: Opcode) -> Handler:
        operation = getattr(self.alu, opcode.mnemonic)

        def handler(state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
            """flag := rA <cmp> B; no register is written."""
            src, arg = operands
            _, state.flag = operation(self.resolve(state, src), self.resolve(state, arg))
            return None

        handler.__name__ = f"_op_{opcode.name.lower()}"
        return handler

    def _op_not(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        dest, arg = operands
        result, state.flag = self.alu.not_(self.resolve(state, arg))
        state.set_register(dest.value, result)
        return None

    # =========================================================================
    # Data movement
    # =========================================================================

    def _op_mov(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        dest, arg = operands
        state.set_register(dest.value, self.resolve(state, arg))
        return None

    def _op_cmov(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        if state.flag:
            return self._op_mov(state, operands)
        return None

    # =========================================================================
    # Control flow
    # =========================================================================

    def _op_jmp(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        return self.resolve(state, operands[0])

    def _op_cjmp(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        if state.flag:
            return self.resolve(state, operands[0])
        return None

    def _op_cnjmp(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        if not state.flag:
            return self.resolve(state, operands[0])
        return None

    # =========================================================================
    # Memory
    # =========================================================================

    def _op_store(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        """store A, rS - word-addressed."""
        address, src = operands
        state.memory.write_word(self.resolve(state, address), self.resolve(state, src))
        return None

    def _op_load(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        """load rD, A - word-addressed."""
        dest, address = operands
        state.set_register(dest.value, state.memory.read_word(self.resolve(state, address)))
        return None

    def _op_store_w(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        """store.w A, rS - addressed in the dialect's suffixed unit."""
        address, src = operands
        index = self._suffixed_word_index(state, self.resolve(state, address))
        state.memory.write_word(index, self.resolve(state, src))
        return None

    def _op_load_w(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        dest, address = operands
        index = self._suffixed_word_index(state, self.resolve(state, address))
        state.set_register(dest.value, state.memory.read_word(index))
        return None

    def _op_store_b(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        """store.b A, rS - writes the low byte of rS."""
        address, src = operands
        address = self.resolve(state, address)
        value = self.resolve(state, src)
        if self.policy.suffixed_address_unit is AddressUnit.BYTE:
            state.memory.write_byte(address, value)
        else:
            state.memory.write_word(address, value & 0xFF)
        return None

    def _op_load_b(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        dest, address = operands
        address = self.resolve(state, address)
        if self.policy.suffixed_address_unit is AddressUnit.BYTE:
            value = state.memory.read_byte(address)
        else:
            value = state.memory.read_word(address) & 0xFF
        state.set_register(dest.value, value)
        return None

    # =========================================================================
    # Input and termination
    # =========================================================================

    def _op_read(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        """read rD, A - next word of tape A; flag set when nothing is left.

        An exhausted tape, or a tape index other than 0 or 1, yields 0 with
        the flag set. This is the end-of-input signal, not a fault.
        """
        dest, tape_index = operands
        tape_index = self.resolve(state, tape_index)

        value = None
        if tape_index in (PRIMARY_TAPE, AUXILIARY_TAPE):
            value = state.tapes[tape_index].read()

        if value is None:
            state.set_register(dest.value, 0)
            state.flag = True
        else:
            state.set_register(dest.value, value)
            state.flag = False
        return None

    def _op_answer(self, state: MachineState, operands: Sequence[Operand]) -> Optional[int]:
        state.halt(code=self.resolve(state, operands[0]))
        # PC stays on the answer instruction
        return state.pc
