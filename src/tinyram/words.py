"""WordArithmetic: fixed-width unsigned word operations.

Every operation takes W-bit operands and returns a ``(result, flag)`` pair.
Results wrap modulo 2^W and never trap; overflow is only visible through the
flag. Compare operations return ``None`` as their result since they write no
register.

    Operation   Result                     Flag
    add         a + b                      carry out
    sub         a - b                      borrow out
    mull        low W bits of a * b        high half non-zero
    umulh       high W bits of a * b       result non-zero
    smulh       high W bits, signed        product does not fit in W bits
    udiv        a // b                     clear
    umod        a % b                      clear
    shl, shr    logical shift              last bit shifted out
    and/or/xor  bitwise                    clear
    not         complement                 clear
    cmpe        -                          a == b
    cmpa/cmpae  -                          a > b / a >= b (unsigned)
    cmpg/cmpge  -                          a > b / a >= b (signed)
"""

from typing import Optional, Tuple

from .errors import FaultCode, RuntimeFault


Result = Tuple[Optional[int], bool]

MAX_WORD_SIZE = 64


class WordArithmetic:
    """ALU for a given word size.

    Attributes:
        word_size: Word width W in bits
        modulus: 2^W
        max_value: 2^W - 1
    """

    def __init__(self, word_size: int):
        if not 1 <= word_size <= MAX_WORD_SIZE:
            raise ValueError(f"Word size must be between 1 and {MAX_WORD_SIZE}: {word_size}")
        self.word_size = word_size
        self.modulus = 1 << word_size
        self.max_value = self.modulus - 1
        self._sign_bit = 1 << (word_size - 1)

    def mask(self, value: int) -> int:
        return value & self.max_value

    def fits(self, value: int) -> bool:
        return 0 <= value <= self.max_value

    def to_signed(self, value: int) -> int:
        """Interpret a word as a two's complement integer."""
        value = self.mask(value)
        return value - self.modulus if value & self._sign_bit else value

    def from_signed(self, value: int) -> int:
        """Encode a (possibly negative) integer as a word."""
        return self.mask(value)

    # =========================================================================
    # Arithmetic
    # =========================================================================

    def add(self, a: int, b: int) -> Result:
        total = a + b
        return self.mask(total), total > self.max_value

    def sub(self, a: int, b: int) -> Result:
        return self.mask(a - b), a < b

    def mull(self, a: int, b: int) -> Result:
        product = a * b
        return self.mask(product), product > self.max_value

    def umulh(self, a: int, b: int) -> Result:
        high = (a * b) >> self.word_size
        return high, high != 0

    def smulh(self, a: int, b: int) -> Result:
        product = self.to_signed(a) * self.to_signed(b)
        high = self.mask(product >> self.word_size)
        overflow = not -self._sign_bit <= product < self._sign_bit
        return high, overflow

    def udiv(self, a: int, b: int) -> Result:
        if b == 0:
            raise RuntimeFault(FaultCode.DIVIDE_BY_ZERO, f"udiv of {a} by zero")
        return a // b, False

    def umod(self, a: int, b: int) -> Result:
        if b == 0:
            raise RuntimeFault(FaultCode.DIVIDE_BY_ZERO, f"umod of {a} by zero")
        return a % b, False

    # =========================================================================
    # Shifts
    # =========================================================================

    def shl(self, a: int, n: int) -> Result:
        if n == 0:
            return a, False
        if n > self.word_size:
            return 0, False
        carry = bool((a >> (self.word_size - n)) & 1)
        return self.mask(a << n), carry

    def shr(self, a: int, n: int) -> Result:
        if n == 0:
            return a, False
        if n > self.word_size:
            return 0, False
        carry = bool((a >> (n - 1)) & 1)
        return a >> n, carry

    # =========================================================================
    # Bitwise
    # =========================================================================

    def and_(self, a: int, b: int) -> Result:
        return a & b, False

    def or_(self, a: int, b: int) -> Result:
        return a | b, False

    def xor(self, a: int, b: int) -> Result:
        return a ^ b, False

    def not_(self, a: int) -> Result:
        return self.mask(~a), False

    # =========================================================================
    # Comparison
    # =========================================================================

    def cmpe(self, a: int, b: int) -> Result:
        return None, a == b

    def cmpa(self, a: int, b: int) -> Result:
        return None, a > b

    def cmpae(self, a: int, b: int) -> Result:
        return None, a >= b

    def cmpg(self, a: int, b: int) -> Result:
        return None, self.to_signed(a) > self.to_signed(b)

    def cmpge(self, a: int, b: int) -> Result:
        return None, self.to_signed(a) >= self.to_signed(b)
