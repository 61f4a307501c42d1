"""Memory and Tape: the storage a TinyRAM machine reads and writes.

Memory is an array of words. Byte-granular accesses address the bytes of
each word in little-endian order, so byte address ``a`` lives in word
``a // (W/8)``. The first ``len(preload)`` words may be marked read-only
(Harvard model).
"""

from typing import Iterable, List, Optional, Sequence

from .errors import FaultCode, RuntimeFault


class Memory:
    """Word-array memory with an optional read-only preloaded segment.

    Attributes:
        size: Number of words
        word_size: Word width W in bits
        read_only_words: Length of the read-only segment at address 0
    """

    def __init__(
        self,
        size: int,
        word_size: int,
        preload: Sequence[int] = (),
        read_only: bool = False
    ):
        self.size = size
        self.word_size = word_size
        self._mask = (1 << word_size) - 1
        self._words: List[int] = [0] * size
        self._words[:len(preload)] = list(preload)
        self.read_only_words = len(preload) if read_only else 0

    @property
    def bytes_per_word(self) -> int:
        return self.word_size // 8

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.size:
            raise RuntimeFault(
                FaultCode.MEMORY_OUT_OF_BOUNDS,
                f"word address {index} outside memory of {self.size} words"
            )

    def _check_writable(self, index: int) -> None:
        if index < self.read_only_words:
            raise RuntimeFault(
                FaultCode.READ_ONLY_MEMORY,
                f"word address {index} is in the read-only segment "
                f"(0..{self.read_only_words - 1})"
            )

    def word_index(self, byte_address: int) -> int:
        """Word holding a byte address (rounds down to word alignment)."""
        return byte_address // self.bytes_per_word

    def read_word(self, index: int) -> int:
        self._check_index(index)
        return self._words[index]

    def write_word(self, index: int, value: int) -> None:
        self._check_index(index)
        self._check_writable(index)
        self._words[index] = value & self._mask

    def read_byte(self, byte_address: int) -> int:
        index = self.word_index(byte_address)
        shift = 8 * (byte_address % self.bytes_per_word)
        return (self.read_word(index) >> shift) & 0xFF

    def write_byte(self, byte_address: int, value: int) -> None:
        index = self.word_index(byte_address)
        shift = 8 * (byte_address % self.bytes_per_word)
        word = self.read_word(index)
        word = (word & ~(0xFF << shift)) | ((value & 0xFF) << shift)
        self.write_word(index, word)

    def snapshot(self) -> List[int]:
        """Copy of all words."""
        return list(self._words)

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, index: int) -> int:
        return self._words[index]


class Tape:
    """Read-only input tape consumed strictly left to right.

    Attributes:
        words: Tape contents
        position: Index of the next word to read
    """

    def __init__(self, words: Iterable[int] = ()):
        self.words = tuple(words)
        self.position = 0

    @property
    def remaining(self) -> int:
        return len(self.words) - self.position

    def read(self) -> Optional[int]:
        """Next word, or None once the tape is exhausted."""
        if self.position >= len(self.words):
            return None
        value = self.words[self.position]
        self.position += 1
        return value

    def __len__(self) -> int:
        return len(self.words)

    def __repr__(self) -> str:
        return f"Tape(position={self.position}, words={list(self.words)})"
