from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

CELL_MODULUS = 256
DEFAULT_TAPE_LENGTH = 30000


class BoundsError(IndexError):
    """Raised when the data pointer would leave the tape."""

    def __init__(self, pointer: int, target: int, capacity: int) -> None:
        self.pointer = pointer
        self.target = target
        self.capacity = capacity
        super().__init__(
            f"Pointer moved to {target}, outside tape of {capacity} cells "
            f"(last valid position {pointer})"
        )


class InputExhausted(EOFError):
    """Raised by ',' at end of input when the EOF policy is ``error``."""

    def __init__(self, pointer: int) -> None:
        self.pointer = pointer
        super().__init__(f"Input exhausted while reading into cell {pointer}")


class EofPolicy(str, Enum):
    ZERO = "zero"
    UNCHANGED = "unchanged"
    ERROR = "error"


@dataclass
class Tape:
    """Fixed-size tape of unsigned 8-bit cells (0-255, wrapping)."""

    capacity: int = DEFAULT_TAPE_LENGTH
    eof_policy: EofPolicy = EofPolicy.ZERO

    cells: bytearray = field(init=False, repr=False)
    pointer: int = field(init=False)
    output: bytearray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("Tape capacity must be at least one cell")
        self.eof_policy = EofPolicy(self.eof_policy)
        self.cells = bytearray(self.capacity)
        self.pointer = 0
        self.output = bytearray()
        self._input: Iterator[int] = iter(())
        self._output_sink: Optional[Callable[[int], None]] = None

    def connect(
        self,
        input_data: Optional[Iterable[int]] = None,
        output_sink: Optional[Callable[[int], None]] = None,
    ) -> None:
        self._input = iter(input_data or ())
        self._output_sink = output_sink

    def read(self) -> int:
        return self.cells[self.pointer]

    def write(self, value: int) -> None:
        self.cells[self.pointer] = value % CELL_MODULUS

    def add(self, delta: int) -> None:
        self.cells[self.pointer] = (self.cells[self.pointer] + delta) % CELL_MODULUS

    def move(self, by: int) -> None:
        target = self.pointer + by
        if not 0 <= target < self.capacity:
            raise BoundsError(self.pointer, target, self.capacity)
        self.pointer = target

    def read_input(self) -> int:
        try:
            value = next(self._input)
        except StopIteration:
            if self.eof_policy is EofPolicy.ERROR:
                raise InputExhausted(self.pointer) from None
            if self.eof_policy is EofPolicy.ZERO:
                self.write(0)
            return self.read()
        self.write(value)
        return self.read()

    def write_output(self, value: int) -> None:
        self.output.append(value)
        if self._output_sink is not None:
            self._output_sink(value)

    def window(self, radius: int = 10) -> Tuple[int, List[int]]:
        start = max(0, self.pointer - radius)
        end = min(self.capacity, self.pointer + radius + 1)
        return start, list(self.cells[start:end])


__all__ = [
    "BoundsError",
    "CELL_MODULUS",
    "DEFAULT_TAPE_LENGTH",
    "EofPolicy",
    "InputExhausted",
    "Tape",
]
