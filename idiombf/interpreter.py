from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple, Union

from .nodes import (
    ClearCell,
    Command,
    Loop,
    MultiTransferCell,
    Node,
    PrimitiveRun,
    Program,
    TransferCell,
)
from .parser import Parser
from .tape import DEFAULT_TAPE_LENGTH, EofPolicy, Tape

logger = logging.getLogger(__name__)


class StepLimitExceeded(RuntimeError):
    """Raised when execution exceeds the configured step budget."""


@dataclass
class _Frame:
    body: Tuple[Node, ...]
    repeat: bool
    index: int = 0


@dataclass
class Interpreter:
    tape_length: int = DEFAULT_TAPE_LENGTH
    eof_policy: EofPolicy = EofPolicy.ZERO
    max_steps: Optional[int] = None
    optimize: bool = True

    tape: Tape = field(init=False, repr=False)
    steps: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.tape = Tape(self.tape_length, eof_policy=self.eof_policy)
        self.steps = 0

    def run(
        self,
        code: Union[str, Program],
        input_data: Optional[Iterable[int]] = None,
        output_sink: Optional[Callable[[int], None]] = None,
    ) -> bytes:
        """Parse (if needed) and execute ``code`` on a fresh tape.

        Returns every byte written by '.' in execution order. Parse errors
        are raised before the tape is touched.
        """
        program = code if isinstance(code, Program) else Parser(self.optimize).parse(code)
        self.reset()
        self.tape.connect(input_data, output_sink)
        self.execute(program)
        return bytes(self.tape.output)

    def execute(self, program: Program) -> None:
        logger.debug(
            "Executing %d top-level nodes (tape=%d, eof=%s, max_steps=%s)",
            len(program.body),
            self.tape.capacity,
            self.tape.eof_policy.value,
            self.max_steps,
        )
        self._execute_body(program.body)
        logger.debug(
            "Finished after %d steps, pointer=%d, %d bytes of output",
            self.steps,
            self.tape.pointer,
            len(self.tape.output),
        )

    def _execute_body(self, body: Tuple[Node, ...]) -> None:
        tape = self.tape
        # one frame per body being executed; loop frames repeat while the cell is nonzero
        frames: List[_Frame] = [_Frame(body, repeat=False)]
        while frames:
            frame = frames[-1]
            if frame.index < len(frame.body):
                node = frame.body[frame.index]
                frame.index += 1
                if isinstance(node, Loop):
                    self._count_step()
                    if tape.read() != 0:
                        frames.append(_Frame(node.body, repeat=True))
                else:
                    self._execute_node(node)
                continue
            if frame.repeat:
                self._count_step()
                if tape.read() != 0:
                    frame.index = 0
                    continue
            frames.pop()

    def _execute_node(self, node: Node) -> None:
        self._count_step()
        tape = self.tape
        if isinstance(node, PrimitiveRun):
            self._execute_run(node)
        elif isinstance(node, ClearCell):
            tape.write(0)
        elif isinstance(node, TransferCell):
            value = tape.read()
            if value:
                self._transfer(node, value)
                tape.write(0)
        elif isinstance(node, MultiTransferCell):
            value = tape.read()
            if value:
                for target in node.targets:
                    self._transfer(target, value)
                tape.write(0)
        else:
            raise TypeError(f"Unknown node type: {type(node).__name__}")

    def _execute_run(self, node: PrimitiveRun) -> None:
        tape = self.tape
        command = node.command
        if command is Command.INCREMENT:
            tape.add(node.count)
        elif command is Command.DECREMENT:
            tape.add(-node.count)
        elif command is Command.MOVE_RIGHT:
            tape.move(node.count)
        elif command is Command.MOVE_LEFT:
            tape.move(-node.count)
        elif command is Command.OUTPUT:
            value = tape.read()
            for _ in range(node.count):
                tape.write_output(value)
        elif command is Command.INPUT:
            for _ in range(node.count):
                tape.read_input()

    def _transfer(self, target: TransferCell, value: int) -> None:
        tape = self.tape
        tape.move(target.offset)
        tape.add(target.quantity * value)
        tape.move(-target.offset)

    def _count_step(self) -> None:
        if self.max_steps is not None and self.steps >= self.max_steps:
            raise StepLimitExceeded(
                f"Program exceeded allowed step count ({self.max_steps})"
            )
        self.steps += 1


__all__ = [
    "Interpreter",
    "StepLimitExceeded",
]
