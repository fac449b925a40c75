from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from .nodes import (
    ClearCell,
    Command,
    Loop,
    MultiTransferCell,
    Node,
    PrimitiveRun,
    Program,
    TransferCell,
    summarize,
)

logger = logging.getLogger(__name__)

COMMAND_CHARS = frozenset("+-<>[].,")
PRIMITIVE_CHARS = frozenset("+-<>.,")

# (node, position after the match) or None when an alternative does not apply
Match = Optional[Tuple[Node, int]]


class ParseError(Exception):
    def __init__(self, message: str, position: int) -> None:
        self.position = position
        super().__init__(message)


def filter_commands(text: str) -> str:
    """Drop everything that is not one of the eight command characters."""
    return "".join(ch for ch in text if ch in COMMAND_CHARS)


# === Parser ===


class Parser:
    """Parses command characters into a Program, folding known loop idioms.

    Loops are tried against the idioms in order (clear, transfer,
    multi-transfer) before falling back to a generic Loop. Every alternative
    is a trial parse from the position of the '[' and either returns the
    node with the position after it, or None without side effects.
    """

    def __init__(self, optimize: bool = True) -> None:
        self.optimize = optimize
        self.code = ""

    def parse(self, code: str) -> Program:
        for index, char in enumerate(code):
            if char not in COMMAND_CHARS:
                raise ParseError(f"Unexpected character {char!r} at position {index}", index)
        if not code:
            raise ParseError("Program must contain at least one command", 0)
        self.code = code
        program = Program(tuple(self._parse_statements()))
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Parsed %d commands: %s", len(code), summarize(program))
        return program

    def _parse_statements(self) -> List[Node]:
        # open loops: (position of '[', nodes of the enclosing body)
        stack: List[Tuple[int, List[Node]]] = []
        nodes: List[Node] = []
        pos = 0
        length = len(self.code)
        while pos < length:
            char = self.code[pos]
            if char == "]":
                if not stack:
                    raise ParseError(f"Unmatched ']' at position {pos}", pos)
                _, enclosing = stack.pop()
                enclosing.append(Loop(tuple(nodes)))
                nodes = enclosing
                pos += 1
            elif char == "[":
                match = self._known_idiom(pos)
                if match is None:
                    stack.append((pos, nodes))
                    nodes = []
                    pos += 1
                else:
                    node, pos = match
                    nodes.append(node)
            else:
                node, pos = self._primitive_run(pos)
                nodes.append(node)
        if stack:
            start = stack[-1][0]
            raise ParseError(f"Unterminated '[' opened at position {start}", start)
        return nodes

    def _known_idiom(self, pos: int) -> Match:
        if not self.optimize:
            return None
        alternatives: Tuple[Callable[[int], Match], ...] = (
            self._clear_cell,
            self._transfer_cell,
            self._multi_transfer_cell,
        )
        for alternative in alternatives:
            match = alternative(pos)
            if match is not None:
                return match
        return None

    def _primitive_run(self, pos: int) -> Tuple[Node, int]:
        char = self.code[pos]
        count, end = self._repeat(pos, char)
        return PrimitiveRun(Command(char), count), end

    # --- Idioms ---

    def _clear_cell(self, pos: int) -> Match:
        if self.code.startswith("[-]", pos):
            return ClearCell(), pos + 3
        return None

    def _transfer_cell(self, pos: int) -> Match:
        return self._transfer_form(pos, ">", "<", 1) or self._transfer_form(pos, "<", ">", -1)

    def _transfer_form(self, pos: int, outbound: str, inbound: str, sign: int) -> Match:
        if not self.code.startswith("[-", pos):
            return None
        distance, pos = self._repeat(pos + 2, outbound)
        if distance == 0:
            return None
        quantity, modified, pos = self._net(pos, "+", "-")
        if modified == 0:
            return None
        returned, pos = self._repeat(pos, inbound)
        if returned != distance or not self._at(pos, "]"):
            return None
        return TransferCell(sign * distance, quantity), pos + 1

    def _multi_transfer_cell(self, pos: int) -> Match:
        if not self.code.startswith("[-", pos):
            return None
        pos += 2
        targets: List[TransferCell] = []
        offset = 0
        while True:
            step, sought, after_seek, overshoots = self._seek(pos)
            quantity, modified, after_modify = self._net(after_seek, "+", "-")
            if sought == 0 or modified == 0:
                break
            if overshoots:
                # a seek like '>><' visits a cell the targets never reach
                return None
            offset += step
            if offset == 0:
                # touching the source cell changes how many times the loop runs
                return None
            targets.append(TransferCell(offset, quantity))
            pos = after_modify
        if not targets:
            return None
        returned, pos = self._repeat(pos, "<" if offset > 0 else ">")
        if returned != abs(offset) or not self._at(pos, "]"):
            return None
        return MultiTransferCell(tuple(targets)), pos + 1

    # --- Helpers ---

    def _at(self, pos: int, char: str) -> bool:
        return pos < len(self.code) and self.code[pos] == char

    def _repeat(self, pos: int, char: str) -> Tuple[int, int]:
        end = pos
        length = len(self.code)
        while end < length and self.code[end] == char:
            end += 1
        return end - pos, end

    def _net(self, pos: int, up: str, down: str) -> Tuple[int, int, int]:
        """Consume a run of ``up``/``down`` characters.

        Returns the net count (up minus down), the number of characters
        consumed and the position after the run.
        """
        net = 0
        end = pos
        length = len(self.code)
        while end < length and self.code[end] in (up, down):
            net += 1 if self.code[end] == up else -1
            end += 1
        return net, end - pos, end

    def _seek(self, pos: int) -> Tuple[int, int, int, bool]:
        """Like ``_net`` for '>'/'<', also reporting whether the run strays
        outside the cells between its start and its end."""
        net = lowest = highest = 0
        end = pos
        length = len(self.code)
        while end < length and self.code[end] in "><":
            net += 1 if self.code[end] == ">" else -1
            lowest = min(lowest, net)
            highest = max(highest, net)
            end += 1
        overshoots = lowest < min(0, net) or highest > max(0, net)
        return net, end - pos, end, overshoots


def parse(code: str, optimize: bool = True) -> Program:
    return Parser(optimize=optimize).parse(code)


__all__ = [
    "COMMAND_CHARS",
    "ParseError",
    "Parser",
    "filter_commands",
    "parse",
]
