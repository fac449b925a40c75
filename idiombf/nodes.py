from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Tuple


class Command(str, Enum):
    INCREMENT = "+"
    DECREMENT = "-"
    MOVE_RIGHT = ">"
    MOVE_LEFT = "<"
    OUTPUT = "."
    INPUT = ","


# === AST Nodes ===


class Node:
    pass


@dataclass(frozen=True)
class PrimitiveRun(Node):
    """A maximal run of one primitive command, e.g. '+++' -> (INCREMENT, 3)."""

    command: Command
    count: int


@dataclass(frozen=True)
class ClearCell(Node):
    """Optimized form of '[-]'."""


@dataclass(frozen=True)
class TransferCell(Node):
    """Optimized form of loops such as '[->>>+<<<]'.

    Adds ``quantity`` times the current cell to the cell ``offset`` steps
    away, then clears the current cell. Also used as one target of a
    MultiTransferCell, where the clear happens once for all targets.
    """

    offset: int
    quantity: int


@dataclass(frozen=True)
class MultiTransferCell(Node):
    """Optimized form of loops such as '[->+>+<<]'."""

    targets: Tuple[TransferCell, ...]


@dataclass(frozen=True)
class Loop(Node):
    body: Tuple[Node, ...]


@dataclass(frozen=True)
class Program:
    body: Tuple[Node, ...]


def walk_with_depth(nodes: Iterable[Node]) -> Iterator[Tuple[int, Node]]:
    """Yield ``(depth, node)`` pairs in source order, loop bodies included."""
    stack: List[Tuple[int, Node]] = [(0, node) for node in reversed(tuple(nodes))]
    while stack:
        depth, node = stack.pop()
        yield depth, node
        if isinstance(node, Loop):
            stack.extend((depth + 1, child) for child in reversed(node.body))


def walk(nodes: Iterable[Node]) -> Iterator[Node]:
    for _, node in walk_with_depth(nodes):
        yield node


def summarize(program: Program) -> Dict[str, int]:
    counts = Counter(type(node).__name__ for node in walk(program.body))
    return {
        name: counts.get(name, 0)
        for name in ("PrimitiveRun", "ClearCell", "TransferCell", "MultiTransferCell", "Loop")
    }


def describe(node: Node) -> str:
    if isinstance(node, PrimitiveRun):
        return f"{node.command.name.lower()} x{node.count}"
    if isinstance(node, ClearCell):
        return "clear"
    if isinstance(node, TransferCell):
        return f"transfer offset={node.offset:+d} quantity={node.quantity:+d}"
    if isinstance(node, MultiTransferCell):
        targets = ", ".join(f"{t.offset:+d}*{t.quantity:+d}" for t in node.targets)
        return f"multi-transfer [{targets}]"
    if isinstance(node, Loop):
        return f"loop ({len(node.body)} nodes)"
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def dump(program: Program, indent: str = "  ") -> str:
    """Render the AST as an indented tree, one node per line."""
    return "\n".join(
        f"{indent * depth}{describe(node)}" for depth, node in walk_with_depth(program.body)
    )


__all__ = [
    "ClearCell",
    "Command",
    "Loop",
    "MultiTransferCell",
    "Node",
    "PrimitiveRun",
    "Program",
    "TransferCell",
    "describe",
    "dump",
    "summarize",
    "walk",
    "walk_with_depth",
]
