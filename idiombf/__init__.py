from .interpreter import Interpreter, StepLimitExceeded
from .nodes import (
    ClearCell,
    Command,
    Loop,
    MultiTransferCell,
    PrimitiveRun,
    Program,
    TransferCell,
)
from .parser import ParseError, Parser, filter_commands, parse
from .tape import BoundsError, EofPolicy, InputExhausted, Tape

__all__ = [
    "BoundsError",
    "ClearCell",
    "Command",
    "EofPolicy",
    "InputExhausted",
    "Interpreter",
    "Loop",
    "MultiTransferCell",
    "ParseError",
    "Parser",
    "PrimitiveRun",
    "Program",
    "StepLimitExceeded",
    "Tape",
    "TransferCell",
    "filter_commands",
    "parse",
]
