from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Optional

from .interpreter import Interpreter, StepLimitExceeded
from .log import configure_logging
from .nodes import dump
from .parser import ParseError, Parser, filter_commands
from .tape import DEFAULT_TAPE_LENGTH, BoundsError, EofPolicy, InputExhausted

logger = logging.getLogger(__name__)


def _read_source(path: str) -> str:
    source_path = Path(path)
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    return source_path.read_text(encoding="utf-8")


def _to_input_bytes(data: str) -> Iterable[int]:
    return list(data.encode("utf-8"))


def _stream_input_bytes(stream: BinaryIO) -> Iterator[int]:
    while True:
        chunk = stream.read(1)
        if not chunk:
            return
        yield chunk[0]


def _write_output(data: bytes) -> None:
    buffer = getattr(sys.stdout, "buffer", None)
    if buffer is None:
        sys.stdout.write(data.decode("latin-1"))
        return
    sys.stdout.flush()
    buffer.write(data)
    buffer.flush()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Idiom-optimizing Brainfuck interpreter")
    parser.add_argument("source", help="Path to the Brainfuck program")
    input_group = parser.add_mutually_exclusive_group()
    input_group.add_argument(
        "--input",
        default="",
        help="Input string supplied to ',' (UTF-8 encoded)",
    )
    input_group.add_argument(
        "--stdin",
        action="store_true",
        help="Read ',' input from standard input instead of --input",
    )
    parser.add_argument(
        "--eof",
        choices=[policy.value for policy in EofPolicy],
        default=EofPolicy.ZERO.value,
        help="Behaviour of ',' at end of input (default: zero)",
    )
    parser.add_argument(
        "--tape-length",
        type=int,
        default=DEFAULT_TAPE_LENGTH,
        help=f"Number of tape cells (default: {DEFAULT_TAPE_LENGTH})",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Abort after this many executed nodes (default: unlimited)",
    )
    parser.add_argument(
        "--no-optimize",
        action="store_true",
        help="Parse every loop as a plain loop, without idiom recognition",
    )
    parser.add_argument(
        "--dump-ast",
        action="store_true",
        help="Print the parsed AST instead of running the program",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: $IDIOMBF_LOG_LEVEL or WARNING)",
    )
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        source_text = _read_source(args.source)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    try:
        program = Parser(optimize=not args.no_optimize).parse(filter_commands(source_text))
    except ParseError as exc:
        logger.info("Parse failed at position %d", exc.position)
        print(f"Parse error: {exc}", file=sys.stderr)
        return 1

    if args.dump_ast:
        sys.stdout.write(dump(program) + "\n")
        return 0

    if args.stdin:
        input_data: Iterable[int] = _stream_input_bytes(sys.stdin.buffer)
    else:
        input_data = _to_input_bytes(args.input)

    try:
        interpreter = Interpreter(
            tape_length=args.tape_length,
            eof_policy=EofPolicy(args.eof),
            max_steps=args.max_steps,
        )
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    try:
        output = interpreter.run(program, input_data=input_data)
    except (BoundsError, InputExhausted, StepLimitExceeded) as exc:
        _write_output(bytes(interpreter.tape.output))
        logger.info("Execution stopped after %d steps", interpreter.steps)
        print(f"Runtime error: {exc}", file=sys.stderr)
        return 1

    _write_output(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
