from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel, Field

from idiombf.interpreter import Interpreter, StepLimitExceeded
from idiombf.nodes import (
    ClearCell,
    Loop,
    MultiTransferCell,
    Node,
    PrimitiveRun,
    Program,
    TransferCell,
    dump,
    summarize,
)
from idiombf.parser import ParseError, Parser, filter_commands
from idiombf.tape import DEFAULT_TAPE_LENGTH, BoundsError, EofPolicy, InputExhausted

logger = logging.getLogger(__name__)

MAX_TAPE_LENGTH = 1_000_000
DEFAULT_STEP_LIMIT = 5_000_000


def _string_to_input_bytes(data: str) -> List[int]:
    return list(data.encode("utf-8"))


def _node_to_dict(node: Node) -> Dict[str, Any]:
    if isinstance(node, PrimitiveRun):
        return {"type": "primitive_run", "command": node.command.value, "count": node.count}
    if isinstance(node, ClearCell):
        return {"type": "clear_cell"}
    if isinstance(node, TransferCell):
        return {"type": "transfer_cell", "offset": node.offset, "quantity": node.quantity}
    if isinstance(node, MultiTransferCell):
        return {
            "type": "multi_transfer_cell",
            "targets": [
                {"offset": target.offset, "quantity": target.quantity}
                for target in node.targets
            ],
        }
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def _nodes_to_dicts(nodes: Iterable[Node]) -> List[Dict[str, Any]]:
    converted: List[Dict[str, Any]] = []
    # (remaining nodes of a body, list receiving their dicts)
    pending: List[Tuple[Iterator[Node], List[Dict[str, Any]]]] = [(iter(nodes), converted)]
    while pending:
        remaining, target = pending[-1]
        node = next(remaining, None)
        if node is None:
            pending.pop()
        elif isinstance(node, Loop):
            body: List[Dict[str, Any]] = []
            target.append({"type": "loop", "body": body})
            pending.append((iter(node.body), body))
        else:
            target.append(_node_to_dict(node))
    return converted


class ParseRequest(BaseModel):
    code: str
    optimize: bool = True


class ParseResponse(BaseModel):
    nodes: List[Dict[str, Any]]
    summary: Dict[str, int]
    dump: str


class RunRequest(BaseModel):
    code: str
    input: str = ""
    eof_policy: EofPolicy = EofPolicy.ZERO
    tape_length: int = Field(default=DEFAULT_TAPE_LENGTH, ge=1)
    max_steps: Optional[int] = Field(default=None, ge=1)
    optimize: bool = True
    tape_window: int = Field(default=10, ge=0)


class RunResponse(BaseModel):
    output: str
    output_bytes: List[int]
    pointer: int
    tape_start: int
    tape: List[int]
    steps: int


def _parse_or_422(code: str, optimize: bool) -> Program:
    try:
        return Parser(optimize=optimize).parse(filter_commands(code))
    except ParseError as exc:
        logger.info("Rejected program: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(exc), "position": exc.position},
        ) from exc


def create_app(
    *,
    step_limit: int = DEFAULT_STEP_LIMIT,
    max_tape_length: int = MAX_TAPE_LENGTH,
) -> FastAPI:
    """Build the API.

    ``step_limit`` caps every run (a request may only lower it) and
    ``max_tape_length`` bounds the tape a request may allocate.
    """
    app = FastAPI(title="idiombf API", version="0.1.0")
    app.state.step_limit = step_limit
    app.state.max_tape_length = max_tape_length

    @app.post("/api/parse", response_model=ParseResponse)
    def parse_program(payload: ParseRequest) -> ParseResponse:
        program = _parse_or_422(payload.code, payload.optimize)
        return ParseResponse(
            nodes=_nodes_to_dicts(program.body),
            summary=summarize(program),
            dump=dump(program),
        )

    @app.post("/api/run", response_model=RunResponse)
    def run_program(payload: RunRequest) -> RunResponse:
        if payload.tape_length > max_tape_length:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"tape_length may not exceed {max_tape_length}",
            )
        program = _parse_or_422(payload.code, payload.optimize)
        max_steps = step_limit if payload.max_steps is None else min(payload.max_steps, step_limit)
        interpreter = Interpreter(
            tape_length=payload.tape_length,
            eof_policy=payload.eof_policy,
            max_steps=max_steps,
        )
        try:
            output = interpreter.run(program, input_data=_string_to_input_bytes(payload.input))
        except (BoundsError, InputExhausted) as exc:
            logger.warning("Program failed after %d steps: %s", interpreter.steps, exc)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": str(exc), "pointer": exc.pointer},
            ) from exc
        except StepLimitExceeded as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=str(exc),
            ) from exc

        tape_start, tape_view = interpreter.tape.window(payload.tape_window)
        return RunResponse(
            output=output.decode("latin-1"),
            output_bytes=list(output),
            pointer=interpreter.tape.pointer,
            tape_start=tape_start,
            tape=tape_view,
            steps=interpreter.steps,
        )

    return app


__all__ = ["DEFAULT_STEP_LIMIT", "MAX_TAPE_LENGTH", "create_app"]
