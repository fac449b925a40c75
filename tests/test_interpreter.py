import itertools
import unittest

from idiombf import (
    BoundsError,
    EofPolicy,
    InputExhausted,
    Interpreter,
    ParseError,
    StepLimitExceeded,
    parse,
)
from idiombf.nodes import (
    ClearCell,
    Command,
    Loop,
    MultiTransferCell,
    PrimitiveRun,
    Program,
    TransferCell,
    walk,
)


def has_idioms(program) -> bool:
    return any(isinstance(node, (ClearCell, TransferCell, MultiTransferCell)) for node in walk(program.body))


class InterpreterBasicsTests(unittest.TestCase):
    def test_simple_output(self) -> None:
        interpreter = Interpreter()
        output = interpreter.run("+" * 65 + ".")
        self.assertEqual(output, b"A")

    def test_two_character_output(self) -> None:
        program = "+" * 72 + "." + "+" * 33 + "."
        self.assertEqual(Interpreter().run(program), b"Hi")

    def test_output_run_repeats_current_value(self) -> None:
        self.assertEqual(Interpreter().run("+" * 66 + "..."), b"BBB")

    def test_hello_world(self) -> None:
        program = (
            "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]"
            ">>.>---.+++++++..+++.>>.<-.<.+++.------.--------.>>+.>++."
        )
        self.assertEqual(Interpreter().run(program), b"Hello World!\n")

    def test_output_sink_receives_bytes(self) -> None:
        received = []
        Interpreter().run("+++.+.", output_sink=received.append)
        self.assertEqual(received, [3, 4])

    def test_transfer_multiplies(self) -> None:
        interpreter = Interpreter()
        interpreter.run("++++[->++<]")
        self.assertEqual(interpreter.tape.cells[0], 0)
        self.assertEqual(interpreter.tape.cells[1], 8)
        self.assertEqual(interpreter.tape.pointer, 0)

    def test_clear_on_zero_cell_is_noop(self) -> None:
        interpreter = Interpreter()
        interpreter.run("[-]")
        self.assertEqual(interpreter.tape.cells[0], 0)
        self.assertEqual(interpreter.tape.pointer, 0)

    def test_clear_nonzero_cell(self) -> None:
        interpreter = Interpreter()
        interpreter.run("+++++[-]")
        self.assertEqual(interpreter.tape.cells[0], 0)

    def test_empty_loop_on_zero_runs_zero_iterations(self) -> None:
        interpreter = Interpreter(max_steps=10)
        self.assertEqual(interpreter.run("[]"), b"")
        self.assertEqual(interpreter.steps, 1)

    def test_loop_skipped_when_cell_zero(self) -> None:
        interpreter = Interpreter()
        interpreter.run("[+.]")
        self.assertEqual(bytes(interpreter.tape.output), b"")

    def test_multi_transfer_copies_to_each_target(self) -> None:
        interpreter = Interpreter()
        interpreter.run("+++++[->+>+++<<]")
        self.assertEqual(list(interpreter.tape.cells[:3]), [0, 5, 15])
        self.assertEqual(interpreter.tape.pointer, 0)

    def test_transfer_wraps(self) -> None:
        interpreter = Interpreter()
        interpreter.run("-[->++<]")
        self.assertEqual(interpreter.tape.cells[1], (255 * 2) % 256)

    def test_negative_transfer(self) -> None:
        interpreter = Interpreter()
        interpreter.run(">>+++[-<<->>]")
        self.assertEqual(interpreter.tape.cells[0], 253)
        self.assertEqual(interpreter.tape.pointer, 2)

    def test_run_accepts_parsed_program(self) -> None:
        program = Program((PrimitiveRun(Command.INCREMENT, 3), TransferCell(1, 2)))
        interpreter = Interpreter()
        interpreter.run(program)
        self.assertEqual(interpreter.tape.cells[1], 6)

    def test_run_resets_tape(self) -> None:
        interpreter = Interpreter()
        interpreter.run("+++>")
        interpreter.run("+")
        self.assertEqual(interpreter.tape.cells[0], 1)
        self.assertEqual(interpreter.tape.pointer, 0)

    def test_deeply_nested_loops(self) -> None:
        depth = 1000
        interpreter = Interpreter()
        output = interpreter.run("++" + "[" * depth + "-." + "]" * depth)
        self.assertEqual(output, b"\x01\x00")
        self.assertEqual(interpreter.tape.cells[0], 0)

    def test_unknown_node_type(self) -> None:
        with self.assertRaises(TypeError):
            Interpreter().run(Program((object(),)))


class InterpreterInputTests(unittest.TestCase):
    def test_echo(self) -> None:
        self.assertEqual(Interpreter().run(",.>,.", input_data=b"ok"), b"ok")

    def test_input_run_reads_each_byte(self) -> None:
        interpreter = Interpreter()
        interpreter.run(",,,", input_data=[1, 2, 3])
        self.assertEqual(interpreter.tape.cells[0], 3)

    def test_input_pulled_lazily(self) -> None:
        consumed = []

        def source():
            for value in (5, 6):
                consumed.append(value)
                yield value

        interpreter = Interpreter()
        interpreter.run(",", input_data=source())
        self.assertEqual(consumed, [5])

    def test_cat_until_eof(self) -> None:
        self.assertEqual(Interpreter().run(",[.,]", input_data=b"abc"), b"abc")

    def test_eof_error_policy(self) -> None:
        interpreter = Interpreter(eof_policy=EofPolicy.ERROR)
        with self.assertRaises(InputExhausted):
            interpreter.run(",.,", input_data=[65])
        self.assertEqual(bytes(interpreter.tape.output), b"A")

    def test_eof_unchanged_policy(self) -> None:
        interpreter = Interpreter(eof_policy=EofPolicy.UNCHANGED)
        self.assertEqual(interpreter.run("+++,."), b"\x03")


class InterpreterErrorTests(unittest.TestCase):
    def test_unterminated_loop_does_not_execute(self) -> None:
        interpreter = Interpreter()
        interpreter.run("+")
        with self.assertRaises(ParseError):
            interpreter.run("+.[++")
        self.assertEqual(interpreter.tape.cells[0], 1)
        self.assertEqual(bytes(interpreter.tape.output), b"")

    def test_move_left_of_start(self) -> None:
        with self.assertRaises(BoundsError) as ctx:
            Interpreter().run(">><<<")
        self.assertEqual(ctx.exception.pointer, 2)
        self.assertEqual(ctx.exception.target, -1)

    def test_move_past_end(self) -> None:
        interpreter = Interpreter(tape_length=3)
        with self.assertRaises(BoundsError) as ctx:
            interpreter.run(">>>")
        self.assertEqual(ctx.exception.pointer, 0)
        self.assertEqual(ctx.exception.target, 3)

    def test_transfer_out_of_bounds(self) -> None:
        with self.assertRaises(BoundsError):
            Interpreter().run("+[-<+>]")

    def test_transfer_on_zero_cell_does_not_move(self) -> None:
        interpreter = Interpreter()
        interpreter.run("[-<+>]")
        self.assertEqual(interpreter.tape.pointer, 0)

    def test_step_limit_exceeded(self) -> None:
        interpreter = Interpreter(max_steps=10)
        with self.assertRaises(StepLimitExceeded):
            interpreter.run("+[]")

    def test_idioms_use_fewer_steps(self) -> None:
        optimized = Interpreter()
        plain = Interpreter(optimize=False)
        program = "+" * 200 + "[->+>+<<]"
        optimized.run(program)
        plain.run(program)
        self.assertLess(optimized.steps, plain.steps)
        self.assertEqual(bytes(optimized.tape.cells[:3]), bytes(plain.tape.cells[:3]))


class OptimizerEquivalenceTests(unittest.TestCase):
    """Idiom nodes must leave the tape exactly as the loops they replace."""

    TAPE_LENGTH = 12
    SOURCE = 4
    MAX_STEPS = 3_000

    def _run_outcome(self, code: str, optimize: bool, tape_length: int = TAPE_LENGTH):
        interpreter = Interpreter(
            tape_length=tape_length,
            max_steps=self.MAX_STEPS,
            optimize=optimize,
        )
        try:
            interpreter.run(code)
        except (BoundsError, StepLimitExceeded) as exc:
            return type(exc)
        return bytes(interpreter.tape.cells), interpreter.tape.pointer

    def _setup(self, value: int) -> str:
        # neighbours hold 2, 5 and 9 so that transfers add to nonzero cells
        return ">>++>+++++>" + "+" * value + ">+++++++++<"

    def _check(self, loop: str) -> bool:
        optimized_program = parse(loop)
        for value in (0, 1, 3, 255):
            code = self._setup(value) + loop
            with self.subTest(loop=loop, value=value):
                self.assertEqual(self._run_outcome(code, True), self._run_outcome(code, False))
        return has_idioms(optimized_program)

    def test_exhaustive_small_bodies(self) -> None:
        idioms_seen = 0
        for size in range(1, 5):
            for chars in itertools.product("+-<>", repeat=size):
                if self._check("[-" + "".join(chars) + "]"):
                    idioms_seen += 1
        self.assertGreaterEqual(idioms_seen, 12)

    def test_larger_idiom_shapes(self) -> None:
        loops = [
            "[->>+<<]",
            "[-<<->>]",
            "[->+-+<]",
            "[->>>+<<<]",
            "[-<<<->>>]",
            "[->+>+<<]",
            "[->++>--->+<<<]",
            "[-<+>>++<]",
            "[->><+>+<<]",
            "[->>+++<<<<-->>]",
            "[->+<-]",
            "[->+>+<]",
        ]
        for loop in loops:
            self._check(loop)

    def test_seek_overshoot_at_tape_edge(self) -> None:
        for code, tape_length in (("+[->><+<]", 2), ("+[->><+>+<<]", 2), (">+[-<<>+>]", 2)):
            with self.subTest(code=code):
                self.assertIs(self._run_outcome(code, True, tape_length), BoundsError)
                self.assertIs(self._run_outcome(code, False, tape_length), BoundsError)

    def test_targets_at_tape_edge(self) -> None:
        for code in ("+[->+<]", "+[->+>+<<]", "+[-><>+<]", "+[->>>+<<<]", "+[->+>>+<<<]"):
            with self.subTest(code=code):
                self.assertEqual(self._run_outcome(code, True, 3), self._run_outcome(code, False, 3))

    def test_idiom_matches_plain_loop_structure(self) -> None:
        self.assertIsInstance(parse("[->+<]", optimize=False).body[0], Loop)
        self.assertEqual(parse("[->+<]").body[0], TransferCell(1, 1))


if __name__ == "__main__":
    unittest.main()
