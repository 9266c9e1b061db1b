import asyncio
import io
import os
import unittest

from dump_anon.cli import build_run_options
from dump_anon.common.errors import LineTooLongError, WorkerError
from dump_anon.common.multiprocessing_utils import create_queue
from dump_anon.common.utils import LineReader
from dump_anon.context import Context
from dump_anon.modes.mask import MaskMode

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))

DUMP_LINES = [
    b"-- MySQL dump 10.13  Distrib 8.0.36",
    b"INSERT INTO users (id, email, phone) VALUES (1, 'alice@example.com', '5551234');",
    b"INSERT INTO orders (id, total) VALUES (1, 99.90);",
    b"INSERT INTO users (id, email, phone) VALUES (2, 'bob@example.com', NULL), (3, 'carol@example.com', '5559876');",
    b"-- Dump completed",
]

MASKED_LINES = [
    b"-- MySQL dump 10.13  Distrib 8.0.36",
    b"INSERT INTO users (id, email, phone) VALUES (1, 'ali***', '1234');",
    b"INSERT INTO orders (id, total) VALUES (1, 99.90);",
    b"INSERT INTO users (id, email, phone) VALUES (2, 'bob***', NULL), (3, 'car***', '9876');",
    b"-- Dump completed",
]


class BrokenPipeOutput(io.BytesIO):
    def write(self, data):
        raise BrokenPipeError(32, "Broken pipe")


class ExitedProcess:
    exitcode = -9

    def is_alive(self):
        return False


def get_test_dict_path(dict_name: str) -> str:
    return os.path.join(TESTS_DIR, "input_dict", dict_name)


def make_context(dict_name: str, *cli_params: str) -> Context:
    options = build_run_options([f"--config={get_test_dict_path(dict_name)}", "--cost=4", *cli_params])
    ctx = Context(options)
    ctx.read_rules()
    return ctx


class LineReaderUnitTest(unittest.TestCase):
    def test_lines(self):
        reader = LineReader(io.BytesIO(b"first\nsecond\r\n\nlast"))
        self.assertEqual(list(reader), ["first", "second\r", "", "last"])
        self.assertEqual(reader.lines_read, 4)

    def test_empty_stream(self):
        self.assertEqual(list(LineReader(io.BytesIO(b""))), [])

    def test_invalid_utf8_survives(self):
        line = next(iter(LineReader(io.BytesIO(b"caf\xe9\n"))))
        self.assertEqual(line.encode("utf-8", errors="surrogateescape"), b"caf\xe9")

    def test_max_line_size(self):
        reader = LineReader(io.BytesIO(b"12345\n123456\n"), max_line_size=5)
        self.assertEqual(reader.readline(), "12345")
        with self.assertRaises(LineTooLongError) as ctx:
            reader.readline()
        self.assertEqual(ctx.exception.line_number, 2)

    def test_max_line_size_without_trailing_newline(self):
        self.assertEqual(list(LineReader(io.BytesIO(b"12345"), max_line_size=5)), ["12345"])
        with self.assertRaises(LineTooLongError):
            list(LineReader(io.BytesIO(b"123456"), max_line_size=5))


class SequentialMaskModeUnitTest(unittest.IsolatedAsyncioTestCase):
    async def test_mask(self):
        output = io.BytesIO()
        mode = MaskMode(
            make_context("users_rules.yml"),
            input_stream=io.BytesIO(b"\n".join(DUMP_LINES) + b"\n"),
            output_stream=output,
        )
        stats = await mode.run()

        self.assertEqual(output.getvalue(), b"\n".join(MASKED_LINES) + b"\n")
        self.assertEqual(stats.lines_read, 5)
        self.assertEqual(stats.lines_written, 5)
        self.assertEqual(stats.candidates, 3)
        self.assertEqual(stats.masked_statements, 2)
        self.assertEqual(stats.masked_cells, 5)

    async def test_dump_file(self):
        with open(os.path.join(TESTS_DIR, "sql", "dump.sql"), "rb") as dump_file:
            source_lines = dump_file.read().split(b"\n")
            dump_file.seek(0)

            output = io.BytesIO()
            stats = await MaskMode(make_context("users_rules.yml"), input_stream=dump_file, output_stream=output).run()

        masked_lines = output.getvalue().split(b"\n")

        # the empty line is dropped, everything else keeps its place
        self.assertEqual(len(masked_lines), len(source_lines) - 1)
        self.assertEqual(masked_lines[:4], source_lines[:4])
        self.assertEqual(
            masked_lines[4],
            b"INSERT INTO users (id, email, phone) VALUES (1, 'ali***', '1234'), (2, 'bob***', NULL);",
        )
        self.assertEqual(masked_lines[5], source_lines[5])
        self.assertEqual(masked_lines[6], b"INSERT INTO users (id, email, phone) VALUES (3, 'car***', '9876');")
        self.assertEqual(masked_lines[7], source_lines[8])
        self.assertEqual(stats.lines_read, 9)
        self.assertEqual(stats.lines_written, 8)

    async def test_pass_through_is_byte_identical(self):
        source = b"-- caf\xe9\r\nINSERT INTO orders (id, note) VALUES (1, 'caf\xe9');\r\nSET @x = 1;\n"
        output = io.BytesIO()
        await MaskMode(make_context("users_rules.yml"), input_stream=io.BytesIO(source), output_stream=output).run()
        self.assertEqual(output.getvalue(), source)

    async def test_line_too_long_is_fatal(self):
        output = io.BytesIO()
        mode = MaskMode(
            make_context("users_rules.yml", "--max-line-size=30"),
            input_stream=io.BytesIO(b"-- short\n" + b"INSERT INTO users (id, email) VALUES (1, 'alice@example.com');\n"),
            output_stream=output,
        )
        with self.assertRaises(LineTooLongError):
            await mode.run()
        self.assertEqual(output.getvalue(), b"-- short\n")


class ParallelMaskModeUnitTest(unittest.IsolatedAsyncioTestCase):
    async def test_mask(self):
        source_lines = DUMP_LINES * 20
        output = io.BytesIO()
        mode = MaskMode(
            make_context("users_rules.yml", "--processing-mode=parallel", "--processes=2", "--queue-size=4"),
            input_stream=io.BytesIO(b"\n".join(source_lines) + b"\n\n"),
            output_stream=output,
        )
        stats = await mode.run()

        # order is not guaranteed, the multiset of lines is
        masked_lines = output.getvalue().split(b"\n")
        self.assertEqual(masked_lines[-1], b"")
        self.assertEqual(sorted(masked_lines[:-1]), sorted(MASKED_LINES * 20))
        self.assertEqual(stats.lines_read, 101)
        self.assertEqual(stats.lines_written, 100)
        self.assertEqual(stats.masked_statements, 40)

    async def test_worker_failure_is_fatal(self):
        output = io.BytesIO()
        mode = MaskMode(
            make_context("undefined_helper.yml", "--processing-mode=parallel", "--processes=2"),
            input_stream=io.BytesIO(b"\n".join(DUMP_LINES) + b"\n"),
            output_stream=output,
        )
        with self.assertRaises(WorkerError):
            await mode.run()
        self.assertNotIn(b"alice@example.com", output.getvalue())

    async def test_output_error_stops_workers(self):
        mode = MaskMode(
            make_context("users_rules.yml", "--processing-mode=parallel", "--processes=2", "--queue-size=2"),
            input_stream=io.BytesIO(b"\n".join(DUMP_LINES * 200) + b"\n"),
            output_stream=BrokenPipeOutput(),
        )
        with self.assertRaises(BrokenPipeError):
            await asyncio.wait_for(mode.run(), timeout=60)

    async def test_exited_worker_is_fatal(self):
        mode = MaskMode(
            make_context("users_rules.yml", "--processing-mode=parallel", "--processes=2"),
            input_stream=io.BytesIO(b""),
            output_stream=io.BytesIO(),
        )
        with self.assertRaises(WorkerError) as ctx:
            await asyncio.wait_for(mode._collect_results(create_queue(1), {"1": ExitedProcess()}), timeout=60)
        self.assertIn("Process [1] exited unexpectedly, exit code: -9", str(ctx.exception))
