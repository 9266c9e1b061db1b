import asyncio
import os
import queue
import sys
from typing import BinaryIO, Dict, List, Optional, Set

from aioprocessing import AioProcess, AioQueue

from dump_anon.common.constants import QUEUE_POLL_TIMEOUT
from dump_anon.common.dto import MaskStats
from dump_anon.common.enums import ProcessingMode
from dump_anon.common.errors import WorkerError
from dump_anon.common.multiprocessing_utils import WorkerFailed, WorkerFinished, create_queue, start_worker
from dump_anon.common.utils import LineReader, encode_line
from dump_anon.context import Context
from dump_anon.masking.statement import StatementMasker


class MaskMode:
    """
    Reads the dump line by line and writes masked lines.

    Sequential mode keeps the input order. Parallel mode spreads lines over worker processes
    and writes results as they arrive, so the order of output lines may differ from the input.
    """

    context: Context
    input_stream: BinaryIO
    output_stream: BinaryIO
    stats: MaskStats

    def __init__(self, context: Context, input_stream: Optional[BinaryIO] = None,
                 output_stream: Optional[BinaryIO] = None):
        self.context = context
        self.input_stream = input_stream if input_stream is not None else sys.stdin.buffer
        self.output_stream = output_stream if output_stream is not None else sys.stdout.buffer
        self.stats = MaskStats()
        self._worker_failures: List[WorkerFailed] = []
        self._aborted = False

    def _write(self, line: Optional[str]):
        if line is None:
            return

        self.output_stream.write(encode_line(line))
        self.stats.lines_written += 1

    def _run_sequential(self):
        options = self.context.options
        masker = StatementMasker(
            self.context.rules,
            dialect=options.dialect,
            hash_cost=options.cost,
            logger=self.context.logger,
        )
        reader = LineReader(self.input_stream, max_line_size=options.max_line_size)

        try:
            for line in reader:
                self._write(masker.mask_line(line))
        finally:
            self.stats.lines_read += reader.lines_read
            self.stats.merge(masker.stats)

    async def _put_task(self, tasks_queue: AioQueue, task: Optional[str]) -> bool:
        # short timeouts keep executor threads free once the run is aborted
        while not self._aborted:
            try:
                await tasks_queue.coro_put(task, timeout=QUEUE_POLL_TIMEOUT)
                return True
            except queue.Full:
                continue
        return False

    async def _feed_lines(self, reader: LineReader, tasks_queue: AioQueue, workers_count: int):
        loop = asyncio.get_running_loop()

        try:
            # stop reading as soon as any worker failed, nothing is written after that anyway
            while not self._worker_failures and not self._aborted:
                line = await loop.run_in_executor(None, reader.readline)
                if line is None:
                    break
                await self._put_task(tasks_queue, line)
        finally:
            for _ in range(workers_count):
                if not await self._put_task(tasks_queue, None):
                    break

    @staticmethod
    def _check_workers(processes: Dict[str, AioProcess], finished: Set[str]):
        for name, process in processes.items():
            if name not in finished and not process.is_alive():
                raise WorkerError(f"Process [{name}] exited unexpectedly, exit code: {process.exitcode}")

    async def _collect_results(self, results_queue: AioQueue, processes: Dict[str, AioProcess]):
        finished: Set[str] = set()
        while len(finished) < len(processes):
            try:
                result = await results_queue.coro_get(timeout=QUEUE_POLL_TIMEOUT)
            except queue.Empty:
                self._check_workers(processes, finished)
                continue

            if isinstance(result, WorkerFinished):
                finished.add(result.name)
                self.stats.merge(result.stats)
                self.context.logger.info(
                    f"<================ Process [{result.name}] finished, elapsed: {result.elapsed} sec. "
                    f"Masked statements: {result.stats.masked_statements}"
                )
            elif isinstance(result, WorkerFailed):
                self._worker_failures.append(result)
            elif not self._worker_failures:
                self._write(result)

    async def _abort_parallel(self, tasks: List[asyncio.Future], tasks_queue: AioQueue,
                              processes: Dict[str, AioProcess]):
        self._aborted = True
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        # workers may be blocked on a full results queue, nobody reads it anymore
        for name, process in processes.items():
            if process.is_alive():
                self.context.logger.debug(f"Terminating process [{name}]")
                process.terminate()

        # don't wait at exit for lines nobody is going to read
        tasks_queue.cancel_join_thread()

    async def _run_parallel(self):
        options = self.context.options
        self.context.logger.info(
            f"Number of CPUs: {os.cpu_count()}. Starting {options.processes} worker process(es), "
            f"output order is not guaranteed"
        )

        queue_size = options.processes * options.queue_size
        tasks_queue = create_queue(queue_size)
        results_queue = create_queue(queue_size)

        processes = {}
        for idx in range(options.processes):
            name = str(idx + 1)
            processes[name] = start_worker(name, options, self.context.raw_rules, tasks_queue, results_queue)

        reader = LineReader(self.input_stream, max_line_size=options.max_line_size)
        feeder = asyncio.ensure_future(self._feed_lines(reader, tasks_queue, len(processes)))
        collector = asyncio.ensure_future(self._collect_results(results_queue, processes))
        try:
            # the first error of either side ends the run, the other side is cancelled
            await asyncio.gather(feeder, collector)
        except BaseException:
            await self._abort_parallel([feeder, collector], tasks_queue, processes)
            raise
        finally:
            for process in processes.values():
                await process.coro_join()
            self.stats.lines_read += reader.lines_read

        if self._worker_failures:
            raise WorkerError(
                "; ".join(f"Process [{failure.name}]: {failure.error.strip()}" for failure in self._worker_failures)
            )

    async def run(self) -> MaskStats:
        mode = self.context.options.processing_mode
        self.context.logger.info(f"-------------> Started masking in {mode.value} mode")

        try:
            if mode == ProcessingMode.PARALLEL:
                await self._run_parallel()
            else:
                self._run_sequential()
            self.context.logger.info("<------------- Finished masking")
        except Exception:
            self.context.logger.error("<------------- Masking failed")
            raise
        finally:
            self.output_stream.flush()

        return self.stats
