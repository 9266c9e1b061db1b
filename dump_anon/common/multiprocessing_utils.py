import time
from dataclasses import dataclass, field
from typing import Optional

import aioprocessing

from dump_anon.common.dto import MaskStats, RunOptions
from dump_anon.common.utils import exception_helper
from dump_anon.masking.rules import RawRules


@dataclass
class WorkerFinished:
    name: str
    stats: MaskStats = field(default_factory=MaskStats)
    elapsed: float = 0


@dataclass
class WorkerFailed:
    name: str
    error: str


def create_queue(maxsize: int) -> aioprocessing.AioQueue:
    return aioprocessing.AioQueue(maxsize)


def start_worker(name: str, options: RunOptions, raw_rules: RawRules,
                 tasks_queue: aioprocessing.AioQueue, results_queue: aioprocessing.AioQueue) -> aioprocessing.AioProcess:
    process = aioprocessing.AioProcess(
        name=f"worker-{name}",
        target=mask_worker,
        args=(name, options, raw_rules, tasks_queue, results_queue),
    )
    process.start()
    return process


def mask_worker(name: str, options: RunOptions, raw_rules: RawRules,
                tasks_queue: aioprocessing.AioQueue, results_queue: aioprocessing.AioQueue):
    """
    Worker process loop: takes lines from tasks_queue until a None sentinel, puts masked lines into results_queue.
    Every put of a line result is an Optional[str]. The last put is always WorkerFinished.
    After a fatal error the worker reports WorkerFailed once and keeps draining tasks_queue without masking,
    so the producer never blocks on a full queue.
    """
    from dump_anon.context import Context
    from dump_anon.masking.statement import StatementMasker

    start_t = time.time()
    ctx = Context(options)
    ctx.logger.debug(f"================> Process [{name}] started")

    masker: Optional[StatementMasker] = None
    stats = MaskStats()
    try:
        ctx.set_rules(raw_rules)
        masker = StatementMasker(ctx.rules, dialect=options.dialect, hash_cost=options.cost, logger=ctx.logger)
        stats = masker.stats
    except Exception:
        ctx.logger.error(f"<================ Process [{name}]: {exception_helper(show_traceback=options.debug)}")
        results_queue.put(WorkerFailed(name=name, error=exception_helper(show_traceback=False)))

    while True:
        line = tasks_queue.get()
        if line is None:
            break

        if masker is None:
            continue

        try:
            results_queue.put(masker.mask_line(line))
        except Exception:
            ctx.logger.error(f"<================ Process [{name}]: {exception_helper(show_traceback=options.debug)}")
            results_queue.put(WorkerFailed(name=name, error=exception_helper(show_traceback=False)))
            masker = None

    elapsed = round(time.time() - start_t, 2)
    results_queue.put(WorkerFinished(
        name=name,
        stats=stats,
        elapsed=elapsed,
    ))
    ctx.logger.debug(f"<================ Process [{name}] closed, elapsed: {elapsed} sec")
