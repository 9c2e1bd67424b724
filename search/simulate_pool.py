# search/simulate_pool.py

import multiprocessing
from functools import partial

import numpy as np
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from logger.logger import JSONLogger, console_message, result_entry
from search.ruleset_generator import machine_id
from simulator.engine import check_budget, run
from simulator.evaluator import evaluate_batch


def _progress(show_progress):
    return Progress(
        SpinnerColumn(),
        BarColumn(),
        "[progress.percentage]{task.percentage:>3.0f}%",
        TextColumn("{task.completed}/{task.total} Machines"),
        TimeElapsedColumn(),
        disable=not show_progress,
    )


# === Workers ===
def _safe_run(index, machine, max_steps):
    """Run one machine; a failure is returned as data so siblings keep going."""
    try:
        return index, run(machine, max_steps), None
    except Exception as e:
        return index, None, f"{type(e).__name__}: {e}"


def _run_indexed(item, max_steps):
    index, machine = item
    return _safe_run(index, machine, max_steps)


def _run_chunk(bounds, space, max_steps):
    start, stop = bounds
    outcomes = []
    for index, machine in enumerate(space.iter_range(start, stop), start):
        outcomes.append(_safe_run(index, machine, max_steps))
    return start, outcomes


def _record(outcome, results, pending_entries, logger, log_frequency):
    index, result, error = outcome
    if error is not None:
        console_message(f"[WARNING] Failed to simulate {machine_id(index)}: {error}", style="yellow")
    results[index] = result
    if logger is not None and result is not None:
        pending_entries.append(result_entry(index, result, machine_id(index)))
        if len(pending_entries) >= log_frequency:
            logger.log_results(pending_entries)
            pending_entries.clear()


# === Orchestration ===
def run_all(machines, max_steps, num_workers=1, show_progress=False, logger=None, log_frequency=100):
    """
    Run every machine for at most ``max_steps`` and return results in input
    order. A machine whose run raises is reported and left as None.
    """
    max_steps = check_budget(max_steps)
    try:
        total = len(machines)
    except (TypeError, OverflowError):
        # Not sized, or too big for len(); run without a known total.
        total = None

    results = {}
    pending_entries = []
    indexed = enumerate(machines)

    with _progress(show_progress) as progress:
        task = progress.add_task("[cyan]Simulating...", total=total)
        if num_workers <= 1:
            outcomes = (_run_indexed(item, max_steps) for item in indexed)
            for outcome in outcomes:
                _record(outcome, results, pending_entries, logger, log_frequency)
                progress.update(task, advance=1)
        else:
            with multiprocessing.Pool(processes=num_workers) as pool:
                worker = partial(_run_indexed, max_steps=max_steps)
                for outcome in pool.imap(worker, indexed, chunksize=64):
                    _record(outcome, results, pending_entries, logger, log_frequency)
                    progress.update(task, advance=1)

    if logger is not None and pending_entries:
        logger.log_results(pending_entries)
    return [results[index] for index in range(len(results))]


def run_space(space, max_steps, num_workers=1, chunk_size=4096, show_progress=False, logger=None,
              log_frequency=100):
    """
    Run every machine of a MachineSpace. The index space is cut into disjoint
    chunks, each worker rebuilds its machines from their indices, and results
    are put back in enumeration order.
    """
    max_steps = check_budget(max_steps)
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1.")
    chunks = space.space.chunks(chunk_size)
    num_chunks = -(-space.size // chunk_size)
    console_message(f"Running {space.size:,} machines in {num_chunks:,} chunks on {num_workers} worker(s)...")

    results = {}
    pending_entries = []
    worker = partial(_run_chunk, space=space, max_steps=max_steps)

    with _progress(show_progress) as progress:
        task = progress.add_task("[cyan]Simulating...", total=space.size)
        if num_workers <= 1:
            chunk_outcomes = map(worker, chunks)
            pool = None
        else:
            pool = multiprocessing.Pool(processes=num_workers)
            chunk_outcomes = pool.imap_unordered(worker, chunks)
        try:
            for _start, outcomes in chunk_outcomes:
                for outcome in outcomes:
                    _record(outcome, results, pending_entries, logger, log_frequency)
                progress.update(task, advance=len(outcomes))
        finally:
            if pool is not None:
                pool.close()
                pool.join()

    if logger is not None and pending_entries:
        logger.log_results(pending_entries)
    return [results[index] for index in range(space.size)]


def evaluate_space(space, max_steps, chunk_size=4096):
    """Compiled-kernel counterpart of run_space: an (n, 3) int64 array."""
    max_steps = check_budget(max_steps)
    blocks = [
        evaluate_batch(space.iter_range(start, stop), max_steps)
        for start, stop in space.space.chunks(chunk_size)
    ]
    if not blocks:
        return np.zeros((0, 3), dtype=np.int64)
    return np.concatenate(blocks)


# === Result views ===
def remaining_budgets(results):
    """Remaining step budget per machine; -1 marks a failed run."""
    return np.array([-1 if r is None else r.remaining for r in results], dtype=np.int64)


def halted_flags(results):
    return np.array([r is not None and r.halted for r in results], dtype=np.bool_)


def summarize(results, max_steps):
    summary = {
        "machines": len(results),
        "max_steps": max_steps,
        "halted": 0,
        "stuck": 0,
        "inconclusive": 0,
        "failed": 0,
        "longest_halting_run": None,
        "longest_halting_index": None,
        "best_score": None,
        "best_score_index": None,
    }
    for index, result in enumerate(results):
        if result is None:
            summary["failed"] += 1
            continue
        if result.stuck:
            summary["stuck"] += 1
        elif result.inconclusive:
            summary["inconclusive"] += 1
        else:
            summary["halted"] += 1
            if summary["longest_halting_run"] is None or result.steps > summary["longest_halting_run"]:
                summary["longest_halting_run"] = result.steps
                summary["longest_halting_index"] = index
            score = result.machine.tape.nonblank_count()
            if summary["best_score"] is None or score > summary["best_score"]:
                summary["best_score"] = score
                summary["best_score_index"] = index
    return summary


def run_search(space, config):
    """
    Run a whole MachineSpace as configured and return the remaining budget
    per machine, in enumeration order.
    """
    max_steps = config["max_steps"]
    if config["use_accelerated"]:
        budgets = evaluate_space(space, max_steps, config["chunk_size"])[:, 1]
        console_message(f"Evaluated {len(budgets):,} machines on the compiled kernel.")
        return budgets

    logger = None
    if config["save_results"]:
        logger = JSONLogger(config["output_directory"], config["log_file_prefix"])

    results = run_space(
        space,
        max_steps,
        num_workers=config["num_workers"],
        chunk_size=config["chunk_size"],
        show_progress=config["show_progress"],
        logger=logger,
        log_frequency=config["log_frequency"],
    )
    summary = summarize(results, max_steps)
    if logger is not None:
        logger.log_summary(summary)
    console_message(
        f"[SUCCESS] {summary['halted']:,} halted, {summary['stuck']:,} stuck, "
        f"{summary['inconclusive']:,} inconclusive, {summary['failed']:,} failed."
    )
    return remaining_budgets(results)
