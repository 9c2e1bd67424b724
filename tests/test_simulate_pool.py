import itertools
import json

import numpy as np
import pytest

from config.config_loader import build_config
from logger.logger import JSONLogger
from search.ruleset_generator import generate_machines
from search.simulate_pool import (
    evaluate_space,
    halted_flags,
    remaining_budgets,
    run_all,
    run_search,
    run_space,
    summarize,
)
from simulator.engine import run
from simulator.machines import no_transition_machine, three_state_busy_beaver

MAX_STEPS = 20


@pytest.fixture
def machines():
    # States sort as ("H", "q"); the option list is
    # [None, 0LH, 0Lq, 0RH, 0Rq, 1LH, 1Lq, 1RH, 1Rq] and index = 9 * cell(q,0) + cell(q,1).
    return generate_machines({"q", "H"}, {0, 1}, 0, "q", {"H"})


def test_run_all_preserves_order(machines):
    expected = [run(m, MAX_STEPS) for m in machines]
    assert run_all(machines, MAX_STEPS) == expected


def test_run_all_with_workers_matches_sequential(machines):
    sequential = run_all(machines, MAX_STEPS)
    parallel = run_all(list(machines), MAX_STEPS, num_workers=2)
    assert parallel == sequential


def test_run_all_accepts_plain_iterables():
    results = run_all(iter([three_state_busy_beaver(), no_transition_machine()]), 100)
    assert [r.remaining for r in results] == [87, 100]


@pytest.mark.parametrize("num_workers, chunk_size", [(1, 81), (1, 7), (2, 10), (3, 1)])
def test_run_space_reassembles_enumeration_order(machines, num_workers, chunk_size):
    expected = [run(m, MAX_STEPS) for m in machines]
    results = run_space(machines, MAX_STEPS, num_workers=num_workers, chunk_size=chunk_size)
    assert results == expected


def test_outcome_classes_of_the_one_state_space(machines):
    results = run_space(machines, MAX_STEPS, chunk_size=16)

    # (q, 0) undefined: stuck on the first read.
    assert all(r.stuck and r.remaining == MAX_STEPS for r in results[0:9])
    # (q, 0) -> H: halts after one step.
    assert all(r.halted and r.steps == 1 for r in results[9:18])
    # (q, 0) -> q: walks onto fresh blank cells forever.
    assert all(r.inconclusive and r.remaining == 0 for r in results[18:27])

    summary = summarize(results, MAX_STEPS)
    assert summary["machines"] == 81
    assert summary["stuck"] == 9
    assert summary["halted"] == 36
    assert summary["inconclusive"] == 36
    assert summary["failed"] == 0
    assert summary["longest_halting_run"] == 1
    assert summary["longest_halting_index"] == 9
    assert summary["best_score"] == 1
    # First halting machine that writes a 1: (q, 0) -> 1LH.
    assert summary["best_score_index"] == 5 * 9


def test_one_failing_run_does_not_affect_the_others():
    results = run_all([three_state_busy_beaver(), None, no_transition_machine()], 100)
    assert results[0].remaining == 87
    assert results[1] is None
    assert results[2].remaining == 100

    assert remaining_budgets(results).tolist() == [87, -1, 100]
    assert halted_flags(results).tolist() == [True, False, False]
    assert summarize(results, 100)["failed"] == 1


def test_result_arrays(machines):
    results = run_all(machines, MAX_STEPS)
    budgets = remaining_budgets(results)
    flags = halted_flags(results)
    assert budgets.dtype == np.int64
    assert budgets.shape == (81,)
    assert flags.sum() == 36
    assert set(budgets[flags].tolist()) == {MAX_STEPS - 1}


def test_results_are_logged(machines, tmp_path):
    logger = JSONLogger(str(tmp_path), "test_")
    run_all(machines, MAX_STEPS, logger=logger, log_frequency=10)

    with open(logger.current_log, encoding="utf-8") as f:
        entries = [json.loads(line) for line in f]
    assert [e["index"] for e in entries] == list(range(81))
    assert entries[9]["halted"] is True
    assert entries[9]["machine_id"] == "TM_000009"

    halting = (tmp_path / f"halting_{logger.today}.jsonl").read_text().splitlines()
    non_halting = (tmp_path / f"non_halting_{logger.today}.jsonl").read_text().splitlines()
    assert len(halting) == 36
    assert len(non_halting) == 45


def test_run_search_returns_budgets_and_writes_summary(machines, tmp_path):
    config = build_config({
        "max_steps": MAX_STEPS,
        "chunk_size": 20,
        "show_progress": False,
        "save_results": True,
        "output_directory": str(tmp_path),
    })
    budgets = run_search(machines, config)
    assert budgets.tolist() == remaining_budgets(run_all(machines, MAX_STEPS)).tolist()

    summaries = list(tmp_path.glob("summary_*.jsonl"))
    assert len(summaries) == 1
    summary = json.loads(summaries[0].read_text())
    assert summary["halted"] == 36


def test_run_search_on_the_compiled_kernel(machines):
    config = build_config({"max_steps": MAX_STEPS, "use_accelerated": True, "show_progress": False})
    budgets = run_search(machines, config)
    assert budgets.tolist() == remaining_budgets(run_all(machines, MAX_STEPS)).tolist()


class TooBigToMeasure(list):
    def __len__(self):
        raise OverflowError("cannot fit 'int' into an index-sized integer")


def test_run_all_without_a_measurable_length():
    results = run_all(TooBigToMeasure([three_state_busy_beaver(), no_transition_machine()]), 100)
    assert [r.remaining for r in results] == [87, 100]


def test_huge_spaces_can_be_streamed():
    huge = generate_machines(range(6), range(3), 0, 0, {5})
    with pytest.raises(OverflowError):
        len(huge)
    results = run_all(itertools.islice(huge, 3), 0)
    assert [r.remaining for r in results] == [0, 0, 0]


def test_run_space_does_not_materialize_its_chunks(machines, monkeypatch):
    events = []
    chunks = machines.space.chunks
    iter_range = machines.iter_range

    def tracking_chunks(chunk_size):
        for bounds in chunks(chunk_size):
            events.append(("chunk", bounds[0]))
            yield bounds

    def tracking_iter_range(start, stop):
        events.append(("run", start))
        return iter_range(start, stop)

    monkeypatch.setattr(machines.space, "chunks", tracking_chunks)
    monkeypatch.setattr(machines, "iter_range", tracking_iter_range)
    results = run_space(machines, MAX_STEPS, chunk_size=10)

    assert len(results) == 81
    assert events[:4] == [("chunk", 0), ("run", 0), ("chunk", 10), ("run", 10)]
    assert events.count(("chunk", 80)) == 1


@pytest.mark.parametrize("bad, error", [(-1, ValueError), (2.5, TypeError)])
def test_bad_budgets_rejected_before_running(machines, bad, error):
    with pytest.raises(error):
        run_all(machines, bad)
    with pytest.raises(error):
        run_space(machines, bad)
    with pytest.raises(error):
        evaluate_space(machines, bad)


def test_numpy_budget_accepted(machines):
    assert run_all(machines, np.int64(MAX_STEPS)) == run_all(machines, MAX_STEPS)


def test_run_space_rejects_empty_chunks(machines):
    with pytest.raises(ValueError):
        run_space(machines, MAX_STEPS, chunk_size=0)
