import json
import os
from datetime import datetime, timezone

from rich.console import Console

console = Console()


def console_message(msg, style=None):
    console.print(f"[{datetime.now():%H:%M:%S}] {msg}", style=style, markup=False, highlight=False)


def result_entry(index, result, machine_id=None):
    """JSON-safe summary of one run result."""
    machine = result.machine
    entry = {
        "index": index,
        "state": repr(machine.state),
        "remaining": result.remaining,
        "steps_taken": result.steps,
        "halted": result.halted,
        "stuck": result.stuck,
        "nonblank": machine.tape.nonblank_count(),
    }
    if machine_id is not None:
        entry["machine_id"] = machine_id
    return entry


class JSONLogger:
    def __init__(self, output_directory="logs/", log_file_prefix="turing_space_"):
        self.output_directory = output_directory
        self.log_file_prefix = log_file_prefix
        os.makedirs(self.output_directory, exist_ok=True)
        self.today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        self.current_log = self._get_log_filename()

    def _get_log_filename(self):
        filename = f"{self.log_file_prefix}{self.today}.jsonl"  # JSON lines format
        return os.path.join(self.output_directory, filename)

    def _log_to_file(self, prefix, entries):
        self.rotate()
        path = os.path.join(self.output_directory, f"{prefix}{self.today}.jsonl")
        with open(path, "a", encoding="utf-8") as f:
            for entry in entries:
                f.write(json.dumps(entry) + "\n")

    def log(self, entry: dict):
        """Log a single entry to the main results log."""
        self.log_batch([entry])

    def log_batch(self, entries: list):
        """Log a batch of entries to the main results log."""
        self.rotate()
        with open(self.current_log, "a", encoding="utf-8") as f:
            for entry in entries:
                f.write(json.dumps(entry) + "\n")

    def rotate(self):
        """Start a new main log file if the UTC date has changed."""
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        if today != self.today:
            self.today = today
            self.current_log = self._get_log_filename()

    def log_results(self, entries: list):
        """Log result entries, splitting halting machines from the rest."""
        self.log_batch(entries)
        halting = [entry for entry in entries if entry["halted"]]
        non_halting = [entry for entry in entries if not entry["halted"]]
        if halting:
            self.log_halting(halting)
        if non_halting:
            self.log_non_halting(non_halting)

    def log_halting(self, entries: list):
        """Log entries for machines that reached a final state."""
        self._log_to_file("halting_", entries)

    def log_non_halting(self, entries: list):
        """Log entries for stuck or inconclusive machines."""
        self._log_to_file("non_halting_", entries)

    def log_summary(self, summary: dict):
        """Log an end-of-search summary."""
        self._log_to_file("summary_", [summary])
