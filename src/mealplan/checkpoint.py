"""
Mealplan - Checkpoints.

Runs are compiled with LangGraph's MemorySaver and use their run_id as the
thread_id, so the graph writes a checkpoint after every completed stage.
PipelineCheckpoints shares one saver between runs and reads a run's state
back through the graph that produced it.
"""

import logging
from typing import Any

from langgraph.checkpoint.memory import MemorySaver

logger = logging.getLogger(__name__)


def run_config(run_id: str) -> dict:
    """LangGraph config that addresses one run's checkpoints."""
    return {"configurable": {"thread_id": run_id}}


class PipelineCheckpoints:
    """
    Per-run checkpoints backed by a shared MemorySaver.

    Only stage checkpoints are exposed: LangGraph's input checkpoint and the
    one holding the initial state are skipped, so a run that completed three
    stages has a history of three snapshots.
    """

    def __init__(self, saver: MemorySaver | None = None):
        self.saver = saver or MemorySaver()
        self._graphs: dict[str, Any] = {}

    def track(self, run_id: str, app) -> dict:
        """
        Register the compiled graph for a run and return the run's config.

        A run_id that is already known starts over with an empty history.
        """
        if run_id in self._graphs:
            logger.warning(f"Checkpoint: run {run_id} restarted, dropping its history")
            self.saver.delete_thread(run_id)
        self._graphs[run_id] = app
        return run_config(run_id)

    def get(self, run_id: str) -> dict[str, Any] | None:
        """Latest state of a run, or None for an unknown run."""
        app = self._graphs.get(run_id)
        if app is None:
            return None
        snapshot = app.get_state(run_config(run_id))
        return dict(snapshot.values) if snapshot.values else None

    def history(self, run_id: str) -> list[dict[str, Any]]:
        """State after each completed stage, oldest first."""
        app = self._graphs.get(run_id)
        if app is None:
            return []
        snapshots = [
            s for s in app.get_state_history(run_config(run_id))
            if (s.metadata or {}).get("step", -1) > 0
        ]
        # get_state_history lists newest first
        return [dict(s.values) for s in reversed(snapshots)]

    def run_ids(self) -> list[str]:
        return list(self._graphs)

    def clear(self, run_id: str | None = None) -> None:
        """Forget one run, or every run when run_id is None."""
        for known in [run_id] if run_id is not None else list(self._graphs):
            if self._graphs.pop(known, None) is not None:
                self.saver.delete_thread(known)


_default_checkpoints: PipelineCheckpoints | None = None


def get_default_checkpoints() -> PipelineCheckpoints:
    """Process-wide checkpoints used when a run is not given its own."""
    global _default_checkpoints
    if _default_checkpoints is None:
        _default_checkpoints = PipelineCheckpoints()
    return _default_checkpoints
