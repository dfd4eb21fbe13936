"""
Mealplan - Prompt Log.

Writes every model exchange of a session to its own markdown file so a run
can be replayed by hand: prompt_logs/<session>/<nn>-<stage>.md.

Follows MEALPLAN_LOG_PROMPTS unless turned on or off explicitly (the CLI's
--log-prompts flag does this).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from mealplan.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class PromptExchange:
    """One prompt sent to the model and what came back."""

    node: str
    model: str
    prompt: str
    response: str | None = None
    error: str | None = None
    temperature: float | None = None
    elapsed: float | None = None  # seconds
    at: datetime = field(default_factory=datetime.now)

    @property
    def outcome(self) -> str:
        if self.error:
            return "failed"
        return "ok" if self.response else "empty"

    def to_markdown(self, number: int) -> str:
        rows = [
            ("Time", self.at.isoformat(timespec="seconds")),
            ("Model", self.model),
            ("Outcome", self.outcome),
            ("Prompt", f"{len(self.prompt)} chars"),
        ]
        if self.temperature is not None:
            rows.append(("Temperature", f"{self.temperature:g}"))
        if self.elapsed is not None:
            rows.append(("Elapsed", f"{self.elapsed:.2f}s"))

        lines = [f"# {self.node} (call {number})", "", "| | |", "|---|---|"]
        lines += [f"| {label} | {value} |" for label, value in rows]
        lines += ["", "## Prompt", "", "````text", self.prompt, "````", "", "## Response", ""]
        if self.error:
            lines.append(f"> Failed: {self.error}")
        elif self.response:
            lines += ["````text", self.response, "````"]
        else:
            lines.append("_No text returned._")
        return "\n".join(lines) + "\n"


class PromptLog:
    """Numbered exchange files grouped under one directory per session."""

    def __init__(self, root: Path | str = "prompt_logs", enabled: bool | None = None):
        self.root = Path(root)
        self._enabled = enabled
        self._session: Path | None = None
        self._count = 0

    @property
    def enabled(self) -> bool:
        if self._enabled is None:
            return get_settings().mealplan_log_prompts
        return self._enabled

    def enable(self, enabled: bool = True) -> None:
        self._enabled = enabled

    @property
    def session_dir(self) -> Path | None:
        """Directory of the current session, created on first use; None while disabled."""
        if not self.enabled:
            return None
        if self._session is None:
            self._session = self.root / datetime.now().strftime("%Y%m%d-%H%M%S")
            self._session.mkdir(parents=True, exist_ok=True)
            logger.info(f"Prompt log: writing to {self._session}")
        return self._session

    def record(self, exchange: PromptExchange) -> Path | None:
        """Write one exchange; returns its file, or None while disabled."""
        session = self.session_dir
        if session is None:
            return None
        self._count += 1
        path = session / f"{self._count:02d}-{exchange.node}.md"
        path.write_text(exchange.to_markdown(self._count), encoding="utf-8")
        return path

    def new_session(self) -> None:
        self._session = None
        self._count = 0


prompt_log = PromptLog()
