"""LiveRecompiler — the editing session state machine.

States: *baseline* (the example's own component, no diagnostic) and
*edited* (the last good component, optionally with a diagnostic from the
latest failed attempt). Every transition produces a RenderState.

INVARIANT: ``RenderState.component`` is always a value that compiled and
executed successfully at some point, so the display never goes blank.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from flowlab.domain.errors import BaselineError
from flowlab.domain.execution import ExecutionError, ExecutionResult
from flowlab.domain.source import SourceUnit

logger = logging.getLogger(__name__)


class Pipeline(Protocol):
    def run(self, text: str) -> ExecutionResult: ...


@dataclass(frozen=True)
class RenderState:
    """What the display surface shows."""

    component: Callable[..., Any]
    diagnostic: str | None = None
    error: ExecutionError | None = None

    @property
    def has_error(self) -> bool:
        return self.diagnostic is not None


type Listener = Callable[[RenderState], None]


class LiveRecompiler:
    """Memoized recompilation of edited text with fallback and reset."""

    def __init__(
        self,
        baseline_text: str,
        baseline_component: Callable[..., Any],
        pipeline: Pipeline,
    ) -> None:
        self.source = SourceUnit.load(baseline_text)
        self.baseline_component = baseline_component
        self.pipeline = pipeline
        self.recompute_count = 0
        self._state = RenderState(component=baseline_component)
        self._last_good: tuple[str, Callable[..., Any]] | None = None
        self._memo_key: tuple[str, str] | None = None
        self._listeners: list[Listener] = []

    @classmethod
    def from_source(cls, text: str, pipeline: Pipeline) -> LiveRecompiler:
        """Compile the baseline once.

        Raises:
            BaselineError: the baseline itself fails; there is nothing to
                fall back to.
        """
        result = pipeline.run(text)
        if result.error is not None:
            raise BaselineError(f"baseline source failed: {result.error.message}")
        if result.component is None:
            raise BaselineError("baseline source failed: no component produced")
        return cls(text, result.component, pipeline)

    @property
    def baseline_text(self) -> str:
        return self.source.baseline_text

    @property
    def text(self) -> str:
        return self.source.text

    @property
    def state(self) -> RenderState:
        return self._state

    @property
    def is_baseline(self) -> bool:
        return not self.source.is_modified and self._state.component is self.baseline_component

    def add_listener(self, callback: Listener) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def on_text_change(self, text: str) -> RenderState:
        """Feed the full edited text; return the resulting state."""
        self.source = self.source.edit(text)
        key = (text, self.baseline_text)
        if key == self._memo_key:
            return self._state
        self._memo_key = key

        if text == self.baseline_text:
            return self._publish(RenderState(component=self.baseline_component))

        if self._last_good is not None and text == self._last_good[0]:
            return self._publish(RenderState(component=self._last_good[1]))

        self.recompute_count += 1
        result = self.pipeline.run(text)
        if result.component is not None:
            self._last_good = (text, result.component)
            return self._publish(RenderState(component=result.component))

        error = result.error
        message = error.message if error is not None else "produced no component"
        logger.debug("Recompile failed, keeping last good component: %s", message)
        return self._publish(RenderState(component=self._state.component, diagnostic=message, error=error))

    def reset(self) -> RenderState:
        """Restore the baseline text and component from any state."""
        self.source = self.source.reset()
        self._last_good = None
        self._memo_key = None
        return self._publish(RenderState(component=self.baseline_component))

    def _publish(self, state: RenderState) -> RenderState:
        if state == self._state:
            return self._state
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.warning("Render listener %r failed", listener, exc_info=True)
        return state
