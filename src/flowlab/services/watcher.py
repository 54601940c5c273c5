"""FileWatcher — the editing-surface adapter for a file on disk.

Change notifications come from watchfiles. The file's directory is watched
(non-recursively) so editors that save by replacing the file are still
seen; only events naming the file itself reach the live session, which
always gets the file's full text.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from watchfiles import Change, watch

from flowlab.services.recompiler import LiveRecompiler, RenderState

logger = logging.getLogger(__name__)

type Changes = set[tuple[Change, str]]


class FileWatcher:
    """Forward every saved version of *path* to a live session."""

    def __init__(
        self,
        path: Path,
        recompiler: LiveRecompiler,
        *,
        interval: float = 0.5,
        debounce_ms: int = 50,
        force_polling: bool = False,
    ) -> None:
        self.path = path
        self.recompiler = recompiler
        # Seconds between idle wake-ups; each wake-up counts as one poll.
        self.interval = interval
        self.debounce_ms = debounce_ms
        self.force_polling = force_polling
        self._missing_logged = False

    def _is_target(self, _change: Change, changed: str) -> bool:
        return Path(changed).name == self.path.name

    def sync(self) -> RenderState | None:
        """Feed the file's current text; None when it cannot be read.

        Unreadable saves (missing file, bad encoding, I/O errors) are
        logged and skipped; the session keeps showing what it had.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            if not self._missing_logged:
                logger.warning("Watched file %s is missing", self.path)
                self._missing_logged = True
            return None
        except UnicodeDecodeError as exc:
            logger.warning("Skipping save of %s: not valid UTF-8 (%s)", self.path, exc.reason)
            return None
        except OSError as exc:
            logger.warning("Skipping save of %s: %s", self.path, exc)
            return None
        self._missing_logged = False
        return self.recompiler.on_text_change(text)

    def handle_changes(self, changes: Changes) -> RenderState | None:
        """React to one batch of changes; other files in the directory are ignored."""
        if not any(self._is_target(change, changed) for change, changed in changes):
            return None
        logger.debug("Change detected in %s", self.path)
        return self.sync()

    def run(self, *, max_polls: int | None = None, stop_event: threading.Event | None = None) -> None:
        """Feed the current text, then every change until stopped.

        A poll is one batch of changes or one idle wake-up; *max_polls*
        bounds how many are taken.
        """
        self.sync()
        if max_polls is not None and max_polls <= 0:
            return

        polls = 0
        for changes in watch(
            self.path.resolve().parent,
            watch_filter=self._is_target,
            debounce=self.debounce_ms,
            stop_event=stop_event,
            rust_timeout=max(1, int(self.interval * 1000)),
            yield_on_timeout=True,
            recursive=False,
            force_polling=self.force_polling,
        ):
            if changes:
                self.handle_changes(changes)
            polls += 1
            if max_polls is not None and polls >= max_polls:
                return
