"""Source and compiled unit value types.

Both are frozen: an edit replaces the SourceUnit wholesale, and a
CompiledUnit lives only for the duration of one pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class SourceUnit:
    """The editable text of one example's component definition."""

    text: str
    baseline_text: str

    @classmethod
    def load(cls, text: str) -> SourceUnit:
        """Create a unit whose edited text starts out equal to the baseline."""
        return cls(text=text, baseline_text=text)

    @property
    def is_modified(self) -> bool:
        return self.text != self.baseline_text

    def edit(self, text: str) -> SourceUnit:
        return replace(self, text=text)

    def reset(self) -> SourceUnit:
        return replace(self, text=self.baseline_text)


@dataclass(frozen=True)
class CompiledUnit:
    """Output of one rewrite + markup pass, ready for the sandbox."""

    executable_text: str
    default_binding: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)
