"""In-memory representation of one proposed rewrite"""
import difflib
from dataclasses import dataclass
from typing import Tuple

from .metrics import pct
from .scanner import Metrics, Scanner


@dataclass(frozen=True)
class ChangeSet:
    path: str
    original_content: bytes
    proposed_content: bytes
    descriptions: Tuple[str, ...]
    before_metrics: Metrics
    after_metrics: Metrics

    @classmethod
    def build(
        cls,
        scanner: Scanner,
        path: str,
        original_content: bytes,
        proposed_content: bytes,
        descriptions=(),
    ) -> "ChangeSet":
        """Create a change set, measuring both sides with the same scanner"""
        return cls(
            path=path,
            original_content=original_content,
            proposed_content=proposed_content,
            descriptions=tuple(descriptions),
            before_metrics=scanner.measure(original_content),
            after_metrics=scanner.measure(proposed_content),
        )

    @property
    def is_identical(self) -> bool:
        return self.original_content == self.proposed_content

    @property
    def tokens_saved(self) -> int:
        return self.before_metrics.token_count - self.after_metrics.token_count

    @property
    def percent_saved(self) -> float:
        return pct(self.tokens_saved, self.before_metrics.token_count)

    def diff(self, context: int = 3) -> str:
        """Unified diff from original to proposed content"""
        before = self.original_content.decode("utf-8", errors="replace").splitlines(keepends=True)
        after = self.proposed_content.decode("utf-8", errors="replace").splitlines(keepends=True)
        lines = difflib.unified_diff(
            before, after,
            fromfile=f"a/{self.path}", tofile=f"b/{self.path}",
            n=context,
        )
        return "".join(line if line.endswith("\n") else line + "\n" for line in lines)
