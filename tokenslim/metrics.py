"""Per-file and project-wide token statistics"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple

from .errors import CandidateListError
from .scanner import Metrics, Scanner, discover

logger = logging.getLogger(__name__)

GRADES = [
    (5.0, ("A%2B", "brightgreen", "A+")),
    (7.0, ("A", "green", "A")),
    (9.0, ("B", "blue", "B")),
    (12.0, ("C", "orange", "C")),
]
LOWEST_GRADE = ("D", "red", "D")


@dataclass(frozen=True)
class RankedFile:
    path: str
    metrics: Metrics
    weight_fraction: float


@dataclass(frozen=True)
class ProjectStats:
    files: List[RankedFile]
    total_lines: int
    total_tokens: int

    @property
    def ratio(self) -> float:
        return self.total_tokens / self.total_lines if self.total_lines else 0.0

    def top(self, n: int) -> List[RankedFile]:
        return self.files[:max(0, n)]


def pct(part: float, whole: float) -> float:
    """Percentage of part in whole, 0.0 for an empty whole"""
    return part / whole * 100.0 if whole else 0.0


def efficiency_grade(ratio: float) -> Tuple[str, str, str]:
    """
    Grade a tokens-per-line ratio

    Returns:
        (badge label, badge color, grade)
    """
    for ceiling, grade in GRADES:
        if ratio <= ceiling:
            return grade
    return LOWEST_GRADE


class MetricsEngine:
    """Ranks files by token weight"""

    def __init__(self, scanner: Scanner):
        self.scanner = scanner

    def measure_file(self, path: str) -> Metrics:
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            raise CandidateListError(f"Cannot read {path}: {e}") from e
        return self.scanner.measure(content)

    def rank(self, files: Iterable[str]) -> List[RankedFile]:
        """
        Measure and order files

        Args:
            files: Paths of readable source files

        Returns:
            Files sorted by token count descending, ties by path
        """
        measured = [(path, self.measure_file(path)) for path in set(files)]
        total = sum(m.token_count for _, m in measured)

        ranked = [
            RankedFile(path=path, metrics=m, weight_fraction=m.token_count / total if total else 0.0)
            for path, m in measured
        ]
        ranked.sort(key=lambda f: (-f.metrics.token_count, f.path))
        return ranked

    def scan(
        self,
        root,
        extensions: Iterable[str] = (".rs",),
        exclude_dirs: Iterable[str] = ("target", ".git"),
    ) -> ProjectStats:
        """Discover and rank every candidate file under root"""
        ranked = self.rank(discover(root, extensions, exclude_dirs))
        stats = ProjectStats(
            files=ranked,
            total_lines=sum(f.metrics.line_count for f in ranked),
            total_tokens=sum(f.metrics.token_count for f in ranked),
        )
        logger.info(f"Scanned {len(ranked)} files, {stats.total_tokens} tokens total")
        return stats
