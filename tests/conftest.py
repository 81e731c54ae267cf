"""Pytest configuration and fixtures for tokenslim tests"""
import pytest
from pathlib import Path
from typing import Callable, Dict, List, Optional

from tokenslim.logbook import Logbook
from tokenslim.metrics import MetricsEngine
from tokenslim.oracle import OracleError, OracleErrorKind, RewriteResult
from tokenslim.prompt import Decision
from tokenslim.scanner import Metrics, count_lines
from tokenslim.validator import ValidationOutcome


class WordScanner:
    """Counts whitespace-separated words as tokens (no BPE download needed)"""

    encoding_name = "words"

    def measure(self, content) -> Metrics:
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")
        return Metrics(line_count=count_lines(content), token_count=len(content.split()))


class StubOracle:
    """Returns scripted proposals keyed by the exact content it is sent"""

    def __init__(self, responses: Optional[Dict[bytes, object]] = None, default=None):
        self.responses = responses or {}
        self.default = default
        self.calls: List[bytes] = []

    def propose(self, content: bytes, model: str):
        self.calls.append(content)
        response = self.responses.get(content, self.default)
        if response is None:
            return OracleError(OracleErrorKind.UNREACHABLE, "no scripted response")
        if callable(response):
            return response(content, model)
        return response


class StubValidator:
    """Returns scripted outcomes and remembers the file contents it saw"""

    def __init__(self, outcomes: Optional[List[ValidationOutcome]] = None, watch: Optional[Path] = None):
        self.outcomes = list(outcomes or [])
        self.watch = watch
        self.calls = 0
        self.seen: List[bytes] = []

    def validate(self) -> ValidationOutcome:
        self.calls += 1
        if self.watch is not None:
            self.seen.append(self.watch.read_bytes())
        if self.outcomes:
            return self.outcomes.pop(0)
        return ValidationOutcome(passed=True)


class ScriptedPrompt:
    """Answers confirm() from a list of decisions"""

    def __init__(self, answers: List[Decision]):
        self.answers = list(answers)
        self.confirm_calls = 0
        self.diffs_shown = 0

    def confirm(self, change_set) -> Decision:
        self.confirm_calls += 1
        return self.answers.pop(0)

    def show_diff(self, change_set) -> None:
        self.diffs_shown += 1


def make_content(lines: int, words_per_line: int, word: str = "tok") -> bytes:
    """Content with an exact line and word count"""
    return "".join(" ".join([word] * words_per_line) + "\n" for _ in range(lines)).encode()


def proposal(content: bytes, *descriptions: str) -> RewriteResult:
    return RewriteResult(proposed_content=content, descriptions=tuple(descriptions))


@pytest.fixture
def scanner():
    return WordScanner()


@pytest.fixture
def engine(scanner):
    return MetricsEngine(scanner)


@pytest.fixture
def logbook():
    return Logbook()


@pytest.fixture
def project(tmp_path) -> Callable[..., Path]:
    """Factory writing files into a temporary src/ tree"""
    src = tmp_path / "src"
    src.mkdir()

    def _write(name: str, content: bytes) -> Path:
        path = src / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    _write.root = tmp_path
    _write.src = src
    return _write
