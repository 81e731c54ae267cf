"""Token counting and source file discovery"""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Union

import tiktoken

from .errors import CandidateListError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metrics:
    """Line and token counts for one piece of content"""
    line_count: int
    token_count: int

    @property
    def ratio(self) -> float:
        """Tokens per line"""
        return self.token_count / self.line_count if self.line_count else 0.0


def count_lines(content: str) -> int:
    """Lines separated by "\\n" only; a trailing newline does not start a new line"""
    if not content:
        return 0
    pieces = content.split("\n")
    if pieces[-1] == "":
        pieces.pop()
    return len(pieces)


class Scanner:
    """Measures content with a fixed tiktoken encoding"""

    def __init__(self, encoding: str = "o200k_base"):
        self.encoding_name = encoding
        self._encoder = tiktoken.get_encoding(encoding)

    def measure(self, content: Union[str, bytes]) -> Metrics:
        """
        Count lines and tokens

        Never fails: undecodable bytes are replaced before encoding.
        """
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")
        if not content:
            return Metrics(line_count=0, token_count=0)
        tokens = self._encoder.encode(content, disallowed_special=())
        return Metrics(line_count=count_lines(content), token_count=len(tokens))

    def __repr__(self) -> str:
        return f"Scanner(encoding={self.encoding_name!r})"


def discover(
    root: Union[str, Path],
    extensions: Iterable[str] = (".rs",),
    exclude_dirs: Iterable[str] = ("target", ".git"),
) -> List[str]:
    """
    Find candidate source files under root

    Args:
        root: Directory to walk
        extensions: File suffixes to include
        exclude_dirs: Directory names pruned from the walk

    Returns:
        Sorted list of file paths
    """
    root = Path(root)
    if not root.is_dir():
        raise CandidateListError(f"Source directory not found: {root}")

    suffixes = tuple(extensions)
    excluded = set(exclude_dirs)
    found = []

    def _raise(err: OSError):
        raise CandidateListError(f"Cannot list {err.filename}: {err.strerror}") from err

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        for name in filenames:
            if name.endswith(suffixes):
                found.append(str(Path(dirpath) / name))

    logger.info(f"Discovered {len(found)} files under {root}")
    return sorted(found)
