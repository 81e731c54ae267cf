"""Batch orchestrator: runs rewrite sessions over the heaviest files, one writer at a time"""
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import closing
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .errors import BatchAborted, CandidateListError, SessionInputError, TokenSlimError, WriteError
from .logbook import Logbook
from .metrics import MetricsEngine, RankedFile
from .oracle import RewriteOracle
from .prompt import AutoAccept, ConsolePrompt
from .session import Applied, Proposal, Rejected, RewriteSession, RolledBack, SessionOutcome, Skipped
from .validator import ProjectValidator

logger = logging.getLogger(__name__)

StartCallback = Callable[[int, int, RankedFile], None]
OutcomeCallback = Callable[[int, int, SessionOutcome], None]


@dataclass
class BatchSummary:
    attempted: int = 0
    applied: int = 0
    rejected: int = 0
    skipped: int = 0
    rolled_back: int = 0
    total_tokens_saved: int = 0
    _frozen: bool = field(default=False, repr=False, compare=False)

    def record(self, outcome: SessionOutcome) -> None:
        if self._frozen:
            raise TokenSlimError("batch summary is frozen")
        self.attempted += 1
        if isinstance(outcome, Applied):
            self.applied += 1
            self.total_tokens_saved += outcome.tokens_saved
        elif isinstance(outcome, Rejected):
            self.rejected += 1
        elif isinstance(outcome, Skipped):
            self.skipped += 1
        elif isinstance(outcome, RolledBack):
            self.rolled_back += 1
        else:
            raise TypeError(f"unknown session outcome: {outcome!r}")

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def consistent(self) -> bool:
        return self.attempted == self.applied + self.rejected + self.skipped + self.rolled_back

    def as_dict(self) -> Dict[str, int]:
        return {
            "attempted": self.attempted,
            "applied": self.applied,
            "rejected": self.rejected,
            "skipped": self.skipped,
            "rolled_back": self.rolled_back,
            "total_tokens_saved": self.total_tokens_saved,
        }


class BatchOrchestrator:
    """Sequences rewrite sessions and folds their outcomes into a BatchSummary"""

    def __init__(
        self,
        engine: MetricsEngine,
        oracle: RewriteOracle,
        candidates: Callable[[], Iterable[str]],
        validator: Optional[ProjectValidator] = None,
        prompt=None,
        logbook: Optional[Logbook] = None,
        require_savings: bool = True,
        prefetch: int = 1,
        on_start: Optional[StartCallback] = None,
        on_outcome: Optional[OutcomeCallback] = None,
    ):
        """
        Initialize orchestrator

        Args:
            engine: Metrics engine used for ranking
            oracle: Rewrite oracle shared by all sessions
            candidates: Callable returning the candidate file paths
            validator: Validation gate used when a batch runs with validate=True
            prompt: Interactive prompt used when auto_accept is False
            logbook: Event log shared by all sessions
            require_savings: Reject proposals that do not lower the token count
            prefetch: Number of oracle calls allowed in flight; commits stay sequential
            on_start: Called before each session with (index, total, ranked file)
            on_outcome: Called after each session with (index, total, outcome)
        """
        if prefetch < 1:
            raise ValueError("prefetch must be at least 1")
        self.engine = engine
        self.oracle = oracle
        self.candidates = candidates
        self.validator = validator
        self.prompt = prompt
        self.logbook = logbook or Logbook()
        self.require_savings = require_savings
        self.prefetch = prefetch
        self.on_start = on_start
        self.on_outcome = on_outcome

    def rank_candidates(self) -> List[RankedFile]:
        try:
            return self.engine.rank(self.candidates())
        except OSError as e:
            raise CandidateListError(f"Cannot obtain candidate files: {e}") from e

    def _session(self, path: str, model: str, auto_accept: bool, validate: bool) -> RewriteSession:
        return RewriteSession(
            path,
            model,
            self.oracle,
            self.engine.scanner,
            validator=self.validator if validate else None,
            prompt=AutoAccept() if auto_accept else (self.prompt or ConsolePrompt()),
            logbook=self.logbook,
            require_savings=self.require_savings,
        )

    def run(self, count: int, model: str, auto_accept: bool = False, validate: bool = False) -> BatchSummary:
        """
        Rewrite the `count` heaviest files

        Args:
            count: Number of files to process (clamped to what exists)
            model: Oracle model identifier
            auto_accept: Accept every successful proposal without prompting
            validate: Run the validator after each write and roll back on failure

        Returns:
            Frozen BatchSummary

        Raises:
            CandidateListError: if the candidate list cannot be obtained
            BatchAborted: if a write or rollback failed
        """
        if count < 1:
            raise ValueError("count must be a positive integer")
        if validate and self.validator is None:
            raise ValueError("validate=True requires a validator")

        selected = self.rank_candidates()[:count]
        logger.info(f"Batch rewriting {len(selected)} files via {model}")

        summary = BatchSummary()
        total = len(selected)
        with closing(self._pipeline(selected, model, auto_accept, validate)) as pipeline:
            for index, ranked, session, proposal in pipeline:
                if self.on_start:
                    self.on_start(index, total, ranked)
                if isinstance(session, Skipped):
                    outcome = session
                    self.logbook.skipped(ranked.path, outcome.reason)
                else:
                    try:
                        outcome = session.run(proposal)
                    except WriteError as e:
                        summary.freeze()
                        self.logbook.batch_aborted(e.path, str(e), **summary.as_dict())
                        logger.error(f"Aborting batch: {e}")
                        raise BatchAborted(e.path, summary, e) from e
                summary.record(outcome)
                if self.on_outcome:
                    self.on_outcome(index, total, outcome)

        summary.freeze()
        self.logbook.batch_completed(**summary.as_dict())
        return summary

    def _open(self, ranked: RankedFile, model: str, auto_accept: bool, validate: bool) -> Union[RewriteSession, Skipped]:
        try:
            return self._session(ranked.path, model, auto_accept, validate)
        except SessionInputError as e:
            logger.warning(str(e))
            return Skipped(ranked.path, str(e))

    def _pipeline(
        self, selected: List[RankedFile], model: str, auto_accept: bool, validate: bool
    ) -> Iterator[Tuple[int, RankedFile, Union[RewriteSession, Skipped], Optional[Proposal]]]:
        """
        Yield (index, ranked file, session, proposal) in rank order

        With prefetch > 1 every session is opened up front and its proposal is
        fetched on a worker thread ahead of the consumer. Otherwise sessions are
        opened one at a time and the proposal is None (the session fetches it).
        A file that could not be opened is yielded as a Skipped outcome.
        """
        if self.prefetch == 1:
            for index, ranked in enumerate(selected, 1):
                yield index, ranked, self._open(ranked, model, auto_accept, validate), None
            return

        opened = [self._open(ranked, model, auto_accept, validate) for ranked in selected]
        executor = ThreadPoolExecutor(max_workers=self.prefetch, thread_name_prefix="tokenslim-propose")
        try:
            futures: List[Optional[Future]] = [
                executor.submit(session.fetch_proposal) if isinstance(session, RewriteSession) else None
                for session in opened
            ]
            for index, (ranked, session, future) in enumerate(zip(selected, opened, futures), 1):
                yield index, ranked, session, future.result() if future is not None else None
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def rewrite_one(self, path: str, model: str, auto_accept: bool = False, validate: bool = False) -> SessionOutcome:
        """
        Single-file mode

        Raises:
            SessionInputError: if the file cannot be read
            WriteError: if a write or rollback failed
        """
        if validate and self.validator is None:
            raise ValueError("validate=True requires a validator")
        session = self._session(path, model, auto_accept, validate)
        return session.run()


def exit_code(outcome: SessionOutcome) -> int:
    """Process exit status for single-file mode"""
    return 1 if isinstance(outcome, (Skipped, Rejected)) else 0
