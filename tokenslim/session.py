"""Rewrite session: drives one file through propose, decide, apply, validate, rollback"""
import os
import shutil
import logging
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .changeset import ChangeSet
from .errors import InvalidTransition, SessionInputError, WriteError
from .logbook import Logbook
from .oracle import OracleError, OracleErrorKind, RewriteOracle, RewriteResult
from .prompt import AutoAccept, Decision
from .scanner import Scanner
from .validator import ProjectValidator, ValidationOutcome

logger = logging.getLogger(__name__)


class SessionState(Enum):
    PENDING = "pending"
    PROPOSED = "proposed"
    APPLIED = "applied"
    REJECTED = "rejected"
    SKIPPED = "skipped"
    VALIDATING = "validating"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


TRANSITIONS = {
    SessionState.PENDING: {SessionState.PROPOSED},
    SessionState.PROPOSED: {SessionState.APPLIED, SessionState.REJECTED, SessionState.SKIPPED},
    SessionState.APPLIED: {SessionState.VALIDATING},
    SessionState.VALIDATING: {SessionState.COMMITTED, SessionState.ROLLED_BACK},
    SessionState.REJECTED: set(),
    SessionState.SKIPPED: set(),
    SessionState.COMMITTED: set(),
    SessionState.ROLLED_BACK: set(),
}


@dataclass(frozen=True)
class Applied:
    path: str
    tokens_saved: int
    validated: bool = False
    label = "applied"

    @property
    def reason(self) -> str:
        suffix = ", validated" if self.validated else ""
        return f"saved {self.tokens_saved} tokens{suffix}"


@dataclass(frozen=True)
class Rejected:
    path: str
    reason: str
    label = "rejected"


@dataclass(frozen=True)
class Skipped:
    path: str
    reason: str
    label = "skipped"


@dataclass(frozen=True)
class RolledBack:
    path: str
    diagnostic: str
    label = "rolled back"

    @property
    def reason(self) -> str:
        return self.diagnostic


SessionOutcome = Union[Applied, Rejected, Skipped, RolledBack]
Proposal = Union[RewriteResult, OracleError]


def atomic_write(path: str, data: bytes) -> None:
    """Replace path with data via a temporary file in the same directory"""
    target = Path(path)
    fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if target.exists():
            shutil.copymode(str(target), tmp_name)
        os.replace(tmp_name, str(target))
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class RewriteSession:
    """One file, one oracle call, exactly one outcome"""

    def __init__(
        self,
        path: str,
        model: str,
        oracle: RewriteOracle,
        scanner: Scanner,
        validator: Optional[ProjectValidator] = None,
        prompt=None,
        logbook: Optional[Logbook] = None,
        require_savings: bool = True,
    ):
        """
        Initialize session and freeze the file's current content

        Args:
            path: File to rewrite
            model: Oracle model identifier
            oracle: Rewrite oracle
            scanner: Scanner used to measure both sides of the change
            validator: Validation gate; None disables validation
            prompt: Accept/reject collaborator; defaults to auto-accept
            logbook: Event log shared with the batch
            require_savings: Reject proposals that do not lower the token count

        Raises:
            SessionInputError: if the file cannot be read
        """
        self.path = path
        self.model = model
        self.oracle = oracle
        self.scanner = scanner
        self.validator = validator
        self.prompt = prompt or AutoAccept()
        self.logbook = logbook or Logbook()
        self.require_savings = require_savings

        try:
            self.original_content = Path(path).read_bytes()
        except OSError as e:
            raise SessionInputError(f"Cannot read {path}: {e}") from e

        self.state = SessionState.PENDING
        self.change_set: Optional[ChangeSet] = None
        self.outcome: Optional[SessionOutcome] = None

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.path}: {self.state.value} -> {new_state.value}")
        logger.debug(f"{self.path}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def fetch_proposal(self) -> Proposal:
        """
        Call the oracle once with the frozen content

        Does not change session state, so it may run on a worker thread.
        """
        try:
            return self.oracle.propose(self.original_content, self.model)
        except Exception as e:
            logger.exception(f"Oracle raised for {self.path}")
            return OracleError(OracleErrorKind.UNREACHABLE, f"{type(e).__name__}: {e}")

    def run(self, proposal: Optional[Proposal] = None) -> SessionOutcome:
        """
        Drive the session to a terminal state

        Args:
            proposal: Result of an earlier fetch_proposal(); fetched here when None

        Returns:
            The session outcome

        Raises:
            WriteError: if the proposal could not be written or the original
                could not be restored
        """
        if self.state is not SessionState.PENDING:
            raise InvalidTransition(f"{self.path}: session already ran ({self.state.value})")

        self.logbook.session_started(self.path, self.model)
        self._transition(SessionState.PROPOSED)
        if proposal is None:
            proposal = self.fetch_proposal()

        if isinstance(proposal, OracleError):
            return self._skip(str(proposal))
        if not proposal.proposed_content:
            return self._skip(f"{OracleErrorKind.MALFORMED_RESPONSE.value}: empty proposal")

        change_set = ChangeSet.build(
            self.scanner,
            self.path,
            self.original_content,
            proposal.proposed_content,
            proposal.descriptions,
        )
        self.change_set = change_set
        self.logbook.proposed(
            self.path,
            change_set.before_metrics.token_count,
            change_set.after_metrics.token_count,
            descriptions=list(change_set.descriptions),
        )

        if change_set.is_identical:
            return self._reject("no change")
        if self.require_savings and change_set.tokens_saved <= 0:
            return self._reject(f"no improvement ({-change_set.tokens_saved:+d} tokens)")

        decision = self._decide(change_set)
        self.logbook.decision(self.path, decision.value)
        if decision is not Decision.ACCEPT:
            return self._reject("declined by user")

        self._apply(change_set)
        if self.validator is None:
            return self._finish(Applied(self.path, change_set.tokens_saved, validated=False))
        return self._validate(change_set)

    def _decide(self, change_set: ChangeSet) -> Decision:
        while True:
            decision = self.prompt.confirm(change_set)
            if decision is not Decision.SHOW_DIFF:
                return decision
            self.prompt.show_diff(change_set)

    def _apply(self, change_set: ChangeSet) -> None:
        try:
            atomic_write(self.path, change_set.proposed_content)
        except OSError as e:
            self.logbook.error(self.path, f"write failed: {e}")
            raise WriteError(self.path, "apply", e) from e
        self._transition(SessionState.APPLIED)
        self.logbook.applied(self.path, change_set.tokens_saved)
        logger.info(f"Applied rewrite to {self.path} ({change_set.tokens_saved} tokens saved)")

    def _validate(self, change_set: ChangeSet) -> SessionOutcome:
        self._transition(SessionState.VALIDATING)
        try:
            result = self.validator.validate()
        except KeyboardInterrupt:
            logger.warning(f"Interrupted during validation; {self.path} keeps the unvalidated rewrite")
            raise
        except Exception as e:
            logger.exception(f"Validator raised for {self.path}")
            result = ValidationOutcome(passed=False, diagnostic=f"validator error: {type(e).__name__}: {e}")

        if result.passed:
            self._transition(SessionState.COMMITTED)
            self.logbook.validation_passed(self.path)
            return self._finish(Applied(self.path, change_set.tokens_saved, validated=True))

        try:
            atomic_write(self.path, self.original_content)
        except OSError as e:
            self.logbook.error(self.path, f"rollback failed: {e}")
            raise WriteError(self.path, "rollback", e) from e
        self._transition(SessionState.ROLLED_BACK)
        self.logbook.rolled_back(self.path, result.diagnostic)
        logger.info(f"Rolled back {self.path}: {result.diagnostic}")
        return self._finish(RolledBack(self.path, result.diagnostic))

    def _skip(self, reason: str) -> SessionOutcome:
        self._transition(SessionState.SKIPPED)
        self.logbook.skipped(self.path, reason)
        return self._finish(Skipped(self.path, reason))

    def _reject(self, reason: str) -> SessionOutcome:
        self._transition(SessionState.REJECTED)
        self.logbook.rejected(self.path, reason)
        return self._finish(Rejected(self.path, reason))

    def _finish(self, outcome: SessionOutcome) -> SessionOutcome:
        self.outcome = outcome
        self.change_set = None
        return outcome
