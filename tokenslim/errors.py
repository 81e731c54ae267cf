"""Exception hierarchy for tokenslim"""
from typing import Optional


class TokenSlimError(Exception):
    """Base class for all tokenslim errors"""


class ConfigError(TokenSlimError):
    """Configuration file or value could not be used"""


class CandidateListError(TokenSlimError):
    """The candidate file list could not be obtained"""


class SessionInputError(TokenSlimError):
    """A session's input file could not be read"""


class InvalidTransition(TokenSlimError):
    """A rewrite session attempted a state change outside its edge table"""


class WriteError(TokenSlimError):
    """
    Writing a proposal or restoring an original failed.

    The file at ``path`` is in an unknown state.
    """

    def __init__(self, path: str, state: str, cause: Optional[BaseException] = None):
        self.path = path
        self.state = state
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"write failed for {path} during {state}{detail}")


class BatchAborted(TokenSlimError):
    """A batch stopped early because a file may be corrupted"""

    def __init__(self, path: str, summary, cause: Optional[BaseException] = None):
        self.path = path
        self.summary = summary
        self.cause = cause
        super().__init__(f"batch aborted; {path} is in an unknown state")
