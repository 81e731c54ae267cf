"""Rewrite oracle: sends file content to a language model and returns a proposal"""
import json
import logging
from abc import ABC, abstractmethod
from contextlib import nullcontext
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

import httpx
from pydantic import ValidationError

from .schemas import ChatResponse, ExplainResult, explain_schema

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

REWRITE_PROMPT = (
    "You are a {language} code optimizer focused on token efficiency. "
    "Rewrite the given {language} code to minimize token count while preserving identical behavior. "
    "Apply these rules: "
    "- Prefer iterator chains over manual loops "
    "- Propagate errors concisely instead of verbose matching "
    "- Inline format arguments "
    "- Remove redundant closures, borrows, clones and type annotations "
    "- Collapse collapsible if/else blocks "
    "- Remove comments that restate the code "
    "Return ONLY the rewritten {language} code. No markdown fences, no explanations."
)

EXPLAIN_PROMPT = (
    "You are a {language} code auditor. Given an ORIGINAL and REWRITTEN version of the same file, "
    "list each change: what was changed and how many tokens it saves. "
    "Be specific (mention function names, patterns)."
)


class OracleErrorKind(Enum):
    """Ways an oracle call can fail"""
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed response"


@dataclass(frozen=True)
class OracleError:
    kind: OracleErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


@dataclass(frozen=True)
class RewriteResult:
    proposed_content: bytes
    descriptions: Tuple[str, ...] = ()


class OracleCallFailed(Exception):
    def __init__(self, error: OracleError):
        super().__init__(str(error))
        self.error = error


class RewriteOracle(ABC):
    """Base class for rewrite oracles"""

    @abstractmethod
    def propose(self, content: bytes, model: str) -> Union[RewriteResult, OracleError]:
        """Propose a replacement for content. Never raises for transport or payload problems."""
        pass


def strip_markdown_fences(text: str) -> str:
    """Remove a surrounding ``` fence (optionally tagged rust/rs) from model output"""
    trimmed = text.strip()
    if not trimmed.startswith("```"):
        return trimmed
    for opening in ("```rust", "```rs", "```"):
        if trimmed.startswith(opening):
            trimmed = trimmed[len(opening):]
            break
    if trimmed.endswith("```"):
        trimmed = trimmed[:-3]
    return trimmed.strip()


class OpenRouterOracle(RewriteOracle):
    """Oracle backed by the OpenRouter chat completions API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
        language: str = "Rust",
        explain: bool = True,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize OpenRouter oracle

        Args:
            api_key: OpenRouter API key; a missing key makes every call unreachable
            base_url: API base URL
            timeout: Per-request timeout in seconds
            language: Language name used in the prompts
            explain: Ask the model for change descriptions after a rewrite
            client: Preconfigured httpx client (shared, not closed by the oracle)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.language = language
        self.explain = explain
        self._client = client

    def _session(self):
        if self._client is not None:
            return nullcontext(self._client)
        return httpx.Client(timeout=self.timeout)

    def chat(self, model: str, system: str, prompt: str, response_format: Optional[dict] = None) -> str:
        """
        Run one chat completion and return the first choice's content

        Raises:
            OracleCallFailed: carrying the classified OracleError
        """
        if not self.api_key:
            raise OracleCallFailed(OracleError(
                OracleErrorKind.UNREACHABLE,
                "OPENROUTER_API_KEY not set - get one at https://openrouter.ai/keys",
            ))

        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        }
        if response_format:
            body["response_format"] = response_format
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": "tokenslim",
        }

        try:
            with self._session() as client:
                response = client.post(
                    f"{self.base_url}/chat/completions",
                    json=body,
                    headers=headers,
                    timeout=self.timeout,
                )
        except httpx.TimeoutException as e:
            raise OracleCallFailed(OracleError(OracleErrorKind.TIMEOUT, f"no response within {self.timeout}s ({e})"))
        except httpx.TransportError as e:
            raise OracleCallFailed(OracleError(OracleErrorKind.UNREACHABLE, str(e) or type(e).__name__))

        if response.status_code != 200:
            raise OracleCallFailed(OracleError(
                OracleErrorKind.MALFORMED_RESPONSE,
                f"OpenRouter API error (HTTP {response.status_code}): {response.text[:500]}",
            ))

        try:
            parsed = ChatResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise OracleCallFailed(OracleError(OracleErrorKind.MALFORMED_RESPONSE, f"unparseable body: {e}"))

        if parsed.error is not None:
            raise OracleCallFailed(OracleError(
                OracleErrorKind.MALFORMED_RESPONSE, f"OpenRouter API error: {parsed.error.message}"
            ))
        if not parsed.choices or parsed.choices[0].message.content is None:
            raise OracleCallFailed(OracleError(OracleErrorKind.MALFORMED_RESPONSE, "Empty response from OpenRouter"))
        return parsed.choices[0].message.content

    def propose(self, content: bytes, model: str) -> Union[RewriteResult, OracleError]:
        original = content.decode("utf-8", errors="replace")
        system = REWRITE_PROMPT.format(language=self.language)

        try:
            raw = self.chat(model, system, original)
        except OracleCallFailed as e:
            logger.warning(f"Rewrite call to {model} failed: {e.error}")
            return e.error

        rewritten = strip_markdown_fences(raw)
        if not rewritten:
            return OracleError(OracleErrorKind.MALFORMED_RESPONSE, "model returned no code")
        if original.endswith("\n"):
            rewritten += "\n"

        proposed = rewritten.encode("utf-8")
        if proposed == content or not self.explain:
            return RewriteResult(proposed_content=proposed)
        return RewriteResult(proposed_content=proposed, descriptions=self.describe(original, rewritten, model))

    def describe(self, original: str, rewritten: str, model: str) -> Tuple[str, ...]:
        """Ask the model to list the changes; empty on any failure"""
        prompt = f"ORIGINAL:\n{original}\n\nREWRITTEN:\n{rewritten}"
        response_format = {
            "type": "json_schema",
            "json_schema": {"name": "explain_result", "strict": True, "schema": explain_schema()},
        }
        try:
            raw = self.chat(model, EXPLAIN_PROMPT.format(language=self.language), prompt, response_format)
            result = ExplainResult.model_validate(json.loads(strip_markdown_fences(raw)))
        except OracleCallFailed as e:
            logger.info(f"Could not generate explanation: {e.error}")
            return ()
        except (ValueError, ValidationError) as e:
            logger.info(f"Could not parse explanation: {e}")
            return ()
        return tuple(f"{c.description} (~{c.tokens_saved} tokens)" for c in result.changes)


def get_oracle(settings, client: Optional[httpx.Client] = None) -> RewriteOracle:
    """Build the oracle described by settings"""
    return OpenRouterOracle(
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout=settings.oracle_timeout,
        client=client,
    )
