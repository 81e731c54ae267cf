"""Tests for the OpenRouter rewrite oracle"""
import json

import httpx
import pytest

from tokenslim.oracle import (
    OpenRouterOracle,
    OracleError,
    OracleErrorKind,
    RewriteResult,
    get_oracle,
    strip_markdown_fences,
)
from tokenslim.config import Settings


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _oracle(handler, **kw) -> OpenRouterOracle:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return OpenRouterOracle(api_key="test-key", client=client, **kw)


class TestStripMarkdownFences:
    """Tests for fence stripping"""

    @pytest.mark.parametrize("raw", [
        "```rust\nfn main() {}\n```",
        "```rs\nfn main() {}\n```",
        "```\nfn main() {}\n```",
        "  fn main() {}  \n",
    ])
    def test_strips(self, raw):
        assert strip_markdown_fences(raw) == "fn main() {}"

    def test_unterminated_fence(self):
        assert strip_markdown_fences("```rust\nfn main() {}") == "fn main() {}"


class TestOpenRouterOracle:
    """Tests for propose() against a mocked transport"""

    def test_propose_returns_rewrite_and_descriptions(self):
        """Rewrite call then explain call"""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            requests.append(body)
            if "response_format" in body:
                explain = {"changes": [{"description": "inlined format args", "tokens_saved": 4}]}
                return httpx.Response(200, json=_completion(json.dumps(explain)))
            return httpx.Response(200, json=_completion("```rust\nfn main(){}\n```"))

        result = _oracle(handler).propose(b"fn main() {\n}\n", "test/model")

        assert isinstance(result, RewriteResult)
        assert result.proposed_content == b"fn main(){}\n"
        assert result.descriptions == ("inlined format args (~4 tokens)",)
        assert requests[0]["model"] == "test/model"
        assert requests[0]["messages"][1]["content"] == "fn main() {\n}\n"
        assert requests[1]["response_format"]["json_schema"]["name"] == "explain_result"

    def test_sends_auth_header(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["url"] = str(request.url)
            return httpx.Response(200, json=_completion("x"))

        _oracle(handler, explain=False).propose(b"y", "m")

        assert seen["auth"] == "Bearer test-key"
        assert seen["url"] == "https://openrouter.ai/api/v1/chat/completions"

    def test_identical_response_skips_explain(self):
        """No explain call when nothing changed"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=_completion("fn main() {}"))

        result = _oracle(handler).propose(b"fn main() {}\n", "m")

        assert result.proposed_content == b"fn main() {}\n"
        assert result.descriptions == ()
        assert len(calls) == 1

    def test_explain_failure_keeps_proposal(self):
        """A broken explanation does not fail the rewrite"""
        def handler(request):
            if "response_format" in json.loads(request.content):
                return httpx.Response(200, json=_completion("not json"))
            return httpx.Response(200, json=_completion("short"))

        result = _oracle(handler).propose(b"much longer content", "m")

        assert isinstance(result, RewriteResult)
        assert result.proposed_content == b"short"
        assert result.descriptions == ()

    def test_missing_api_key_is_unreachable(self):
        oracle = OpenRouterOracle(api_key=None)

        result = oracle.propose(b"x", "m")

        assert isinstance(result, OracleError)
        assert result.kind is OracleErrorKind.UNREACHABLE

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = _oracle(handler).propose(b"x", "m")

        assert isinstance(result, OracleError)
        assert result.kind is OracleErrorKind.TIMEOUT

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = _oracle(handler).propose(b"x", "m")

        assert result.kind is OracleErrorKind.UNREACHABLE

    @pytest.mark.parametrize("response", [
        httpx.Response(500, text="upstream exploded"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"error": {"message": "model not found"}}),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": None}}]}),
        httpx.Response(200, json=_completion("```rust\n```")),
    ])
    def test_malformed_responses(self, response):
        result = _oracle(lambda request: response).propose(b"x", "m")

        assert isinstance(result, OracleError)
        assert result.kind is OracleErrorKind.MALFORMED_RESPONSE

    def test_get_oracle_from_settings(self):
        settings = Settings(api_key="k", base_url="http://localhost:9999/v1/", oracle_timeout=5.0)

        oracle = get_oracle(settings)

        assert oracle.api_key == "k"
        assert oracle.base_url == "http://localhost:9999/v1"
        assert oracle.timeout == 5.0
