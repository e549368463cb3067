"""Tests for the provider gateway: ordered fallback, terminal errors and call parameters."""

import pytest

from transition_screen.llm.llm_client import (
    NO_PROVIDERS_ERROR,
    ProviderConfig,
    ProviderGateway,
    should_fallback,
)


class FakeStatusError(Exception):
    """Provider error carrying an HTTP status code, like litellm's API errors."""

    def __init__(self, status_code: int, message: str = ""):
        super().__init__(f"HTTP {status_code} {message}".strip())
        self.status_code = status_code


def _providers(*names: str) -> tuple[ProviderConfig, ...]:
    return tuple(
        ProviderConfig(name=name, api_base=f"https://{name}.example.invalid/v1", api_key=f"key-{name}", model=f"{name}-model")
        for name in names
    )


def _scripted(outcomes: dict):
    """Handler answering by API key: an int raises that status, a str is returned."""

    def handler(kwargs):
        outcome = outcomes[kwargs["api_key"]]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, int):
            raise FakeStatusError(outcome)
        return outcome

    return handler


class TestShouldFallback:
    """Transient errors move on; bad requests abort."""

    @pytest.mark.parametrize(
        "status_code,error,expected",
        [
            (429, None, True),
            (500, None, True),
            (503, None, True),
            (400, None, False),
            (401, None, False),
            (403, None, False),
            (None, "Request timed out", True),
            (None, "connect ECONNREFUSED 127.0.0.1", True),
            (400, "test API error 400: invalid 'timeout' parameter", False),
            (401, "authentication timed out", False),
            (404, None, True),
            (None, None, True),
        ],
    )
    def test_decision(self, status_code, error, expected):
        """Fallback decision per status code and error text."""
        assert should_fallback(status_code, error) is expected


class TestProviderChain:
    """Ordered provider chain, each provider attempted at most once."""

    def test_fallback_to_third_provider(self, fake_completion):
        """[429, 500, ok] → third provider's answer with fallback reported."""
        fake = fake_completion(_scripted({"key-a": 429, "key-b": 500, "key-c": '{"answer": 1}'}))
        gateway = ProviderGateway(_providers("a", "b", "c"))

        response = gateway.call("system", "user")

        assert response.success
        assert response.content == '{"answer": 1}'
        assert response.provider == "c"
        assert response.model == "c-model"
        assert response.fallback_used
        assert response.attempts == 3
        assert fake.api_keys == ["key-a", "key-b", "key-c"]

    def test_terminal_error_aborts_chain(self, fake_completion):
        """[401] → failure without trying the next provider."""
        fake = fake_completion(_scripted({"key-a": 401, "key-b": "never used"}))
        gateway = ProviderGateway(_providers("a", "b"))

        response = gateway.call("system", "user")

        assert not response.success
        assert response.attempts == 1
        assert "401" in response.error
        assert fake.api_keys == ["key-a"]

    def test_bad_request_mentioning_timeout_aborts_chain(self, fake_completion):
        """A 400 about a timeout parameter is still terminal."""
        error = FakeStatusError(400, "invalid 'timeout' parameter")
        fake = fake_completion(_scripted({"key-a": error, "key-b": "never used"}))

        response = ProviderGateway(_providers("a", "b")).call("system", "user")

        assert not response.success
        assert response.attempts == 1
        assert fake.api_keys == ["key-a"]

    def test_first_provider_success(self, fake_completion):
        """Primary answers → no fallback."""
        fake_completion(_scripted({"key-a": "hello", "key-b": "unused"}))
        response = ProviderGateway(_providers("a", "b")).call("system", "user")

        assert response.success
        assert response.provider == "a"
        assert not response.fallback_used
        assert response.attempts == 1

    def test_all_providers_fail(self, fake_completion):
        """Every provider transient-fails → failure carrying the last error."""
        fake_completion(_scripted({"key-a": 429, "key-b": 503}))
        response = ProviderGateway(_providers("a", "b")).call("system", "user")

        assert not response.success
        assert response.attempts == 2
        assert response.fallback_used
        assert "503" in response.error

    def test_empty_content_falls_back(self, fake_completion):
        """An empty answer counts as a transient failure."""
        fake_completion(_scripted({"key-a": "", "key-b": "second"}))
        response = ProviderGateway(_providers("a", "b")).call("system", "user")

        assert response.success
        assert response.provider == "b"

    def test_connection_error_without_status(self, fake_completion):
        """Errors without a status code fall back."""
        fake_completion(_scripted({"key-a": ConnectionError("Connection timed out"), "key-b": "ok"}))
        response = ProviderGateway(_providers("a", "b")).call("system", "user")

        assert response.success
        assert response.provider == "b"

    def test_no_providers(self, fake_completion):
        """Empty chain → configuration error, no call made."""
        fake = fake_completion(_scripted({}))
        gateway = ProviderGateway(())

        response = gateway.call("system", "user")

        assert not gateway.is_configured
        assert not response.success
        assert response.error == NO_PROVIDERS_ERROR
        assert response.attempts == 0
        assert fake.calls == []


class TestCallParameters:
    """What reaches litellm.completion."""

    def test_request_shape(self, fake_completion):
        """OpenAI-compatible model id, fixed seed, no library retries."""
        fake = fake_completion(_scripted({"key-a": "ok"}))
        ProviderGateway(_providers("a"), timeout_seconds=12, seed=7).call("sys", "usr", max_tokens=500)

        call = fake.calls[0]
        assert call["model"] == "openai/a-model"
        assert call["api_base"] == "https://a.example.invalid/v1"
        assert call["messages"] == [{"role": "system", "content": "sys"}, {"role": "user", "content": "usr"}]
        assert call["temperature"] == 0.0
        assert call["max_tokens"] == 500
        assert call["timeout"] == 12
        assert call["seed"] == 7
        assert call["num_retries"] == 0

    def test_seed_omitted_when_none(self, fake_completion):
        """seed=None → no seed parameter."""
        fake = fake_completion(_scripted({"key-a": "ok"}))
        ProviderGateway(_providers("a"), seed=None).call("sys", "usr")
        assert "seed" not in fake.calls[0]

    def test_repr_hides_key(self):
        """API keys never appear in reprs."""
        (provider,) = _providers("a")
        assert "key-a" not in repr(provider)

    def test_to_dict(self, fake_completion):
        """Response summary omits the content itself."""
        fake_completion(_scripted({"key-a": "abcdef"}))
        summary = ProviderGateway(_providers("a")).call("sys", "usr").to_dict()

        assert summary["provider"] == "a"
        assert summary["response_length"] == 6
        assert "content" not in summary
