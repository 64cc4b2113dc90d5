"""
Tests for the auto-mode fallback chain.
"""
import threading

import pytest

from chatrouter.config import AppConfig
from chatrouter.core.auto_mode import resolve_candidates, run_auto_mode
from chatrouter.core.catalog import AUTO_MODES, AutoModeConfig, AutoStrategy, resolve_model
from chatrouter.events import Reset, TextDelta, log_entry
from chatrouter.models.base import (
    BaseProvider,
    CancellationError,
    ConfigurationError,
    ExhaustedError,
    FatalProviderError,
    GenerationResult,
    Message,
    TransientProviderError,
)

from conftest import IdentityRng, drive, drive_until_error, log_messages

MESSAGES = [Message(role="user", content="Hi")]

STRATEGY = AutoStrategy(
    key="auto-test",
    config=AutoModeConfig(label="Test", description="", provider="google", models=("m1", "m2", "m3")),
)


class ScriptedProvider(BaseProvider):
    """Fails or answers per model according to a script."""

    def __init__(self, script):
        super().__init__(name="scripted")
        self.script = script
        self.calls = []

    def stream(self, messages, model, system_prompt, signal=None):
        self.calls.append(model)
        outcome = self.script[model]
        yield log_entry("info", f"calling {model}")
        if isinstance(outcome, Exception):
            yield TextDelta("partial garbage")
            raise outcome
        yield TextDelta(outcome)
        return GenerationResult(text=outcome)


class TestRunAutoMode:
    def test_retryable_failures_advance_to_next_model(self):
        provider = ScriptedProvider(
            {
                "m1": TransientProviderError("HTTP 429: quota"),
                "m2": TransientProviderError("HTTP 503: overloaded"),
                "m3": "third answer",
            }
        )
        events, result = drive(run_auto_mode(STRATEGY, ["m1", "m2", "m3"], provider, MESSAGES, "S"))

        assert result.text == "third answer"
        assert provider.calls == ["m1", "m2", "m3"]
        assert len([m for m in log_messages(events) if "failed, trying next" in m]) == 2

    def test_reset_before_every_candidate(self):
        provider = ScriptedProvider({"m1": TransientProviderError("429"), "m2": "ok"})
        events, _ = drive(run_auto_mode(STRATEGY, ["m1", "m2"], provider, MESSAGES, "S"))

        kinds = [type(e).__name__ for e in events if isinstance(e, (Reset, TextDelta))]
        assert kinds == ["Reset", "TextDelta", "Reset", "TextDelta"]

    def test_non_retryable_error_aborts_chain(self):
        provider = ScriptedProvider(
            {"m1": FatalProviderError("HTTP 400: invalid argument"), "m2": "never"}
        )
        events, exc = drive_until_error(
            run_auto_mode(STRATEGY, ["m1", "m2"], provider, MESSAGES, "S")
        )

        assert isinstance(exc, FatalProviderError)
        assert provider.calls == ["m1"]
        assert log_messages(events, "error") == ["Auto: m1 non-retryable error: HTTP 400: invalid argument"]

    def test_configuration_error_aborts_chain(self):
        provider = ScriptedProvider({"m1": ConfigurationError("No SambaNova API key."), "m2": "never"})
        _, exc = drive_until_error(run_auto_mode(STRATEGY, ["m1", "m2"], provider, MESSAGES, "S"))

        assert isinstance(exc, ConfigurationError)
        assert provider.calls == ["m1"]

    def test_exhaustion_lists_every_failure(self):
        provider = ScriptedProvider(
            {
                "m1": TransientProviderError("HTTP 429: " + "q" * 200),
                "m2": TransientProviderError("All 3 keys failed for m2."),
            }
        )
        events, exc = drive_until_error(
            run_auto_mode(STRATEGY, ["m1", "m2"], provider, MESSAGES, "S")
        )

        assert isinstance(exc, ExhaustedError)
        assert str(exc).startswith("Auto mode: all 2 models failed.")
        assert exc.failures == ["m1: " + ("HTTP 429: " + "q" * 200)[:80], "m2: All 3 keys failed for m2."]
        assert exc.failures[0] in str(exc) and exc.failures[1] in str(exc)
        assert log_messages(events, "error") == ["Auto: all 2 models failed"]

    def test_cancellation_stops_before_next_candidate(self):
        signal = threading.Event()

        class CancellingProvider(ScriptedProvider):
            def stream(self, messages, model, system_prompt, signal_=None):
                signal.set()
                return (yield from super().stream(messages, model, system_prompt, signal_))

        provider = CancellingProvider({"m1": TransientProviderError("429"), "m2": "never"})
        events, exc = drive_until_error(
            run_auto_mode(STRATEGY, ["m1", "m2"], provider, MESSAGES, "S", signal)
        )

        assert isinstance(exc, CancellationError)
        assert provider.calls == ["m1"]

    def test_cancellation_from_provider_is_not_reclassified(self):
        provider = ScriptedProvider({"m1": CancellationError(), "m2": "never"})
        events, exc = drive_until_error(
            run_auto_mode(STRATEGY, ["m1", "m2"], provider, MESSAGES, "S")
        )

        assert isinstance(exc, CancellationError)
        assert not any("failed" in m for m in log_messages(events))


class TestResolveCandidates:
    def test_openrouter_uses_configured_models_shuffled(self):
        class ReversingRng:
            def sample(self, population, k):
                return list(reversed(population))[:k]

        config = AppConfig(openrouter_models=["a/1", "b/2", "c/3"])
        strategy = resolve_model("auto-openrouter")

        assert resolve_candidates(strategy, config, ReversingRng()) == ["c/3", "b/2", "a/1"]

    def test_openrouter_without_models_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="OpenRouter"):
            resolve_candidates(resolve_model("auto-openrouter"), AppConfig(openrouter_models=[]), IdentityRng())

    def test_fixed_strategies_keep_table_order(self):
        candidates = resolve_candidates(resolve_model("auto-samba"), AppConfig(), IdentityRng())
        assert candidates == list(AUTO_MODES["auto-samba"].models)

    def test_empty_samba_strategy_is_configuration_error(self):
        strategy = AutoStrategy(
            key="auto-samba", config=AutoModeConfig(label="SambaNova", description="", provider="sambanova")
        )
        with pytest.raises(ConfigurationError, match="SambaNova"):
            resolve_candidates(strategy, AppConfig(), IdentityRng())
