from __future__ import annotations

import pytest

from livecap.contracts import TranslationRequest, TranslationResult
from livecap.errors import InputError, TransientBackendError
from livecap.nlp.translator.base import Translator
from livecap.server.rate_limit import RateLimiter
from livecap.server.retry import translate_with_retry


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_rate_limiter_fixed_window() -> None:
    clock = FakeClock()
    rl = RateLimiter(interval_sec=60, clock=clock)
    assert [rl.check(3, "a") for _ in range(4)] == [True, True, True, False]
    assert rl.check(3, "b")
    clock.now = 59.9
    assert not rl.check(3, "a")
    clock.now = 60.0
    assert rl.check(3, "a")


def test_rate_limiter_evicts_least_recent_caller() -> None:
    rl = RateLimiter(interval_sec=60, max_tokens=2, clock=FakeClock())
    rl.check(1, "a")
    rl.check(1, "b")
    rl.check(1, "c")
    assert len(rl) == 2
    # "a" was evicted, so its window starts over
    assert rl.check(1, "a")
    assert not rl.check(1, "c")


def test_rate_limiter_validates_arguments() -> None:
    with pytest.raises(ValueError):
        RateLimiter(interval_sec=0)
    with pytest.raises(ValueError):
        RateLimiter(interval_sec=1, max_tokens=0)


class ScriptedTranslator(Translator):
    def __init__(self, errors) -> None:
        self.errors = list(errors)
        self.calls = 0

    @property
    def name(self) -> str:
        return "scripted"

    def translate(self, req: TranslationRequest) -> TranslationResult:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return TranslationResult(source_text=req.text, translated_text="ok", provider=self.name)


@pytest.mark.asyncio
async def test_retry_backs_off_exponentially() -> None:
    delays: list[float] = []

    async def _sleep(d: float) -> None:
        delays.append(d)

    tr = ScriptedTranslator([TransientBackendError("a"), TransientBackendError("b"), TransientBackendError("c")])
    with pytest.raises(TransientBackendError, match="All 3 translation attempts failed"):
        await translate_with_retry(tr, TranslationRequest(text="hi"), attempts=3, base_delay=1.0, sleep=_sleep)
    assert tr.calls == 3
    assert delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_does_not_repeat_input_errors() -> None:
    async def _sleep(d: float) -> None:
        raise AssertionError("should not sleep")

    tr = ScriptedTranslator([InputError("bad text")])
    with pytest.raises(InputError):
        await translate_with_retry(tr, TranslationRequest(text="hi"), sleep=_sleep)
    assert tr.calls == 1


@pytest.mark.asyncio
async def test_retry_returns_first_success() -> None:
    async def _sleep(d: float) -> None:
        return None

    tr = ScriptedTranslator([RuntimeError("flaky")])
    assert await translate_with_retry(tr, TranslationRequest(text="hi"), sleep=_sleep) == "ok"
    assert tr.calls == 2
