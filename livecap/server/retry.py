from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from fastapi.concurrency import run_in_threadpool

from livecap.contracts import TranslationRequest
from livecap.errors import InputError, TransientBackendError
from livecap.nlp.translator.base import Translator

logger = logging.getLogger(__name__)


async def translate_with_retry(
    translator: Translator,
    req: TranslationRequest,
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> str:
    """Call the engine up to `attempts` times, sleeping base_delay * 2**i between tries."""
    if attempts <= 0:
        raise ValueError("attempts must be > 0")
    last_error: Exception | None = None
    for i in range(attempts):
        try:
            result = await run_in_threadpool(translator.translate, req)
            return result.translated_text
        except InputError:
            raise
        except Exception as e:
            last_error = e
            logger.warning(
                "translate_attempt_failed",
                extra={"attempt": i + 1, "provider": translator.name, "error": repr(e)},
            )
        if i + 1 < attempts:
            await sleep(base_delay * (2 ** i))

    logger.error("translate_all_attempts_failed", extra={"attempts": attempts, "error": repr(last_error)})
    raise TransientBackendError(f"All {attempts} translation attempts failed: {last_error}") from last_error
