from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Any, Callable, Optional

from livecap.app.config import resolve_args, save_user_config
from livecap.app.diagnostics import hint_for_exception, summarize_exception
from livecap.app.logging_setup import setup_app_logger
from livecap.app.services import build_client_services
from livecap.app.state import CaptureState
from livecap.audio.mic import MicError, SoundDeviceMicSource
from livecap.live.pipeline import CaptionPipeline
from livecap.ui.notices import NoticeBoard

logger = logging.getLogger(__name__)


def bind_pipeline(
    pipeline: CaptionPipeline,
    window: Any,
    notices: NoticeBoard,
    *,
    on_language: Optional[Callable[[str], None]] = None,
) -> None:
    """Connect pipeline and notice events to a window and window requests back to the pipeline."""

    def _on_pipeline(kind: str) -> None:
        if kind == "reset":
            window.reset()
        elif kind == "state":
            window.set_capturing(pipeline.state == CaptureState.CAPTURING)
        elif kind in ("original", "translated"):
            window.set_lines(pipeline.original_lines.snapshot(), pipeline.translated_lines.snapshot())
        elif kind == "language":
            window.set_target_language(pipeline.target_language)
            if on_language is not None:
                on_language(pipeline.target_language)

    pipeline.add_listener(_on_pipeline)
    notices.add_listener(window.show_notice)
    window.start_requested.connect(pipeline.start)
    window.stop_requested.connect(pipeline.stop)
    window.language_requested.connect(pipeline.set_target_language)


SHUTDOWN_TIMEOUT_SEC = 10.0


async def shutdown(pipeline: CaptionPipeline, services: Any, timeout: float = SHUTDOWN_TIMEOUT_SEC) -> None:
    """Flush the final cut, wait for outstanding requests, then close the HTTP client."""
    pipeline.stop()
    try:
        await asyncio.wait_for(pipeline.drain(), timeout)
    except asyncio.TimeoutError:
        logger.warning("shutdown_drain_timeout", extra={"timeout_sec": timeout})
    finally:
        await services.aclose()


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)
    logger, _log_dir, log_path = setup_app_logger(debug=bool(args.debug))
    logger.info("app_start", extra={"config_path": str(getattr(args, "config", "")), "argv": argv or []})

    if args.list_devices:
        try:
            print(SoundDeviceMicSource.list_devices())
        except MicError as e:
            print(str(e))
            return 1
        return 0

    from PyQt6 import QtWidgets
    from qasync import QEventLoop

    from livecap.ui.panels_qt import CaptionWindow
    from livecap.ui.view_state import ViewController

    app = QtWidgets.QApplication(sys.argv)
    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)

    services = build_client_services(args)
    pipeline = CaptionPipeline(
        recognizer=services.recognizer,
        translator=services.translator,
        mic_factory=services.mic.open,
        notices=services.notices,
        settings=services.settings,
        target_language=str(args.target_language),
    )
    window = CaptionWindow(ViewController(target_language=pipeline.target_language))

    def _remember_language(code: str) -> None:
        args.target_language = code
        save_user_config({"target_language": code}, config_path=args.config)
        logger.info("settings_saved", extra={"changed_keys": ["target_language"]})

    def _report_start_failure() -> None:
        if pipeline.state == CaptureState.IDLE and pipeline.last_error:
            summary = summarize_exception(pipeline.last_error)
            logger.error(
                "capture_start_failed",
                extra={"summary": summary, "hint": hint_for_exception(summary), "log_path": str(log_path)},
            )

    bind_pipeline(pipeline, window, services.notices, on_language=_remember_language)
    window.start_requested.connect(_report_start_failure)

    app_close_event = asyncio.Event()
    app.aboutToQuit.connect(app_close_event.set)
    signal.signal(signal.SIGINT, lambda *_: app.quit())

    window.show()
    with loop:
        loop.run_until_complete(app_close_event.wait())
        logger.info("app_quit")
        loop.run_until_complete(shutdown(pipeline, services))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
