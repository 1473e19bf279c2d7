from __future__ import annotations

import argparse

import uvicorn

from livecap.app.logging_setup import setup_app_logger
from livecap.server.app import create_app
from livecap.server.config import ServerSettings


def parse_args(argv: list[str] | None = None, settings: ServerSettings | None = None) -> argparse.Namespace:
    settings = settings or ServerSettings()
    p = argparse.ArgumentParser(prog="livecap-server", description="Transcription and translation server")
    p.add_argument("--host", default=settings.host, help="bind address")
    p.add_argument("--port", type=int, default=settings.port, help="bind port")
    p.add_argument("--translator", default=settings.translator, help="gemini | argos | stub")
    p.add_argument("--whisper-model", default=settings.whisper_model, help="faster-whisper model size")
    p.add_argument("--debug", action="store_true", help="verbose logging")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    settings = ServerSettings()
    args = parse_args(argv, settings)
    settings = settings.model_copy(
        update={
            "host": args.host,
            "port": args.port,
            "translator": args.translator,
            "whisper_model": args.whisper_model,
        }
    )
    logger, _log_dir, log_path = setup_app_logger(debug=bool(args.debug), filename="livecap-server.log")
    logger.info(
        "server_start",
        extra={
            "host": settings.host,
            "port": settings.port,
            "translator": settings.translator,
            "whisper_model": settings.whisper_model,
            "log_path": str(log_path),
        },
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level="debug" if args.debug else "info")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
