from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from livecap.nlp.languages import SUPPORTED_LANGUAGES

DEFAULTS: dict[str, Any] = {
    "list_devices": False,
    "device": None,
    "server_url": "http://127.0.0.1:8000",
    "sr": 16000,
    "block_size": 8192,
    "cut_interval_sec": 2.0,
    "min_segment_sec": 0.5,
    "silence_rms": 0.01,
    "target_language": "kha",
    "notice_ttl_sec": 3.0,
    "request_timeout_sec": 30.0,
    "pad_failed_translations": False,
    "debug": False,
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("livecap", "livecap"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: payload[key] for key in CONFIG_KEYS if key in payload}


def _normalized(values: dict[str, Any]) -> dict[str, Any]:
    if str(values.get("target_language", "")) not in SUPPORTED_LANGUAGES:
        values["target_language"] = DEFAULTS["target_language"]
    return values


def load_default_config() -> dict[str, Any]:
    return copy.deepcopy(DEFAULTS)


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if paths.config_path.exists():
        return paths.config_path
    _write_json_dict(paths.config_path, defaults or load_default_config())
    return paths.config_path


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    defaults = load_default_config()
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists(defaults)
    merged = dict(defaults)
    merged.update(_known_only(_load_json_dict(chosen)))
    return _normalized(merged), chosen


def save_user_config(values: dict[str, Any], config_path: str | None = None) -> Path:
    payload = _known_only(values)
    defaults = load_default_config()
    if config_path:
        path = Path(config_path)
        existing = _known_only(_load_json_dict(path)) if path.exists() else {}
    else:
        path = ensure_user_config_exists(defaults)
        existing = _known_only(_load_json_dict(path))
    merged = dict(defaults)
    merged.update(existing)
    merged.update(payload)
    _write_json_dict(path, _normalized(_known_only(merged)))
    return path


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="livecap", description="Live captions with translation")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--list-devices", action="store_true", help="print audio devices and exit")
    p.add_argument("--device", type=int, default=defaults["device"], help="sounddevice input device id")
    p.add_argument("--server-url", default=defaults["server_url"], help="caption server base URL")
    p.add_argument("--sr", type=int, default=defaults["sr"], help="sample rate (Hz)")
    p.add_argument("--block-size", type=int, default=defaults["block_size"], help="frames per capture block")
    p.add_argument(
        "--cut-interval-sec",
        type=float,
        default=defaults["cut_interval_sec"],
        help="seconds between segment cuts",
    )
    p.add_argument(
        "--min-segment-sec",
        type=float,
        default=defaults["min_segment_sec"],
        help="pending audio shorter than this is not sent",
    )
    p.add_argument(
        "--silence-rms",
        type=float,
        default=defaults["silence_rms"],
        help="cuts below this RMS are dropped (0 disables)",
    )
    p.add_argument(
        "--target-language",
        default=defaults["target_language"],
        choices=sorted(SUPPORTED_LANGUAGES),
        help="translation target language",
    )
    p.add_argument("--notice-ttl-sec", type=float, default=defaults["notice_ttl_sec"], help="notice lifetime")
    p.add_argument(
        "--request-timeout-sec",
        type=float,
        default=defaults["request_timeout_sec"],
        help="HTTP timeout for recognition and translation calls",
    )
    p.add_argument(
        "--pad-failed-translations",
        action=argparse.BooleanOptionalAction,
        default=defaults["pad_failed_translations"],
        help="append a placeholder line when a translation fails",
    )
    p.add_argument("--debug", action="store_true", help="verbose logging")
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = load_user_config(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    args = parser.parse_args(argv)
    if defaults.get("list_devices"):
        args.list_devices = True
    if defaults.get("debug"):
        args.debug = True
    return args
