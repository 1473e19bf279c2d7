from __future__ import annotations


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    text = str(detail or "").strip()
    if not text:
        return "Unknown runtime error."
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        return "Unknown runtime error."
    for ln in reversed(lines):
        if ln.startswith("File "):
            continue
        if ln.startswith("^"):
            continue
        if ln.startswith("Traceback "):
            continue
        out = ln
        break
    else:
        out = lines[-1]
    if len(out) > max_len:
        return out[: max_len - 3].rstrip() + "..."
    return out


def hint_for_exception(summary: str) -> str:
    s = str(summary or "").lower()
    if "no module named" in s:
        return "A required package is missing in this virtualenv. Reinstall dependencies and retry."
    if "config file not found" in s:
        return "Configured JSON file is missing. Update the config path or restore the file."
    if "microphone" in s or ("sounddevice" in s and "failed" in s):
        return "Microphone init failed. Check input device selection and app mic permissions."
    if "connection refused" in s or "connecterror" in s or "all connection attempts failed" in s:
        return "Caption server unreachable. Start it with `livecap-server` or fix --server-url."
    if "rate limit" in s:
        return "Too many requests. Wait a minute and try again."
    return "Check logs for full traceback."
