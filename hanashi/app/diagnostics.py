from __future__ import annotations


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    text = str(detail or "").strip()
    if not text:
        return "Unknown error."
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        return "Unknown error."
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
    if "connection refused" in s or "connecterror" in s or "all connection attempts failed" in s:
        return "Assistant backend is unreachable. Check --api-base-url and that the server is running."
    if "timed out" in s or "timeout" in s:
        return "Backend request timed out. Retry, or raise --request-timeout-sec."
    if "http 5" in s:
        return "Backend reported a server error. Check the server logs."
    if "http 4" in s:
        return "Backend rejected the request. Check the payload and server version."
    if "sounddevice" in s:
        return "Microphone support is missing. Install sounddevice in this virtualenv."
    if "microphone" in s or "portaudio" in s:
        return "Microphone init failed. Check input device selection and app mic permissions."
    if "permission denied" in s or "no space left" in s or "read-only file system" in s:
        return "Could not write the file. Pick a writable directory (e.g. /save DIR or --history-dir)."
    if "no module named" in s:
        return "A required package is missing in this virtualenv. Reinstall dependencies and retry."
    return "Check logs for full traceback."


def describe_error(exc: BaseException) -> str:
    summary = summarize_exception(str(exc) or type(exc).__name__)
    return f"{summary} ({hint_for_exception(summary)})"
