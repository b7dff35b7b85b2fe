"""Timestamped, component-tagged flow logging."""

import time

from picsorpix.utils.settings import settings

_flow_log_last: dict[str, float] = {}


def _verbose_enabled() -> bool:
    try:
        return bool(settings.value('verbose_flow_logs', False, type=bool))
    except Exception:
        return False


def log_flow(component: str, message: str, *, level: str = "DEBUG",
             throttle_key: str | None = None, every_s: float | None = None):
    """Print one flow log line, optionally throttled per key.

    DEBUG lines only print when `verbose_flow_logs` is enabled; WARNING and
    ERROR lines always print.
    """
    if level == "DEBUG" and not _verbose_enabled():
        return

    now = time.time()
    if throttle_key and every_s is not None:
        last = _flow_log_last.get(throttle_key, 0.0)
        if (now - last) < every_s:
            return
        _flow_log_last[throttle_key] = now
    ts = time.strftime("%H:%M:%S", time.localtime(now)) + f".{int((now % 1) * 1000):03d}"
    print(f"[{ts}][{component}][{level}] {message}")
