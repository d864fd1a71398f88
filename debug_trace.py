"""
debug_trace.py

Trace instrumentation for the render/sync pipeline.

Tracing is off unless enabled in settings (``[debug] trace_enabled``) or
through the ``MERMAIDSYNC_TRACE`` environment variable.  Lines go to stderr
and, when ``[debug] log_file`` is set, to that file as well.
"""

import os
import sys
import traceback
from datetime import datetime
from functools import wraps

ENV_FLAG = "MERMAIDSYNC_TRACE"

_enabled = None
_log_path = None
_log_file = None


def _load_config():
    global _enabled, _log_path
    if _enabled is not None:
        return
    if os.environ.get(ENV_FLAG, "").strip() not in ("", "0"):
        _enabled = True
    else:
        try:
            from settings import get_settings
            debug = get_settings().settings.debug
            _enabled = bool(debug.trace_enabled)
            _log_path = debug.log_file or None
        except Exception:
            _enabled = False


def set_trace_enabled(enabled: bool, log_file: str | None = None):
    """Override the configured trace state (CLI ``--trace``)."""
    global _enabled, _log_path
    close_log()
    _enabled = enabled
    _log_path = log_file


def is_trace_enabled() -> bool:
    _load_config()
    return bool(_enabled)


def _get_log_file():
    global _log_file
    if _log_path and _log_file is None:
        try:
            _log_file = open(_log_path, "a", encoding="utf-8")
        except OSError:
            pass
    return _log_file


def trace(msg: str, category: str = "INFO"):
    """Print a trace message with timestamp."""
    if not is_trace_enabled():
        return

    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{timestamp}] [{category}] {msg}"

    print(line, file=sys.stderr, flush=True)

    log_file = _get_log_file()
    if log_file:
        try:
            log_file.write(line + "\n")
            log_file.flush()
        except OSError:
            pass


def trace_exception(msg: str = "Exception"):
    """Print exception info."""
    if not is_trace_enabled():
        return
    trace(f"{msg}: {traceback.format_exc()}", "ERROR")


def trace_call(category: str = "CALL"):
    """Decorator to trace function calls."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not is_trace_enabled():
                return func(*args, **kwargs)
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
                trace(f"<<< {func_name}", category)
                return result
            except Exception as e:
                trace(f"!!! {func_name} raised {type(e).__name__}: {e}", "ERROR")
                raise
        return wrapper
    return decorator


def close_log():
    """Close log file."""
    global _log_file
    if _log_file:
        try:
            _log_file.close()
        except OSError:
            pass
        _log_file = None
