"""
Helpers for turning exceptions into log lines and client-facing messages
without ever raising from the error path itself.
"""

import logging

UNKNOWN_ERROR = "Unknown error"


def _safe_str(obj) -> str:
    """
    Convert an object to a string, falling back to repr and then to the type
    name when ``__str__`` itself is broken.
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def format_exception_message(exception) -> str:
    """
    The message to show for an exception, or ``Unknown error`` when it has none.

    Exception groups (as raised by task groups inside the ASGI stack) are
    reported through their first sub-exception that carries a message.
    """
    for sub_exc in _sub_exceptions(exception):
        message = format_exception_message(sub_exc)
        if message != UNKNOWN_ERROR:
            return message

    if exception is None:
        return UNKNOWN_ERROR
    message = _safe_str(exception).strip()
    return message or UNKNOWN_ERROR


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: BaseException,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with its type and message, one line per sub-exception
    for exception groups. Never raises.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        exc_type = type(exception).__name__
        sub_exceptions = _sub_exceptions(exception)
        if sub_exceptions:
            logger.log(
                level,
                f"{prefix} {exc_type} with {len(sub_exceptions)} sub-exceptions: "
                f"{_safe_str(exception)}",
            )
            for i, sub_exc in enumerate(sub_exceptions):
                logger.log(
                    level,
                    f"{prefix} Sub-exception {i + 1}: "
                    f"{type(sub_exc).__name__}: {_safe_str(sub_exc)}",
                    exc_info=sub_exc,
                )
        else:
            logger.log(
                level,
                f"{prefix} {exc_type}: {_safe_str(exception)}",
                exc_info=exception,
            )
    except Exception:
        # Logging must not take the error path down with it
        try:
            logger.log(level, f"{prefix} Exception (logging failed)")
        except Exception:
            pass
