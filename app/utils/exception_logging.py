"""
Helpers for logging and describing exceptions, including exception groups.
"""

import logging


def _safe_str(obj) -> str:
    """
    Convert an object to string, falling back to repr and then to the type
    name when ``__str__``/``__repr__`` fail.
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _safe_get_exceptions(exception) -> list:
    try:
        return list(exception.exceptions)
    except Exception:
        return []


def describe_exception(exception: BaseException) -> str:
    """
    One-line description of a single exception.

    Transport errors from httpx often carry no message; the type name is used
    then, followed by the chained cause when there is one.
    """
    text = _safe_str(exception)
    if text:
        return text
    name = type(exception).__name__
    cause = exception.__cause__ or exception.__context__
    if cause is not None and cause is not exception:
        cause_text = _safe_str(cause)
        if cause_text:
            return f"{name}: {cause_text}"
    return name


def format_exception_message(exception: BaseException) -> str:
    """
    Format an exception message, including sub-exceptions for exception groups.
    Never raises.

    Args:
        exception: The exception to format

    Returns:
        A formatted string describing the exception
    """
    try:
        if exception is None:
            return "None"

        sub_exceptions = _safe_get_exceptions(exception)
        if not sub_exceptions:
            return describe_exception(exception)

        sub_exception_strs = [
            f"{type(sub_exc).__name__}: {describe_exception(sub_exc)}"
            for sub_exc in sub_exceptions
        ]
        return (
            f"{describe_exception(exception)} "
            f"(Sub-exceptions: {'; '.join(sub_exception_strs)})"
        )
    except Exception:
        return f"<{type(exception).__name__} (formatting failed)>"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: BaseException,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with its traceback, and each sub-exception of an
    exception group on its own line.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]", "[Search]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    safe_prefix = _safe_str(prefix) if prefix is not None else ""
    sub_exceptions = _safe_get_exceptions(exception)

    if not sub_exceptions:
        logger.log(
            level,
            f"{safe_prefix} Exception: {format_exception_message(exception)}",
            exc_info=exception if exception is not None else False,
        )
        return

    logger.log(
        level,
        f"{safe_prefix} Exception with {len(sub_exceptions)} sub-exceptions: "
        f"{describe_exception(exception)}",
    )
    for i, sub_exc in enumerate(sub_exceptions):
        logger.log(
            level,
            f"{safe_prefix} Sub-exception {i+1}: {type(sub_exc).__name__}: "
            f"{describe_exception(sub_exc)}",
            exc_info=sub_exc,
        )
