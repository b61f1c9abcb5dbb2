"""Database query execution utilities.

Timing and logging for repository operations, so every storage call reports
its latency and outcome the same way.
"""

import time
from contextlib import contextmanager
from typing import Any, Generator

import logfire


@contextmanager
def timed_query(
    operation_name: str,
    **log_context: Any,
) -> Generator[dict[str, Any], None, None]:
    """
    Context manager for timing and logging database operations.

    Yields a dict the caller may fill with result details (e.g. ``row_count``);
    its contents are added to the completion log. On error the exception is
    logged with elapsed time and re-raised.

    Example:
        with timed_query("insert_media_items", original_url=url) as stats:
            result = client.table("media_items").insert(rows).execute()
            stats["row_count"] = len(result.data)
    """
    start_time = time.perf_counter()
    stats: dict[str, Any] = {}

    logfire.debug(
        f"Starting {operation_name}",
        operation=operation_name,
        **log_context,
    )

    try:
        yield stats
    except Exception as e:
        logfire.error(
            f"{operation_name} failed",
            operation=operation_name,
            error=str(e),
            error_type=type(e).__name__,
            response_time_ms=(time.perf_counter() - start_time) * 1000,
            **log_context,
        )
        raise

    logfire.info(
        f"{operation_name} completed",
        operation=operation_name,
        response_time_ms=(time.perf_counter() - start_time) * 1000,
        **log_context,
        **stats,
    )
