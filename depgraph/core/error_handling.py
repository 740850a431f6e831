"""
Error Handling Module
=====================

Retry handling with per-attempt timeouts and an async context manager that
logs the duration of an operation and wraps unexpected failures.
"""

import asyncio
import inspect
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional, Tuple, Type

from .exceptions import DependencyGraphException, ErrorContext


class ErrorHandler:
    """
    Configurable error handler with retry logic and statistics.
    """

    def __init__(self,
                 component: str,
                 max_retries: int = 3,
                 timeout: Optional[float] = 30.0,
                 backoff: float = 0.1,
                 retry_on: Tuple[Type[BaseException], ...] = (Exception,)):
        self.component = component
        self.max_retries = max_retries
        self.timeout = timeout
        self.backoff = backoff
        self.retry_on = retry_on
        self.stats = {
            "total_errors": 0,
            "retry_attempts": 0,
            "successful_retries": 0,
            "failed_retries": 0,
            "timeouts": 0
        }
        self.logger = logging.getLogger(f"depgraph.error_handler.{component}")

    async def handle_with_retry(self, operation: Callable, *args, **kwargs) -> Any:
        """Execute operation with retry logic."""
        for attempt in range(self.max_retries + 1):
            try:
                if inspect.iscoroutinefunction(operation):
                    result = await asyncio.wait_for(operation(*args, **kwargs), timeout=self.timeout)
                else:
                    result = operation(*args, **kwargs)
                if attempt > 0:
                    self.stats["successful_retries"] += 1
                return result
            except asyncio.TimeoutError:
                self.stats["timeouts"] += 1
                if attempt == self.max_retries:
                    self.stats["total_errors"] += 1
                    raise
                self.stats["retry_attempts"] += 1
                self.logger.warning(f"Attempt {attempt + 1} timed out after {self.timeout}s, retrying...")
                await asyncio.sleep(self.backoff * (2 ** attempt))
            except self.retry_on as e:
                self.stats["total_errors"] += 1
                if attempt == self.max_retries:
                    if attempt > 0:
                        self.stats["failed_retries"] += 1
                    raise
                self.stats["retry_attempts"] += 1
                self.logger.warning(f"Attempt {attempt + 1} failed: {e}, retrying...")
                await asyncio.sleep(self.backoff * (2 ** attempt))

    def get_stats(self) -> Dict[str, Any]:
        """Get error handler statistics."""
        return {
            "component": self.component,
            "config": {
                "max_retries": self.max_retries,
                "timeout": self.timeout
            },
            "stats": self.stats.copy()
        }


@asynccontextmanager
async def error_handling_context(component: str, operation: str, **context_data):
    """
    Async context manager that logs an operation and wraps unexpected errors.

    Args:
        component: Component name for logging
        operation: Operation name for logging
        **context_data: Additional context data

    Yields:
        ErrorContext: Context object for adding diagnostic data
    """
    start_time = time.time()
    logger = logging.getLogger(f"depgraph.error_context.{component}")

    ctx = ErrorContext(
        component=component,
        operation=operation,
        start_time=start_time,
        context_data=context_data.copy()
    )

    try:
        logger.debug(f"Starting {operation} in {component}")
        yield ctx

        duration = time.time() - start_time
        logger.debug(f"Completed {operation} in {component} ({duration:.3f}s)")

    except DependencyGraphException as e:
        duration = time.time() - start_time
        logger.debug(f"{type(e).__name__} in {component}.{operation} after {duration:.3f}s: {e}")
        e.add_context_data(ctx.context_data)
        raise

    except (asyncio.CancelledError, asyncio.TimeoutError):
        raise

    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"Unexpected error in {component}.{operation} after {duration:.3f}s: {e}")
        raise DependencyGraphException(
            message=f"Error in {operation}: {e}",
            context=ctx,
            cause=e
        ) from e
