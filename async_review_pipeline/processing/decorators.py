"""
Processor decorators for composition.

This module provides:
- @file_processor - Turns an async function into a FileProcessor
- with_fallback - Wraps a processor with a degraded alternative
"""

from collections.abc import Awaitable, Callable
import functools
import inspect
import logging
from typing import Any

from .protocols import FileProcessor

logger = logging.getLogger(__name__)

ProcessFunction = Callable[[str, str | None], Awaitable[Any]]


class FunctionProcessor:
    """FileProcessor backed by a plain async function."""

    def __init__(self, func: ProcessFunction) -> None:
        self.func = func
        functools.update_wrapper(self, func)

    async def process_file(self, path: str, content: str | None = None) -> Any:
        return await self.func(path, content)

    def __repr__(self) -> str:
        return f"FunctionProcessor({self.func.__name__})"


def file_processor(func: ProcessFunction) -> FunctionProcessor:
    """
    Decorator turning an async function into a FileProcessor.

    Args:
        func: Async function taking ``(path, content)``

    Returns:
        A FileProcessor calling ``func``

    Example:
        @file_processor
        async def review(path, content):
            return {"path": path, "lines": len(content or "")}
    """
    if not inspect.iscoroutinefunction(func):
        raise TypeError(
            f"@file_processor can only be applied to async functions. "
            f"{func.__name__} is not async."
        )
    return FunctionProcessor(func)


class FallbackProcessor:
    """FileProcessor that degrades to a fallback when the primary fails."""

    def __init__(self, primary: FileProcessor, fallback: FileProcessor) -> None:
        self.primary = primary
        self.fallback = fallback

    async def process_file(self, path: str, content: str | None = None) -> Any:
        """
        Run the primary processor, falling back on failure.

        The primary's error is re-raised if the fallback fails or produces
        no result.
        """
        try:
            return await self.primary.process_file(path, content)
        except Exception as primary_error:
            logger.warning(f"Primary processor failed for {path}, using fallback: {primary_error}")
            try:
                result = await self.fallback.process_file(path, content)
            except Exception as fallback_error:
                logger.error(f"Fallback processor also failed for {path}: {fallback_error}")
                raise primary_error
            if result is None:
                logger.warning(f"Fallback processor produced no result for {path}")
                raise primary_error
            return result


def with_fallback(
    primary: FileProcessor | ProcessFunction,
    fallback: FileProcessor | ProcessFunction,
) -> FallbackProcessor:
    """
    Compose a primary processor with a fallback.

    Plain async functions are wrapped with ``file_processor`` first.

    Args:
        primary: Preferred processor
        fallback: Degraded processor used when the primary fails

    Returns:
        A FileProcessor applying the fallback policy

    Example:
        processor = with_fallback(llm_review, rule_based_review)
    """
    return FallbackProcessor(_as_processor(primary), _as_processor(fallback))


def _as_processor(candidate: FileProcessor | ProcessFunction) -> FileProcessor:
    if isinstance(candidate, FileProcessor):
        return candidate
    return file_processor(candidate)
