"""
Task runners used by controllers to issue API calls.

Controllers never block on the network themselves: they hand a callable to a
runner together with success and error callbacks. The Tk runner lives in
``ui.components``; the runner here executes inline and is used by scripts and
tests.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


class TaskRunner(Protocol):
    def submit(
        self,
        operation: Callable[[], Any],
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """Run ``operation`` and report its outcome through the callbacks."""
        ...


class ImmediateRunner:
    """Runs operations synchronously on the calling thread."""

    def submit(
        self,
        operation: Callable[[], Any],
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        try:
            result = operation()
        except Exception as exc:  # pylint: disable=broad-except
            if on_error is None:
                raise
            on_error(exc)
            return
        if on_success:
            on_success(result)
