"""Per-class callback registry for decoded reports.

Callbacks are kept in registration order and each one is error-isolated:
one filter raising does not stop the others from seeing the report.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from gpsdlink.models.reports import BaseReport

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from gpsdlink.models.reports import Report

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseReport)


def class_name_of(target: str | type[BaseReport]) -> str:
    """Resolve a discriminator from a class name or a report model class."""
    if isinstance(target, str):
        return target
    if isinstance(target, type) and issubclass(target, BaseReport):
        return target.report_class
    raise TypeError(f"Expected a report class name or model, got {target!r}")


class FilterRegistry:
    """Maps report class names to ordered lists of callbacks."""

    def __init__(self) -> None:
        self._filters: dict[str, list[Callable[[Any], Any]]] = {}

    def add_filter(
        self,
        target: str | type[R],
        callback: Callable[[R], None | Awaitable[None]],
    ) -> None:
        """Append *callback* for the report class *target*.

        *target* is either the wire discriminator (``"TPV"``) or the model
        class (:class:`~gpsdlink.models.reports.TPVReport`).  Coroutine
        functions are awaited when the report is dispatched.
        """
        class_name = class_name_of(target)
        self._filters.setdefault(class_name, []).append(callback)

    def has_subscribers(self, class_name: str) -> bool:
        """Return ``True`` if at least one filter is registered for *class_name*."""
        return bool(self._filters.get(class_name))

    def subscriber_count(self, class_name: str) -> int:
        return len(self._filters.get(class_name, ()))

    @property
    def classes(self) -> list[str]:
        """Class names with at least one filter, in first-registration order."""
        return [name for name, callbacks in self._filters.items() if callbacks]

    async def dispatch(self, class_name: str, report: Report) -> int:
        """Deliver *report* to every filter registered for *class_name*.

        Filters run sequentially in registration order.  If a filter
        raises, the exception is logged and the remaining filters still
        receive the report.

        Returns the number of filters that completed without raising.
        """
        delivered = 0
        for callback in list(self._filters.get(class_name, ())):
            try:
                result = callback(report)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:
                logger.warning(
                    "Filter %r failed for %s report", callback, class_name, exc_info=True
                )
        return delivered
