"""Sequential batch runner for bulk admin operations."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BatchProgress:
    processed: int
    total: int
    label: str = ""


@dataclass
class TaskFailure(Generic[T]):
    item: T
    label: str
    error: str


@dataclass
class BatchResult(Generic[T]):
    succeeded: list[Any] = field(default_factory=list)
    failures: list[TaskFailure[T]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class SequentialTaskQueue(Generic[T]):
    """Runs one task at a time. A failing item is recorded and the batch goes on."""

    def __init__(
        self,
        worker: Callable[[T], Any],
        *,
        label: Callable[[T], str] = str,
        on_progress: Optional[Callable[[BatchProgress], None]] = None,
    ):
        self.worker = worker
        self.label = label
        self.on_progress = on_progress

    def run(self, items: Iterable[T]) -> BatchResult[T]:
        items = list(items)
        result: BatchResult[T] = BatchResult()
        total = len(items)
        for index, item in enumerate(items):
            name = self.label(item)
            if self.on_progress:
                self.on_progress(BatchProgress(processed=index, total=total, label=name))
            try:
                result.succeeded.append(self.worker(item))
            except Exception as e:
                logger.warning("batch item failed label=%s error=%s", name, e)
                result.failures.append(TaskFailure(item=item, label=name, error=str(e)))
        if self.on_progress:
            self.on_progress(BatchProgress(processed=total, total=total))
        return result
