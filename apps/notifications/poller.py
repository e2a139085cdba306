"""Background poller that claims due jobs and hands them to the dispatcher."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime

import structlog

from .conf import NotificationSettings
from .dispatcher import NotificationDispatcher, build_dispatcher
from .store import JobStore

logger = structlog.get_logger(__name__)


@dataclass
class TickResult:
    fetched: int = 0
    claimed: int = 0
    sent: int = 0
    failed: int = 0


class NotificationPoller:
    """Один активный планировщик на процесс.

    Задачи внутри тика обрабатываются последовательно; сигнал остановки
    проверяется только между тиками, отправки в процессе не прерываются.
    """

    def __init__(
        self,
        store: JobStore,
        dispatcher: NotificationDispatcher,
        interval: float = 15.0,
        batch_size: int = 50,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.interval = interval
        self.batch_size = batch_size
        self._stop = threading.Event()

    def tick(self, now: datetime | None = None) -> TickResult:
        result = TickResult()
        jobs = self.store.fetch_due(self.batch_size, now)
        result.fetched = len(jobs)
        for job in jobs:
            if not self.store.claim(job):
                logger.info("notification_job_claim_skipped", job_id=str(job.id))
                continue
            result.claimed += 1
            if self.dispatcher.process(job):
                result.sent += 1
            else:
                result.failed += 1

        if result.claimed:
            logger.info(
                "notification_tick_complete",
                fetched=result.fetched,
                sent=result.sent,
                failed=result.failed,
            )
        return result

    def run(self, once: bool = False) -> None:
        logger.info("notification_worker_started", interval=self.interval, batch_size=self.batch_size)
        self.store.ensure_schema()
        try:
            while not self._stop.is_set():
                started = time.monotonic()
                try:
                    self.tick()
                except Exception:
                    # Ошибка хранилища прерывает только текущий тик
                    logger.exception("notification_tick_failed")
                if once:
                    break
                elapsed = time.monotonic() - started
                self._stop.wait(max(self.interval - elapsed, 0))
        finally:
            logger.info("notification_worker_stopped")

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()


def build_poller(
    config: NotificationSettings | None = None,
    interval: float | None = None,
    batch_size: int | None = None,
) -> NotificationPoller:
    config = config or NotificationSettings.from_django()
    store = JobStore()
    return NotificationPoller(
        store=store,
        dispatcher=build_dispatcher(config, store=store),
        interval=interval if interval is not None else config.poll_interval,
        batch_size=batch_size if batch_size is not None else config.batch_size,
    )
