"""Per-subscription reconciliation workers.

One worker per subscription drains the change feed whenever it is notified,
and on a fixed interval as a safety net for missed notifications. After a
failed drain the worker retries sooner, backing off exponentially up to the
poll interval. Workers for
different subscriptions run concurrently in the manager's task group; inside
one worker batches are strictly sequential. A stop request is honoured
between batches, never in the middle of one.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

import anyio
from anyio.abc import TaskGroup
from sqlalchemy.exc import SQLAlchemyError

from formsync.logic import repository_cursors, repository_forms
from formsync.logic.errors import ExternalApiError, NotFoundError
from formsync.logic.events import CHANGE_BATCH_APPLIED, CHANGE_BATCH_FAILED, publish
from formsync.logic.reconciliation import apply_batch
from formsync.logic.timestamps import format_timestamp, utc_now
from formsync.models.response import SubscriptionHealth

logger = logging.getLogger(__name__)


class ReconciliationWorker:
    def __init__(
        self,
        subscription_id: str,
        external_store_id: str,
        external_table_id: str,
        client,
        *,
        poll_interval_seconds: float = 300.0,
        retry_backoff_seconds: float = 5.0,
        clock: Callable = utc_now,
    ) -> None:
        self.subscription_id = subscription_id
        self.external_store_id = external_store_id
        self.external_table_id = external_table_id
        self._client = client
        self._poll_interval = poll_interval_seconds
        self._retry_backoff = retry_backoff_seconds
        self._clock = clock
        self._stopping = False
        self._pending = False
        self._wake: Optional[anyio.Event] = None
        self._finished: Optional[anyio.Event] = None
        self.health = SubscriptionHealth(subscription_id=subscription_id)

    @property
    def stopping(self) -> bool:
        return self._stopping

    def notify(self) -> None:
        """Request a drain; coalesces with any drain already pending."""
        self._pending = True
        if self._wake is not None:
            self._wake.set()

    def request_stop(self) -> None:
        self._stopping = True
        if self._wake is not None:
            self._wake.set()

    async def wait_stopped(self) -> None:
        if self._finished is not None:
            await self._finished.wait()

    def _idle_seconds(self) -> float:
        failures = self.health.consecutive_failures
        if not failures:
            return self._poll_interval
        return min(self._poll_interval, self._retry_backoff * 2 ** (failures - 1))

    def _record_failure(self, error: str) -> None:
        self.health.consecutive_failures += 1
        self.health.last_error = error
        self.health.last_error_at = format_timestamp(self._clock())
        publish(CHANGE_BATCH_FAILED, {"subscription_id": self.subscription_id, "error": error})

    async def drain(self) -> int:
        """Fetch and apply batches until the feed reports no more; return batches applied.

        A failing fetch or apply ends the drain with the cursor where it was.
        """
        applied = 0
        while not self._stopping:
            try:
                cursor = await anyio.to_thread.run_sync(repository_cursors.get_cursor, self.subscription_id)
                batch = await self._client.fetch_change_batch(
                    self.external_store_id, self.subscription_id, cursor
                )
                now = format_timestamp(self._clock())
                outcome = await anyio.to_thread.run_sync(
                    apply_batch, self.subscription_id, self.external_table_id, batch, now, cursor
                )
            except (ExternalApiError, SQLAlchemyError) as exc:
                logger.error(
                    "reconcile_batch_failed subscription_id=%s error=%s",
                    self.subscription_id,
                    exc,
                    exc_info=isinstance(exc, SQLAlchemyError),
                )
                self._record_failure(str(exc))
                return applied
            applied += 1
            self.health.batches_applied += 1
            self.health.consecutive_failures = 0
            self.health.last_success_at = now
            publish(
                CHANGE_BATCH_APPLIED,
                {"subscription_id": self.subscription_id, "payloads": outcome.payloads, "deleted": len(outcome.deleted)},
            )
            if not batch.might_have_more:
                break
        return applied

    async def run(self) -> None:
        self._finished = anyio.Event()
        self.health.running = True
        logger.info("reconcile_worker_started subscription_id=%s", self.subscription_id)
        try:
            while not self._stopping:
                self._wake = anyio.Event()
                self._pending = False
                try:
                    await self.drain()
                except Exception as exc:
                    logger.error(
                        "reconcile_worker_unexpected_error subscription_id=%s",
                        self.subscription_id,
                        exc_info=True,
                    )
                    self._record_failure(repr(exc))
                if self._stopping:
                    break
                if not self._pending:
                    with anyio.move_on_after(self._idle_seconds()):
                        await self._wake.wait()
        finally:
            self.health.running = False
            self._finished.set()
            logger.info("reconcile_worker_stopped subscription_id=%s", self.subscription_id)


class ReconciliationManager:
    """Owns the running workers, keyed by subscription id.

    Starting and stopping one subscription is serialized by a per-subscription
    lock, so at most one worker ever drains a given subscription.
    """

    def __init__(
        self,
        task_group: TaskGroup,
        client,
        *,
        poll_interval_seconds: float = 300.0,
        retry_backoff_seconds: float = 5.0,
        enabled: bool = True,
        clock: Callable = utc_now,
    ) -> None:
        self._task_group = task_group
        self._client = client
        self._poll_interval = poll_interval_seconds
        self._retry_backoff = retry_backoff_seconds
        self._enabled = enabled
        self._clock = clock
        self._workers: Dict[str, ReconciliationWorker] = {}
        self._locks: Dict[str, anyio.Lock] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def running_subscriptions(self) -> List[str]:
        return sorted(self._workers)

    def get_worker(self, subscription_id: str) -> Optional[ReconciliationWorker]:
        return self._workers.get(subscription_id)

    def _lock_for(self, subscription_id: str) -> anyio.Lock:
        lock = self._locks.get(subscription_id)
        if lock is None:
            lock = self._locks[subscription_id] = anyio.Lock()
        return lock

    async def start_worker(self, subscription_id: str) -> Optional[ReconciliationWorker]:
        """Start the worker for `subscription_id`; no-op if it is already running.

        Raises NotFoundError when no form carries that subscription.
        """
        if not self._enabled:
            logger.info("reconcile_disabled subscription_id=%s", subscription_id)
            return None
        async with self._lock_for(subscription_id):
            existing = self._workers.get(subscription_id)
            if existing is not None and not existing.stopping:
                return existing
            form = await anyio.to_thread.run_sync(repository_forms.find_form_by_subscription, subscription_id)
            if form is None:
                raise NotFoundError("subscription", subscription_id)
            worker = ReconciliationWorker(
                subscription_id,
                form.external_store_id,
                form.external_table_id,
                self._client,
                poll_interval_seconds=self._poll_interval,
                retry_backoff_seconds=self._retry_backoff,
                clock=self._clock,
            )
            self._workers[subscription_id] = worker
            self._task_group.start_soon(worker.run, name=f"reconcile:{subscription_id}")
            return worker

    async def stop_worker(self, subscription_id: str) -> bool:
        """Stop the worker after its current batch; return False if none was running.

        The subscription's lock is held until the worker has exited, so a start
        racing with the stop cannot overlap the finishing batch.
        """
        async with self._lock_for(subscription_id):
            worker = self._workers.pop(subscription_id, None)
            if worker is None:
                return False
            worker.request_stop()
            await worker.wait_stopped()
            return True

    def notify(self, subscription_id: str, external_store_id: Optional[str] = None) -> bool:
        """Wake the worker for a subscription; return False when none matches."""
        worker = self._workers.get(subscription_id)
        if worker is None:
            return False
        if external_store_id is not None and worker.external_store_id != external_store_id:
            logger.warning(
                "reconcile_notify_store_mismatch subscription_id=%s expected=%s got=%s",
                subscription_id,
                worker.external_store_id,
                external_store_id,
            )
            return False
        worker.notify()
        return True

    def health(self, subscription_id: str) -> Optional[SubscriptionHealth]:
        worker = self._workers.get(subscription_id)
        return worker.health.model_copy() if worker is not None else None

    async def start_all(self) -> List[str]:
        forms = await anyio.to_thread.run_sync(repository_forms.list_subscribed_forms)
        started: List[str] = []
        for form in forms:
            if form.subscription_id and await self.start_worker(form.subscription_id) is not None:
                started.append(form.subscription_id)
        return started

    async def shutdown(self, timeout_seconds: float = 30.0) -> None:
        workers = list(self._workers.values())
        self._workers.clear()
        for worker in workers:
            worker.request_stop()
        with anyio.move_on_after(timeout_seconds):
            for worker in workers:
                await worker.wait_stopped()


__all__ = ["ReconciliationWorker", "ReconciliationManager"]
