# src/pipeline/orchestrator.py — v1
"""Orchestrator: drive every batch through upload → commit → verify.

Per batch::

    UPLOAD_PENDING → UPLOADING → COMMITTING → VERIFYING → DONE
                         ↺            ↺ → ABORTED
                                       → FAILED (retries exhausted)

Batches are processed strictly in ascending order, and a later batch is
never committed before the earlier one reached a terminal outcome. The
orchestrator is the only writer of the cache document: upload results are
applied one at a time as their tasks complete.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Sequence

from assetledger.cache.session import CacheSession
from assetledger.config.settings import Settings
from assetledger.logging.context import set_batch_context, set_stage
from assetledger.pipeline.committer import BatchCommitter
from assetledger.pipeline.models import (
    BatchReport,
    BatchState,
    RunSummary,
    UploadItem,
    UploadOutcome,
)
from assetledger.pipeline.retry import (
    FatalError,
    Ok,
    RetryableError,
    RetryPolicy,
    StageResult,
    run_with_retry,
)
from assetledger.pipeline.uploader import AssetUploader
from assetledger.pipeline.verifier import Verifier

logger = logging.getLogger(__name__)


def partition(total: int, batch_size: int) -> list[range]:
    """Split ``0..total-1`` into contiguous ranges of ``batch_size``."""
    return [
        range(start, min(start + batch_size, total))
        for start in range(0, total, batch_size)
    ]


class Orchestrator:
    """Sequence the pipeline stages across all batches."""

    def __init__(
        self,
        session: CacheSession,
        uploader: AssetUploader | None,
        committer: BatchCommitter | None,
        verifier: Verifier,
        batch_size: int = 9,
        upload_policy: RetryPolicy | None = None,
        commit_policy: RetryPolicy | None = None,
        verify_policy: RetryPolicy | None = None,
        explorer_url_template: str | None = None,
    ) -> None:
        self._session = session
        self._uploader = uploader
        self._committer = committer
        self._verifier = verifier
        self._batch_size = batch_size
        self._upload_policy = upload_policy or RetryPolicy(delay_s=2.0)
        self._commit_policy = commit_policy or RetryPolicy(delay_s=2.0)
        self._verify_policy = verify_policy or RetryPolicy(delay_s=1.0)
        self._explorer_url_template = explorer_url_template

    @classmethod
    def from_settings(
        cls,
        session: CacheSession,
        uploader: AssetUploader | None,
        committer: BatchCommitter | None,
        verifier: Verifier,
        settings: Settings,
    ) -> Orchestrator:
        def policy(
            delay: float, attempts: int | None, backoff: float | None = None,
        ) -> RetryPolicy:
            return RetryPolicy(
                delay_s=delay,
                max_attempts=attempts,
                backoff_factor=backoff or settings.retry_backoff_factor,
                max_delay_s=settings.retry_max_delay_s,
            )

        return cls(
            session,
            uploader,
            committer,
            verifier,
            batch_size=settings.batch_size,
            upload_policy=policy(settings.upload_retry_delay_s, settings.max_upload_attempts),
            commit_policy=policy(settings.commit_retry_delay_s, settings.max_commit_attempts),
            verify_policy=policy(
                settings.verify_retry_delay_s,
                settings.max_verify_attempts,
                settings.verify_backoff_factor,
            ),
            explorer_url_template=settings.explorer_url_template,
        )

    @property
    def session(self) -> CacheSession:
        return self._session

    async def run(self, items: Sequence[UploadItem]) -> RunSummary:
        """Upload, commit and verify ``items`` (indices must be 0..N-1)."""
        if self._uploader is None or self._committer is None:
            raise ValueError("run() requires an uploader and a committer")
        t0 = time.perf_counter()
        ordered = sorted(items, key=lambda it: it.index)
        expected = list(range(len(ordered)))
        if [it.index for it in ordered] != expected:
            raise ValueError("Item indices must be dense and contiguous from 0")

        batches = partition(len(ordered), self._batch_size)
        summary = RunSummary(
            total_items=len(ordered),
            batches=[BatchReport(start=b.start, end=b.stop - 1) for b in batches],
        )

        for batch, report in zip(batches, summary.batches):
            set_batch_context(report.start, report.end)
            await self._run_batch([ordered[i] for i in batch], report)
            if report.state != BatchState.DONE:
                summary.aborted = report.state == BatchState.ABORTED
                summary.error = report.error
                logger.error(
                    "Batch %d - %d ended %s, stopping run",
                    report.start, report.end, report.state.value,
                )
                break

        summary.duration_seconds = round(time.perf_counter() - t0, 2)
        return summary

    async def verify_all(self, indices: Sequence[int]) -> RunSummary:
        """Run only the verify stage over committed ``indices``."""
        t0 = time.perf_counter()
        committed = [i for i in sorted(indices) if not self._session.pending_commit([i])]
        summary = RunSummary(total_items=len(committed))

        for start in range(0, len(committed), self._batch_size):
            chunk = committed[start:start + self._batch_size]
            report = BatchReport(start=chunk[0], end=chunk[-1], committed=True)
            summary.batches.append(report)
            set_batch_context(report.start, report.end, "verify")
            report.state = BatchState.VERIFYING
            if not await self._finish_stage(self._verify(chunk, report), report):
                summary.aborted = report.state == BatchState.ABORTED
                summary.error = report.error
                break
            report.state = BatchState.DONE

        summary.duration_seconds = round(time.perf_counter() - t0, 2)
        return summary

    # --- Batch state machine ---

    async def _run_batch(self, batch: list[UploadItem], report: BatchReport) -> None:
        indices = [it.index for it in batch]

        report.state = BatchState.UPLOADING
        set_stage("upload")
        if not await self._finish_stage(self._upload(batch, report), report):
            return

        report.state = BatchState.COMMITTING
        set_stage("commit")
        if not await self._finish_stage(self._commit(indices), report):
            return
        report.committed = True

        report.state = BatchState.VERIFYING
        set_stage("verify")
        if not await self._finish_stage(self._verify(indices, report), report):
            return

        report.state = BatchState.DONE
        set_stage(None)
        logger.info("Batch %d - %d done", report.start, report.end)

    async def _finish_stage(
        self, stage: Awaitable[StageResult], report: BatchReport,
    ) -> bool:
        result = await stage
        if isinstance(result, Ok):
            return True
        report.error = result.reason
        if isinstance(result, FatalError):
            report.state = BatchState.ABORTED
        else:
            report.state = BatchState.FAILED
        return False

    # --- Stages ---

    async def _upload(self, batch: list[UploadItem], report: BatchReport) -> StageResult:
        async def attempt() -> StageResult:
            pending = [it for it in batch if not self._session.has_link(it.index)]
            if not pending:
                return Ok()
            logger.info(
                "Uploading %d items of batch %d - %d", len(pending), report.start, report.end,
            )

            tasks = [
                asyncio.create_task(self._uploader.upload_item(item, self._session))
                for item in pending
            ]
            logger.info("Waiting for upload requests to complete...")
            failures: list[int] = []
            try:
                for next_done in asyncio.as_completed(tasks):
                    outcome = await next_done
                    if not outcome.ok:
                        failures.append(outcome.index)
                    elif outcome.status == "uploaded":
                        self._apply_upload(outcome)
                        report.uploaded += 1
            finally:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

            if failures:
                return RetryableError(f"Failed to upload items {sorted(failures)}")
            return Ok()

        return await run_with_retry(attempt, self._upload_policy, stage="upload")

    def _apply_upload(self, outcome: UploadOutcome) -> None:
        payment = outcome.payment_ref
        if payment and self._explorer_url_template:
            payment = self._explorer_url_template.format(
                txid=payment, env=self._session.env,
            )
        self._session.record_upload(outcome.index, outcome.link, outcome.name, payment)
        self._session.save()

    async def _commit(self, indices: list[int]) -> StageResult:
        missing = [i for i in indices if not self._session.has_link(i)]
        if missing:
            return FatalError(f"Items {missing} have no link, cannot commit")

        async def attempt() -> StageResult:
            return await self._committer.commit(self._session, indices[0], len(indices))

        return await run_with_retry(attempt, self._commit_policy, stage="commit")

    async def _verify(self, indices: list[int], report: BatchReport) -> StageResult:
        if self._session.pending_commit(indices):
            return FatalError(f"Batch {indices[0]} - {indices[-1]} is not on chain")

        async def attempt() -> StageResult:
            return await self._verifier.verify_batch(self._session, indices)

        result = await run_with_retry(attempt, self._verify_policy, stage="verify")
        if isinstance(result, Ok):
            report.verified = result.value or 0
        return result
