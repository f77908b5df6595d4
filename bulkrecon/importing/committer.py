"""Chunked, cancellable commit of accepted import rows.

Input set:  valid + auto_matched + approved suggestions
            + duplicates (only under the overwrite policy)
Skipped:    unapproved suggestions + duplicates under the skip policy
Excluded:   error rows (reported separately, never counted as skipped)

New rows are inserted in fixed-size chunks, one batched call per chunk.
Duplicates are updated one row at a time since each targets its own id.
A failing chunk or update marks only its own rows as failed. The cancellation
token is polled before every unit of work; finished units are never rolled back.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Union

from bulkrecon.importing.classifier import next_due_date, parse_iso_date
from bulkrecon.importing.errors import CommitError
from bulkrecon.importing.repository import TrainingRepository
from bulkrecon.importing.rows import DuplicateRow, ImportPreview, ResolvedRow
from bulkrecon.models import (
    BatchResult,
    CommitFailure,
    DuplicatePolicy,
    NewTrainingRecord,
    TrainingStatus,
    TrainingUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 50


class CancellationToken:
    """Cooperative cancellation flag shared between caller and committer."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(frozen=True, slots=True)
class CommitProgress:
    """Rows processed so far out of the rows scheduled for commit."""

    processed: int
    total: int

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 100
        return round(self.processed / self.total * 100)


ProgressCallback = Callable[[CommitProgress], Union[None, Awaitable[None]]]


@dataclass
class _Tally:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    processed: int = 0
    failures: list[CommitFailure] = field(default_factory=list)

    def fail(self, error: CommitError) -> None:
        self.failed += len(error.row_numbers)
        self.failures.append(CommitFailure(row_numbers=error.row_numbers, message=error.message))


def training_status(next_date: date, today: date, warning_days: int = 30) -> TrainingStatus:
    """Validity status of a training due on next_date."""
    days_until = (next_date - today).days
    if days_until < 0:
        return TrainingStatus.EXPIRED
    if days_until <= warning_days:
        return TrainingStatus.WARNING
    return TrainingStatus.VALID


class BatchCommitter:
    """Apply accepted rows against the persistence boundary."""

    def __init__(
        self,
        repository: TrainingRepository,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        default_period_days: int = 365,
        expiry_warning_days: int = 30,
        created_by: str = "system",
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize committer.

        Args:
            repository: Persistence boundary implementation
            chunk_size: Rows per batched insert call
            default_period_days: Period used when a training type has none
            expiry_warning_days: Window for the "warning" status
            created_by: Author recorded on inserted trainings
            today: Clock for status computation (injectable for tests)
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.repository = repository
        self.chunk_size = chunk_size
        self.default_period_days = default_period_days
        self.expiry_warning_days = expiry_warning_days
        self.created_by = created_by
        self.today = today

    async def commit(
        self,
        preview: ImportPreview,
        policy: DuplicatePolicy | str = DuplicatePolicy.SKIP,
        cancel_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Commit the accepted rows of a preview.

        Returns:
            BatchResult with inserted/updated/skipped/failed counts; rows never
            attempted because of cancellation are reported as not_attempted
        """
        policy = DuplicatePolicy(policy)
        cancel_token = cancel_token or CancellationToken()

        to_insert = sorted(
            [*preview.valid, *preview.auto_matched, *preview.approved_suggestions],
            key=lambda r: r.row_number,
        )
        to_update = list(preview.duplicates) if policy is DuplicatePolicy.OVERWRITE else []

        tally = _Tally(skipped=len(preview.pending_suggestions))
        if policy is DuplicatePolicy.SKIP:
            tally.skipped += len(preview.duplicates)

        units: list[list[ResolvedRow] | DuplicateRow] = [
            to_insert[i : i + self.chunk_size] for i in range(0, len(to_insert), self.chunk_size)
        ]
        units.extend(to_update)
        total = len(to_insert) + len(to_update)

        logger.info(
            f"Committing {total} rows ({len(to_insert)} inserts in chunks of {self.chunk_size}, "
            f"{len(to_update)} updates, {tally.skipped} skipped, policy={policy.value})"
        )

        cancelled = False
        for unit in units:
            if cancel_token.cancelled:
                cancelled = True
                logger.warning(
                    f"Commit cancelled after {tally.processed}/{total} rows; remaining rows not attempted"
                )
                break

            if isinstance(unit, list):
                await self._insert_chunk(unit, tally)
            else:
                await self._update_row(unit, tally)

            if on_progress is not None:
                outcome = on_progress(CommitProgress(processed=tally.processed, total=total))
                if inspect.isawaitable(outcome):
                    await outcome

        result = BatchResult(
            inserted=tally.inserted,
            updated=tally.updated,
            skipped=tally.skipped,
            failed=tally.failed,
            not_attempted=total - tally.processed,
            cancelled=cancelled,
            failures=tally.failures,
        )
        logger.info(
            f"Commit finished: {result.inserted} inserted, {result.updated} updated, "
            f"{result.skipped} skipped, {result.failed} failed, {result.not_attempted} not attempted"
        )
        return result

    async def _insert_chunk(self, chunk: list[ResolvedRow], tally: _Tally) -> None:
        records: list[NewTrainingRecord] = []
        row_numbers: list[int] = []
        # A row whose payload cannot be built fails alone; the rest of the chunk still goes in
        for row in chunk:
            try:
                records.append(self.build_record(row))
            except (ValueError, OverflowError) as e:
                logger.error(f"Cannot build training for row {row.row_number}: {e}")
                tally.fail(CommitError(str(e), [row.row_number]))
            else:
                row_numbers.append(row.row_number)

        try:
            if records:
                await self.repository.insert_trainings(records)
        except Exception as e:
            logger.error(f"Insert chunk failed for rows {row_numbers}: {e}", exc_info=True)
            tally.fail(CommitError(str(e), row_numbers))
        else:
            tally.inserted += len(records)
        finally:
            tally.processed += len(chunk)

    async def _update_row(self, row: DuplicateRow, tally: _Tally) -> None:
        try:
            await self.repository.update_training(row.existing_training_id, self.build_update(row))
        except Exception as e:
            logger.error(
                f"Update failed for row {row.row_number} (training {row.existing_training_id}): {e}",
                exc_info=True,
            )
            tally.fail(CommitError(str(e), [row.row_number]))
        else:
            tally.updated += 1
        finally:
            tally.processed += 1

    def _dates(self, row: ResolvedRow) -> tuple[date, date, TrainingStatus]:
        last_date = parse_iso_date(row.data.last_training_date)
        period = row.period_days or self.default_period_days
        next_date = next_due_date(last_date, period)
        status = training_status(next_date, self.today(), self.expiry_warning_days)
        return last_date, next_date, status

    def build_record(self, row: ResolvedRow) -> NewTrainingRecord:
        """Insert payload for a non-duplicate row."""
        last_date, next_date, status = self._dates(row)
        return NewTrainingRecord(
            employee_id=row.employee_id,
            training_type_id=row.training_type_id,
            facility=row.data.facility_code,
            last_training_date=last_date,
            next_training_date=next_date,
            trainer=row.data.trainer,
            company=row.data.company,
            note=row.data.note,
            status=status,
            created_by=self.created_by,
        )

    def build_update(self, row: DuplicateRow) -> TrainingUpdate:
        """Overwrite payload for a duplicate row."""
        last_date, next_date, status = self._dates(row)
        return TrainingUpdate(
            last_training_date=last_date,
            next_training_date=next_date,
            trainer=row.data.trainer,
            company=row.data.company,
            note=row.data.note,
            status=status,
        )
