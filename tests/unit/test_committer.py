"""Tests for chunked, cancellable commit."""

from __future__ import annotations

from datetime import date

import pytest

from bulkrecon.importing.classifier import RowClassifier
from bulkrecon.importing.committer import (
    BatchCommitter,
    CancellationToken,
    CommitProgress,
    training_status,
)
from bulkrecon.models import DuplicatePolicy, TrainingStatus

TODAY = date(2024, 6, 1)


def _committer(repository, **kwargs) -> BatchCommitter:
    return BatchCommitter(repository, today=lambda: TODAY, **kwargs)


@pytest.fixture
def bulk_preview(classifier, make_row):
    """120 valid rows (2..121)."""
    return classifier.classify_all([make_row() for _ in range(120)])


class TestTrainingStatus:
    def test_expired(self):
        assert training_status(date(2024, 5, 31), TODAY) is TrainingStatus.EXPIRED

    def test_warning_window_inclusive(self):
        assert training_status(TODAY, TODAY) is TrainingStatus.WARNING
        assert training_status(date(2024, 7, 1), TODAY) is TrainingStatus.WARNING

    def test_valid(self):
        assert training_status(date(2024, 7, 2), TODAY) is TrainingStatus.VALID


class TestPayloads:
    def test_next_date_uses_calendar_days(self, classifier, make_row, employees, catalogue, make_repository):
        row = classifier.classify(make_row(), 2)

        record = _committer(make_repository()).build_record(row)

        assert record.employee_id == employees["E002"].id
        assert record.training_type_id == catalogue["atex"].id
        assert record.facility == "fac-1"
        assert record.last_training_date == date(2024, 1, 15)
        assert record.next_training_date == date(2026, 1, 14)
        assert record.status is TrainingStatus.VALID
        assert record.created_by == "system"

    def test_missing_period_uses_default(self, classifier, make_row, make_repository):
        row = classifier.classify(make_row(training_type_name="První pomoc"), 2)

        record = _committer(make_repository(), default_period_days=365).build_record(row)

        assert record.next_training_date == date(2025, 1, 14)

    def test_update_payload(self, classifier, make_row, make_repository):
        row = classifier.classify(
            make_row(employee_number="E001", last_training_date="2023-01-10", trainer="Jan Novák"), 2
        )

        update = _committer(make_repository()).build_update(row)

        assert update.last_training_date == date(2023, 1, 10)
        assert update.next_training_date == date(2025, 1, 9)
        assert update.trainer == "Jan Novák"
        assert update.status is TrainingStatus.VALID


class TestCommit:
    @pytest.mark.asyncio
    async def test_skip_policy(self, mixed_preview, make_repository):
        repository = make_repository()

        result = await _committer(repository).commit(mixed_preview, DuplicatePolicy.SKIP)

        # valid + auto_matched inserted; 2 pending suggestions + 1 duplicate skipped
        assert result.inserted == 2
        assert result.updated == 0
        assert result.skipped == 3
        assert result.failed == 0
        assert repository.update_calls == []
        assert result.submitted == 5

    @pytest.mark.asyncio
    async def test_overwrite_policy_updates_duplicate(self, mixed_preview, existing_trainings, make_repository):
        repository = make_repository()

        result = await _committer(repository).commit(mixed_preview, "overwrite")

        assert result.updated == 1
        assert result.skipped == 2
        assert repository.update_calls == [existing_trainings[0].id]

    @pytest.mark.asyncio
    async def test_approved_suggestions_inserted(self, mixed_preview, catalogue, make_repository):
        mixed_preview.suggestions[0].approved = True
        repository = make_repository()

        result = await _committer(repository).commit(mixed_preview)

        assert result.inserted == 3
        assert result.skipped == 2
        assert catalogue["atex"].id in {r.training_type_id for r in repository.inserted}

    @pytest.mark.asyncio
    async def test_error_rows_never_counted(self, mixed_preview, make_repository):
        result = await _committer(make_repository()).commit(mixed_preview)

        assert result.submitted == mixed_preview.total_rows - len(mixed_preview.errors)

    @pytest.mark.asyncio
    async def test_inserts_in_chunks_of_fifty(self, bulk_preview, make_repository):
        repository = make_repository()

        result = await _committer(repository).commit(bulk_preview)

        assert [len(call) for call in repository.insert_calls] == [50, 50, 20]
        assert result.inserted == 120

    @pytest.mark.asyncio
    async def test_chunk_failure_isolated(self, bulk_preview, make_repository):
        repository = make_repository(fail_insert_calls=[1])

        result = await _committer(repository).commit(bulk_preview)

        assert result.inserted == 70
        assert result.failed == 50
        assert len(repository.insert_calls) == 3
        assert len(result.failures) == 1
        assert result.failures[0].row_numbers == list(range(52, 102))
        assert "database unavailable" in result.failures[0].message

    @pytest.mark.asyncio
    async def test_unbuildable_row_fails_alone(self, employees, catalogue, make_row, make_repository):
        # Classified with a short default period, committed with a long one
        classifier = RowClassifier(employees.values(), catalogue.values(), [], default_period_days=1)
        rows = [make_row() for _ in range(49)]
        rows.insert(10, make_row(training_type_name="První pomoc", last_training_date="9999-12-01"))
        preview = classifier.classify_all(rows)
        assert len(preview.valid) == 50
        repository = make_repository()

        result = await _committer(repository, default_period_days=365).commit(preview)

        assert result.inserted == 49
        assert result.failed == 1
        assert result.failures[0].row_numbers == [12]
        assert len(repository.insert_calls) == 1
        assert len(repository.inserted) == 49

    @pytest.mark.asyncio
    async def test_update_failure_isolated(self, classifier, make_row, existing_trainings, make_repository):
        preview = classifier.classify_all(
            [make_row(employee_number="E001"), make_row(employee_number="E001"), make_row()]
        )
        repository = make_repository(fail_update_ids=[existing_trainings[0].id])

        result = await _committer(repository).commit(preview, DuplicatePolicy.OVERWRITE)

        assert result.inserted == 1
        assert result.updated == 0
        assert result.failed == 2
        assert [f.row_numbers for f in result.failures] == [[2], [3]]

    @pytest.mark.asyncio
    async def test_progress_reported_after_each_unit(self, bulk_preview, make_repository):
        updates: list[CommitProgress] = []

        await _committer(make_repository()).commit(bulk_preview, on_progress=updates.append)

        assert [(u.processed, u.total) for u in updates] == [(50, 120), (100, 120), (120, 120)]
        assert updates[-1].percent == 100

    @pytest.mark.asyncio
    async def test_async_progress_callback_awaited(self, bulk_preview, make_repository):
        seen: list[int] = []

        async def on_progress(update: CommitProgress) -> None:
            seen.append(update.processed)

        await _committer(make_repository()).commit(bulk_preview, on_progress=on_progress)

        assert seen == [50, 100, 120]

    @pytest.mark.asyncio
    async def test_cancellation_between_chunks(self, bulk_preview, make_repository):
        token = CancellationToken()
        repository = make_repository(after_insert=lambda index: token.cancel())

        result = await _committer(repository).commit(bulk_preview, cancel_token=token)

        assert result.cancelled is True
        assert result.inserted == 50
        assert result.not_attempted == 70
        assert len(repository.insert_calls) == 1
        assert result.submitted == 120

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, mixed_preview, make_repository):
        token = CancellationToken()
        token.cancel()
        repository = make_repository()

        result = await _committer(repository).commit(mixed_preview, "overwrite", cancel_token=token)

        assert repository.insert_calls == []
        assert repository.update_calls == []
        assert result.not_attempted == 3
        assert result.skipped == 2

    @pytest.mark.asyncio
    async def test_empty_commit(self, classifier, make_row, make_repository):
        preview = classifier.classify_all([make_row(last_training_date=None)])
        updates: list[CommitProgress] = []

        result = await _committer(make_repository()).commit(preview, on_progress=updates.append)

        assert result.submitted == 0
        assert updates == []

    def test_chunk_size_must_be_positive(self, make_repository):
        with pytest.raises(ValueError):
            BatchCommitter(make_repository(), chunk_size=0)

    @pytest.mark.asyncio
    async def test_custom_chunk_size(self, bulk_preview, make_repository):
        repository = make_repository()

        await _committer(repository, chunk_size=100).commit(bulk_preview)

        assert [len(call) for call in repository.insert_calls] == [100, 20]
