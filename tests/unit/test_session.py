"""Tests for import session orchestration."""

from __future__ import annotations

import asyncio

import pytest

from bulkrecon.config import ImportConfig
from bulkrecon.importing.errors import ApprovalError, SessionStateError
from bulkrecon.importing.session import ImportSession
from bulkrecon.models import DuplicatePolicy, ImportSettings


@pytest.fixture
def rows(make_row):
    return [
        make_row(),
        make_row(training_type_name="ATEXX"),
        make_row(employee_number="E001"),
        make_row(employee_number=None),
    ]


@pytest.mark.asyncio
async def test_prepare_snapshots_store_once(fake_repository, rows):
    session = ImportSession(fake_repository)

    preview = await session.prepare(rows)

    assert preview.summary()["total_rows"] == 4
    assert fake_repository.exclude_deleted_args == [True]
    assert session.preview is preview
    assert session.workflow.preview is preview


@pytest.mark.asyncio
async def test_full_flow(fake_repository, rows):
    session = ImportSession(fake_repository)
    await session.prepare(rows)
    session.workflow.approve(3)

    result = await session.commit(DuplicatePolicy.OVERWRITE)

    assert result.inserted == 2
    assert result.updated == 1
    assert result.skipped == 0
    assert session.result is result
    assert [r["row_number"] for r in session.error_rows()] == [5]


@pytest.mark.asyncio
async def test_settings_override_config(fake_repository, rows):
    session = ImportSession(
        fake_repository,
        settings=ImportSettings(min_similarity_threshold=70, auto_match_threshold=80),
    )

    preview = await session.prepare(rows)

    assert [row.row_number for row in preview.auto_matched] == [3]


@pytest.mark.asyncio
async def test_config_drives_committer(fake_repository, make_row):
    session = ImportSession(fake_repository, config=ImportConfig(chunk_size=2, created_by="hr-bot"))
    await session.prepare([make_row() for _ in range(5)])

    await session.commit()

    assert [len(call) for call in fake_repository.insert_calls] == [2, 2, 1]
    assert {r.created_by for r in fake_repository.inserted} == {"hr-bot"}


@pytest.mark.asyncio
async def test_override_checks_store_snapshot(fake_repository, make_row, catalogue):
    session = ImportSession(fake_repository)
    await session.prepare([make_row(employee_number="E001", training_type_name="Svařování")])

    with pytest.raises(ApprovalError, match="already has"):
        session.workflow.override(2, catalogue["atex"].id)


@pytest.mark.asyncio
async def test_default_period_reaches_classifier(fake_repository, make_row):
    row = make_row(training_type_name="První pomoc", last_training_date="9999-12-01")

    short = await ImportSession(fake_repository, config=ImportConfig(default_period_days=1)).prepare([row])
    long = await ImportSession(fake_repository, config=ImportConfig(default_period_days=365)).prepare([row])

    assert len(short.valid) == 1
    assert len(long.errors) == 1


@pytest.mark.asyncio
async def test_commit_before_prepare(fake_repository):
    with pytest.raises(SessionStateError):
        await ImportSession(fake_repository).commit()


def test_workflow_before_prepare(fake_repository):
    with pytest.raises(SessionStateError):
        ImportSession(fake_repository).workflow


@pytest.mark.asyncio
async def test_second_commit_rejected(fake_repository, rows):
    session = ImportSession(fake_repository)
    await session.prepare(rows)
    await session.commit()

    with pytest.raises(SessionStateError, match="already been committed"):
        await session.commit()
    with pytest.raises(SessionStateError):
        await session.prepare(rows)


@pytest.mark.asyncio
async def test_concurrent_commit_rejected(fake_repository, make_row):
    session = ImportSession(fake_repository, config=ImportConfig(chunk_size=1))
    await session.prepare([make_row() for _ in range(3)])
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_progress(update):
        started.set()
        await release.wait()

    first = asyncio.create_task(session.commit(on_progress=slow_progress))
    await started.wait()

    with pytest.raises(SessionStateError, match="in progress"):
        await session.commit()

    release.set()
    result = await first
    assert result.inserted == 3


@pytest.mark.asyncio
async def test_cancel_stops_commit(fake_repository, make_row):
    session = ImportSession(fake_repository, config=ImportConfig(chunk_size=2))
    await session.prepare([make_row() for _ in range(6)])

    def cancel_after_first(update):
        session.cancel()

    result = await session.commit(on_progress=cancel_after_first)

    assert result.cancelled is True
    assert result.inserted == 2
    assert result.not_attempted == 4
