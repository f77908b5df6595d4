"""One bulk import, from parsed rows to committed trainings.

prepare() -> workflow operations -> commit() (at most once)

The store snapshot is taken once in prepare(); classification, approval and
commit all work against that snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from bulkrecon.config import ImportConfig
from bulkrecon.importing.classifier import RowClassifier
from bulkrecon.importing.committer import BatchCommitter, CancellationToken, ProgressCallback
from bulkrecon.importing.errors import SessionStateError
from bulkrecon.importing.export import error_records
from bulkrecon.importing.repository import TrainingRepository
from bulkrecon.importing.rows import ImportPreview
from bulkrecon.importing.workflow import ApprovalWorkflow
from bulkrecon.models import BatchResult, DuplicatePolicy, ImportRow, ImportSettings

logger = logging.getLogger(__name__)


class ImportSession:
    """Stateful orchestration of a single import run."""

    def __init__(
        self,
        repository: TrainingRepository,
        settings: ImportSettings | None = None,
        config: ImportConfig | None = None,
    ):
        self.repository = repository
        self.config = config or ImportConfig()
        self.settings = settings or self.config.settings()
        self.cancel_token = CancellationToken()

        self._preview: ImportPreview | None = None
        self._workflow: ApprovalWorkflow | None = None
        self._committing = False
        self._result: BatchResult | None = None

    @property
    def preview(self) -> ImportPreview:
        if self._preview is None:
            raise SessionStateError("Import not prepared yet")
        return self._preview

    @property
    def workflow(self) -> ApprovalWorkflow:
        if self._workflow is None:
            raise SessionStateError("Import not prepared yet")
        return self._workflow

    @property
    def result(self) -> BatchResult | None:
        return self._result

    async def prepare(self, rows: Sequence[ImportRow]) -> ImportPreview:
        """Snapshot the store and classify every row.

        Raises:
            SessionStateError: If a commit has already started
        """
        if self._committing or self._result is not None:
            raise SessionStateError("Cannot re-prepare an import that was committed")

        employees = await self.repository.list_employees()
        training_types = await self.repository.list_training_types()
        existing = await self.repository.list_existing_trainings(exclude_deleted=True)
        logger.info(
            f"Loaded {len(employees)} employees, {len(training_types)} training types, "
            f"{len(existing)} existing trainings"
        )

        classifier = RowClassifier(
            employees,
            training_types,
            existing,
            settings=self.settings,
            default_period_days=self.config.default_period_days,
        )
        self._preview = classifier.classify_all(rows)
        self._workflow = ApprovalWorkflow(self._preview, training_types, duplicates=classifier.duplicates)
        return self._preview

    async def commit(
        self,
        policy: DuplicatePolicy | str = DuplicatePolicy.SKIP,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Commit accepted rows once.

        Raises:
            SessionStateError: Before prepare(), while a commit is running,
                or after a commit finished
        """
        preview = self.preview
        if self._committing:
            raise SessionStateError("A commit is already in progress")
        if self._result is not None:
            raise SessionStateError("This import has already been committed")

        self._committing = True
        try:
            committer = BatchCommitter(
                self.repository,
                chunk_size=self.config.chunk_size,
                default_period_days=self.config.default_period_days,
                expiry_warning_days=self.config.expiry_warning_days,
                created_by=self.config.created_by,
            )
            self._result = await committer.commit(
                preview,
                policy=policy,
                cancel_token=self.cancel_token,
                on_progress=on_progress,
            )
        finally:
            self._committing = False
        return self._result

    def cancel(self) -> None:
        """Request cooperative cancellation of the running commit."""
        logger.info("Import cancellation requested")
        self.cancel_token.cancel()

    def error_rows(self) -> list[dict[str, str | int]]:
        """Rejected rows in export shape."""
        return error_records(self.preview)
