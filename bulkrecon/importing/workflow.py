"""Approval workflow for suggestion rows.

Explicit in-memory state over an ImportPreview: a UI (or the CLI) issues
commands against it instead of owning the state. Every operation is
synchronous and idempotent and touches nothing outside the preview.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import UUID

from bulkrecon.importing.classifier import DuplicateIndex
from bulkrecon.importing.errors import ApprovalError
from bulkrecon.importing.rows import ImportPreview, SuggestionRow, TypeMatch
from bulkrecon.models import TrainingTypeRef

logger = logging.getLogger(__name__)


class ApprovalWorkflow:
    """Approve, reject or override suggestion rows before commit."""

    def __init__(
        self,
        preview: ImportPreview,
        catalogue: Iterable[TrainingTypeRef],
        duplicates: DuplicateIndex | None = None,
    ) -> None:
        """Initialize workflow.

        Args:
            preview: Preview whose suggestion bucket is reviewed
            catalogue: Training types allowed as override targets
            duplicates: Existing trainings an override must not collide with
        """
        self.preview = preview
        self._catalogue = {ref.id: ref for ref in catalogue}
        self._duplicates = duplicates

    def approve(self, row_number: int) -> SuggestionRow:
        row = self._suggestion(row_number)
        row.approved = True
        return row

    def reject(self, row_number: int) -> SuggestionRow:
        row = self._suggestion(row_number)
        row.approved = False
        return row

    def approve_all(self) -> int:
        """Approve every suggestion; returns how many changed state."""
        changed = 0
        for row in self.preview.suggestions:
            if not row.approved:
                row.approved = True
                changed += 1
        logger.info(f"Approved {changed} suggestions")
        return changed

    def reject_all(self) -> int:
        """Reject every suggestion; returns how many changed state."""
        changed = 0
        for row in self.preview.suggestions:
            if row.approved:
                row.approved = False
                changed += 1
        logger.info(f"Rejected {changed} suggestions")
        return changed

    def override(self, row_number: int, training_type_id: UUID) -> SuggestionRow:
        """Replace the suggested type with an operator-chosen one and approve it.

        Confidence becomes 100; the cross-facility flag is recomputed against
        the row's own facility code.

        Raises:
            ApprovalError: If the row is not a suggestion, the type is unknown,
                or the employee already has a training of that type on record
        """
        row = self._suggestion(row_number)
        ref = self._catalogue.get(training_type_id)
        if ref is None:
            raise ApprovalError(f"Unknown training type: {training_type_id}")
        if self._duplicates is not None and self._duplicates.find(row.employee_id, ref.id) is not None:
            raise ApprovalError(
                f'Row {row_number}: employee already has "{ref.name}" on record; '
                "override would create a duplicate training"
            )

        row_facility = (row.data.facility_code or "").strip().lower()
        row.match = TypeMatch(
            training_type_id=ref.id,
            training_type_name=ref.name,
            facility=ref.facility,
            period_days=ref.period_days,
            confidence=100,
            cross_facility=ref.facility.strip().lower() != row_facility,
        )
        row.manual_override_type_id = ref.id
        row.approved = True
        row.warning = f'Manually assigned "{ref.name}"'
        logger.info(f"Row {row_number}: training type overridden to {ref.name} ({ref.id})")
        return row

    def _suggestion(self, row_number: int) -> SuggestionRow:
        for row in self.preview.suggestions:
            if row.row_number == row_number:
                return row

        other = self.preview.find(row_number)
        if other is None:
            raise ApprovalError(f"Row {row_number} does not exist in this import")
        raise ApprovalError(
            f"Row {row_number} is {other.disposition.value}; only suggestions can be reviewed"
        )
