"""Bulk training import: classification, approval and chunked commit."""

from bulkrecon.importing.classifier import RowClassifier
from bulkrecon.importing.committer import BatchCommitter, CancellationToken, CommitProgress
from bulkrecon.importing.errors import (
    ApprovalError,
    CommitError,
    ResolutionError,
    RowImportError,
    RowValidationError,
    SessionStateError,
)
from bulkrecon.importing.rows import (
    AutoMatchedRow,
    DuplicateRow,
    ErrorRow,
    ImportPreview,
    SuggestionRow,
    ValidRow,
)
from bulkrecon.importing.session import ImportSession
from bulkrecon.importing.workflow import ApprovalWorkflow

__all__ = [
    "RowClassifier",
    "BatchCommitter",
    "CancellationToken",
    "CommitProgress",
    "ApprovalWorkflow",
    "ImportSession",
    "ImportPreview",
    "ValidRow",
    "ErrorRow",
    "DuplicateRow",
    "AutoMatchedRow",
    "SuggestionRow",
    "RowImportError",
    "RowValidationError",
    "ResolutionError",
    "CommitError",
    "ApprovalError",
    "SessionStateError",
]
