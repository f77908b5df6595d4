"""Reference resolution for import rows.

Training types resolve through three tiers, stopping at the first that qualifies:
1. Exact: same facility, folded names equal -> score 100
2. In-facility fuzzy: best similarity among same-facility entries >= minimum
3. Cross-facility fuzzy: same search over every other facility (flagged)

Employees resolve by exact identity only (employee number, then email).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from bulkrecon.canonical.normalize import fold_name, normalize_name
from bulkrecon.matching.similarity import normalized_similarity
from bulkrecon.models import EmployeeRef, TrainingTypeRef


class MatchTier(Enum):
    """Which resolution tier produced a match."""

    EXACT = "exact"
    IN_FACILITY = "in_facility"
    CROSS_FACILITY = "cross_facility"


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of one successful training type lookup."""

    ref: TrainingTypeRef
    score: int  # 0-100
    cross_facility: bool
    tier: MatchTier

    @property
    def is_exact(self) -> bool:
        return self.tier is MatchTier.EXACT


def _facility_key(code: str | None) -> str:
    return (code or "").strip().lower()


class TrainingTypeResolver:
    """Resolve a training type name + facility code against the catalogue.

    The catalogue is indexed once; lookups never mutate it. Catalogue order is
    preserved inside each facility so ties go to the first-seen entry.
    """

    def __init__(self, catalogue: Iterable[TrainingTypeRef], min_similarity: int = 70) -> None:
        """Initialize resolver.

        Args:
            catalogue: All training type records
            min_similarity: Floor below which a fuzzy candidate is ignored
        """
        self.min_similarity = min_similarity
        self._entries: list[tuple[TrainingTypeRef, str, str]] = [
            (ref, fold_name(ref.name), normalize_name(ref.name)) for ref in catalogue
        ]
        self._by_id = {ref.id: ref for ref, _, _ in self._entries}

    def get(self, training_type_id) -> TrainingTypeRef | None:
        """Catalogue entry by id, or None."""
        return self._by_id.get(training_type_id)

    def resolve(self, name: str, facility: str) -> MatchResult | None:
        """Return the best qualifying match, or None when no tier qualifies."""
        facility_key = _facility_key(facility)
        same_facility = [e for e in self._entries if _facility_key(e[0].facility) == facility_key]

        folded = fold_name(name)
        for ref, entry_folded, _ in same_facility:
            if entry_folded == folded:
                return MatchResult(ref=ref, score=100, cross_facility=False, tier=MatchTier.EXACT)

        normalized = normalize_name(name)
        best = self._best_candidate(normalized, same_facility)
        if best is not None:
            ref, score = best
            return MatchResult(ref=ref, score=score, cross_facility=False, tier=MatchTier.IN_FACILITY)

        other_facilities = [e for e in self._entries if _facility_key(e[0].facility) != facility_key]
        best = self._best_candidate(normalized, other_facilities)
        if best is not None:
            ref, score = best
            return MatchResult(ref=ref, score=score, cross_facility=True, tier=MatchTier.CROSS_FACILITY)

        return None

    def _best_candidate(
        self,
        normalized: str,
        entries: Sequence[tuple[TrainingTypeRef, str, str]],
    ) -> tuple[TrainingTypeRef, int] | None:
        best_ref: TrainingTypeRef | None = None
        best_score = -1
        for ref, _, entry_normalized in entries:
            score = normalized_similarity(normalized, entry_normalized)
            if score > best_score:  # strict: earlier entry wins ties
                best_ref, best_score = ref, score

        if best_ref is None or best_score < self.min_similarity:
            return None
        return best_ref, best_score


class EmployeeResolver:
    """Exact, case-insensitive employee lookup by number, then email."""

    def __init__(self, employees: Iterable[EmployeeRef]) -> None:
        self._by_number: dict[str, EmployeeRef] = {}
        self._by_email: dict[str, EmployeeRef] = {}
        for employee in employees:
            # First record wins when the store holds duplicates
            if employee.employee_number:
                self._by_number.setdefault(employee.employee_number.strip().lower(), employee)
            if employee.email:
                self._by_email.setdefault(employee.email.strip().lower(), employee)

    def resolve(self, employee_number: str | None, email: str | None) -> EmployeeRef | None:
        """Return the employee, or None if neither identifier matches."""
        if employee_number:
            employee = self._by_number.get(employee_number.strip().lower())
            if employee is not None:
                return employee
        if email:
            return self._by_email.get(email.strip().lower())
        return None
