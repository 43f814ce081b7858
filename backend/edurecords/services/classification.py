"""
Academic classification of a classroom result.

The rank is decided by the average score across subjects, capped by the
weakest subject: a student averaging 8.5 with one subject at 4.0 is ranked
by the 4.0 rule, not the average.
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Mapping, Optional

from edurecords.integrations.ledger.models import Classification, SubjectScore


class ClassificationRank(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    AVERAGE = "AVERAGE"
    WEAK = "WEAK"
    POOR = "POOR"
    UNKNOWN = "UNKNOWN"


# (rank, minimum average, minimum single subject score), best rank first
RANK_THRESHOLDS = (
    (ClassificationRank.EXCELLENT, Decimal("8.0"), Decimal("6.5")),
    (ClassificationRank.GOOD, Decimal("6.5"), Decimal("5.0")),
    (ClassificationRank.AVERAGE, Decimal("5.0"), Decimal("3.5")),
    (ClassificationRank.WEAK, Decimal("3.5"), Decimal("2.0")),
)


def _round_score(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def classify(scores: Mapping[int, float]) -> ClassificationRank:
    """Rank a subject id -> score mapping. An empty mapping is ``UNKNOWN``."""
    if not scores:
        return ClassificationRank.UNKNOWN

    values = [Decimal(str(score)) for score in scores.values()]
    average = _round_score(sum(values) / len(values))
    lowest = min(values)

    for rank, min_average, min_subject in RANK_THRESHOLDS:
        if average >= min_average and lowest >= min_subject:
            return rank
    return ClassificationRank.POOR


class ClassificationEngine:
    """Computes the three classifications of a classroom result."""

    def classify(self, scores: Mapping[int, float]) -> ClassificationRank:
        return classify(scores)

    def classify_subjects(
        self,
        subjects: Mapping[int, SubjectScore],
        include: Optional[set] = None
    ) -> Classification:
        """
        Classify first half, second half and final scores independently.

        ``include`` restricts the computation to the given subject ids.
        """
        selected = {
            subject_id: subject for subject_id, subject in subjects.items()
            if include is None or subject_id in include
        }
        first_half = {subject_id: s.first_half_score for subject_id, s in selected.items()}
        second_half = {subject_id: s.second_half_score for subject_id, s in selected.items()}
        final = {subject_id: s.final_score for subject_id, s in selected.items()}
        return Classification(
            first_half_classify=self.classify(first_half).value,
            second_half_classify=self.classify(second_half).value,
            final_classify=self.classify(final).value
        )
