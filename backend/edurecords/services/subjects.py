"""
Subject registry.

Subjects are not stored in the database; the registry is built from the
curriculum below or from the JSON file named by ``SUBJECTS_FILE``.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Subject:
    id: int
    identifier: str
    name: str


DEFAULT_SUBJECTS = (
    Subject(1, "math", "Mathematics"),
    Subject(2, "literature", "Literature"),
    Subject(3, "english", "English"),
    Subject(4, "physics", "Physics"),
    Subject(5, "chemistry", "Chemistry"),
    Subject(6, "biology", "Biology"),
    Subject(7, "history", "History"),
    Subject(8, "geography", "Geography"),
    Subject(9, "civic_education", "Civic Education"),
    Subject(10, "technology", "Technology"),
    Subject(11, "informatics", "Informatics"),
    Subject(12, "physical_education", "Physical Education"),
    Subject(13, "defense_education", "National Defense Education"),
)


class SubjectRegistry:

    def __init__(self, subjects: Iterable[Subject] = DEFAULT_SUBJECTS):
        self._subjects: Dict[int, Subject] = {}
        for subject in subjects:
            if subject.id in self._subjects:
                raise ValueError(f"Duplicate subject id: {subject.id}")
            self._subjects[subject.id] = subject

    @classmethod
    def from_file(cls, path: str) -> "SubjectRegistry":
        """Load subjects from a JSON list of ``{"id", "identifier", "name"}`` objects."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        subjects = [
            Subject(int(item["id"]), item["identifier"], item.get("name", item["identifier"]))
            for item in raw
        ]
        logger.info(f"Loaded {len(subjects)} subjects from {path}")
        return cls(subjects)

    @classmethod
    def from_settings(cls, settings) -> "SubjectRegistry":
        if settings.SUBJECTS_FILE:
            return cls.from_file(settings.SUBJECTS_FILE)
        return cls()

    def lookup(self, subject_id: int) -> Optional[Subject]:
        return self._subjects.get(subject_id)

    def __contains__(self, subject_id) -> bool:
        return subject_id in self._subjects

    @property
    def ids(self) -> set:
        return set(self._subjects)

    def all(self) -> List[Subject]:
        return sorted(self._subjects.values(), key=lambda s: s.id)
