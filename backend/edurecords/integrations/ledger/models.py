"""
Data model of the authoritative student ledger.

These are the documents the ledger stores per student: the academic record
(one ``ClassRecord`` per classroom) and the personal profile. JSON uses
camelCase field names.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class LedgerModel(BaseModel):
    """Base for ledger documents: camelCase on the wire, snake_case in code."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SubjectScore(LedgerModel):
    name: str = ""
    first_half_score: float = 0.0
    second_half_score: float = 0.0
    final_score: float = 0.0


class Classification(LedgerModel):
    first_half_classify: str = ""
    second_half_classify: str = ""
    final_classify: str = ""


class ClassRecord(LedgerModel):
    class_name: str = ""
    year: int = 0
    grade: int = 0
    subjects: Dict[int, SubjectScore] = Field(default_factory=dict)
    classification: Classification = Field(default_factory=Classification)


class StudentRecord(LedgerModel):
    class_records: Dict[int, ClassRecord] = Field(default_factory=dict)

    def clone(self) -> "StudentRecord":
        return self.model_copy(deep=True)


class RecordHistory(LedgerModel):
    timestamp: datetime
    record: StudentRecord = Field(default_factory=StudentRecord)
    updated_by: str = ""


class Personal(LedgerModel):
    first_name: str = ""
    last_name: str = ""
    male: bool = True
    avatar: str = ""
    birth_date: Optional[datetime] = None
    address: str = ""
    ethnic: str = ""
    father_name: str = ""
    father_job: str = ""
    mother_name: str = ""
    mother_job: str = ""
    guardian_name: str = ""
    guardian_job: str = ""
    home_town: str = ""

    @classmethod
    def from_entity(cls, student, profile) -> "Personal":
        """Build the ledger profile from a staging ``Student`` and its ``Profile``."""
        return cls(
            first_name=profile.first_name or "",
            last_name=profile.last_name or "",
            male=bool(profile.male),
            avatar=profile.avatar or "",
            birth_date=profile.birth_date,
            address=profile.address or "",
            ethnic=student.ethnic or "",
            father_name=student.father_name or "",
            father_job=student.father_job or "",
            mother_name=student.mother_name or "",
            mother_job=student.mother_job or "",
            guardian_name=student.guardian_name or "",
            guardian_job=student.guardian_job or "",
            home_town=student.home_town or "",
        )


def parse_record_map(data: dict) -> Dict[int, StudentRecord]:
    return {int(student_id): StudentRecord.model_validate(record) for student_id, record in data.items()}


def parse_personal_map(data: dict) -> Dict[int, Personal]:
    return {int(student_id): Personal.model_validate(personal) for student_id, personal in data.items()}


def parse_history(data: list) -> List[RecordHistory]:
    return [RecordHistory.model_validate(item) for item in data]
