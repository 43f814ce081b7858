"""
Staging-side academic records.

A ``PendingRecordEntry`` is an unverified score change request. Once the
homeroom teacher accepts it, it becomes a ``RecordEntry`` with
``update_complete = False`` and waits for the student updater to push it to
the ledger.
"""

from sqlalchemy import (
    Column, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from edurecords.core.database import Base


class Record(Base):
    __tablename__ = "records"
    __table_args__ = (
        UniqueConstraint("student_id", "classroom_id", name="uq_records_student_classroom"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    classroom_id = Column(Integer, ForeignKey("classrooms.id"), nullable=False)

    student = relationship("Student", back_populates="records")
    classroom = relationship("Classroom", back_populates="records")
    record_entries = relationship("RecordEntry", back_populates="record")
    pending_record_entries = relationship("PendingRecordEntry", back_populates="record")


class RecordEntry(Base):
    __tablename__ = "record_entries"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(Integer, ForeignKey("records.id"), nullable=False)
    subject_id = Column(Integer, nullable=False)
    first_half_score = Column(Float, nullable=False, default=0.0)
    second_half_score = Column(Float, nullable=False, default=0.0)
    final_score = Column(Float, nullable=False, default=0.0)

    teacher_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    requester_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    approver_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    request_date = Column(DateTime(timezone=True), nullable=True)
    approval_date = Column(DateTime(timezone=True), nullable=True)
    update_complete = Column(Boolean, default=False, index=True)

    record = relationship("Record", back_populates="record_entries")


class PendingRecordEntry(Base):
    __tablename__ = "pending_record_entries"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(Integer, ForeignKey("records.id"), nullable=False)
    subject_id = Column(Integer, nullable=False)
    first_half_score = Column(Float, nullable=False, default=0.0)
    second_half_score = Column(Float, nullable=False, default=0.0)
    final_score = Column(Float, nullable=False, default=0.0)

    teacher_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    requester_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    request_date = Column(DateTime(timezone=True), nullable=True)

    record = relationship("Record", back_populates="pending_record_entries")
