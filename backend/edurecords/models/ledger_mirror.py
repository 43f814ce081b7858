"""
Tables backing the local ledger mirror.

Used when no ledger gateway is configured; each row stores the JSON form of
the ledger model so the mirror behaves like the remote ledger.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func

from edurecords.core.database import Base


class LedgerRecord(Base):
    __tablename__ = "ledger_records"

    student_id = Column(Integer, primary_key=True)
    data = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class LedgerRecordHistory(Base):
    __tablename__ = "ledger_record_history"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    data = Column(JSON, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    updated_by = Column(String(255), nullable=False, default="")


class LedgerPersonal(Base):
    __tablename__ = "ledger_personals"

    student_id = Column(Integer, primary_key=True)
    data = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
