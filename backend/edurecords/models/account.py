from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from edurecords.core.database import Base


class AccountRole(str, enum.Enum):
    ADMIN = "admin"
    STAFF = "staff"
    TEACHER = "teacher"
    STUDENT = "student"


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLEnum(AccountRole), nullable=False, default=AccountRole.STUDENT)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    profile = relationship("Profile", back_populates="account", uselist=False)
    student = relationship("Student", back_populates="account", uselist=False)


class Profile(Base):
    """Personal details of an account; ``updated`` marks changes not yet pushed to the ledger."""

    __tablename__ = "profiles"

    id = Column(Integer, ForeignKey("accounts.id"), primary_key=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    male = Column(Boolean, default=True)
    avatar = Column(String(500), nullable=False, default="")
    birth_date = Column(DateTime(timezone=True), nullable=True)
    address = Column(String(500), nullable=False, default="")
    phone = Column(String(50), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    updated = Column(Boolean, default=False, index=True)

    account = relationship("Account", back_populates="profile")


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, ForeignKey("accounts.id"), primary_key=True)
    ethnic = Column(String(100), nullable=False, default="")
    father_name = Column(String(255), nullable=False, default="")
    father_job = Column(String(255), nullable=False, default="")
    mother_name = Column(String(255), nullable=False, default="")
    mother_job = Column(String(255), nullable=False, default="")
    guardian_name = Column(String(255), nullable=False, default="")
    guardian_job = Column(String(255), nullable=False, default="")
    home_town = Column(String(255), nullable=False, default="")

    account = relationship("Account", back_populates="student")
    records = relationship("Record", back_populates="student")
