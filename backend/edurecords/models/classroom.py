from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from edurecords.core.database import Base


class Classroom(Base):
    __tablename__ = "classrooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    grade = Column(Integer, nullable=False)
    homeroom_teacher_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)

    homeroom_teacher = relationship("Account", foreign_keys=[homeroom_teacher_id])
    records = relationship("Record", back_populates="classroom")
    class_teachers = relationship("ClassTeacher", back_populates="classroom")


class ClassTeacher(Base):
    """Teacher in charge of one subject of a classroom."""

    __tablename__ = "class_teachers"
    __table_args__ = (
        UniqueConstraint("classroom_id", "subject_id", name="uq_class_teachers_classroom_subject"),
    )

    id = Column(Integer, primary_key=True, index=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id"), nullable=False)
    subject_id = Column(Integer, nullable=False)
    teacher_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)

    classroom = relationship("Classroom", back_populates="class_teachers")
    teacher = relationship("Account", foreign_keys=[teacher_id])
