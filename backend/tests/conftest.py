"""
Shared fixtures: a fresh in-memory staging database per test and a small
school seeded into it.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import pytest_asyncio

from edurecords.core.database import create_engine, create_session_factory, init_db
from edurecords.models.account import Account, AccountRole, Profile, Student
from edurecords.models.classroom import Classroom, ClassTeacher
from edurecords.models.record import Record, RecordEntry
from edurecords.services.subjects import SubjectRegistry

TEST_HASH = "$2b$04$abcdefghijklmnopqrstuuJ3nBgY2m0xW8cG1Dq2lY0rXU6C3C2xK"


@pytest_asyncio.fixture
async def engine():
    """In-memory staging database with every table created."""
    test_engine = create_engine("sqlite+aiosqlite://", memory=True)
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """File-backed staging database, for tests that open sessions concurrently."""
    test_engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'edurecords.db'}")
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def file_session_factory(file_engine):
    return create_session_factory(file_engine)


@pytest.fixture
def subjects():
    return SubjectRegistry()


async def _seed_school(factory):
    async with factory() as session:
        session.add_all([
            Account(id=100, username="homeroom", hashed_password=TEST_HASH, role=AccountRole.TEACHER),
            Account(id=101, username="mathteacher", hashed_password=TEST_HASH, role=AccountRole.TEACHER),
            Account(id=1, username="annv", hashed_password=TEST_HASH, role=AccountRole.STUDENT),
            Account(id=2, username="binhtt", hashed_password=TEST_HASH, role=AccountRole.STUDENT),
        ])
        await session.flush()
        session.add_all([
            Profile(id=100, first_name="Lan", last_name="Pham Thi"),
            Profile(id=1, first_name="An", last_name="Nguyen Van", address="Hanoi"),
            Profile(id=2, first_name="Binh", last_name="Tran Thi", male=False),
            Student(id=1, ethnic="Kinh", father_name="Nguyen Van Ba", home_town="Nam Dinh"),
            Student(id=2, ethnic="Kinh"),
            Classroom(id=10, name="10A1", year=2023, grade=10, homeroom_teacher_id=100),
            Classroom(id=11, name="11A1", year=2024, grade=11, homeroom_teacher_id=100),
        ])
        await session.flush()
        session.add_all([
            ClassTeacher(classroom_id=10, subject_id=1, teacher_id=101),
            Record(id=1, student_id=1, classroom_id=10),
            Record(id=2, student_id=2, classroom_id=10),
            Record(id=3, student_id=1, classroom_id=11),
        ])
        await session.commit()

    return SimpleNamespace(
        homeroom_teacher_id=100,
        math_teacher_id=101,
        student_ids=(1, 2),
        classroom_id=10,
        next_classroom_id=11,
        record_ids={(1, 10): 1, (2, 10): 2, (1, 11): 3},
    )


@pytest_asyncio.fixture
async def school(session_factory):
    """Two students of classroom 10A1, a homeroom teacher and a math teacher."""
    return await _seed_school(session_factory)


@pytest_asyncio.fixture
async def file_school(file_session_factory):
    return await _seed_school(file_session_factory)


@pytest.fixture
def add_entry():
    """Insert an approved record entry that is not yet complete."""
    base_time = datetime(2024, 1, 15, 10, 0, 0)

    async def _add_entry(factory, record_id, subject_id, final_score, minutes=0,
                         first_half=5.0, second_half=5.0, complete=False):
        async with factory() as session:
            entry = RecordEntry(
                record_id=record_id,
                subject_id=subject_id,
                first_half_score=first_half,
                second_half_score=second_half,
                final_score=final_score,
                approver_id=100,
                request_date=base_time,
                approval_date=base_time + timedelta(minutes=minutes),
                update_complete=complete
            )
            session.add(entry)
            await session.commit()
            return entry.id

    return _add_entry
