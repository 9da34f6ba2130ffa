from datetime import date

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from campusdesk.errors import Conflict, NotFound, PersistenceError
from campusdesk.models import AttendanceSettings, AttendanceStatus, ExamSession, Result, SessionStatus
from campusdesk.storage.inmemory import InMemoryCampusRepository
from campusdesk.storage.mongo import MongoCampusRepository

from conftest import NOW


async def test_insert_result_is_insert_if_absent():
    repo = InMemoryCampusRepository()
    await repo.insert_result(Result(result_id="e:s", exam_id="e", student_id="s", total_marks=3))

    with pytest.raises(Conflict):
        await repo.insert_result(Result(result_id="e:s", exam_id="e", student_id="s", total_marks=9))

    assert (await repo.get_result("e:s")).total_marks == 3


async def test_complete_session_only_once():
    repo = InMemoryCampusRepository()
    session = ExamSession(exam_id="e", student_id="s", started_at=NOW, deadline=NOW)
    await repo.create_session(session)

    done = await repo.complete_session(session.session_id, "e:s", NOW)
    assert done.status == SessionStatus.submitted
    assert await repo.find_running_session("e", "s") is None

    with pytest.raises(Conflict):
        await repo.complete_session(session.session_id, "e:s", NOW)
    with pytest.raises(NotFound):
        await repo.complete_session("missing", "e:s", NOW)


async def test_returned_values_are_copies():
    repo = InMemoryCampusRepository()
    await repo.insert_result(Result(result_id="e:s", exam_id="e", student_id="s"))

    fetched = await repo.get_result("e:s")
    fetched.total_marks = 99

    assert (await repo.get_result("e:s")).total_marks == 0


async def test_publish_state_applies_to_whole_exam():
    repo = InMemoryCampusRepository()
    for sid in ("s1", "s2"):
        await repo.insert_result(Result(result_id=f"e:{sid}", exam_id="e", student_id=sid))
    await repo.insert_result(Result(result_id="other:s1", exam_id="other", student_id="s1"))

    updated = await repo.set_publish_state("e", True, NOW)

    assert updated == 2
    assert not (await repo.get_result("other:s1")).is_published


async def test_attendance_marking_overwrites_a_day():
    repo = InMemoryCampusRepository()
    day = date(2025, 3, 3)
    await repo.mark_attendance("bca", day, {"s1": AttendanceStatus.absent})
    await repo.mark_attendance("bca", day, {"s1": AttendanceStatus.present, "s2": AttendanceStatus.half_day})

    ledger = await repo.get_attendance_ledger("bca")

    assert ledger == {day: {"s1": AttendanceStatus.present, "s2": AttendanceStatus.half_day}}
    assert await repo.get_attendance_ledger("bcom") == {}


async def test_attendance_settings_default_until_saved():
    repo = InMemoryCampusRepository()
    assert (await repo.get_attendance_settings()).exam_eligibility_threshold == 80.0

    await repo.save_attendance_settings(AttendanceSettings(exam_eligibility_threshold=70))

    assert (await repo.get_attendance_settings()).exam_eligibility_threshold == 70.0


class FailingCollection:
    def __init__(self, error):
        self.error = error

    async def insert_one(self, doc):
        raise self.error

    async def find_one(self, query):
        raise self.error


@pytest.fixture
async def mongo_repo():
    repo = MongoCampusRepository("mongodb://localhost:27017", "campusdesk_test")
    yield repo
    repo.client.close()


async def test_mongo_duplicate_result_is_conflict(mongo_repo):
    mongo_repo.results = FailingCollection(DuplicateKeyError("E11000 duplicate key"))

    with pytest.raises(Conflict):
        await mongo_repo.insert_result(Result(result_id="e:s", exam_id="e", student_id="s"))


async def test_mongo_driver_errors_become_persistence_errors(mongo_repo):
    mongo_repo.results = FailingCollection(ServerSelectionTimeoutError("no servers"))

    with pytest.raises(PersistenceError) as excinfo:
        await mongo_repo.get_result("e:s")

    assert excinfo.value.status_code == 503
