from __future__ import annotations

import logging
from datetime import date, datetime
from functools import wraps
from typing import Any, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from campusdesk.errors import Conflict, NotFound, PersistenceError
from campusdesk.models import (
    Answer,
    AttendanceLedger,
    AttendanceSettings,
    AttendanceStatus,
    Course,
    Exam,
    ExamSession,
    Result,
    SessionStatus,
    UserProfile,
)
from campusdesk.storage.repo import CampusRepository

logger = logging.getLogger(__name__)

SETTINGS_ATTENDANCE_ID = "attendance"


def _store_call(func: Callable) -> Callable:
    """Translate driver failures into PersistenceError."""

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"MongoDB {func.__name__} failed: {str(e)}")
            raise PersistenceError() from e

    return wrapper


class MongoCampusRepository(CampusRepository):
    def __init__(self, mongo_uri: str, db_name: str) -> None:
        self.client = AsyncIOMotorClient(mongo_uri, serverSelectionTimeoutMS=5000)
        self.db = self.client[db_name]
        self.users = self.db["users"]
        self.courses = self.db["courses"]
        self.exams = self.db["exams"]
        self.attendance = self.db["attendance"]
        self.settings = self.db["settings"]
        self.results = self.db["results"]
        self.sessions = self.db["exam_sessions"]

    @_store_call
    async def initialize(self) -> None:
        await self.users.create_index("user_id", unique=True)
        await self.courses.create_index("course_id", unique=True)
        await self.exams.create_index("exam_id", unique=True)
        await self.attendance.create_index(
            [("course_id", ASCENDING), ("date", ASCENDING), ("student_id", ASCENDING)], unique=True
        )
        await self.results.create_index([("exam_id", ASCENDING), ("student_id", ASCENDING)])
        await self.sessions.create_index("session_id", unique=True)
        await self.sessions.create_index([("exam_id", ASCENDING), ("student_id", ASCENDING), ("status", ASCENDING)])
        logger.info("✓ MongoDB indexes ensured")

    async def close(self) -> None:
        self.client.close()
        logger.info("MongoDB connection closed")

    # ----- directory -----
    @_store_call
    async def save_user(self, user: UserProfile) -> UserProfile:
        await self.users.replace_one({"user_id": user.user_id}, user.model_dump(mode="json"), upsert=True)
        return user

    @_store_call
    async def get_user(self, user_id: str) -> UserProfile:
        doc = await self.users.find_one({"user_id": user_id})
        if not doc:
            raise NotFound("user not found")
        return UserProfile.model_validate(doc)

    @_store_call
    async def get_users(self, user_ids: list[str]) -> dict[str, UserProfile]:
        cursor = self.users.find({"user_id": {"$in": list(user_ids)}})
        docs = await cursor.to_list(length=10_000)
        return {d["user_id"]: UserProfile.model_validate(d) for d in docs}

    @_store_call
    async def save_course(self, course: Course) -> Course:
        await self.courses.replace_one({"course_id": course.course_id}, course.model_dump(mode="json"), upsert=True)
        return course

    @_store_call
    async def get_course(self, course_id: str) -> Course:
        doc = await self.courses.find_one({"course_id": course_id})
        if not doc:
            raise NotFound("course not found")
        return Course.model_validate(doc)

    @_store_call
    async def list_courses(self) -> list[Course]:
        docs = await self.courses.find({}).to_list(length=10_000)
        return [Course.model_validate(d) for d in docs]

    # ----- exams -----
    @_store_call
    async def save_exam(self, exam: Exam) -> Exam:
        await self.exams.replace_one({"exam_id": exam.exam_id}, exam.model_dump(mode="json"), upsert=True)
        return exam

    @_store_call
    async def get_exam(self, exam_id: str) -> Exam:
        doc = await self.exams.find_one({"exam_id": exam_id})
        if not doc:
            raise NotFound("exam not found")
        return Exam.model_validate(doc)

    @_store_call
    async def list_exams(self, course_id: Optional[str] = None) -> list[Exam]:
        query = {"course_id": course_id} if course_id else {}
        docs = await self.exams.find(query).sort("start_time", 1).to_list(length=10_000)
        return [Exam.model_validate(d) for d in docs]

    @_store_call
    async def delete_exam(self, exam_id: str) -> None:
        res = await self.exams.delete_one({"exam_id": exam_id})
        if res.deleted_count == 0:
            raise NotFound("exam not found")

    # ----- attendance -----
    @_store_call
    async def get_attendance_ledger(self, course_id: str) -> AttendanceLedger:
        ledger: AttendanceLedger = {}
        async for doc in self.attendance.find({"course_id": course_id}):
            day = date.fromisoformat(doc["date"])
            ledger.setdefault(day, {})[doc["student_id"]] = AttendanceStatus(doc["status"])
        return ledger

    @_store_call
    async def mark_attendance(self, course_id: str, day: date, records: dict[str, AttendanceStatus]) -> None:
        for student_id, status in records.items():
            await self.attendance.update_one(
                {"course_id": course_id, "date": day.isoformat(), "student_id": student_id},
                {"$set": {"status": AttendanceStatus(status).value}},
                upsert=True,
            )

    @_store_call
    async def get_attendance_settings(self) -> AttendanceSettings:
        doc = await self.settings.find_one({"_id": SETTINGS_ATTENDANCE_ID})
        if not doc:
            return AttendanceSettings()
        return AttendanceSettings.model_validate(doc)

    @_store_call
    async def save_attendance_settings(self, settings: AttendanceSettings) -> AttendanceSettings:
        await self.settings.replace_one(
            {"_id": SETTINGS_ATTENDANCE_ID}, settings.model_dump(mode="json"), upsert=True
        )
        return settings

    # ----- results -----
    @_store_call
    async def insert_result(self, result: Result) -> Result:
        try:
            await self.results.insert_one({"_id": result.result_id, **result.model_dump(mode="json")})
        except DuplicateKeyError:
            raise Conflict("result already exists")
        return result

    @_store_call
    async def get_result(self, result_id: str) -> Result:
        doc = await self.results.find_one({"_id": result_id})
        if not doc:
            raise NotFound("result not found")
        return Result.model_validate(doc)

    @_store_call
    async def list_results(self, exam_id: Optional[str] = None, student_id: Optional[str] = None) -> list[Result]:
        query: dict[str, Any] = {}
        if exam_id:
            query["exam_id"] = exam_id
        if student_id:
            query["student_id"] = student_id
        docs = await self.results.find(query).sort("submitted_at", 1).to_list(length=10_000)
        return [Result.model_validate(d) for d in docs]

    @_store_call
    async def save_result_marks(self, result_id: str, answers: dict[str, Answer], total_marks: int) -> Result:
        res = await self.results.update_one(
            {"_id": result_id},
            {
                "$set": {
                    "answers": {qid: a.model_dump(mode="json") for qid, a in answers.items()},
                    "total_marks": total_marks,
                }
            },
        )
        if res.matched_count == 0:
            raise NotFound("result not found")
        return await self.get_result(result_id)

    @_store_call
    async def set_publish_state(self, exam_id: str, is_published: bool, publish_date: Optional[datetime]) -> int:
        res = await self.results.update_many(
            {"exam_id": exam_id},
            {
                "$set": {
                    "is_published": is_published,
                    "publish_date": publish_date.isoformat() if publish_date else None,
                }
            },
        )
        return res.matched_count

    @_store_call
    async def delete_result(self, result_id: str) -> None:
        res = await self.results.delete_one({"_id": result_id})
        if res.deleted_count == 0:
            raise NotFound("result not found")

    # ----- exam sessions -----
    @_store_call
    async def create_session(self, session: ExamSession) -> ExamSession:
        await self.sessions.insert_one(session.model_dump(mode="json"))
        return session

    @_store_call
    async def get_session(self, session_id: str) -> ExamSession:
        doc = await self.sessions.find_one({"session_id": session_id})
        if not doc:
            raise NotFound("session not found")
        return ExamSession.model_validate(doc)

    @_store_call
    async def find_running_session(self, exam_id: str, student_id: str) -> Optional[ExamSession]:
        doc = await self.sessions.find_one(
            {"exam_id": exam_id, "student_id": student_id, "status": SessionStatus.running.value}
        )
        return ExamSession.model_validate(doc) if doc else None

    @_store_call
    async def complete_session(self, session_id: str, result_id: str, submitted_at: datetime) -> ExamSession:
        res = await self.sessions.update_one(
            {"session_id": session_id, "status": SessionStatus.running.value},
            {
                "$set": {
                    "status": SessionStatus.submitted.value,
                    "result_id": result_id,
                    "submitted_at": submitted_at.isoformat(),
                }
            },
        )
        if res.modified_count == 0:
            # Either missing (NotFound) or already submitted (Conflict).
            await self.get_session(session_id)
            raise Conflict("exam already submitted")
        return await self.get_session(session_id)
