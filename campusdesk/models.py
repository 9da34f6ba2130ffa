from __future__ import annotations

import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class AttendanceStatus(str, Enum):
    present = "present"
    absent = "absent"
    half_day = "half-day"


class AnswerStatus(str, Enum):
    auto_graded = "auto-graded"
    pending_evaluation = "pending-evaluation"
    evaluated = "evaluated"


class SessionStatus(str, Enum):
    running = "running"
    submitted = "submitted"


# ===== Directory =====
class Course(BaseModel):
    course_id: str
    name: str
    subjects: list[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    user_id: str
    email: str
    name: str
    role: UserRole = UserRole.STUDENT
    admission_no: Optional[str] = None
    course_id: Optional[str] = None
    assigned_courses: list[str] = Field(default_factory=list)

    def can_access_course(self, course_id: str) -> bool:
        if self.role == UserRole.ADMIN:
            return True
        if self.role == UserRole.TEACHER:
            return course_id in self.assigned_courses
        return self.course_id == course_id


# ===== Questions =====
class _QuestionBase(BaseModel):
    question_id: str = Field(default_factory=new_id)
    text: str = Field(min_length=1)


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multiple-choice"] = "multiple-choice"
    marks: int = Field(1, gt=0)
    options: list[str] = Field(min_length=2)
    correct_answer: str

    @model_validator(mode="after")
    def correct_answer_is_an_option(self) -> "MultipleChoiceQuestion":
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of options")
        return self


class ShortAnswerQuestion(_QuestionBase):
    type: Literal["short-answer"] = "short-answer"
    marks: int = Field(2, gt=0)


class LongAnswerQuestion(_QuestionBase):
    type: Literal["long-answer"] = "long-answer"
    marks: int = Field(5, gt=0)


Question = Annotated[
    Union[MultipleChoiceQuestion, ShortAnswerQuestion, LongAnswerQuestion],
    Field(discriminator="type"),
]


class QuestionView(BaseModel):
    """Question as shown to a student (no correct answer)."""

    question_id: str
    text: str
    type: str
    marks: int
    options: Optional[list[str]] = None


# ===== Exams =====
class Exam(BaseModel):
    exam_id: str = Field(default_factory=new_id)
    name: str = Field(min_length=3)
    description: str = ""
    course_id: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    duration: int = Field(ge=1, description="Minutes")
    multiple_attempts: bool = False
    questions: list[Question] = Field(default_factory=list)

    @field_validator("start_time", "end_time")
    @classmethod
    def to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("questions", mode="before")
    @classmethod
    def questions_as_list(cls, value: Any) -> Any:
        # Stored documents may key questions by id instead of listing them.
        if value is None:
            return []
        if isinstance(value, dict):
            questions = []
            for key, question in value.items():
                if isinstance(question, dict):
                    question = {**question, "question_id": question.get("question_id") or key}
                questions.append(question)
            return questions
        return value

    @model_validator(mode="after")
    def check_window_and_ids(self) -> "Exam":
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        ids = [q.question_id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError("question ids must be unique")
        return self

    def is_active(self, at: datetime) -> bool:
        return self.start_time <= as_utc(at) <= self.end_time

    def question_map(self) -> dict[str, Question]:
        return {q.question_id: q for q in self.questions}

    @property
    def max_marks(self) -> int:
        return sum(q.marks for q in self.questions)

    def student_view(self) -> "ExamView":
        return ExamView(
            exam_id=self.exam_id,
            name=self.name,
            description=self.description,
            course_id=self.course_id,
            start_time=self.start_time,
            end_time=self.end_time,
            duration=self.duration,
            multiple_attempts=self.multiple_attempts,
            max_marks=self.max_marks,
            questions=[
                QuestionView(
                    question_id=q.question_id,
                    text=q.text,
                    type=q.type,
                    marks=q.marks,
                    options=list(q.options) if isinstance(q, MultipleChoiceQuestion) else None,
                )
                for q in self.questions
            ],
        )


class ExamView(BaseModel):
    exam_id: str
    name: str
    description: str = ""
    course_id: str
    start_time: datetime
    end_time: datetime
    duration: int
    multiple_attempts: bool = False
    max_marks: int = 0
    questions: list[QuestionView] = Field(default_factory=list)


class ExamCreate(BaseModel):
    name: str = Field(min_length=3)
    description: str = ""
    course_id: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    duration: int = Field(60, ge=1)
    multiple_attempts: bool = False
    questions: list[Question] = Field(default_factory=list)


class ExamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=1)
    multiple_attempts: Optional[bool] = None


class QuestionRequest(BaseModel):
    question: Question


class ExamSummary(BaseModel):
    exam_id: str
    name: str
    description: str = ""
    course_id: str
    course_name: Optional[str] = None
    end_time: datetime
    duration: int
    multiple_attempts: bool


# ===== Results =====
class Answer(BaseModel):
    answer: str = ""
    marks: int = Field(0, ge=0)
    status: AnswerStatus


class Result(BaseModel):
    result_id: str = Field(default_factory=new_id)
    exam_id: str
    student_id: str
    course_id: Optional[str] = None
    session_id: Optional[str] = None
    answers: dict[str, Answer] = Field(default_factory=dict)
    total_marks: int = 0
    is_published: bool = False
    publish_date: Optional[datetime] = None
    submitted_at: datetime = Field(default_factory=utcnow)

    @field_validator("publish_date", "submitted_at")
    @classmethod
    def to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    def recompute_total(self) -> int:
        self.total_marks = sum(a.marks for a in self.answers.values())
        return self.total_marks


class ResultView(Result):
    student_name: str = "Unknown Student"


class StudentResultView(Result):
    exam_name: Optional[str] = None
    max_marks: Optional[int] = None


class GradeRequest(BaseModel):
    marks: dict[str, int] = Field(..., description="question_id -> marks awarded")


class PublishRequest(BaseModel):
    exam_id: str
    is_published: bool
    publish_date: Optional[datetime] = None


class PublishResponse(BaseModel):
    exam_id: str
    is_published: bool
    publish_date: Optional[datetime] = None
    updated: int


class PublishStatus(BaseModel):
    exam_id: str
    result_count: int
    is_published: bool
    publish_date: Optional[datetime] = None


# ===== Sessions =====
class ExamSession(BaseModel):
    session_id: str = Field(default_factory=new_id)
    exam_id: str
    student_id: str
    started_at: datetime
    deadline: datetime
    status: SessionStatus = SessionStatus.running
    result_id: Optional[str] = None
    submitted_at: Optional[datetime] = None

    @field_validator("started_at", "deadline", "submitted_at")
    @classmethod
    def to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    def seconds_remaining(self, now: datetime) -> int:
        left = (self.deadline - as_utc(now)).total_seconds()
        return max(0, math.ceil(left))


class StartSessionResponse(BaseModel):
    session: ExamSession
    exam: ExamView
    time_left_seconds: int


class SubmitRequest(BaseModel):
    answers: dict[str, str] = Field(default_factory=dict)
    forced: bool = False


class SubmitResponse(BaseModel):
    message: str = "Your exam has been submitted."
    result_id: str
    session_id: str
    total_marks: int
    submitted_at: datetime


# ===== Attendance =====
class AttendanceSettings(BaseModel):
    absent_penalty: float = Field(5.0, ge=0, le=100)
    half_day_penalty: float = Field(2.5, ge=0, le=100)
    exam_eligibility_threshold: float = Field(80.0, ge=0, le=100)


# course ledger: date -> student_id -> status
AttendanceLedger = dict[date, dict[str, AttendanceStatus]]


class MarkAttendanceRequest(BaseModel):
    day: date
    records: dict[str, AttendanceStatus]


class MonthBreakdown(BaseModel):
    month: str
    present: int = 0
    absent: int = 0
    half_day: int = 0


class AttendanceSummary(BaseModel):
    student_id: str
    total_days: int = 0
    days_present: int = 0
    days_absent: int = 0
    days_half: int = 0
    total_percentage: float = 0.0
    monthly_percentage: float = 100.0
    months: list[MonthBreakdown] = Field(default_factory=list)


class EligibilityReport(BaseModel):
    eligible: bool
    monthly_percentage: float
    threshold: float
    message: Optional[str] = None


class AvailableExamsResponse(BaseModel):
    eligibility: EligibilityReport
    exams: list[ExamSummary] = Field(default_factory=list)
