import asyncio
from datetime import date

import pytest

from campusdesk.errors import Conflict, PermissionDenied, PersistenceError, ValidationError
from campusdesk.models import AnswerStatus, AttendanceStatus, MultipleChoiceQuestion, ShortAnswerQuestion
from campusdesk.services.exams import ExamService
from campusdesk.session import ExamSessionController, LocalSessionBackend, SessionState, format_time_left

from conftest import STUDENT, make_exam, mark

TICK = 0.001


class FlakyBackend:
    """Fails the first ``failures`` submissions with PersistenceError."""

    def __init__(self, inner, failures=1):
        self.inner = inner
        self.failures = failures
        self.submits = 0

    async def load_exam(self, exam_id):
        return await self.inner.load_exam(exam_id)

    async def start_session(self, exam_id):
        return await self.inner.start_session(exam_id)

    async def submit(self, session_id, answers, forced):
        self.submits += 1
        if self.submits <= self.failures:
            raise PersistenceError()
        return await self.inner.submit(session_id, answers, forced)


@pytest.fixture
def one_minute_exam(repo):
    exam = make_exam(
        exam_id="quiz",
        duration=1,
        questions=[
            MultipleChoiceQuestion(question_id="q1", text="Pick B", marks=5, options=["A", "B"], correct_answer="B"),
            ShortAnswerQuestion(question_id="q2", text="Explain"),
        ],
    )
    repo.exams[exam.exam_id] = exam
    return exam


@pytest.fixture
def backend(repo, clock):
    return LocalSessionBackend(ExamService(repo, clock), STUDENT)


async def wait_for_state(controller, state, timeout=5.0):
    async def poll():
        while controller.state is not state:
            await asyncio.sleep(TICK)

    await asyncio.wait_for(poll(), timeout)


def test_format_time_left():
    assert format_time_left(3725) == "01:02:05"
    assert format_time_left(59) == "00:00:59"
    assert format_time_left(-3) == "00:00:00"


async def test_load_and_start(backend, one_minute_exam):
    controller = ExamSessionController(backend, "quiz", tick_seconds=1)

    exam = await controller.load()
    assert controller.state is SessionState.ready
    assert exam.questions[0].options == ["A", "B"]

    await controller.start()
    assert controller.state is SessionState.running
    assert controller.time_left == "00:01:00"
    await controller.close()


async def test_timeout_submits_exactly_once(backend, repo, one_minute_exam):
    controller = ExamSessionController(backend, "quiz", tick_seconds=TICK)
    await controller.load()
    await controller.start()
    controller.set_answer("q1", "B")

    await wait_for_state(controller, SessionState.submitted)

    assert controller.timed_out
    assert controller.time_left_seconds == 0
    results = await repo.list_results(exam_id="quiz")
    assert len(results) == 1
    assert results[0].total_marks == 5
    assert results[0].answers["q1"].status == AnswerStatus.auto_graded
    assert not results[0].is_published

    with pytest.raises(Conflict):
        await controller.submit()
    await controller.close()


async def test_manual_submit_stops_the_timer(backend, repo, one_minute_exam):
    controller = ExamSessionController(backend, "quiz", tick_seconds=TICK)
    await controller.load()
    await controller.start()
    controller.set_answer("q1", "A")
    controller.set_answer("q2", "because")

    outcome = await controller.submit()
    await asyncio.sleep(TICK * 20)

    assert controller.state is SessionState.submitted
    assert outcome.total_marks == 0
    assert outcome.message == "Your exam has been submitted."
    assert len(await repo.list_results(exam_id="quiz")) == 1


async def test_concurrent_submits_yield_one_result(backend, repo, one_minute_exam):
    controller = ExamSessionController(backend, "quiz", tick_seconds=1)
    await controller.load()
    await controller.start()
    controller.set_answer("q1", "B")
    controller.set_answer("q2", "because")

    outcomes = await asyncio.gather(controller.submit(), controller.submit(), return_exceptions=True)

    assert sum(isinstance(o, Conflict) for o in outcomes) == 1
    assert len(await repo.list_results(exam_id="quiz")) == 1
    await controller.close()


async def test_manual_submit_needs_every_answer(backend, one_minute_exam):
    controller = ExamSessionController(backend, "quiz", tick_seconds=1)
    await controller.load()
    await controller.start()
    controller.set_answer("q1", "B")

    with pytest.raises(ValidationError) as excinfo:
        await controller.submit()

    assert excinfo.value.fields == ["q2"]
    assert controller.state is SessionState.running
    await controller.close()


async def test_unknown_question_is_rejected(backend, one_minute_exam):
    controller = ExamSessionController(backend, "quiz", tick_seconds=1)
    await controller.load()
    await controller.start()

    with pytest.raises(ValidationError):
        controller.set_answer("q9", "x")
    await controller.close()


async def test_failed_submit_keeps_answers_and_can_retry(backend, repo, one_minute_exam):
    flaky = FlakyBackend(backend)
    controller = ExamSessionController(flaky, "quiz", tick_seconds=1)
    await controller.load()
    await controller.start()
    controller.set_answer("q1", "B")
    controller.set_answer("q2", "because")

    with pytest.raises(PersistenceError):
        await controller.submit()
    assert controller.state is SessionState.error
    assert controller.answers == {"q1": "B", "q2": "because"}

    outcome = await controller.submit()

    assert controller.state is SessionState.submitted
    assert outcome.total_marks == 5
    assert len(await repo.list_results(exam_id="quiz")) == 1


async def test_failed_forced_submit_can_be_retried(backend, repo, one_minute_exam):
    flaky = FlakyBackend(backend)
    controller = ExamSessionController(flaky, "quiz", tick_seconds=TICK)
    await controller.load()
    await controller.start()
    controller.set_answer("q1", "B")

    await wait_for_state(controller, SessionState.error)
    assert controller.timed_out

    outcome = await controller.submit()

    assert outcome.total_marks == 5
    assert flaky.submits == 2
    assert len(await repo.list_results(exam_id="quiz")) == 1


async def test_ineligible_start_moves_to_error(backend, repo, one_minute_exam):
    mark(repo, "bca", STUDENT.user_id, {date(2025, 3, d): AttendanceStatus.absent for d in range(1, 6)})
    controller = ExamSessionController(backend, "quiz", tick_seconds=1)
    await controller.load()

    with pytest.raises(PermissionDenied):
        await controller.start()

    assert controller.state is SessionState.error
    with pytest.raises(ValidationError):
        await controller.submit()


async def test_answers_are_locked_after_time_is_up(backend, one_minute_exam):
    flaky = FlakyBackend(backend)
    controller = ExamSessionController(flaky, "quiz", tick_seconds=TICK)
    await controller.load()
    await controller.start()
    controller.set_answer("q1", "B")

    await wait_for_state(controller, SessionState.error)

    with pytest.raises(ValidationError):
        controller.set_answer("q1", "A")
    assert controller.answers == {"q1": "B"}
