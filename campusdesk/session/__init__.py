from campusdesk.session.backends import HttpSessionBackend, LocalSessionBackend, SessionBackend
from campusdesk.session.controller import ExamSessionController, SessionState, format_time_left

__all__ = [
    "ExamSessionController",
    "SessionState",
    "format_time_left",
    "SessionBackend",
    "LocalSessionBackend",
    "HttpSessionBackend",
]
