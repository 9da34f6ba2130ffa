"""CampusDesk: attendance-gated exams, grading and result publishing."""

__version__ = "0.1.0"
