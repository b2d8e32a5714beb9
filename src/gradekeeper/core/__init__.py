"""Core: modelos y persistencia."""

from .models import (
    Course,
    CourseStudent,
    CourseSummary,
    CourseTest,
    OralFeedbackData,
    OralFeedbackDimension,
    OralTest,
    Subtask,
    Task,
    TaskFeedback,
    TestFeedbackData,
)
from .persistence import CourseNotFoundError, CourseRepository, JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "Course",
    "CourseStudent",
    "CourseSummary",
    "CourseTest",
    "OralFeedbackData",
    "OralFeedbackDimension",
    "OralTest",
    "Subtask",
    "Task",
    "TaskFeedback",
    "TestFeedbackData",
    "CourseNotFoundError",
    "CourseRepository",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
]
