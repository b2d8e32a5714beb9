"""Modelos de datos para cursos, pruebas y feedback."""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str) -> str:
    """Generar id único derivado del tiempo (``prefix-<ms>-<aleatorio>``)."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def now_iso() -> str:
    """Timestamp ISO-8601 actual en UTC."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime:
    """Parsear timestamp ISO; valores vacíos o inválidos son la época."""
    if not value or not isinstance(value, str):
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _extra(
    data: dict[str, Any], known: frozenset[str], optional: tuple[str, ...] = ()
) -> dict[str, Any]:
    """Claves desconocidas, más las opcionales presentes con valor nulo o vacío.

    ``to_dict`` omite los opcionales sin valor; guardarlos aquí hace que se
    reescriban tal como llegaron.
    """
    kept = {k: v for k, v in data.items() if k not in known}
    for key in optional:
        if key in data and (data[key] is None or data[key] == []):
            kept[key] = data[key]
    return kept


@dataclass
class Subtask:
    """Una subtarea (1a, 1b, ...)."""

    KNOWN = frozenset({"id", "label", "labels", "category"})

    id: str
    label: str
    labels: list[str] = field(default_factory=list)
    category: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        data: dict[str, Any] = {
            **self.extra,
            "id": self.id,
            "label": self.label,
            "labels": self.labels,
        }
        if self.category is not None:
            data["category"] = self.category
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Subtask:
        """Crear desde diccionario."""
        return cls(
            id=data.get("id", ""),
            label=data.get("label", ""),
            labels=list(data.get("labels") or []),
            category=data.get("category"),
            extra=_extra(data, cls.KNOWN, ("category",)),
        )


@dataclass
class Task:
    """Una tarea de la prueba con subtareas opcionales."""

    KNOWN = frozenset(
        {"id", "label", "subtasks", "hasSubtasks", "labels", "weight", "category", "part"}
    )

    id: str
    label: str
    subtasks: list[Subtask] = field(default_factory=list)
    has_subtasks: bool = False
    labels: list[str] = field(default_factory=list)
    weight: float | None = None  # None = peso automático
    category: int | None = None  # 1, 2, 3
    part: int | None = None  # 1 = sin ayudas, 2 = con ayudas
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        data: dict[str, Any] = {
            **self.extra,
            "id": self.id,
            "label": self.label,
            "subtasks": [st.to_dict() for st in self.subtasks],
            "hasSubtasks": self.has_subtasks,
            "labels": self.labels,
        }
        if self.weight is not None:
            data["weight"] = self.weight
        if self.category is not None:
            data["category"] = self.category
        if self.part is not None:
            data["part"] = self.part
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Crear desde diccionario."""
        return cls(
            id=data.get("id", ""),
            label=data.get("label", ""),
            subtasks=[Subtask.from_dict(st) for st in data.get("subtasks") or []],
            has_subtasks=bool(data.get("hasSubtasks", False)),
            labels=list(data.get("labels") or []),
            weight=data.get("weight"),
            category=data.get("category"),
            part=data.get("part"),
            extra=_extra(data, cls.KNOWN, ("weight", "category", "part")),
        )


@dataclass
class TaskFeedback:
    """Puntos y comentario de una tarea o subtarea."""

    KNOWN = frozenset({"taskId", "subtaskId", "points", "comment"})

    task_id: str
    points: int | None = None  # None = sin corregir, 0-6 corregido
    comment: str = ""
    subtask_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        data: dict[str, Any] = {**self.extra, "taskId": self.task_id}
        if self.subtask_id is not None:
            data["subtaskId"] = self.subtask_id
        data["points"] = self.points
        data["comment"] = self.comment
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskFeedback:
        """Crear desde diccionario."""
        return cls(
            task_id=data.get("taskId", ""),
            points=data.get("points"),
            comment=data.get("comment") or "",
            subtask_id=data.get("subtaskId"),
            extra=_extra(data, cls.KNOWN, ("subtaskId",)),
        )


@dataclass
class TestFeedbackData:
    """Feedback de un estudiante en una prueba."""

    __test__ = False  # pytest: no es una clase de tests

    KNOWN = frozenset(
        {"studentId", "taskFeedbacks", "individualComment", "completedDate", "absent"}
    )

    student_id: str
    task_feedbacks: list[TaskFeedback] = field(default_factory=list)
    individual_comment: str = ""
    completed_date: str | None = None
    absent: bool | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_completed(self) -> bool:
        return bool(self.completed_date)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        data: dict[str, Any] = {
            **self.extra,
            "studentId": self.student_id,
            "taskFeedbacks": [tf.to_dict() for tf in self.task_feedbacks],
            "individualComment": self.individual_comment,
        }
        if self.completed_date is not None:
            data["completedDate"] = self.completed_date
        if self.absent is not None:
            data["absent"] = self.absent
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestFeedbackData:
        """Crear desde diccionario."""
        return cls(
            student_id=data.get("studentId", ""),
            task_feedbacks=[TaskFeedback.from_dict(tf) for tf in data.get("taskFeedbacks") or []],
            individual_comment=data.get("individualComment") or "",
            completed_date=data.get("completedDate"),
            absent=data.get("absent"),
            extra=_extra(data, cls.KNOWN, ("completedDate", "absent")),
        )


@dataclass
class CourseStudent:
    """Un estudiante del curso."""

    KNOWN = frozenset({"id", "name", "studentNumber"})

    id: str
    name: str
    student_number: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        data: dict[str, Any] = {**self.extra, "id": self.id, "name": self.name}
        if self.student_number is not None:
            data["studentNumber"] = self.student_number
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CourseStudent:
        """Crear desde diccionario."""
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            student_number=data.get("studentNumber"),
            extra=_extra(data, cls.KNOWN, ("studentNumber",)),
        )


@dataclass
class CourseTest:
    """Una prueba escrita con su configuración y el feedback de cada estudiante."""

    KNOWN = frozenset(
        {
            "id",
            "name",
            "description",
            "date",
            "tasks",
            "generalComment",
            "studentFeedbacks",
            "createdDate",
            "lastModified",
            "hasTwoParts",
        }
    )

    id: str
    name: str
    date: str = ""
    tasks: list[Task] = field(default_factory=list)
    student_feedbacks: list[TestFeedbackData] = field(default_factory=list)
    description: str | None = None
    general_comment: str = ""
    has_two_parts: bool | None = None
    created_date: str = field(default_factory=now_iso)
    last_modified: str = field(default_factory=now_iso)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        data: dict[str, Any] = {**self.extra, "id": self.id, "name": self.name}
        if self.description is not None:
            data["description"] = self.description
        data.update(
            {
                "date": self.date,
                "tasks": [task.to_dict() for task in self.tasks],
                "generalComment": self.general_comment,
                "studentFeedbacks": [fb.to_dict() for fb in self.student_feedbacks],
                "createdDate": self.created_date,
                "lastModified": self.last_modified,
            }
        )
        if self.has_two_parts is not None:
            data["hasTwoParts"] = self.has_two_parts
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CourseTest:
        """Crear desde diccionario."""
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            date=data.get("date", ""),
            tasks=[Task.from_dict(t) for t in data.get("tasks") or []],
            student_feedbacks=[
                TestFeedbackData.from_dict(fb) for fb in data.get("studentFeedbacks") or []
            ],
            description=data.get("description"),
            general_comment=data.get("generalComment") or "",
            has_two_parts=data.get("hasTwoParts"),
            created_date=data.get("createdDate") or now_iso(),
            last_modified=data.get("lastModified") or now_iso(),
            extra=_extra(data, cls.KNOWN, ("description", "hasTwoParts")),
        )

    def get_feedback(self, student_id: str) -> TestFeedbackData | None:
        """Obtener feedback de un estudiante."""
        for fb in self.student_feedbacks:
            if fb.student_id == student_id:
                return fb
        return None

    def completed_count(self) -> int:
        """Número de feedbacks terminados."""
        return sum(1 for fb in self.student_feedbacks if fb.is_completed)


@dataclass
class OralFeedbackDimension:
    """Una dimensión de evaluación oral (estrategia, razonamiento, ...)."""

    KNOWN = frozenset({"dimension", "points", "comment", "weight"})

    dimension: str
    points: int = 0
    comment: str = ""
    weight: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        data: dict[str, Any] = {
            **self.extra,
            "dimension": self.dimension,
            "points": self.points,
            "comment": self.comment,
        }
        if self.weight is not None:
            data["weight"] = self.weight
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OralFeedbackDimension:
        """Crear desde diccionario."""
        return cls(
            dimension=data.get("dimension", ""),
            points=data.get("points") or 0,
            comment=data.get("comment") or "",
            weight=data.get("weight"),
            extra=_extra(data, cls.KNOWN, ("weight",)),
        )


@dataclass
class OralFeedbackData:
    """Evaluación oral de un estudiante."""

    KNOWN = frozenset({"studentId", "dimensions", "generalObservations", "completedDate"})

    student_id: str
    dimensions: list[OralFeedbackDimension] = field(default_factory=list)
    general_observations: str = ""
    completed_date: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        data: dict[str, Any] = {
            **self.extra,
            "studentId": self.student_id,
            "dimensions": [d.to_dict() for d in self.dimensions],
            "generalObservations": self.general_observations,
        }
        if self.completed_date is not None:
            data["completedDate"] = self.completed_date
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OralFeedbackData:
        """Crear desde diccionario."""
        return cls(
            student_id=data.get("studentId", ""),
            dimensions=[OralFeedbackDimension.from_dict(d) for d in data.get("dimensions") or []],
            general_observations=data.get("generalObservations") or "",
            completed_date=data.get("completedDate"),
            extra=_extra(data, cls.KNOWN, ("completedDate",)),
        )


@dataclass
class OralTest:
    """Una evaluación oral del curso."""

    KNOWN = frozenset(
        {"id", "name", "date", "studentAssessments", "createdDate", "lastModified"}
    )

    id: str
    name: str
    date: str = ""
    student_assessments: list[OralFeedbackData] = field(default_factory=list)
    created_date: str = field(default_factory=now_iso)
    last_modified: str = field(default_factory=now_iso)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        return {
            **self.extra,
            "id": self.id,
            "name": self.name,
            "date": self.date,
            "studentAssessments": [a.to_dict() for a in self.student_assessments],
            "createdDate": self.created_date,
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OralTest:
        """Crear desde diccionario."""
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            date=data.get("date", ""),
            student_assessments=[
                OralFeedbackData.from_dict(a) for a in data.get("studentAssessments") or []
            ],
            created_date=data.get("createdDate") or now_iso(),
            last_modified=data.get("lastModified") or now_iso(),
            extra=_extra(data, cls.KNOWN),
        )


@dataclass
class Course:
    """Curso completo: estudiantes, pruebas y etiquetas."""

    KNOWN = frozenset(
        {
            "id",
            "name",
            "description",
            "students",
            "tests",
            "oralTests",
            "availableLabels",
            "createdDate",
            "lastModified",
        }
    )

    id: str
    name: str
    description: str | None = ""
    students: list[CourseStudent] = field(default_factory=list)
    tests: list[CourseTest] = field(default_factory=list)
    oral_tests: list[OralTest] = field(default_factory=list)
    available_labels: list[str] = field(default_factory=list)
    created_date: str = field(default_factory=now_iso)
    last_modified: str = field(default_factory=now_iso)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        data: dict[str, Any] = {
            **self.extra,
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "students": [s.to_dict() for s in self.students],
            "tests": [t.to_dict() for t in self.tests],
        }
        if self.oral_tests:
            data["oralTests"] = [o.to_dict() for o in self.oral_tests]
        data.update(
            {
                "availableLabels": self.available_labels,
                "createdDate": self.created_date,
                "lastModified": self.last_modified,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Course:
        """Crear desde diccionario."""
        return cls(
            id=data.get("id") or "",
            name=data.get("name", ""),
            description=data.get("description", ""),
            students=[CourseStudent.from_dict(s) for s in data.get("students") or []],
            tests=[CourseTest.from_dict(t) for t in data.get("tests") or []],
            oral_tests=[OralTest.from_dict(o) for o in data.get("oralTests") or []],
            available_labels=list(data.get("availableLabels") or []),
            created_date=data.get("createdDate") or now_iso(),
            last_modified=data.get("lastModified") or now_iso(),
            extra=_extra(data, cls.KNOWN, ("oralTests",)),
        )

    def get_student(self, student_id: str) -> CourseStudent | None:
        """Obtener estudiante por id."""
        for student in self.students:
            if student.id == student_id:
                return student
        return None

    def get_test(self, test_id: str) -> CourseTest | None:
        """Obtener prueba por id."""
        for test in self.tests:
            if test.id == test_id:
                return test
        return None

    def completed_feedback_count(self) -> int:
        """Feedbacks terminados en todas las pruebas."""
        return sum(test.completed_count() for test in self.tests)


@dataclass
class CourseSummary:
    """Resumen de un curso para listados."""

    id: str
    name: str
    description: str | None
    student_count: int
    test_count: int
    created_date: str
    last_modified: str

    @classmethod
    def from_course(cls, course: Course) -> CourseSummary:
        """Crear desde curso."""
        return cls(
            id=course.id,
            name=course.name,
            description=course.description,
            student_count=len(course.students),
            test_count=len(course.tests),
            created_date=course.created_date,
            last_modified=course.last_modified,
        )
