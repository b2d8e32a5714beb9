"""Carpeta espejo (OneDrive, Dropbox, USB...) con la colección de cursos.

Estructura en disco::

    <root>/courses/<curso>/course-info.json
    <root>/courses/<curso>/<prueba>/test-config.json
    <root>/courses/<curso>/<prueba>/<estudiante>.json
"""

from __future__ import annotations

import json
import logging
import re
import shutil
from pathlib import Path
from typing import Any

from ..core.models import Course, CourseStudent, CourseTest, TestFeedbackData, generate_id
from ..core.persistence import CourseRepository
from .merge import merge_courses

logger = logging.getLogger(__name__)

COURSE_INFO_FILE = "course-info.json"
TEST_CONFIG_FILE = "test-config.json"


class FolderSyncError(Exception):
    """Error en operación de sincronización con carpeta."""

    pass


def sanitize_file_name(name: str) -> str:
    """Nombre de archivo seguro a partir de un nombre libre."""
    cleaned = re.sub(r"[^a-z0-9_\-\s]", "", name, flags=re.IGNORECASE)
    return re.sub(r"\s+", "_", cleaned).lower()


def _write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _read_json(path: Path) -> Any | None:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Failed to read %s: %s", path, e)
        return None


class FolderMirror:
    """Lee y escribe cursos en la estructura de carpetas."""

    def __init__(self, root: Path) -> None:
        """Inicializar con carpeta raíz."""
        self.root = Path(root)
        self.courses_dir = self.root / "courses"

    @property
    def name(self) -> str:
        return self.root.name

    # ---- lectura ----

    def load_courses(self) -> list[Course]:
        """Cargar todos los cursos de la carpeta (vacío si no hay)."""
        if not self.root.is_dir():
            raise FolderSyncError(f"Folder not found: {self.root}")
        if not self.courses_dir.exists():
            return []

        courses = []
        for course_dir in sorted(self.courses_dir.iterdir()):
            if not course_dir.is_dir():
                continue
            course = self._read_course_folder(course_dir)
            if course is not None:
                courses.append(course)
        return courses

    def _read_course_folder(self, course_dir: Path) -> Course | None:
        info_path = course_dir / COURSE_INFO_FILE
        info = _read_json(info_path) if info_path.exists() else None
        info = info if isinstance(info, dict) else {}

        students = [
            CourseStudent(
                id=s.get("id") or generate_id("student"),
                name=s.get("name", ""),
                student_number=s.get("studentNumber"),
            )
            for s in info.get("students") or []
        ]

        tests = []
        for test_dir in sorted(course_dir.iterdir()):
            if test_dir.is_dir():
                tests.append(self._read_test_folder(test_dir, students))

        course_id = info.get("id") or ""
        if not course_id and not tests and not students:
            return None

        course = Course.from_dict({**info, "students": [], "tests": []})
        course.id = course_id or generate_id("course")
        course.name = info.get("name") or course_dir.name
        course.students = students
        course.tests = tests
        return course

    def _read_test_folder(self, test_dir: Path, students: list[CourseStudent]) -> CourseTest:
        config_path = test_dir / TEST_CONFIG_FILE
        config = _read_json(config_path) if config_path.exists() else None
        config = config if isinstance(config, dict) else {}

        feedbacks = []
        for entry in sorted(test_dir.glob("*.json")):
            if entry.name == TEST_CONFIG_FILE:
                continue
            data = _read_json(entry)
            if not isinstance(data, dict):
                continue

            student_id = data.get("studentId") or ""
            if not student_id and data.get("name"):
                student_id = self._match_student(students, data)

            if student_id:
                feedbacks.append(
                    TestFeedbackData.from_dict(
                        {
                            "studentId": student_id,
                            "taskFeedbacks": data.get("taskFeedbacks") or [],
                            "individualComment": data.get("individualComment") or "",
                            "completedDate": data.get("completedDate"),
                        }
                    )
                )

        test = CourseTest.from_dict({**config, "studentFeedbacks": []})
        test.id = test.id or generate_id("test")
        test.name = test.name or test_dir.name
        test.student_feedbacks = feedbacks
        return test

    @staticmethod
    def _match_student(students: list[CourseStudent], data: dict[str, Any]) -> str:
        name = data["name"].lower()
        for student in students:
            if student.name.lower() == name:
                return student.id

        new_student = CourseStudent(
            id=generate_id("student"),
            name=data["name"],
            student_number=data.get("studentNumber"),
        )
        students.append(new_student)
        return new_student.id

    # ---- escritura ----

    def save_courses(self, courses: list[Course]) -> None:
        """Escribir todos los cursos."""
        for course in courses:
            self.save_course(course)

    def save_course(self, course: Course) -> None:
        """Escribir un curso con todas sus pruebas y feedbacks."""
        course_dir = self.courses_dir / sanitize_file_name(course.name)
        course_dir.mkdir(parents=True, exist_ok=True)

        info = course.to_dict()
        info.pop("tests", None)
        info.setdefault("oralTests", [])
        _write_json(course_dir / COURSE_INFO_FILE, info)

        for test in course.tests:
            test_dir = course_dir / sanitize_file_name(test.name)
            test_dir.mkdir(parents=True, exist_ok=True)

            config = test.to_dict()
            config.pop("studentFeedbacks", None)
            _write_json(test_dir / TEST_CONFIG_FILE, config)

            for feedback in test.student_feedbacks:
                student = course.get_student(feedback.student_id)
                if student is None:
                    continue
                data = {
                    "studentId": student.id,
                    "name": student.name,
                    "studentNumber": student.student_number,
                    "taskFeedbacks": [tf.to_dict() for tf in feedback.task_feedbacks],
                    "individualComment": feedback.individual_comment,
                    "completedDate": feedback.completed_date,
                }
                _write_json(test_dir / f"{sanitize_file_name(student.name)}.json", data)

    def delete_course(self, course_name: str) -> None:
        """Eliminar carpeta de un curso (no-op si no existe)."""
        course_dir = self.courses_dir / sanitize_file_name(course_name)
        if course_dir.exists():
            shutil.rmtree(course_dir)


class FolderSync:
    """Mantiene la carpeta activa y la reconcilia con el repositorio local."""

    def __init__(self, repository: CourseRepository, mirror: FolderMirror | None = None) -> None:
        """Inicializar servicio."""
        self.repository = repository
        self.mirror = mirror

    def connect(self, root: Path) -> None:
        """Conectar una carpeta."""
        root = Path(root)
        if not root.is_dir():
            raise FolderSyncError(f"Folder not found: {root}")
        self.mirror = FolderMirror(root)
        logger.info("Connected folder %s", root)

    def disconnect(self) -> None:
        self.mirror = None

    def is_connected(self) -> bool:
        return self.mirror is not None

    def sync_from_folder(self) -> bool:
        """Unir carpeta y local; escribir el resultado en ambos lados.

        Retorna False si no hay carpeta conectada.
        """
        if self.mirror is None:
            return False

        folder_courses = self.mirror.load_courses()
        local_courses = self.repository.load_all_courses()
        merged = merge_courses(local_courses, folder_courses)

        self.repository.save_all_courses(merged)
        self.mirror.save_courses(merged)
        logger.info(
            "Synced %d local and %d folder courses into %d",
            len(local_courses),
            len(folder_courses),
            len(merged),
        )
        return True

    def migrate_to_folder(self) -> None:
        """Copiar la colección local a la carpeta recién conectada."""
        if self.mirror is None:
            return
        courses = self.repository.load_all_courses()
        if courses:
            self.mirror.save_courses(courses)

    def save_course(self, course: Course) -> None:
        """Guardar localmente y reflejar en la carpeta."""
        self.repository.save_course(course)
        if self.mirror is not None:
            self.mirror.save_course(course)

    def delete_course(self, course: Course) -> None:
        """Quitar un curso de la carpeta."""
        if self.mirror is not None:
            self.mirror.delete_course(course.name)
