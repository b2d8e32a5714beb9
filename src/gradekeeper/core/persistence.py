"""Capa de persistencia: almacén clave-valor y repositorio de cursos."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from .models import Course, CourseSummary, now_iso

logger = logging.getLogger(__name__)

COURSES_KEY = "courses"


class CourseNotFoundError(KeyError):
    """Curso inexistente en el repositorio."""

    pass


class KeyValueStore(ABC):
    """Interfaz de almacén clave-valor con valores JSON opacos."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Leer valor o None si no existe."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Escribir valor completo."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Eliminar clave (idempotente)."""

    def get_json(self, key: str, default=None):
        raw = self.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set_json(self, key: str, value) -> None:
        self.set(key, json.dumps(value, ensure_ascii=False))


class MemoryStore(KeyValueStore):
    """Almacén en memoria."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """Almacén en disco: un archivo ``<clave>.json`` por clave.

    Cada escritura va a un temporal en el mismo directorio y se mueve con
    ``os.replace``, así que una clave nunca queda a medio escribir.
    """

    SUFFIX = ".json"

    def __init__(self, base_path: Path) -> None:
        """Inicializar con ruta base."""
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.base_path / f"{key}{self.SUFFIX}"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.base_path, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class CourseRepository:
    """Lee y escribe la colección completa de cursos."""

    def __init__(self, store: KeyValueStore) -> None:
        """Inicializar con almacén."""
        self.store = store

    def load_all_courses(self) -> list[Course]:
        """Cargar todos los cursos."""
        return [Course.from_dict(data) for data in self.store.get_json(COURSES_KEY, [])]

    def load_raw(self) -> list[dict]:
        """Cargar la colección sin convertir a modelos."""
        return self.store.get_json(COURSES_KEY, [])

    def save_all_courses(self, courses: list[Course]) -> None:
        """Sobrescribir la colección completa."""
        self.store.set_json(COURSES_KEY, [course.to_dict() for course in courses])

    def save_raw(self, courses: list[dict]) -> None:
        """Sobrescribir la colección con datos crudos, sin pasar por modelos."""
        self.store.set_json(COURSES_KEY, courses)

    def load_course(self, course_id: str) -> Course | None:
        """Cargar un curso por id."""
        for course in self.load_all_courses():
            if course.id == course_id:
                return course
        return None

    def course_exists(self, course_id: str) -> bool:
        """Verificar si existe un curso."""
        return self.load_course(course_id) is not None

    def save_course(self, course: Course) -> None:
        """Guardar (insertar o reemplazar) un curso."""
        courses = self.load_all_courses()
        course.last_modified = now_iso()

        for i, existing in enumerate(courses):
            if existing.id == course.id:
                courses[i] = course
                break
        else:
            courses.append(course)

        self.save_all_courses(courses)

    def delete_course(self, course_id: str) -> Course:
        """Eliminar curso. Retorna el curso eliminado."""
        courses = self.load_all_courses()
        removed = next((c for c in courses if c.id == course_id), None)
        if removed is None:
            raise CourseNotFoundError(course_id)

        self.save_all_courses([c for c in courses if c.id != course_id])
        logger.info("Deleted course %s (%s)", course_id, removed.name)
        return removed

    def delete_test(self, course_id: str, test_id: str) -> None:
        """Eliminar una prueba del curso."""
        course = self._require(course_id)
        course.tests = [t for t in course.tests if t.id != test_id]
        self.save_course(course)

    def delete_student(self, course_id: str, student_id: str) -> None:
        """Eliminar estudiante y su feedback en todas las pruebas."""
        course = self._require(course_id)
        course.students = [s for s in course.students if s.id != student_id]
        for test in course.tests:
            test.student_feedbacks = [
                fb for fb in test.student_feedbacks if fb.student_id != student_id
            ]
        self.save_course(course)

    def get_course_summaries(self) -> list[CourseSummary]:
        """Resúmenes de todos los cursos."""
        return [CourseSummary.from_course(c) for c in self.load_all_courses()]

    def _require(self, course_id: str) -> Course:
        course = self.load_course(course_id)
        if course is None:
            raise CourseNotFoundError(course_id)
        return course
