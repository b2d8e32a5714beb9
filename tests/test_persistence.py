"""Tests para modelos y persistencia."""

import tempfile
from pathlib import Path

import pytest
from conftest import make_course

from gradekeeper.core import (
    Course,
    CourseNotFoundError,
    CourseRepository,
    CourseStudent,
    CourseTest,
    JsonFileStore,
    MemoryStore,
    Task,
    TestFeedbackData,
)
from gradekeeper.core.models import generate_id, parse_timestamp


class TestModels:
    """Tests para modelos de datos."""

    def test_course_serialization(self) -> None:
        """Test serialización de curso completo."""
        data = make_course("c1", "Math", completed_feedbacks=1)
        restored = Course.from_dict(data)

        assert restored.name == "Math"
        assert restored.students[0].student_number == "1"
        assert restored.tests[0].student_feedbacks[0].is_completed
        assert restored.to_dict() == data

    def test_unknown_fields_preserved(self) -> None:
        """Campos desconocidos se conservan al reescribir."""
        data = make_course("c1", "Math")
        data["archived"] = True
        data["tests"][0]["pdfPath"] = "/x.pdf"

        out = Course.from_dict(data).to_dict()
        assert out["archived"] is True
        assert out["tests"][0]["pdfPath"] == "/x.pdf"

    def test_null_optional_fields_preserved(self) -> None:
        """Opcionales presentes con null o vacíos se reescriben igual."""
        data = make_course("c1", "Math", tests=[{"id": "t1", "name": "T1", "hasTwoParts": None}])
        data["description"] = None
        data["oralTests"] = []
        data["students"][0]["studentNumber"] = None
        data["tests"][0]["description"] = None
        data["tests"][0]["tasks"] = [
            {
                "id": "t1",
                "label": "1",
                "subtasks": [{"id": "a", "label": "a", "labels": [], "category": None}],
                "hasSubtasks": True,
                "labels": [],
                "weight": None,
            }
        ]
        data["tests"][0]["studentFeedbacks"] = [
            {
                "studentId": "s1",
                "taskFeedbacks": [{"taskId": "t1", "subtaskId": None, "points": None, "comment": ""}],
                "individualComment": "",
                "completedDate": None,
                "absent": None,
            }
        ]

        assert Course.from_dict(data).to_dict() == data

    def test_optional_value_set_later_wins(self) -> None:
        """Un valor asignado después reemplaza al null original."""
        feedback = TestFeedbackData.from_dict({"studentId": "s1", "completedDate": None})
        feedback.completed_date = "2026-01-01T00:00:00Z"
        assert feedback.to_dict()["completedDate"] == "2026-01-01T00:00:00Z"

    def test_task_serialization(self) -> None:
        """Test serialización de tarea con subtareas."""
        task = Task.from_dict(
            {
                "id": "t1",
                "label": "1",
                "hasSubtasks": True,
                "subtasks": [{"id": "a", "label": "a"}],
                "weight": 2,
                "part": 1,
            }
        )
        data = task.to_dict()
        assert data["weight"] == 2
        assert data["part"] == 1
        assert "category" not in data
        assert Task.from_dict(data).subtasks[0].id == "a"

    def test_oral_tests_only_when_present(self) -> None:
        """oralTests solo se escribe si hay alguno."""
        assert "oralTests" not in Course(id="c1", name="Math").to_dict()

    def test_feedback_completion(self) -> None:
        """is_completed depende de completedDate."""
        assert not TestFeedbackData(student_id="s1").is_completed
        assert TestFeedbackData(student_id="s1", completed_date="2026-01-01").is_completed

    def test_generate_id(self) -> None:
        """Ids con prefijo y únicos."""
        ids = {generate_id("course") for _ in range(50)}
        assert len(ids) == 50
        assert all(i.startswith("course-") for i in ids)

    def test_parse_timestamp(self) -> None:
        """Vacíos e inválidos son anteriores a cualquier fecha real."""
        assert parse_timestamp(None) < parse_timestamp("2026-01-01T00:00:00Z")
        assert parse_timestamp("garbage") < parse_timestamp("2000-01-01T00:00:00")


class TestJsonFileStore:
    """Tests para el almacén en disco."""

    def test_set_get_delete(self) -> None:
        """Test escribir, leer y eliminar."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = JsonFileStore(Path(tmpdir))

            assert store.get("courses") is None
            store.set_json("courses", [{"id": "c1"}])
            assert store.get_json("courses") == [{"id": "c1"}]

            store.delete("courses")
            store.delete("courses")
            assert store.get("courses") is None

    def test_no_temp_files_left(self) -> None:
        """Tras escribir no quedan temporales."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = JsonFileStore(Path(tmpdir))
            store.set("a", "1")
            store.set("a", "2")

            assert [p.name for p in Path(tmpdir).iterdir()] == ["a.json"]
            assert store.get("a") == "2"


class TestCourseRepository:
    """Tests para el repositorio de cursos."""

    def test_save_and_load_course(self) -> None:
        """Test guardar y cargar curso."""
        repository = CourseRepository(MemoryStore())
        course = Course(
            id="c1",
            name="Math",
            students=[CourseStudent(id="s1", name="Alice")],
            tests=[CourseTest(id="t1", name="Test 1")],
        )

        repository.save_course(course)
        loaded = repository.load_course("c1")

        assert loaded is not None
        assert loaded.name == "Math"
        assert loaded.get_student("s1").name == "Alice"
        assert loaded.get_test("t1") is not None

    def test_save_replaces_existing(self) -> None:
        """Guardar un id existente lo reemplaza."""
        repository = CourseRepository(MemoryStore())
        repository.save_course(Course(id="c1", name="Math"))
        repository.save_course(Course(id="c1", name="Algebra"))

        assert [c.name for c in repository.load_all_courses()] == ["Algebra"]

    def test_load_nonexistent(self) -> None:
        """Test cargar curso inexistente."""
        repository = CourseRepository(MemoryStore())
        assert repository.load_course("nope") is None
        assert not repository.course_exists("nope")

    def test_delete_course(self) -> None:
        """Eliminar devuelve el curso eliminado."""
        repository = CourseRepository(MemoryStore())
        repository.save_course(Course(id="c1", name="Math"))

        removed = repository.delete_course("c1")
        assert removed.name == "Math"
        assert repository.load_all_courses() == []

    def test_delete_missing_raises(self) -> None:
        """Eliminar un curso inexistente lanza CourseNotFoundError."""
        repository = CourseRepository(MemoryStore())
        with pytest.raises(CourseNotFoundError):
            repository.delete_course("nope")
        with pytest.raises(CourseNotFoundError):
            repository.delete_test("nope", "t1")

    def test_summaries(self) -> None:
        """Test resúmenes de cursos."""
        repository = CourseRepository(MemoryStore())
        repository.save_all_courses([Course.from_dict(make_course("c1", "Math"))])

        [summary] = repository.get_course_summaries()
        assert summary.student_count == 1
        assert summary.test_count == 1

    def test_file_store_persists(self) -> None:
        """Los cursos sobreviven a un nuevo repositorio."""
        with tempfile.TemporaryDirectory() as tmpdir:
            CourseRepository(JsonFileStore(Path(tmpdir))).save_course(Course(id="c1", name="Math"))
            reopened = CourseRepository(JsonFileStore(Path(tmpdir)))
            assert reopened.course_exists("c1")
