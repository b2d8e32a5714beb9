"""Fixtures compartidas."""

from __future__ import annotations

from typing import Any

import pytest

from gradekeeper.backup.manager import BackupManager
from gradekeeper.core.persistence import CourseRepository, MemoryStore
from gradekeeper.export_import.manager import ExportImportManager


def make_course(
    course_id: str,
    name: str,
    completed_feedbacks: int = 0,
    students: list[dict[str, Any]] | None = None,
    tests: list[dict[str, Any]] | None = None,
    labels: list[str] | None = None,
) -> dict[str, Any]:
    """Curso en formato JSON de intercambio."""
    feedbacks = [
        {
            "studentId": f"s{i}",
            "taskFeedbacks": [],
            "individualComment": "",
            "completedDate": "2026-01-01T00:00:00Z",
        }
        for i in range(completed_feedbacks)
    ]
    test_defs = tests if tests is not None else [{"id": "test1", "name": "Test 1"}]

    return {
        "id": course_id,
        "name": name,
        "description": "",
        "students": students if students is not None else [
            {"id": "s1", "name": "Alice", "studentNumber": "1"}
        ],
        "tests": [
            {
                "date": "2026-01-01",
                "tasks": [],
                "studentFeedbacks": list(feedbacks),
                "createdDate": "2026-01-01T00:00:00Z",
                "lastModified": "2026-01-01T00:00:00Z",
                "generalComment": "",
                "hasTwoParts": False,
                **t,
            }
            for t in test_defs
        ],
        "availableLabels": labels if labels is not None else [],
        "createdDate": "2026-01-01T00:00:00Z",
        "lastModified": "2026-01-01T00:00:00Z",
    }


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repository(store: MemoryStore) -> CourseRepository:
    return CourseRepository(store)


@pytest.fixture
def backups(repository: CourseRepository):
    manager = BackupManager(repository, auto_backup_interval=3600)
    yield manager
    manager.stop_auto_backup()


@pytest.fixture
def transfer(repository: CourseRepository, backups: BackupManager, tmp_path) -> ExportImportManager:
    return ExportImportManager(repository, backups, exports_dir=tmp_path / "exports")


@pytest.fixture
def seed(store: MemoryStore):
    """Escribir cursos crudos directamente en el almacén."""

    def _seed(*courses: dict[str, Any]) -> None:
        store.set_json("courses", list(courses))

    return _seed
