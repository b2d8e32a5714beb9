"""Gestión de export/import de cursos en JSON."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from ..backup.manager import LABEL_BEFORE_IMPORT, BackupManager
from ..core.models import Course, generate_id, now_iso
from ..core.persistence import CourseRepository
from ..sync.merge import merge_feedbacks, merge_labels, merge_students
from ..validation import course_errors

logger = logging.getLogger(__name__)

IMPORTED_SUFFIX = " (imported)"


@dataclass
class ImportResult:
    """Resultado de una importación."""

    imported: int = 0
    merged: int = 0
    skipped_duplicates: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        return {
            "imported": self.imported,
            "merged": self.merged,
            "skippedDuplicates": self.skipped_duplicates,
            "errors": self.errors,
        }


class ExportImportError(Exception):
    """Error en operación de export/import."""

    pass


def _find_duplicate(courses: list[Course], candidate: dict[str, Any]) -> int:
    """Índice del curso que coincide por id o por nombre; -1 si no hay."""
    candidate_id = candidate.get("id")
    if candidate_id:
        for i, course in enumerate(courses):
            if course.id == candidate_id:
                return i

    name = candidate["name"].lower()
    for i, course in enumerate(courses):
        if course.name.lower() == name:
            return i
    return -1


def merge_into(existing: Course, incoming: Course) -> None:
    """Combinar un curso importado dentro del existente (in-place).

    Estudiantes y pruebas se unen por id sin tocar los existentes; en las
    pruebas compartidas se unen los feedbacks por estudiante.
    """
    existing.students = merge_students(existing.students, incoming.students)

    tests_by_id = {t.id: t for t in existing.tests}
    for test in incoming.tests:
        current = tests_by_id.get(test.id)
        if current is None:
            existing.tests.append(test)
            tests_by_id[test.id] = test
        else:
            current.student_feedbacks = merge_feedbacks(
                current.student_feedbacks, test.student_feedbacks
            )

    existing.available_labels = merge_labels(
        existing.available_labels, incoming.available_labels
    )
    existing.last_modified = now_iso()


class ExportImportManager:
    """Gestiona exportación e importación de la colección de cursos."""

    def __init__(
        self,
        repository: CourseRepository,
        backups: BackupManager,
        exports_dir: Path | None = None,
    ) -> None:
        """Inicializar manager."""
        self.repository = repository
        self.backups = backups
        self.exports_dir = Path(exports_dir) if exports_dir is not None else None

    # ---- export ----

    def export_all_courses(self) -> str:
        """Serializar toda la colección como JSON formateado."""
        courses = self.repository.load_raw()
        if not courses:
            return "[]"
        return json.dumps(courses, indent=2, ensure_ascii=False)

    def export_to_file(self, output_path: Path | None = None) -> Path:
        """Exportar a archivo JSON. Retorna la ruta escrita."""
        if output_path is None:
            if self.exports_dir is None:
                raise ExportImportError("No exports directory configured")
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            output_path = self.exports_dir / f"courses_{timestamp}.json"

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.export_all_courses(), encoding="utf-8")
        logger.info("Exported courses to %s", output_path)
        return output_path

    # ---- import ----

    def import_courses(
        self,
        json_text: str,
        skip_duplicates: bool = True,
        merge_existing: bool = False,
    ) -> ImportResult:
        """Importar cursos desde texto JSON (un curso o una lista).

        Duplicado = mismo id o mismo nombre sin distinguir mayúsculas.
        ``merge_existing`` combina; si no, ``skip_duplicates`` decide entre
        saltar o insertar una copia renombrada.
        """
        result = ImportResult()

        try:
            parsed = json.loads(json_text)
        except (json.JSONDecodeError, TypeError):
            result.errors.append("Invalid JSON format")
            return result

        candidates = parsed if isinstance(parsed, list) else [parsed]

        valid: list[tuple[dict[str, Any], Course]] = []
        for i, candidate in enumerate(candidates, start=1):
            errors = course_errors(i, candidate)
            if not errors:
                try:
                    valid.append((candidate, Course.from_dict(candidate)))
                    continue
                except (AttributeError, TypeError, ValueError):
                    errors = [f"Course {i}: invalid nested data"]

            result.errors.extend(errors)
            logger.warning("Skipping invalid course candidate %d: %s", i, "; ".join(errors))

        if not valid:
            return result

        self.backups.create_backup(LABEL_BEFORE_IMPORT)
        courses = self.repository.load_all_courses()

        for candidate, incoming in valid:
            index = _find_duplicate(courses, candidate)

            if index < 0:
                if not incoming.id:
                    incoming.id = generate_id("course")
                courses.append(incoming)
                result.imported += 1
            elif merge_existing:
                merge_into(courses[index], incoming)
                result.merged += 1
            elif skip_duplicates:
                result.skipped_duplicates += 1
            else:
                incoming.id = generate_id("course")
                incoming.name = f"{incoming.name}{IMPORTED_SUFFIX}"
                courses.append(incoming)
                result.imported += 1

        self.repository.save_all_courses(courses)
        logger.info(
            "Import finished: %d imported, %d merged, %d skipped",
            result.imported,
            result.merged,
            result.skipped_duplicates,
        )
        return result

    def import_courses_from_data(
        self,
        courses: Iterable[Course | dict[str, Any]],
        skip_duplicates: bool = True,
        merge_existing: bool = False,
    ) -> ImportResult:
        """Importar desde objetos ya cargados."""
        payload = [c.to_dict() if isinstance(c, Course) else c for c in courses]
        return self.import_courses(
            json.dumps(payload, ensure_ascii=False),
            skip_duplicates=skip_duplicates,
            merge_existing=merge_existing,
        )

    def import_from_file(
        self,
        path: Path,
        skip_duplicates: bool = True,
        merge_existing: bool = False,
    ) -> ImportResult:
        """Importar desde archivo JSON."""
        path = Path(path)
        if not path.exists():
            raise ExportImportError(f"File not found: {path}")

        return self.import_courses(
            path.read_text(encoding="utf-8"),
            skip_duplicates=skip_duplicates,
            merge_existing=merge_existing,
        )

    # ---- archivos de export ----

    def list_exports(self) -> list[dict[str, Any]]:
        """Listar archivos de export disponibles."""
        exports: list[dict[str, Any]] = []

        if self.exports_dir is None or not self.exports_dir.exists():
            return exports

        for export_file in sorted(
            self.exports_dir.glob("*.json"), key=lambda p: p.stat().st_mtime, reverse=True
        ):
            stat = export_file.stat()
            exports.append({
                "filename": export_file.name,
                "path": str(export_file),
                "size": stat.st_size,
                "created": datetime.fromtimestamp(stat.st_mtime).isoformat(),
            })

        return exports

    def delete_export(self, filename: str) -> bool:
        """Eliminar archivo de export."""
        if self.exports_dir is None:
            return False
        file_path = self.exports_dir / filename
        if file_path.exists():
            file_path.unlink()
            return True
        return False
