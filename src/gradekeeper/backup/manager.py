"""Historial rotativo de copias de seguridad de la colección completa."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from ..core.models import Course, parse_timestamp
from ..core.persistence import CourseRepository, KeyValueStore
from .scheduler import AutoBackupService

logger = logging.getLogger(__name__)

BACKUP_INDEX_KEY = "backup-index"
BACKUP_KEY_PREFIX = "backup-"
BACKUP_PAYLOAD_PREFIX = "payload-"
MAX_BACKUPS = 10

LABEL_MANUAL = "manual"
LABEL_AUTO = "auto"
LABEL_BEFORE_DELETE = "before-delete"
LABEL_BEFORE_IMPORT = "before-import"
LABEL_BEFORE_RESTORE = "before-restore"


@dataclass(frozen=True)
class BackupEntry:
    """Metadata de una copia (el contenido se guarda aparte)."""

    id: str
    timestamp: str
    label: str
    course_count: int
    total_feedback: int
    size_bytes: int

    def to_dict(self) -> dict[str, Any]:
        """Convertir a diccionario."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "label": self.label,
            "courseCount": self.course_count,
            "totalFeedback": self.total_feedback,
            "sizeBytes": self.size_bytes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupEntry:
        """Crear desde diccionario."""
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            label=data.get("label", LABEL_AUTO),
            course_count=data.get("courseCount", 0),
            total_feedback=data.get("totalFeedback", 0),
            size_bytes=data.get("sizeBytes", 0),
        )


@dataclass(frozen=True)
class RestoreResult:
    """Resultado de restaurar una copia."""

    success: bool
    course_count: int


class BackupManager:
    """Crea, rota, restaura y elimina copias de seguridad.

    El índice (pequeño) y cada contenido (grande) se guardan en claves
    separadas del almacén. Solo se conservan las ``MAX_BACKUPS`` más recientes,
    sin excepción por etiqueta.
    """

    def __init__(
        self,
        repository: CourseRepository,
        store: KeyValueStore | None = None,
        clock: Callable[[], datetime] | None = None,
        auto_backup_interval: float = 300.0,
    ) -> None:
        """Inicializar manager."""
        self.repository = repository
        self.store = store if store is not None else repository.store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self.auto_backup = AutoBackupService(self, interval=auto_backup_interval)

    # ---- índice ----

    def _load_index(self) -> list[BackupEntry]:
        return [BackupEntry.from_dict(e) for e in self.store.get_json(BACKUP_INDEX_KEY, [])]

    def _save_index(self, index: list[BackupEntry]) -> None:
        self.store.set_json(BACKUP_INDEX_KEY, [e.to_dict() for e in index])

    def _payload_key(self, backup_id: str) -> str:
        return BACKUP_PAYLOAD_PREFIX + backup_id

    def _new_id(self, now: datetime, taken: set[str]) -> str:
        millis = int(now.timestamp() * 1000)
        while f"{BACKUP_KEY_PREFIX}{millis}" in taken:
            millis += 1
        return f"{BACKUP_KEY_PREFIX}{millis}"

    # ---- operaciones ----

    def create_backup(self, label: str = LABEL_AUTO) -> BackupEntry | None:
        """Guardar una copia de la colección actual.

        Retorna None si no hay cursos: no hay nada que proteger.
        """
        with self._lock:
            courses = self.repository.load_raw()
            if not courses:
                return None

            data = json.dumps(courses, ensure_ascii=False)
            total_feedback = sum(
                1
                for course in courses
                for test in course.get("tests") or []
                for fb in test.get("studentFeedbacks") or []
                if fb.get("completedDate")
            )

            index = self._load_index()
            now = self._clock()
            entry = BackupEntry(
                id=self._new_id(now, {e.id for e in index}),
                timestamp=now.isoformat(),
                label=label,
                course_count=len(courses),
                total_feedback=total_feedback,
                size_bytes=len(data.encode("utf-8")),
            )

            self.store.set(self._payload_key(entry.id), data)
            index.append(entry)
            index.sort(key=lambda e: parse_timestamp(e.timestamp))

            while len(index) > MAX_BACKUPS:
                oldest = index.pop(0)
                self.store.delete(self._payload_key(oldest.id))
                logger.info("Rotated out backup %s (%s)", oldest.id, oldest.label)

            self._save_index(index)

        logger.info(
            "Created backup %s [%s]: %d courses, %d bytes",
            entry.id,
            label,
            entry.course_count,
            entry.size_bytes,
        )
        return entry

    def list_backups(self) -> list[BackupEntry]:
        """Listar copias, la más reciente primero."""
        return sorted(
            self._load_index(), key=lambda e: parse_timestamp(e.timestamp), reverse=True
        )

    def get_backup(self, backup_id: str) -> BackupEntry | None:
        """Obtener metadata de una copia."""
        return next((e for e in self._load_index() if e.id == backup_id), None)

    def _load_payload(self, backup_id: str) -> list[dict[str, Any]] | None:
        """Contenido crudo de una copia; None si falta o está corrupto."""
        raw = self.store.get(self._payload_key(backup_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Backup payload %s is corrupt", backup_id)
            return None
        if not isinstance(data, list) or not all(isinstance(c, dict) for c in data):
            logger.warning("Backup payload %s is not a list of courses", backup_id)
            return None
        return data

    def _parse_payload(self, backup_id: str, data: list[dict[str, Any]]) -> list[Course] | None:
        try:
            return [Course.from_dict(c) for c in data]
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Backup payload %s has invalid course data: %s", backup_id, e)
            return None

    def get_backup_data(self, backup_id: str) -> list[Course] | None:
        """Leer el contenido de una copia."""
        data = self._load_payload(backup_id)
        if data is None:
            return None
        return self._parse_payload(backup_id, data)

    def restore_from_backup(self, backup_id: str) -> RestoreResult:
        """Restaurar una copia sobre la colección actual.

        El contenido se escribe tal como se guardó. Antes se guarda una copia
        'before-restore' del estado actual. Son dos escrituras separadas, no
        una transacción.
        """
        if self.get_backup(backup_id) is None:
            return RestoreResult(success=False, course_count=0)

        data = self._load_payload(backup_id)
        if data is None or self._parse_payload(backup_id, data) is None:
            return RestoreResult(success=False, course_count=0)

        self.create_backup(LABEL_BEFORE_RESTORE)
        self.repository.save_raw(data)
        logger.info("Restored backup %s (%d courses)", backup_id, len(data))
        return RestoreResult(success=True, course_count=len(data))

    def delete_backup(self, backup_id: str) -> None:
        """Eliminar una copia (idempotente)."""
        with self._lock:
            index = self._load_index()
            remaining = [e for e in index if e.id != backup_id]
            self.store.delete(self._payload_key(backup_id))
            if len(remaining) != len(index):
                self._save_index(remaining)
                logger.info("Deleted backup %s", backup_id)

    # ---- borrado seguro ----

    def safe_delete_course(self, course_id: str) -> str | None:
        """Copia 'before-delete' y luego eliminar el curso.

        Retorna el id de la copia, o None si el curso no existe.
        """
        if not self.repository.course_exists(course_id):
            return None
        backup = self.create_backup(LABEL_BEFORE_DELETE)
        self.repository.delete_course(course_id)
        return backup.id if backup else None

    def safe_delete_test(self, course_id: str, test_id: str) -> str | None:
        """Copia 'before-delete' y luego eliminar la prueba."""
        if not self.repository.course_exists(course_id):
            return None
        backup = self.create_backup(LABEL_BEFORE_DELETE)
        self.repository.delete_test(course_id, test_id)
        return backup.id if backup else None

    def safe_delete_student(self, course_id: str, student_id: str) -> str | None:
        """Copia 'before-delete' y luego eliminar el estudiante."""
        if not self.repository.course_exists(course_id):
            return None
        backup = self.create_backup(LABEL_BEFORE_DELETE)
        self.repository.delete_student(course_id, student_id)
        return backup.id if backup else None

    # ---- auto-backup ----

    def start_auto_backup(self) -> None:
        """Arrancar el auto-backup (no-op si ya está corriendo)."""
        self.auto_backup.start()

    def stop_auto_backup(self) -> None:
        """Detener el auto-backup (idempotente)."""
        self.auto_backup.stop()

    def is_auto_backup_running(self) -> bool:
        """Verificar si el auto-backup está activo."""
        return self.auto_backup.is_running()
