"""Copia de seguridad automática periódica."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .manager import BackupManager

logger = logging.getLogger(__name__)


class AutoBackupService:
    """Un único temporizador cancelable que llama a ``create_backup('auto')``."""

    def __init__(self, manager: BackupManager, interval: float = 300.0) -> None:
        """Inicializar servicio."""
        self.manager = manager
        self.interval = interval
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()

    def start(self) -> None:
        """Arrancar; hace una copia inmediata. No-op si ya está corriendo."""
        with self._state_lock:
            if self._thread is not None:
                return

            self.manager.create_backup("auto")

            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_event,),
                daemon=True,
                name="gradekeeper-auto-backup",
            )
            self._thread.start()
        logger.info("Auto-backup started (every %ss)", self.interval)

    def stop(self) -> None:
        """Detener (idempotente)."""
        with self._state_lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
            self._thread = None

        if thread is not threading.current_thread():
            thread.join(timeout=5)
        logger.info("Auto-backup stopped")

    def is_running(self) -> bool:
        return self._thread is not None

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval):
            try:
                self.manager.create_backup("auto")
            except Exception:
                logger.exception("Auto-backup failed")
