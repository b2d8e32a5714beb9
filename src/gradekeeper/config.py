"""Configuración global de la aplicación."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

import yaml
from platformdirs import user_data_dir

CONFIG_FILE = "config.yaml"


def _default_data_dir() -> Path:
    return Path(user_data_dir("gradekeeper", "gradekeeper"))


@dataclass(frozen=True)
class Config:
    """Configuración inmutable de la aplicación."""

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)
    store_dir: Path = field(init=False)
    exports_dir: Path = field(init=False)

    # Backups
    auto_backup_interval: float = 300.0  # segundos

    # Carpeta espejo (OneDrive, USB, ...)
    folder_path: Path | None = None

    # Logging
    log_level: str = "WARNING"

    # App
    app_name: str = "GradeKeeper"
    version: str = "0.1.0"

    def __post_init__(self) -> None:
        object.__setattr__(self, "data_dir", Path(self.data_dir))
        object.__setattr__(self, "store_dir", self.data_dir / "store")
        object.__setattr__(self, "exports_dir", self.data_dir / "exports")
        if self.folder_path is not None:
            object.__setattr__(self, "folder_path", Path(self.folder_path))

    @classmethod
    def from_env(cls) -> Config:
        """Crear configuración desde variables de entorno y ``config.yaml``."""
        data_dir = os.getenv("GRADEKEEPER_DATA_DIR")
        folder = os.getenv("GRADEKEEPER_FOLDER")

        config = cls(
            data_dir=Path(data_dir) if data_dir else _default_data_dir(),
            auto_backup_interval=float(os.getenv("GRADEKEEPER_BACKUP_INTERVAL", "300")),
            folder_path=Path(folder) if folder else None,
            log_level=os.getenv("GRADEKEEPER_LOG_LEVEL", "WARNING"),
        )
        return config.with_file_overrides()

    def with_file_overrides(self) -> Config:
        """Aplicar valores de ``<data_dir>/config.yaml`` si existe."""
        config_file = self.data_dir / CONFIG_FILE
        if not config_file.exists():
            return self

        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        allowed = {f.name for f in fields(self) if f.init and f.name != "data_dir"}
        overrides = {k: v for k, v in data.items() if k in allowed}
        return replace(self, **overrides) if overrides else self

    def ensure_dirs(self) -> None:
        """Crear directorios necesarios si no existen."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self.exports_dir.mkdir(parents=True, exist_ok=True)


# Instancia global
_config: Config | None = None


def get_config() -> Config:
    """Obtener instancia de configuración (singleton)."""
    global _config
    if _config is None:
        _config = Config.from_env()
        _config.ensure_dirs()
    return _config


def set_config(config: Config) -> None:
    """Establecer configuración (para tests)."""
    global _config
    _config = config
    _config.ensure_dirs()
