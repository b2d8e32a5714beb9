"""Interfaz de línea de comandos.

    gradekeeper courses
    gradekeeper backup create|list|restore <id>|delete <id>
    gradekeeper export [archivo]
    gradekeeper import <archivo> [--merge | --duplicate]
    gradekeeper sync [carpeta]
    gradekeeper delete-course <id>
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from .backup.manager import LABEL_MANUAL, BackupManager
from .config import Config, get_config
from .core.persistence import CourseRepository, JsonFileStore
from .export_import.manager import ExportImportError, ExportImportManager
from .sync.folder import FolderSync, FolderSyncError

if sys.platform == "win32":
    import colorama
    colorama.init()

GREEN = "\033[32m"
YELLOW = "\033[33m"
RED = "\033[31m"
RESET = "\033[0m"


def print_ok(text: str) -> None:
    print(f"{GREEN}{text}{RESET}")


def print_warn(text: str) -> None:
    print(f"{YELLOW}{text}{RESET}")


def print_error(text: str) -> None:
    print(f"{RED}{text}{RESET}", file=sys.stderr)


@dataclass
class Services:
    """Servicios construidos a partir de la configuración."""

    repository: CourseRepository
    backups: BackupManager
    transfer: ExportImportManager
    folder_sync: FolderSync

    @classmethod
    def from_config(cls, config: Config) -> Services:
        """Construir servicios sobre el almacén en disco."""
        store = JsonFileStore(config.store_dir)
        repository = CourseRepository(store)
        backups = BackupManager(repository, store, auto_backup_interval=config.auto_backup_interval)
        transfer = ExportImportManager(repository, backups, exports_dir=config.exports_dir)
        return cls(repository, backups, transfer, FolderSync(repository))


def _cmd_courses(services: Services, args: argparse.Namespace) -> int:
    summaries = services.repository.get_course_summaries()
    if not summaries:
        print("No courses.")
    for s in summaries:
        print(
            f"{s.id}  {s.name:<30} students={s.student_count} tests={s.test_count} "
            f"modified={s.last_modified}"
        )
    return 0


def _cmd_backup(services: Services, args: argparse.Namespace) -> int:
    backups = services.backups

    if args.action == "create":
        entry = backups.create_backup(args.label)
        if entry is None:
            print_warn("No courses to back up.")
        else:
            print_ok(f"Created {entry.id} ({entry.course_count} courses, {entry.size_bytes} bytes)")
        return 0

    if args.action == "list":
        entries = backups.list_backups()
        if not entries:
            print("No backups.")
        for e in entries:
            print(
                f"{e.id}  {e.timestamp}  {e.label:<15} "
                f"courses={e.course_count} feedback={e.total_feedback} size={e.size_bytes}"
            )
        return 0

    if not args.backup_id:
        print_error(f"backup {args.action} requires a backup id")
        return 2

    if args.action == "restore":
        result = backups.restore_from_backup(args.backup_id)
        if not result.success:
            print_error(f"Backup not found: {args.backup_id}")
            return 1
        print_ok(f"Restored {result.course_count} courses")
        return 0

    backups.delete_backup(args.backup_id)
    print_ok(f"Deleted {args.backup_id}")
    return 0


def _cmd_export(services: Services, args: argparse.Namespace) -> int:
    path = services.transfer.export_to_file(Path(args.path) if args.path else None)
    print_ok(f"Exported to {path}")
    return 0


def _cmd_import(services: Services, args: argparse.Namespace) -> int:
    try:
        result = services.transfer.import_from_file(
            Path(args.path),
            skip_duplicates=not args.duplicate,
            merge_existing=args.merge,
        )
    except ExportImportError as e:
        print_error(str(e))
        return 1

    print_ok(
        f"Imported {result.imported}, merged {result.merged}, "
        f"skipped {result.skipped_duplicates} duplicates"
    )
    for error in result.errors:
        print_warn(f"  {error}")
    return 1 if result.errors and not (result.imported or result.merged) else 0


def _cmd_sync(services: Services, args: argparse.Namespace, config: Config) -> int:
    folder = Path(args.folder) if args.folder else config.folder_path
    if folder is None:
        print_error("No folder given and GRADEKEEPER_FOLDER is not set")
        return 2

    try:
        services.folder_sync.connect(folder)
        services.folder_sync.sync_from_folder()
    except FolderSyncError as e:
        print_error(str(e))
        return 1

    print_ok(f"Synced with {folder}")
    return 0


def _cmd_delete_course(services: Services, args: argparse.Namespace) -> int:
    course = services.repository.load_course(args.course_id)
    if course is None:
        print_error(f"Course not found: {args.course_id}")
        return 1

    backup_id = services.backups.safe_delete_course(args.course_id)
    print_ok(f"Deleted '{course.name}' (backup: {backup_id})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gradekeeper", description="Offline grading data manager")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("courses", help="List courses")

    p_backup = sub.add_parser("backup", help="Manage backups")
    p_backup.add_argument("action", choices=["create", "list", "restore", "delete"])
    p_backup.add_argument("backup_id", nargs="?")
    p_backup.add_argument("--label", default=LABEL_MANUAL)

    p_export = sub.add_parser("export", help="Export all courses to JSON")
    p_export.add_argument("path", nargs="?")

    p_import = sub.add_parser("import", help="Import courses from JSON")
    p_import.add_argument("path")
    mode = p_import.add_mutually_exclusive_group()
    mode.add_argument("--merge", action="store_true", help="Merge into existing courses")
    mode.add_argument("--duplicate", action="store_true", help="Import duplicates as copies")

    p_sync = sub.add_parser("sync", help="Reconcile with a mirror folder")
    p_sync.add_argument("folder", nargs="?")

    p_delete = sub.add_parser("delete-course", help="Delete a course (with backup)")
    p_delete.add_argument("course_id")

    return parser


def main(argv: list[str] | None = None, config: Config | None = None) -> int:
    """Ejecutar CLI."""
    args = build_parser().parse_args(argv)
    config = config or get_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    services = Services.from_config(config)

    if args.cmd == "courses":
        return _cmd_courses(services, args)
    if args.cmd == "backup":
        return _cmd_backup(services, args)
    if args.cmd == "export":
        return _cmd_export(services, args)
    if args.cmd == "import":
        return _cmd_import(services, args)
    if args.cmd == "sync":
        return _cmd_sync(services, args, config)
    return _cmd_delete_course(services, args)
