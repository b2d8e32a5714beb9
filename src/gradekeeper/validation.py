"""Validación estructural de datos de curso no confiables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ValidationResult:
    """Resultado de validación."""

    valid: bool
    errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid


def course_errors(index: int, candidate: Any) -> list[str]:
    if not isinstance(candidate, dict):
        return [f"Course {index}: not a valid object"]

    errors = []
    name = candidate.get("name")
    if not name or not isinstance(name, str):
        errors.append(f"Course {index}: missing or invalid name")

    display = name if isinstance(name, str) and name else "unknown"
    if not isinstance(candidate.get("students"), list):
        errors.append(f'Course {index} ("{display}"): missing students array')
    if not isinstance(candidate.get("tests"), list):
        errors.append(f'Course {index} ("{display}"): missing tests array')
    return errors


def validate_course_data(data: Any) -> ValidationResult:
    """Validar un curso o una lista de cursos.

    Solo comprueba la forma (``name`` texto, ``students`` y ``tests`` listas);
    no normaliza nada. Una lista es válida solo si todos sus elementos lo son.
    """
    if data is None or not isinstance(data, (dict, list)):
        return ValidationResult(valid=False, errors=["Data is not a valid object"])

    candidates = data if isinstance(data, list) else [data]
    errors: list[str] = []
    for i, candidate in enumerate(candidates, start=1):
        errors.extend(course_errors(i, candidate))

    return ValidationResult(valid=not errors, errors=errors)
