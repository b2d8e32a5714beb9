"""Reconciliación de dos copias editadas por separado (local y carpeta).

Regla general: gana la versión con más información. La marca de terminado
(``completedDate``) solo desempata entre registros de tamaño comparable;
nunca hace retroceder trabajo local más completo.
"""

from __future__ import annotations

from dataclasses import replace

from ..core.models import Course, CourseStudent, CourseTest, OralTest, TestFeedbackData, parse_timestamp


def feedback_size(feedback: TestFeedbackData) -> tuple[int, int]:
    """Cantidad de datos de un feedback.

    Un comentario individual solo cuenta cuando no hay tareas corregidas.
    """
    has_comment = not feedback.task_feedbacks and bool(feedback.individual_comment.strip())
    return len(feedback.task_feedbacks), int(has_comment)


def pick_feedback(local: TestFeedbackData, folder: TestFeedbackData) -> TestFeedbackData:
    """Elegir la versión a conservar de un mismo estudiante."""
    local_size = feedback_size(local)
    folder_size = feedback_size(folder)

    if local.is_completed != folder.is_completed:
        if local.is_completed and local_size >= folder_size:
            return local
        if folder.is_completed and folder_size >= local_size:
            return folder

    if folder_size > local_size:
        return folder
    return local


def merge_feedbacks(
    local: list[TestFeedbackData], folder: list[TestFeedbackData]
) -> list[TestFeedbackData]:
    """Unir feedbacks por ``studentId``; cada estudiante aparece una vez."""
    merged: dict[str, TestFeedbackData] = {}
    for fb in local:
        merged[fb.student_id] = fb

    for fb in folder:
        existing = merged.get(fb.student_id)
        merged[fb.student_id] = fb if existing is None else pick_feedback(existing, fb)

    return list(merged.values())


def merge_tests(local: list[CourseTest], folder: list[CourseTest]) -> list[CourseTest]:
    """Unir pruebas por id.

    La configuración (nombre, tareas, fecha, partes) viene del lado con
    ``lastModified`` más reciente; los feedbacks se unen con ``merge_feedbacks``.
    """
    merged: dict[str, CourseTest] = {}
    for test in local:
        merged[test.id] = test

    for folder_test in folder:
        existing = merged.get(folder_test.id)
        if existing is None:
            merged[folder_test.id] = folder_test
            continue

        newer = parse_timestamp(folder_test.last_modified) > parse_timestamp(existing.last_modified)
        base = folder_test if newer else existing
        merged[folder_test.id] = replace(
            base,
            student_feedbacks=merge_feedbacks(
                existing.student_feedbacks, folder_test.student_feedbacks
            ),
        )

    return list(merged.values())


def merge_students(local: list[CourseStudent], other: list[CourseStudent]) -> list[CourseStudent]:
    """Unión por id; los estudiantes existentes no se modifican."""
    known = {s.id for s in local}
    result = list(local)
    for student in other:
        if student.id not in known:
            result.append(student)
            known.add(student.id)
    return result


def merge_labels(local: list[str], other: list[str]) -> list[str]:
    """Unión de etiquetas conservando el orden."""
    return list(dict.fromkeys([*local, *other]))


def _merge_oral_tests(local: list[OralTest], folder: list[OralTest]) -> list[OralTest]:
    known = {t.id for t in local}
    return [*local, *(t for t in folder if t.id not in known)]


def merge_course(local: Course, folder: Course) -> Course:
    """Combinar dos versiones del mismo curso."""
    newer = parse_timestamp(folder.last_modified) > parse_timestamp(local.last_modified)
    base = folder if newer else local
    return replace(
        base,
        students=merge_students(local.students, folder.students),
        tests=merge_tests(local.tests, folder.tests),
        oral_tests=_merge_oral_tests(local.oral_tests, folder.oral_tests),
        available_labels=merge_labels(local.available_labels, folder.available_labels),
    )


def course_data_score(course: Course) -> int:
    """Puntuación de 'cantidad de datos' para elegir entre duplicados."""
    return len(course.students) + len(course.tests) * 10 + course.completed_feedback_count() * 100


def deduplicate_courses(courses: list[Course]) -> list[Course]:
    """Un curso por nombre (sin mayúsculas ni espacios extremos).

    Se queda con el que tenga más datos; si empatan, el modificado más tarde.
    """
    seen: dict[str, Course] = {}
    for course in courses:
        key = course.name.strip().lower()
        existing = seen.get(key)
        if existing is None:
            seen[key] = course
            continue

        new_score = course_data_score(course)
        old_score = course_data_score(existing)
        if new_score > old_score or (
            new_score == old_score
            and parse_timestamp(course.last_modified) > parse_timestamp(existing.last_modified)
        ):
            seen[key] = course

    return list(seen.values())


def merge_courses(local: list[Course], folder: list[Course]) -> list[Course]:
    """Sincronización bidireccional de colecciones completas."""
    merged: dict[str, Course] = {}
    for course in local:
        merged[course.id] = course

    for folder_course in folder:
        existing = merged.get(folder_course.id)
        merged[folder_course.id] = (
            folder_course if existing is None else merge_course(existing, folder_course)
        )

    return deduplicate_courses(list(merged.values()))
