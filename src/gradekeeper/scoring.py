"""Cálculo de notas ponderadas en escala 0-60."""

from __future__ import annotations

import math
from typing import Iterable

from .core.models import OralFeedbackData, Task, TaskFeedback

MAX_POINTS_PER_TASK = 6
SCORE_SCALE = 10


def round_half_up(value: float) -> int:
    """Redondear .5 hacia arriba (``round`` de Python redondea al par)."""
    return int(math.floor(value + 0.5))


def task_weight(task: Task) -> float:
    """Peso explícito, o número de subtareas, o 1."""
    if task.weight is not None:
        return task.weight
    if task.has_subtasks and task.subtasks:
        return len(task.subtasks)
    return 1


def _points(feedback: TaskFeedback | None) -> float:
    if feedback is None or feedback.points is None:
        return 0
    return feedback.points


def task_average(task: Task, feedbacks: list[TaskFeedback]) -> float:
    """Media de puntos de una tarea; subtareas sin feedback cuentan como 0."""
    if task.has_subtasks and task.subtasks:
        total = 0.0
        for subtask in task.subtasks:
            match = next(
                (f for f in feedbacks if f.task_id == task.id and f.subtask_id == subtask.id),
                None,
            )
            total += _points(match)
        return total / len(task.subtasks)

    match = next((f for f in feedbacks if f.task_id == task.id and not f.subtask_id), None)
    return _points(match)


def _weighted_score(pairs: Iterable[tuple[float, float]]) -> int:
    total_weighted = 0.0
    total_weight = 0.0
    for average, weight in pairs:
        total_weighted += average * weight
        total_weight += weight

    if total_weight == 0:
        return 0
    return round_half_up(SCORE_SCALE * total_weighted / total_weight)


def calculate_student_score(tasks: list[Task], feedbacks: list[TaskFeedback]) -> int:
    """Nota del estudiante (0-60): media ponderada por tarea, escalada por 10."""
    if not tasks:
        return 0
    return _weighted_score((task_average(task, feedbacks), task_weight(task)) for task in tasks)


def calculate_max_score() -> int:
    """Nota máxima, fija e independiente del número de tareas."""
    return MAX_POINTS_PER_TASK * SCORE_SCALE


def calculate_oral_score(data: OralFeedbackData) -> int:
    """Nota oral con la misma fórmula; peso por defecto 1."""
    if not data.dimensions:
        return 0
    return _weighted_score(
        (dim.points, dim.weight if dim.weight is not None else 1) for dim in data.dimensions
    )


def calculate_total_points(feedbacks: list[TaskFeedback]) -> int:
    """Suma de puntos sin ponderar (ignora los no corregidos)."""
    return sum(f.points for f in feedbacks if f.points is not None)


def count_task_units(tasks: list[Task]) -> int:
    """Número de unidades corregibles (tareas sin subtareas + subtareas)."""
    count = 0
    for task in tasks:
        if task.has_subtasks and task.subtasks:
            count += len(task.subtasks)
        else:
            count += 1
    return count


def calculate_max_points(tasks: list[Task], points_per_task: int = MAX_POINTS_PER_TASK) -> int:
    """Puntos máximos: ``points_per_task`` por unidad."""
    return count_task_units(tasks) * points_per_task
