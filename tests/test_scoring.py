"""Tests para cálculo de notas."""

from gradekeeper.core.models import (
    OralFeedbackData,
    OralFeedbackDimension,
    Subtask,
    Task,
    TaskFeedback,
)
from gradekeeper.scoring import (
    calculate_max_points,
    calculate_max_score,
    calculate_oral_score,
    calculate_student_score,
    calculate_total_points,
    round_half_up,
)


def make_task(task_id: str, subtasks: list[str] | None = None, weight: float | None = None) -> Task:
    subtasks = subtasks or []
    return Task(
        id=task_id,
        label=task_id,
        subtasks=[Subtask(id=s, label=s) for s in subtasks],
        has_subtasks=bool(subtasks),
        weight=weight,
    )


def fb(task_id: str, points: int | None, subtask_id: str | None = None) -> TaskFeedback:
    return TaskFeedback(task_id=task_id, points=points, subtask_id=subtask_id)


class TestStudentScore:
    """Tests para calculate_student_score."""

    def test_no_tasks(self) -> None:
        """Sin tareas la nota es 0."""
        assert calculate_student_score([], []) == 0

    def test_simple_tasks(self) -> None:
        """(6 + 4) / 2 * 10 = 50."""
        tasks = [make_task("t1"), make_task("t2")]
        assert calculate_student_score(tasks, [fb("t1", 6), fb("t2", 4)]) == 50

    def test_uniform_weight_is_mean(self) -> None:
        """Con peso 1 en todas, la nota es round(10 * media)."""
        tasks = [make_task(f"t{i}") for i in range(4)]
        points = [3, 4, 4, 6]
        feedbacks = [fb(f"t{i}", p) for i, p in enumerate(points)]
        assert calculate_student_score(tasks, feedbacks) == round_half_up(10 * sum(points) / 4)

    def test_subtasks_averaged(self) -> None:
        """Una tarea con subtareas usa la media de sus subtareas."""
        tasks = [make_task("t1", ["a", "b"])]
        feedbacks = [fb("t1", 6, "a"), fb("t1", 3, "b")]
        assert calculate_student_score(tasks, feedbacks) == 45

    def test_mixed_auto_weights(self) -> None:
        """Peso automático = número de subtareas."""
        tasks = [make_task("t1"), make_task("t2", ["a", "b"])]
        feedbacks = [fb("t1", 6), fb("t2", 4, "a"), fb("t2", 2, "b")]
        # (6*1 + 3*2) / 3 = 4
        assert calculate_student_score(tasks, feedbacks) == 40

    def test_explicit_weight_overrides_auto(self) -> None:
        """Peso explícito 1 en una tarea con 2 subtareas cuenta como 1."""
        tasks = [make_task("t1"), make_task("t2", ["a", "b"], weight=1)]
        feedbacks = [fb("t1", 6), fb("t2", 4, "a"), fb("t2", 2, "b")]
        # (6*1 + 3*1) / 2 = 4.5
        assert calculate_student_score(tasks, feedbacks) == 45

    def test_missing_feedback_counts_zero(self) -> None:
        """Tareas sin feedback aportan 0."""
        tasks = [make_task("t1"), make_task("t2")]
        assert calculate_student_score(tasks, [fb("t1", 6)]) == 30

    def test_ungraded_points_count_zero(self) -> None:
        """Puntos None cuentan como 0."""
        tasks = [make_task("t1"), make_task("t2")]
        assert calculate_student_score(tasks, [fb("t1", 6), fb("t2", None)]) == 30

    def test_rounds_half_up(self) -> None:
        """0.5 se redondea hacia arriba."""
        tasks = [make_task("t1"), make_task("t2"), make_task("t3"), make_task("t4")]
        feedbacks = [fb("t1", 1), fb("t2", 0), fb("t3", 0), fb("t4", 0)]
        # 10 * 0.25 = 2.5 -> 3
        assert calculate_student_score(tasks, feedbacks) == 3

    def test_perfect_score(self) -> None:
        """Todo 6 da 60."""
        assert calculate_student_score([make_task("t1")], [fb("t1", 6)]) == 60


class TestMaxAndTotals:
    """Tests para máximos y totales."""

    def test_max_score_constant(self) -> None:
        """La nota máxima es siempre 60."""
        assert calculate_max_score() == 60

    def test_total_points(self) -> None:
        """Suma sin ponderar."""
        assert calculate_total_points([fb("t1", 3), fb("t2", 5), fb("t3", 2)]) == 10
        assert calculate_total_points([]) == 0

    def test_total_points_skips_ungraded(self) -> None:
        """Los no corregidos no suman."""
        assert calculate_total_points([fb("t1", 3), fb("t2", None)]) == 3

    def test_max_points(self) -> None:
        """6 puntos por unidad (tarea o subtarea)."""
        assert calculate_max_points([make_task("t1"), make_task("t2")]) == 12
        assert calculate_max_points([make_task("t1", ["a", "b"])]) == 12
        assert calculate_max_points([make_task("t1"), make_task("t2")], 10) == 20
        assert calculate_max_points([]) == 0


class TestOralScore:
    """Tests para calculate_oral_score."""

    def test_empty_dimensions(self) -> None:
        """Sin dimensiones la nota es 0."""
        assert calculate_oral_score(OralFeedbackData(student_id="s1")) == 0

    def test_average(self) -> None:
        """Media * 10 con peso por defecto 1."""
        data = OralFeedbackData(
            student_id="s1",
            dimensions=[
                OralFeedbackDimension("strategy", 3),
                OralFeedbackDimension("reasoning", 4),
                OralFeedbackDimension("representations", 5),
            ],
        )
        assert calculate_oral_score(data) == 40

    def test_weighted(self) -> None:
        """Los pesos se respetan."""
        data = OralFeedbackData(
            student_id="s1",
            dimensions=[
                OralFeedbackDimension("strategy", 6, weight=3),
                OralFeedbackDimension("reasoning", 2),
            ],
        )
        # (18 + 2) / 4 = 5
        assert calculate_oral_score(data) == 50
