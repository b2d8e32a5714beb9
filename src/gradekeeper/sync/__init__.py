"""Sync: reconciliación con la carpeta espejo."""

from .merge import deduplicate_courses, merge_courses, merge_feedbacks, merge_tests

__all__ = ["deduplicate_courses", "merge_courses", "merge_feedbacks", "merge_tests"]
