"""Scoring and review decisions."""

from .model import Decision
from .score import find_missing_fields, score_invoice

__all__ = ['Decision', 'find_missing_fields', 'score_invoice']
