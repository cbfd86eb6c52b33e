"""Result export."""

from .excel_export import export_results_to_excel

__all__ = ['export_results_to_excel']
