"""software-updater reporting modules."""

from .summary import exit_code, export_json, print_table, reports_to_json

__all__ = [
    "exit_code",
    "export_json",
    "print_table",
    "reports_to_json",
]
