"""UI layer -- Rich dashboard and output formatters."""

from .dashboard import (
    ProgressDisplay,
    configure_logging,
    console,
    print_configuration,
    print_final_results,
    print_header,
    print_performance,
    print_quality,
    print_summary,
)
from .output import create_result_json, format_text_result

__all__ = [
    "ProgressDisplay",
    "configure_logging",
    "console",
    "create_result_json",
    "format_text_result",
    "print_configuration",
    "print_final_results",
    "print_header",
    "print_performance",
    "print_quality",
    "print_summary",
]
