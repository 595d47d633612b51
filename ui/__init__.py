"""UI layer -- Rich dashboard and output formatters."""

from .dashboard import (
    console,
    print_final_results,
    print_header,
    print_history,
    print_measurement_details,
    print_network_info,
)
from .output import (
    append_csv,
    create_result_json,
    format_csv_header,
    format_csv_row,
    format_history_table,
    format_text_result,
    save_json,
    sparkline,
)

__all__ = [
    "append_csv",
    "console",
    "create_result_json",
    "format_csv_header",
    "format_csv_row",
    "format_history_table",
    "format_text_result",
    "print_final_results",
    "print_header",
    "print_history",
    "print_measurement_details",
    "print_network_info",
    "save_json",
    "sparkline",
]
