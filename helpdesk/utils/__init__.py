"""
Utility functions
"""
from helpdesk.utils.logger import setup_logger, get_logger
from helpdesk.utils.odata import odata_escape, contains_text
from helpdesk.utils.dates import start_of_day, end_of_day, parse_day, due_state

__all__ = [
    "setup_logger",
    "get_logger",
    "odata_escape",
    "contains_text",
    "start_of_day",
    "end_of_day",
    "parse_day",
    "due_state",
]
