"""
Strata CLI Package

Command-line access to structured and flat configuration files.
"""

from .main import create_parser, main
from .utils import (
    get_console, create_table, print_text,
    print_warning, print_error, print_success, print_info
)

__all__ = [
    'create_parser',
    'main',
    'get_console',
    'create_table',
    'print_text',
    'print_warning',
    'print_error',
    'print_success',
    'print_info'
]
