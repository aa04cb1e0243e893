"""Utilities for Valkyrie."""

from valkyrie.utils.console import ColorfulFormatter
from valkyrie.utils.ping import check_host_online
from valkyrie.utils.shell import escape_double_quotes, quote_path

__all__ = [
    "check_host_online",
    "ColorfulFormatter",
    "escape_double_quotes",
    "quote_path",
]
