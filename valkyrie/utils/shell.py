"""Shell command safety utilities."""

import shlex


def quote_path(path: str) -> str:
    """Safely quote a path for shell commands.

    Args:
        path: File system path to quote

    Returns:
        Shell-safe quoted path
    """
    return shlex.quote(path)


def escape_double_quotes(text: str) -> str:
    """Escape text for embedding inside a double-quoted shell string.

    Args:
        text: Free-form text, e.g. a chat message

    Returns:
        Text with backslashes, double quotes, ``$`` and backticks escaped
    """
    for char in ("\\", '"', "$", "`"):
        text = text.replace(char, "\\" + char)
    return text
