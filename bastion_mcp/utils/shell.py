"""Shell and PowerShell quoting utilities."""

import base64


def quote_ps(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal.

    Args:
        value: Value to quote

    Returns:
        PowerShell literal with embedded quotes doubled
    """
    return "'" + value.replace("'", "''") + "'"


def encode_ps(script: str) -> str:
    """Encode a PowerShell script for ``-EncodedCommand``.

    Args:
        script: PowerShell source

    Returns:
        Base64 of the UTF-16LE encoded script
    """
    return base64.b64encode(script.encode("utf-16-le")).decode("ascii")


def encode_bash(command: str) -> str:
    """Encode a bash command so it survives PowerShell and wsl.exe quoting.

    Args:
        command: Bash command line

    Returns:
        Base64 of the UTF-8 encoded command
    """
    return base64.b64encode(command.encode("utf-8")).decode("ascii")
