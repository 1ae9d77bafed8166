"""Discovery of the client libraries backing each transport."""

import importlib.util

SSH_CLIENT_MODULE = "asyncssh"
WINRM_CLIENT_MODULE = "winrm"


def ssh_client_available() -> bool:
    """Whether the SSH client library can be imported."""
    return importlib.util.find_spec(SSH_CLIENT_MODULE) is not None


def winrm_client_available() -> bool:
    """Whether the WinRM client library can be imported."""
    return importlib.util.find_spec(WINRM_CLIENT_MODULE) is not None
