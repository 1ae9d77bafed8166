"""PowerShell snippets run on Windows targets.

Scripts that feed structured results back emit a single line of compressed
JSON. wsl.exe writes UTF-16, so its output is decoded by the caller rather
than parsed here.
"""

from bastion_mcp.utils.shell import encode_bash, quote_ps

WSL_FEATURE = "Microsoft-Windows-Subsystem-Linux"
VM_PLATFORM_FEATURE = "VirtualMachinePlatform"

# Exit code dism.exe returns when a change needs a restart to take effect
DISM_REBOOT_REQUIRED = 3010

FEATURE_STATE = f"""
$ErrorActionPreference = 'SilentlyContinue'
$wsl = Get-WindowsOptionalFeature -Online -FeatureName {WSL_FEATURE}
$vmp = Get-WindowsOptionalFeature -Online -FeatureName {VM_PLATFORM_FEATURE}
$markers = @(
    'HKLM:\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Component Based Servicing\\RebootPending',
    'HKLM:\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\WindowsUpdate\\Auto Update\\RebootRequired'
)
$pending = $false
foreach ($key in $markers) {{ if (Test-Path $key) {{ $pending = $true }} }}
[pscustomobject]@{{
    wsl = [string]$wsl.State
    vmp = [string]$vmp.State
    registry_pending = $pending
}} | ConvertTo-Json -Compress
"""

WSL_STATUS = "wsl.exe --status; exit $LASTEXITCODE"
WSL_LIST = "wsl.exe --list --quiet; exit $LASTEXITCODE"
WSL_LIST_RUNNING = "wsl.exe --list --running --quiet; exit $LASTEXITCODE"
WSL_UPDATE = "wsl.exe --update; exit $LASTEXITCODE"
WSL_SET_DEFAULT_VERSION = "wsl.exe --set-default-version 2; exit $LASTEXITCODE"

HOSTNAME = "$env:COMPUTERNAME"

REBOOT = 'shutdown.exe /r /f /t 5 /c "WSL bootstrap restart"; exit $LASTEXITCODE'


def enable_feature(feature: str) -> str:
    """dism.exe invocation enabling an optional feature without restarting."""
    return (
        f"dism.exe /online /enable-feature /featurename:{feature} /all /norestart; "
        "exit $LASTEXITCODE"
    )


def install_distribution(distro: str) -> str:
    """Install a distribution and register it for root if it ships a launcher.

    Store-packaged distributions install unregistered with --no-launch; their
    launcher's ``install --root`` registers them without an interactive
    first-run user prompt.
    """
    name = quote_ps(distro)
    launcher = quote_ps(distro.lower().replace("-", "").replace(".", "") + ".exe")
    return f"""
wsl.exe --install -d {name} --no-launch --web-download
$code = $LASTEXITCODE
$launcher = Get-Command {launcher} -ErrorAction SilentlyContinue
if ($launcher) {{ & $launcher.Source install --root; $code = $LASTEXITCODE }}
exit $code
"""


def start_distribution(distro: str) -> str:
    """Start a distribution by running a no-op inside it."""
    return f"wsl.exe -d {quote_ps(distro)} -u root --exec true; exit $LASTEXITCODE"


def terminate_distribution(distro: str) -> str:
    return f"wsl.exe --terminate {quote_ps(distro)}; exit $LASTEXITCODE"


def run_in_distribution(distro: str, command: str) -> str:
    """Run a bash command as root inside a distribution.

    The command travels base64-encoded so neither PowerShell nor wsl.exe
    reinterprets its quoting.
    """
    payload = encode_bash(command)
    return (
        f"wsl.exe -d {quote_ps(distro)} -u root --exec bash -c "
        f"'echo {payload} | base64 -d | bash 2>&1'; exit $LASTEXITCODE"
    )
