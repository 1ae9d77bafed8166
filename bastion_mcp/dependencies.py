"""Dependency injection container for Bastion MCP."""

from dataclasses import dataclass

from bastion_mcp.config import Config
from bastion_mcp.services.reboot_budget import RebootAttemptCounter
from bastion_mcp.services.router import CommandRouter
from bastion_mcp.services.ssh_transport import SSHTransport
from bastion_mcp.services.winrm_transport import WinRMTransport
from bastion_mcp.services.wsl_bootstrap import WSLBootstrapper


@dataclass
class Dependencies:
    """Container for Bastion MCP dependencies.

    Holds configuration, both transports, the router and the WSL
    bootstrapper. The reboot counter lives here so every bootstrap run in the
    process shares one budget per target.

    Example:
        deps = Dependencies.create()
        result = await deps.router.run_command(target, "uname -a")
    """

    config: Config
    counter: RebootAttemptCounter
    ssh: SSHTransport
    winrm: WinRMTransport
    router: CommandRouter
    bootstrapper: WSLBootstrapper

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies from environment configuration.

        Returns:
            Initialized Dependencies instance
        """
        return cls.from_config(Config.from_env())

    @classmethod
    def from_config(
        cls,
        config: Config,
        counter: RebootAttemptCounter | None = None,
    ) -> "Dependencies":
        """Create dependencies with custom configuration.

        Args:
            config: Config instance
            counter: Reboot counter to share; a fresh one by default

        Returns:
            Dependencies wired from config
        """
        settings = config.settings
        counter = counter if counter is not None else RebootAttemptCounter()

        ssh = SSHTransport(
            port=settings.ssh_port,
            connect_timeout=settings.connect_timeout,
            command_timeout=settings.command_timeout,
            known_hosts=config.known_hosts_path,
        )
        winrm = WinRMTransport(
            port=settings.winrm_port,
            auth_transport=settings.winrm_transport,
            connect_timeout=settings.connect_timeout,
            command_timeout=settings.command_timeout,
        )
        router = CommandRouter(
            ssh=ssh,
            winrm=winrm,
            default_distro=settings.default_distro,
            probe_timeout=settings.probe_timeout,
            unknown_os_fallback=settings.unknown_os_fallback,
        )
        bootstrapper = WSLBootstrapper(
            winrm=winrm,
            counter=counter,
            default_distro=settings.default_distro,
            max_reboots=settings.max_reboots,
            reboot_timeout=settings.reboot_timeout,
            offline_timeout=settings.offline_timeout,
            poll_interval=settings.poll_interval,
            stabilize_seconds=settings.stabilize_seconds,
            install_timeout=settings.install_timeout,
            probe_timeout=settings.probe_timeout,
        )
        return cls(
            config=config,
            counter=counter,
            ssh=ssh,
            winrm=winrm,
            router=router,
            bootstrapper=bootstrapper,
        )
