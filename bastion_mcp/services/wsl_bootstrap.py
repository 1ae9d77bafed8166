"""WSL bootstrap state machine for Windows targets.

States (see ``WSLState``) are derived from a read-only readiness probe:

    NOT_INSTALLED -> features enabled -> REBOOT_PENDING -> reboot cycle
    KERNEL_MISSING -> runtime updated -> DISTRIBUTION_MISSING
    DISTRIBUTION_MISSING -> distribution installed
    DISTRIBUTION_NOT_READY -> resolved distribution restarted
    READY (terminal)

Reboot cycles draw from a per-target budget held in a RebootAttemptCounter.
Once the budget is spent no further reboot is issued and the run ends with a
manual-intervention error, so a host whose WSL never activates (for example
a VM without nested virtualization) is not rebooted forever.

Probe failures are negative evidence. Only failing to open a session, budget
exhaustion and a host that never comes back are terminal.
"""

import asyncio
import json
import logging
import secrets
from typing import TYPE_CHECKING, Any

from bastion_mcp.models import InstallResult, WSLReadinessReport, WSLState
from bastion_mcp.services import powershell
from bastion_mcp.services.errors import (
    BastionError,
    DistributionMissing,
    DistributionNotReady,
    RebootBudgetExhausted,
    TimeoutWaitingForHost,
    TransportAuthFailure,
    TransportUnavailable,
    WSLNotReady,
)
from bastion_mcp.services.reboot_budget import RebootAttemptCounter
from bastion_mcp.utils.ping import check_host_online
from bastion_mcp.utils.validation import validate_distro, validate_host

if TYPE_CHECKING:
    from bastion_mcp.models import Target
    from bastion_mcp.services.winrm_transport import WinRMSession, WinRMTransport

logger = logging.getLogger(__name__)

ENABLED = "Enabled"
ENABLE_PENDING = "EnablePending"


def parse_feature_state(output: str) -> dict[str, Any]:
    """Parse the JSON line emitted by the feature-state script.

    Unparseable output yields an empty dict, read as "nothing enabled".
    """
    for line in reversed(output.splitlines()):
        line = line.strip()
        if line.startswith("{"):
            try:
                data = json.loads(line)
            except ValueError:
                break
            if isinstance(data, dict):
                return data
    logger.debug("Unparseable feature state output: %r", output[:200])
    return {}


class WSLBootstrapper:
    """Drives a Windows target to a ready WSL distribution."""

    def __init__(
        self,
        winrm: "WinRMTransport",
        counter: RebootAttemptCounter | None = None,
        default_distro: str = "Ubuntu",
        max_reboots: int = 2,
        reboot_timeout: float = 600,
        offline_timeout: float = 120,
        poll_interval: float = 10,
        stabilize_seconds: float = 30,
        probe_timeout: float = 3.0,
        install_timeout: float = 1800,
    ) -> None:
        """Initialize bootstrapper.

        Args:
            winrm: WinRM transport used for every remote step
            counter: Reboot budget store shared across runs
            default_distro: Distribution used when a call names none
            max_reboots: Reboots allowed per target for the process lifetime
            reboot_timeout: Seconds to wait for a rebooted host to accept sessions
            offline_timeout: Seconds to wait for a rebooting host to drop off
            poll_interval: Seconds between reachability polls
            stabilize_seconds: Grace period after the host returns
            probe_timeout: Per-poll TCP connect timeout
            install_timeout: Overall bound for one pass of installation steps
        """
        self.winrm = winrm
        self.counter = counter if counter is not None else RebootAttemptCounter()
        self.default_distro = default_distro
        self.max_reboots = max_reboots
        self.reboot_timeout = reboot_timeout
        self.offline_timeout = offline_timeout
        self.poll_interval = poll_interval
        self.stabilize_seconds = stabilize_seconds
        self.probe_timeout = probe_timeout
        self.install_timeout = install_timeout

    # Readiness probe

    def _probe(self, session: "WinRMSession", distro: str) -> WSLReadinessReport:
        """Compute a readiness report inside an open session."""
        report = WSLReadinessReport()
        features = parse_feature_state(session.run_ps(powershell.FEATURE_STATE).stdout)
        wsl_state = str(features.get("wsl", ""))
        vmp_state = str(features.get("vmp", ""))

        report.feature_enabled = wsl_state == ENABLED
        report.vm_platform_enabled = vmp_state == ENABLED
        report.reboot_pending = bool(features.get("registry_pending")) or ENABLE_PENDING in (
            wsl_state,
            vmp_state,
        )

        if report.reboot_pending:
            report.message = "A reboot is pending to activate Windows features"
            return report
        if not (report.feature_enabled and report.vm_platform_enabled):
            missing = [
                name
                for name, enabled in (
                    (powershell.WSL_FEATURE, report.feature_enabled),
                    (powershell.VM_PLATFORM_FEATURE, report.vm_platform_enabled),
                )
                if not enabled
            ]
            report.message = f"Windows features not enabled: {', '.join(missing)}"
            return report

        try:
            report.kernel_installed = session.wsl_responds()
        except BastionError as e:
            logger.debug("WSL status probe on %s failed: %s", session.address, e)
        if not report.kernel_installed:
            report.message = WSLNotReady("WSL runtime does not respond").message
            return report

        try:
            resolved, installed = session.resolve(distro)
        except BastionError as e:
            logger.debug("Distribution listing on %s failed: %s", session.address, e)
            resolved, installed = None, []
        if resolved is None:
            report.message = DistributionMissing(distro, installed).message
            return report

        report.distribution = resolved
        report.distribution_installed = True
        token = f"bastion-{secrets.token_hex(4)}"
        try:
            result = session.run_in_guest(resolved, f"echo {token}")
            report.distribution_ready = token in result.stdout
        except BastionError as e:
            logger.debug("Liveness probe in %s failed: %s", resolved, e)

        if report.distribution_ready:
            report.message = f"WSL ready: distribution {resolved} responds"
        else:
            report.message = DistributionNotReady(
                f"Distribution {resolved} is installed but failed its liveness probe"
            ).message
        return report

    async def assess_readiness(
        self, target: "Target", distro: str | None = None
    ) -> WSLReadinessReport:
        """Probe a target's WSL readiness without changing anything.

        Raises:
            BastionError: If no remote session can be opened
        """
        validate_host(target.address)
        name = validate_distro(distro or self.default_distro)
        report = await self.winrm.run_in_session(target, lambda s: self._probe(s, name))
        logger.info("WSL readiness of %s: %s", target.address, report.state.value)
        return report

    # Installation

    def _install_steps(
        self, session: "WinRMSession", distro: str, before: WSLReadinessReport
    ) -> WSLReadinessReport:
        """Run the missing installation steps in order, then re-probe."""
        state = before.state
        reboot_required = False

        for feature, enabled in (
            (powershell.WSL_FEATURE, before.feature_enabled),
            (powershell.VM_PLATFORM_FEATURE, before.vm_platform_enabled),
        ):
            if enabled:
                continue
            logger.info("Enabling %s on %s", feature, session.address)
            result = session.run_ps(powershell.enable_feature(feature))
            if result.exit_code == powershell.DISM_REBOOT_REQUIRED:
                reboot_required = True
            elif not result.succeeded:
                logger.warning(
                    "Enabling %s on %s failed: %s", feature, session.address, result.stdout.strip()
                )

        if state in (WSLState.NOT_INSTALLED, WSLState.KERNEL_MISSING):
            for step in (powershell.WSL_UPDATE, powershell.WSL_SET_DEFAULT_VERSION):
                result = session.run_ps(step)
                if not result.succeeded:
                    logger.warning(
                        "WSL step failed on %s: %s", session.address, result.stdout.strip()
                    )

        if state is WSLState.DISTRIBUTION_NOT_READY and before.distribution:
            # Already installed under its resolved name; restart it in place
            distro = before.distribution
            logger.info("Restarting WSL distribution %s on %s", distro, session.address)
            session.run_ps(powershell.terminate_distribution(distro))
            result = session.run_ps(powershell.start_distribution(distro))
            if not result.succeeded:
                logger.warning(
                    "Starting %s on %s failed: %s", distro, session.address, result.stdout.strip()
                )
        elif not reboot_required and state is not WSLState.NOT_INSTALLED:
            logger.info("Installing WSL distribution %s on %s", distro, session.address)
            result = session.run_ps(powershell.install_distribution(distro))
            if not result.succeeded:
                logger.warning(
                    "Distribution install on %s failed: %s", session.address, result.stdout.strip()
                )

        after = self._probe(session, distro)
        if reboot_required and not after.reboot_pending:
            after.reboot_pending = True
            after.message = "Windows features were enabled and need a reboot"
        return after

    async def install(
        self,
        target: "Target",
        distro: str | None = None,
        auto_reboot: bool = False,
        wait_for_reboot: bool = False,
        deadline: float | None = None,
    ) -> InstallResult:
        """Bring a target's WSL to the ready state.

        Args:
            target: Windows host and credentials
            distro: Distribution to install (default: configured distribution)
            auto_reboot: Reboot the host when features need activation
            wait_for_reboot: Wait for a rebooted host and continue installing
            deadline: Event-loop time after which reboot waits give up

        Returns:
            InstallResult describing the state reached
        """
        validate_host(target.address)
        name = validate_distro(distro or self.default_distro)

        try:
            report = await self.assess_readiness(target, name)
        except TransportUnavailable:
            raise
        except BastionError as e:
            return self._failure(target, str(e))

        if report.state is WSLState.READY:
            return self._ready(target, report)

        if report.state is not WSLState.REBOOT_PENDING:
            logger.info("Installing WSL on %s from state %s", target.address, report.state.value)
            before = report
            try:
                report = await self.winrm.run_in_session(
                    target,
                    lambda s: self._install_steps(s, name, before),
                    timeout=self.install_timeout,
                )
            except BastionError as e:
                return self._failure(target, str(e))

            if report.state is WSLState.READY:
                return self._ready(target, report)
            if report.state is not WSLState.REBOOT_PENDING:
                return InstallResult(
                    success=False,
                    ready=False,
                    needs_reboot=False,
                    message=f"{report.message} (retry later)",
                    state=report.state,
                    reboot_attempts=self.counter.get(target.address),
                )

        if self.counter.get(target.address) >= self.max_reboots:
            return self._budget_exhausted(target)

        if not auto_reboot:
            return InstallResult(
                success=True,
                ready=False,
                needs_reboot=True,
                message=f"{report.message}; reboot the host and run install again",
                state=WSLState.REBOOT_PENDING,
                reboot_attempts=self.counter.get(target.address),
            )

        return await self._reboot_cycle(target, name, wait_for_reboot, deadline)

    # Reboot cycle

    async def _reboot_cycle(
        self,
        target: "Target",
        distro: str,
        wait_for_reboot: bool,
        deadline: float | None,
    ) -> InstallResult:
        """Spend one reboot from the budget, optionally wait, then re-enter install."""
        attempt = self.counter.try_consume(target.address, self.max_reboots)
        if attempt is None:
            return self._budget_exhausted(target)

        logger.warning(
            "Rebooting %s to activate WSL (attempt %d/%d)",
            target.address,
            attempt,
            self.max_reboots,
        )
        try:
            result = await self.winrm.run_in_session(target, lambda s: s.run_ps(powershell.REBOOT))
            if not result.succeeded:
                return InstallResult(
                    success=False,
                    ready=False,
                    needs_reboot=True,
                    message=f"Reboot command failed on {target.address}: {result.stdout.strip()}",
                    state=WSLState.REBOOT_PENDING,
                    reboot_attempts=attempt,
                )
        except TransportAuthFailure as e:
            return self._failure(target, str(e))
        except BastionError as e:
            # The session may drop as the host goes down
            logger.info("Session to %s ended while issuing reboot: %s", target.address, e)

        if not wait_for_reboot:
            return InstallResult(
                success=True,
                ready=False,
                needs_reboot=True,
                rebooting=True,
                message=f"Reboot issued (attempt {attempt}/{self.max_reboots}); "
                "run install again once the host is back",
                state=WSLState.REBOOT_PENDING,
                reboot_attempts=attempt,
            )

        try:
            await self._wait_for_offline(target.address, deadline)
            await self._wait_for_online(target, deadline)
            await self._stabilize(target.address, deadline)
        except (TimeoutWaitingForHost, TransportAuthFailure) as e:
            logger.error("%s", e)
            return InstallResult(
                success=False,
                ready=False,
                needs_reboot=False,
                rebooting=True,
                message=str(e),
                state=WSLState.REBOOT_PENDING,
                reboot_attempts=attempt,
            )

        return await self.install(
            target, distro, auto_reboot=True, wait_for_reboot=True, deadline=deadline
        )

    def _check_deadline(self, address: str, deadline: float | None) -> None:
        """Raise if the caller's deadline has passed."""
        if deadline is not None and asyncio.get_running_loop().time() >= deadline:
            raise TimeoutWaitingForHost("Caller deadline reached while waiting for reboot", address)

    async def _stabilize(self, address: str, deadline: float | None) -> None:
        """Grace period after the host returns, cut short by the deadline."""
        delay = float(self.stabilize_seconds)
        remaining = None
        if deadline is not None:
            remaining = max(0.0, deadline - asyncio.get_running_loop().time())
        logger.info("%s is back; waiting %.0fs to stabilize", address, delay)
        if remaining is not None and remaining < delay:
            await asyncio.sleep(remaining)
            raise TimeoutWaitingForHost("Caller deadline reached while stabilizing", address)
        await asyncio.sleep(delay)

    async def _wait_for_offline(self, address: str, deadline: float | None) -> bool:
        """Poll until the host stops answering; give up quietly after a bound.

        Returns:
            True if the host was seen offline
        """
        loop = asyncio.get_running_loop()
        end = loop.time() + self.offline_timeout
        while loop.time() < end:
            self._check_deadline(address, deadline)
            if not await check_host_online(address, self.winrm.port, timeout=self.probe_timeout):
                logger.info("%s went offline", address)
                return True
            await asyncio.sleep(max(0.0, min(self.poll_interval, end - loop.time())))

        logger.warning(
            "%s never dropped offline within %ss; continuing", address, self.offline_timeout
        )
        return False

    async def _session_available(self, target: "Target") -> bool:
        """Whether the host accepts a remote session and runs a command."""
        try:
            result = await self.winrm.run_in_session(
                target,
                lambda s: s.run_ps(powershell.HOSTNAME),
                timeout=self.winrm.connect_timeout + self.probe_timeout,
            )
        except TransportAuthFailure:
            raise
        except BastionError as e:
            logger.debug("%s not accepting sessions yet: %s", target.address, e)
            return False
        return result.succeeded

    async def _wait_for_online(self, target: "Target", deadline: float | None) -> None:
        """Poll until the host accepts remote sessions again.

        Raises:
            TimeoutWaitingForHost: If the host is not back within the bound
            TransportAuthFailure: If the host is back but rejects the credentials
        """
        loop = asyncio.get_running_loop()
        end = loop.time() + self.reboot_timeout
        while True:
            self._check_deadline(target.address, deadline)
            if await check_host_online(
                target.address, self.winrm.port, timeout=self.probe_timeout
            ) and await self._session_available(target):
                logger.info("%s accepts sessions again", target.address)
                return
            if loop.time() >= end:
                raise TimeoutWaitingForHost(
                    f"Host did not come back within {self.reboot_timeout:.0f}s after reboot",
                    target.address,
                )
            await asyncio.sleep(max(0.0, min(self.poll_interval, end - loop.time())))

    # Results

    def _ready(self, target: "Target", report: WSLReadinessReport) -> InstallResult:
        logger.info("WSL on %s is ready (%s)", target.address, report.distribution)
        return InstallResult(
            success=True,
            ready=True,
            needs_reboot=False,
            message=report.message,
            state=WSLState.READY,
            reboot_attempts=self.counter.get(target.address),
        )

    def _budget_exhausted(self, target: "Target") -> InstallResult:
        error = RebootBudgetExhausted(
            f"WSL still needs a reboot after {self.max_reboots} reboot attempt(s); "
            "manual intervention required (check that virtualization is available "
            "and the features activate)",
            target.address,
        )
        logger.error("%s", error)
        return InstallResult(
            success=False,
            ready=False,
            needs_reboot=True,
            message=str(error),
            state=WSLState.REBOOT_PENDING,
            reboot_attempts=self.counter.get(target.address),
        )

    def _failure(self, target: "Target", message: str) -> InstallResult:
        logger.error("WSL install on %s failed: %s", target.address, message)
        return InstallResult(
            success=False,
            ready=False,
            needs_reboot=False,
            message=message,
            reboot_attempts=self.counter.get(target.address),
        )
