"""Project teardown.

Quitting a project releases everything it owns: the server process, every
channel socket and the surfaces attached to them, the transcript, and the
scope binding of open buffers. Each resource is closed independently; a
failure is logged and reported but never stops the remaining steps, and
the registry entry is always removed last.
"""

import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from subprocess import Popen

from unrepl_client.core.config import get_config
from unrepl_client.core.exceptions import ProjectNotFoundError, TeardownError
from unrepl_client.manager.buffers import BufferIndex, clear_scope
from unrepl_client.manager.connection_pool import ConnectionIdentity
from unrepl_client.manager.pending_eval import EvalOutcome, OutcomeKind
from unrepl_client.manager.project import Project
from unrepl_client.manager.registry import ProjectRegistry

logger = logging.getLogger(__name__)

# Seconds to wait for a killed process to be reaped
DEFAULT_SIGKILL_WAIT = 2.0


@dataclass
class TeardownReport:
    """Outcome of quitting one project.

    Attributes:
        identity: Identity of the project that was removed.
        failures: Resources that failed to close.
        cancelled_entries: Pending evaluations that received a cancelled outcome.

    """

    identity: ConnectionIdentity
    failures: list[TeardownError] = field(default_factory=list)
    cancelled_entries: int = 0

    @property
    def ok(self) -> bool:
        """True if every resource closed cleanly."""
        return not self.failures


class ProjectSupervisor:
    """Tears down projects registered in a ProjectRegistry.

    Attributes:
        registry: Registry the supervisor removes projects from.
        buffer_index: Open buffers to unbind on quit; None if there is no editor.
        shutdown_timeout: Seconds between SIGTERM and SIGKILL.
        notify_cancelled: Deliver a cancelled outcome to unfinished evaluations.

    """

    def __init__(
        self,
        registry: ProjectRegistry,
        buffer_index: BufferIndex | None = None,
        shutdown_timeout: float | None = None,
        notify_cancelled: bool | None = None,
    ) -> None:
        """Initialize project supervisor.

        Args:
            registry: Registry holding the projects.
            buffer_index: Source of open buffers.
            shutdown_timeout: Override of config server_shutdown_timeout.
            notify_cancelled: Override of config notify_cancelled_on_quit.

        """
        config = get_config()
        self.registry = registry
        self.buffer_index = buffer_index
        self.shutdown_timeout = (
            shutdown_timeout if shutdown_timeout is not None else config.server_shutdown_timeout
        )
        self.notify_cancelled = (
            notify_cancelled if notify_cancelled is not None else config.notify_cancelled_on_quit
        )

    def quit(self, identity: ConnectionIdentity, message: str | None = None) -> TeardownReport:
        """Release all resources of a project and unregister it.

        Steps, each attempted regardless of earlier failures:
        1. Terminate the server process and close its surface
        2. Close every channel socket and its surface
        3. Append message to the transcript (left open), or dispose it
        4. Unbind open buffers scoped to the project
        5. Remove the project from the registry

        Args:
            identity: Identity of the project to quit.
            message: Farewell text; when given the transcript stays open.

        Returns:
            TeardownReport listing failed closures.

        Raises:
            ProjectNotFoundError: If no project is registered for identity,
                or its teardown is already in progress.

        """
        project = self.registry.lookup(identity, fail_if_missing=True)
        if project.closed:
            logger.debug("Project %s is already quitting", identity)
            raise ProjectNotFoundError(identity)
        project.closed = True
        report = TeardownReport(identity=identity)

        logger.info("Quitting project %s", identity)
        try:
            server = project.server
            if server is not None:
                self._attempt(
                    report,
                    f"server process {server.process.pid}",
                    lambda: self.terminate_process(server.process),
                )
                if server.surface is not None:
                    self._attempt(report, "server surface", server.surface.close)

            for role, handle in project.connection_pool.live_handles():
                self._attempt(report, f"{role} channel", handle.transport.close)
                if handle.surface is not None:
                    self._attempt(report, f"{role} channel surface", handle.surface.close)

            report.cancelled_entries = self._drop_pending(project)

            if message is not None:
                self._attempt(report, "transcript", lambda: project.transcript.append(message))
            else:
                self._attempt(report, "transcript", project.transcript.dispose)

            if self.buffer_index is not None:
                index = self.buffer_index
                self._attempt(report, "buffer scopes", lambda: clear_scope(index, identity))
        finally:
            self.registry.remove(identity, expected=project)

        if report.ok:
            logger.info("Project %s removed", identity)
        else:
            logger.warning(
                "Project %s removed with %d teardown failure(s)",
                identity,
                len(report.failures),
            )
        return report

    def shutdown(self) -> list[TeardownReport]:
        """Quit every registered project, newest first.

        Returns:
            One report per project that was quit.

        """
        reports: list[TeardownReport] = []
        for identity in self.registry.identities():
            try:
                reports.append(self.quit(identity))
            except ProjectNotFoundError:
                # Quit concurrently by someone else
                logger.debug("Project %s already gone during shutdown", identity)
        logger.info("Supervisor shutdown complete (%d project(s))", len(reports))
        return reports

    def terminate_process(self, process: Popen[bytes]) -> int | None:
        """Stop a server process: SIGTERM, wait, then SIGKILL.

        Args:
            process: Process to stop.

        Returns:
            The process exit code, or None if it could not be reaped.

        """
        if process.poll() is not None:
            logger.debug("Server process %d already exited (%s)", process.pid, process.returncode)
            return process.returncode

        logger.info("Sending SIGTERM to server process %d", process.pid)
        process.terminate()
        try:
            return process.wait(timeout=self.shutdown_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Sending SIGKILL to server process %d", process.pid)

        process.kill()
        try:
            return process.wait(timeout=DEFAULT_SIGKILL_WAIT)
        except subprocess.TimeoutExpired:
            logger.error("Server process %d did not exit after SIGKILL", process.pid)
            return None

    def _drop_pending(self, project: Project) -> int:
        """Empty every queue of project, cancelling undelivered evaluations."""
        cancelled = 0
        for queue in project.pending_evals.values():
            for entry in queue.clear():
                if not self.notify_cancelled:
                    continue
                if entry.deliver(EvalOutcome(OutcomeKind.CANCELLED)):
                    cancelled += 1
        if cancelled:
            logger.info("Cancelled %d pending evaluation(s) of %s", cancelled, project.identity)
        return cancelled

    @staticmethod
    def _attempt(report: TeardownReport, resource: str, action: Callable[[], object]) -> None:
        try:
            action()
        except Exception as e:
            logger.warning("Failed to close %s of %s: %s", resource, report.identity, e)
            report.failures.append(TeardownError(resource, e))
