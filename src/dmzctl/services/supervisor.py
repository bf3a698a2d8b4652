"""Browser process supervision.

Launches the operator's default browser and keeps track of the spawned
process so it can be torn down before a replacement is started and once
more when the program exits. At most one process is tracked at a time.

Process launching is platform-specific and lives behind the
BrowserLauncher interface. Only Windows is supported; every other
platform gets an UnsupportedPlatformError and the caller falls back to
asking the operator to open the URL by hand.
"""

import signal
import subprocess
import sys
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from dmzctl.core.exceptions import LaunchError, UnsupportedPlatformError
from dmzctl.core.output import console


# Seconds between the graceful stop and the forced kill
DEFAULT_GRACE_PERIOD = 1.0

# Only defined by the subprocess module on Windows
CREATE_NEW_PROCESS_GROUP = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0x00000200)


class BrowserLauncher(ABC):
    """How to start and stop a browser process on one platform."""

    # Whether the launched process leads its own process group
    uses_process_group: bool = False

    @abstractmethod
    def command(self, url: str) -> list[str]:
        """Command line that opens url in the default browser."""

    def popen_kwargs(self) -> dict[str, Any]:
        """Extra keyword arguments for subprocess.Popen."""
        return {}

    def interrupt(self, proc: subprocess.Popen) -> None:
        """Ask the process to stop gracefully."""
        proc.send_signal(signal.SIGINT)

    def kill_group(self, group_id: int) -> None:
        """Terminate every process in the group led by group_id."""


class WindowsBrowserLauncher(BrowserLauncher):
    """Opens the browser through ``cmd /c start /b``.

    ``/b`` keeps start from opening another console window, and the new
    process group lets the whole tree be stopped with one taskkill.
    """

    uses_process_group = True

    def command(self, url: str) -> list[str]:
        return ["cmd", "/c", "start", "/b", url]

    def popen_kwargs(self) -> dict[str, Any]:
        return {"creationflags": CREATE_NEW_PROCESS_GROUP}

    def interrupt(self, proc: subprocess.Popen) -> None:
        # SIGINT is not deliverable to a child on Windows
        proc.send_signal(getattr(signal, "CTRL_BREAK_EVENT", signal.SIGINT))

    def kill_group(self, group_id: int) -> None:
        result = subprocess.run(
            ["taskkill", "/F", "/T", "/PID", str(group_id)],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode != 0:
            raise LaunchError(
                f"taskkill failed for process group {group_id}",
                details=[result.stderr.strip() or result.stdout.strip()],
            )


def get_launcher(platform: Optional[str] = None) -> BrowserLauncher:
    """Get the browser launcher for a platform.

    Args:
        platform: sys.platform style name (defaults to the running platform)

    Raises:
        UnsupportedPlatformError: If no launcher exists for the platform
    """
    platform = platform or sys.platform
    if platform == "win32":
        return WindowsBrowserLauncher()
    raise UnsupportedPlatformError(
        platform,
        hint="Open the form URL in a browser manually",
    )


class ProcessSupervisor:
    """Tracks at most one launched browser process.

    launch() and cleanup() hold the same lock, so a teardown can never
    interleave with a launch. A watcher thread per process clears the
    tracked handle once the process exits by itself.
    """

    def __init__(
        self,
        launcher: Optional[BrowserLauncher] = None,
        grace_period: float = DEFAULT_GRACE_PERIOD,
    ) -> None:
        self._launcher = launcher
        self.grace_period = grace_period
        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None
        self._group_id = 0

    @property
    def tracked_pid(self) -> Optional[int]:
        """PID of the tracked process, or None."""
        with self._lock:
            return self._process.pid if self._process is not None else None

    @property
    def group_id(self) -> int:
        """Process group id of the tracked process (0 if none)."""
        with self._lock:
            return self._group_id

    def launch(self, url: str) -> None:
        """Open url in the default browser.

        Any previously tracked process is torn down first.

        Raises:
            UnsupportedPlatformError: If the platform has no launcher
            LaunchError: If the browser command cannot be started
        """
        if self._launcher is None:
            self._launcher = get_launcher()
        launcher = self._launcher

        with self._lock:
            self._teardown_locked()

            command = launcher.command(url)
            console.debug(f"Running: {' '.join(command)}")
            try:
                proc = subprocess.Popen(command, **launcher.popen_kwargs())
            except OSError as e:
                raise LaunchError(
                    f"Cannot start browser command: {command[0]}",
                    details=[str(e)],
                ) from e

            self._process = proc
            self._group_id = proc.pid if launcher.uses_process_group else 0

        watcher = threading.Thread(
            target=self._watch,
            args=(proc,),
            name=f"browser-watcher-{proc.pid}",
            daemon=True,
        )
        watcher.start()

    def cleanup(self) -> None:
        """Tear down the tracked process, if any."""
        with self._lock:
            self._teardown_locked()

    def _watch(self, proc: subprocess.Popen) -> None:
        proc.wait()
        with self._lock:
            # A newer launch may already have replaced this handle
            if self._process is proc:
                self._process = None
                self._group_id = 0

    def _teardown_locked(self) -> None:
        proc = self._process
        if proc is None or proc.pid <= 0:
            return

        try:
            try:
                self._launcher.interrupt(proc)
            except (OSError, ValueError) as e:
                console.debug(f"Interrupt failed for process {proc.pid}: {e}")

            time.sleep(self.grace_period)

            # taskkill /T walks the tree from the parent, so it must still be alive
            if self._launcher.uses_process_group and self._group_id > 0:
                try:
                    self._launcher.kill_group(self._group_id)
                except (LaunchError, OSError, subprocess.SubprocessError) as e:
                    console.warn(f"无法终止进程组 {self._group_id}: {e}")

            try:
                proc.kill()
            except OSError as e:
                console.warn(f"无法终止进程 {proc.pid}: {e}")
        finally:
            self._process = None
            self._group_id = 0
