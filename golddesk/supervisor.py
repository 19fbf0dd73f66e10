import logging
import subprocess
import sys
import threading
from typing import Callable, List, Optional, Sequence

from golddesk.models import ALLOWED_TRANSITIONS, SupervisorState
from golddesk.probe import HealthProbe

logger = logging.getLogger(__name__)

StateListener = Callable[[SupervisorState, SupervisorState], None]


class BackendStartupError(RuntimeError):
    """The backend could not be launched or did not become healthy in time."""


def java_command(jar_path: str, port: int = 8080, java: str = "java") -> List[str]:
    """Launch command for the packaged Spring Boot backend."""
    return [java, "-jar", jar_path, f"--server.port={port}"]


def devserver_command(port: int = 8080, host: str = "127.0.0.1") -> List[str]:
    """Launch command for the in-memory stand-in backend."""
    return [sys.executable, "-m", "golddesk.devserver", "--host", host, "--port", str(port)]


class BackendProcess:
    """Handle on a spawned backend process. Owned by exactly one BackendSupervisor."""

    def __init__(self, command: Sequence[str], cwd: Optional[str], process: subprocess.Popen):
        self.command = list(command)
        self.cwd = cwd
        self.process = process

    @property
    def pid(self) -> Optional[int]:
        process = self.process
        return process.pid if process else None

    def is_alive(self) -> bool:
        # terminate() may clear self.process from another thread; read it once.
        process = self.process
        return process is not None and process.poll() is None

    def exit_code(self) -> Optional[int]:
        process = self.process
        return process.poll() if process else None

    @classmethod
    def spawn(cls, command: Sequence[str], cwd: Optional[str] = None,
              redirect_output: bool = True) -> "BackendProcess":
        """
        Start the backend without a shell.

        Args:
            command: Executable and arguments
            cwd: Working directory for the child
            redirect_output: Send stdout/stderr to /dev/null instead of the host console

        Raises:
            OSError: If the executable cannot be started
        """
        stdout, stderr = subprocess.DEVNULL, subprocess.DEVNULL
        if not redirect_output:
            stdout, stderr = None, None

        creationflags = 0
        if sys.platform == "win32":
            creationflags = subprocess.CREATE_NO_WINDOW

        logger.info(f"Launching backend with command: {' '.join(command)}")
        process = subprocess.Popen(
            list(command),
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=stdout,
            stderr=stderr,
            creationflags=creationflags,
        )
        logger.info(f"Backend process started (PID: {process.pid})")
        return cls(command, cwd, process)

    def terminate(self, timeout: float = 10.0):
        """Ask the process to exit, then kill it if it is still alive after `timeout` seconds."""
        process, self.process = self.process, None
        if process is not None and process.poll() is None:
            logger.info(f"Terminating backend (PID: {process.pid})...")
            try:
                process.terminate()
                try:
                    process.wait(timeout=timeout)
                    logger.info("Backend terminated gracefully.")
                except subprocess.TimeoutExpired:
                    logger.warning(f"Backend did not terminate after {timeout}s, killing it.")
                    self._kill(process)
            except OSError as e:
                logger.error(f"Error terminating backend process (PID: {process.pid}): {e}")

    def kill(self):
        process = self.process
        if process is not None:
            self._kill(process)

    @staticmethod
    def _kill(process: subprocess.Popen):
        if process.poll() is None:
            process.kill()
            try:
                process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                logger.error(f"Backend process (PID: {process.pid}) survived SIGKILL")
            logger.info("Backend killed.")


class BackendSupervisor:
    """
    Starts one backend process, waits for it to become healthy, keeps polling
    its health in the background and tears it down on stop().

    State flows NOT_STARTED -> STARTING -> READY <-> DEGRADED -> STOPPING -> STOPPED,
    with STARTING -> FAILED when startup does not succeed.
    """

    def __init__(self,
                 probe: HealthProbe,
                 command: Sequence[str],
                 cwd: Optional[str] = None,
                 startup_attempts: int = 30,
                 startup_interval: float = 1.0,
                 poll_interval: float = 5.0,
                 stop_timeout: float = 10.0,
                 redirect_output: bool = True,
                 spawn: Callable[..., BackendProcess] = BackendProcess.spawn):
        """
        Args:
            probe: Health probe against the backend API
            command: Launch command, executed without a shell
            cwd: Working directory for the backend
            startup_attempts: Number of readiness probes after launching
            startup_interval: Seconds to wait before each readiness probe
            poll_interval: Seconds between steady-state health probes
            stop_timeout: Seconds to wait for graceful exit before killing
            redirect_output: Hide the backend's stdout/stderr
            spawn: Factory used to launch the process
        """
        self.probe = probe
        self.command = list(command)
        self.cwd = cwd
        self.startup_attempts = startup_attempts
        self.startup_interval = startup_interval
        self.poll_interval = poll_interval
        self.stop_timeout = stop_timeout
        self.redirect_output = redirect_output
        self._spawn = spawn

        self.logger = logging.getLogger(__name__)

        self._state = SupervisorState.NOT_STARTED
        self._lock = threading.Lock()
        self._notify_lock = threading.RLock()
        self._listeners: List[StateListener] = []
        self._process: Optional[BackendProcess] = None
        self._poll_thread: Optional[threading.Thread] = None
        self._cancel = threading.Event()
        self._ready = threading.Event()

    # -- observation -------------------------------------------------------

    @property
    def state(self) -> SupervisorState:
        with self._lock:
            return self._state

    @property
    def process(self) -> Optional[BackendProcess]:
        with self._lock:
            return self._process

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register `listener(old, new)` for every state change.

        Returns:
            A callable that removes the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until READY has been reached at least once."""
        return self._ready.wait(timeout)

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """
        Bring the backend up and block until it is healthy.

        If a healthy backend is already reachable it is adopted and nothing is
        spawned. Calling start() while starting or running is a no-op.

        Raises:
            BackendStartupError: If the backend could not be launched, exited
                early, or did not pass a health check within the startup budget.
            RuntimeError: If the supervisor has already stopped or failed.
        """
        if not self._transition(SupervisorState.STARTING):
            state = self.state
            if state in (SupervisorState.STOPPED, SupervisorState.FAILED):
                raise RuntimeError(f"Backend supervisor cannot be restarted (state: {state.value})")
            self.logger.info(f"Backend supervisor already started (state: {state.value})")
            return

        if self.probe.check():
            self.logger.info(f"Backend already healthy at {self.probe.url}; not launching a new one.")
            self._become_ready()
            return

        try:
            process = self._spawn(self.command, cwd=self.cwd, redirect_output=self.redirect_output)
        except OSError as e:
            self._fail(f"Failed to launch backend: {e}")

        with self._lock:
            cancelled = self._cancel.is_set()
            if not cancelled:
                self._process = process
        if cancelled:
            process.terminate(timeout=self.stop_timeout)
            raise BackendStartupError("Backend startup cancelled by stop()")

        self.logger.info(f"Waiting up to {self.startup_attempts} health checks for the backend...")
        for attempt in range(1, self.startup_attempts + 1):
            if self._cancel.wait(self.startup_interval):
                raise BackendStartupError("Backend startup cancelled by stop()")

            if not process.is_alive():
                self._fail(f"Backend process terminated unexpectedly during startup. "
                           f"Exit code: {process.exit_code()}")

            if self.probe.check():
                self.logger.info(f"Backend health check passed on attempt {attempt}.")
                self._become_ready()
                return
            self.logger.debug(f"Backend not healthy yet (attempt {attempt}/{self.startup_attempts})")

        self._fail(f"Backend did not become healthy within {self.startup_attempts} attempts.")

    def stop(self) -> None:
        """
        Stop polling and terminate the backend if this supervisor launched it.

        No-op when not started, already stopping, stopped or failed.
        """
        if not self._transition(SupervisorState.STOPPING):
            self.logger.debug(f"stop() ignored in state {self.state.value}")
            return

        self._cancel.set()

        thread = self._poll_thread
        if thread is not None and thread is not threading.current_thread():
            # Let an in-flight health check run into its own timeout first.
            thread.join(timeout=self.probe.timeout + 1.0)
            if thread.is_alive():
                self.logger.warning("Health polling thread did not exit in time")

        with self._lock:
            process, self._process = self._process, None
        if process is not None:
            process.terminate(timeout=self.stop_timeout)

        self._transition(SupervisorState.STOPPED)

    # -- internals ---------------------------------------------------------

    def _transition(self, new: SupervisorState,
                    expected: Optional[SupervisorState] = None) -> bool:
        """Atomically move to `new`. Returns False if the move is not allowed."""
        with self._notify_lock:
            with self._lock:
                old = self._state
                if expected is not None and old != expected:
                    return False
                if new not in ALLOWED_TRANSITIONS[old]:
                    return False
                self._state = new
                listeners = list(self._listeners)

            self.logger.info(f"Backend supervisor: {old.value} -> {new.value}")
            for listener in listeners:
                try:
                    listener(old, new)
                except Exception as e:
                    self.logger.exception(f"State listener failed: {e}")
        return True

    def _become_ready(self):
        if not self._transition(SupervisorState.READY, expected=SupervisorState.STARTING):
            raise BackendStartupError("Backend startup cancelled by stop()")
        self._ready.set()
        self._poll_thread = threading.Thread(
            target=self._poll_loop, name="BackendHealthPoll", daemon=True
        )
        self._poll_thread.start()

    def _fail(self, message: str):
        self.logger.error(message)
        with self._lock:
            process, self._process = self._process, None
        if process is not None:
            process.kill()
        self._transition(SupervisorState.FAILED)
        raise BackendStartupError(message)

    def _poll_loop(self):
        while not self._cancel.wait(self.poll_interval):
            healthy = self.probe.check()
            if self._cancel.is_set():
                break

            self._reap_exited_process()

            if healthy:
                if self._transition(SupervisorState.READY, expected=SupervisorState.DEGRADED):
                    self.logger.info("Backend recovered.")
            elif self._transition(SupervisorState.DEGRADED, expected=SupervisorState.READY):
                self.logger.warning(f"Backend health check failed at {self.probe.url}")
        self.logger.debug("Health polling stopped.")

    def _reap_exited_process(self):
        with self._lock:
            process = self._process
            if process is None or process.is_alive():
                return
            self._process = None
        self.logger.warning(f"Backend process (PID: {process.pid}) exited on its own "
                            f"with code {process.exit_code()}")
