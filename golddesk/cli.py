"""golddesk command-line entry-point and reusable `run()` helper.

Example: packaged backend next to the app
-----------------------------------------
>>> golddesk --jar GoldTradingBackend.jar

Example: in-memory stand-in backend for frontend work
-----------------------------------------------------
>>> golddesk --dev-backend --port 8080 --debug

The stand-in serves only a placeholder page at ``/``; the web frontend comes
with the packaged backend.
"""
from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

import requests

from golddesk.bridge import NativeBridge
from golddesk.probe import HealthProbe
from golddesk.shell import Shell
from golddesk.supervisor import BackendSupervisor, devserver_command, java_command

logger = logging.getLogger(__name__)

DEFAULT_JAR = "GoldTradingBackend.jar"


def _install_signal_handlers(shell: Shell):
    def _handler(signum, _):
        logger.info("Signal %s received, shutting down...", signum)
        shell.shutdown()
        sys.exit(0)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _handler)
        except ValueError:
            # Not on the main thread.
            pass


def run(
    *,
    port: int = 8080,
    url: Optional[str] = None,
    api_url: Optional[str] = None,
    java: str = "java",
    jar: str = DEFAULT_JAR,
    workdir: Optional[str | Path] = None,
    dev_backend: bool = False,
    startup_attempts: int = 30,
    poll_interval: float = 5.0,
    probe_timeout: float = 5.0,
    export_dir: Optional[str | Path] = None,
    show_backend_output: bool = False,
    debug: bool = False,
) -> None:
    """Wire session -> probe -> supervisor -> bridge -> shell and run until the window closes."""
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    url = (url or f"http://localhost:{port}").rstrip("/")
    api_url = (api_url or f"{url}/api").rstrip("/")

    if dev_backend:
        command = devserver_command(port)
    else:
        command = java_command(jar, port=port, java=java)
    cwd = str(workdir) if workdir else str(Path(sys.argv[0]).resolve().parent)

    session = requests.Session()
    probe = HealthProbe(session, api_url, timeout=probe_timeout)
    supervisor = BackendSupervisor(
        probe,
        command,
        cwd=cwd,
        startup_attempts=startup_attempts,
        poll_interval=poll_interval,
        redirect_output=not show_backend_output,
    )
    bridge = NativeBridge(session, api_url, export_dir=export_dir)

    shell = Shell(supervisor, bridge, session, url, debug=debug)
    _install_signal_handlers(shell)
    logger.info("Starting shell for %s (backend: %s)", url, " ".join(command))
    shell.run()


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="golddesk",
        description="Desktop shell for the gold trading backend",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # backend
    p.add_argument("--port", type=int, default=8080, help="Port the backend listens on")
    p.add_argument("--url", help="Frontend URL (default: http://localhost:PORT)")
    p.add_argument("--api-url", help="API base URL (default: URL/api)")
    p.add_argument("--java", default="java", help="Java executable")
    p.add_argument("--jar", default=DEFAULT_JAR, help="Backend jar path")
    p.add_argument("--workdir", help="Backend working directory (default: app directory)")
    p.add_argument("--dev-backend", action="store_true", help="Run the in-memory stand-in backend instead of the jar")
    p.add_argument("--show-backend-output", action="store_true", help="Do not hide backend stdout/stderr")

    # supervision
    p.add_argument("--startup-attempts", type=int, default=30, help="Health checks (1/s) to wait for startup")
    p.add_argument("--poll-interval", type=float, default=5.0, help="Seconds between background health checks")
    p.add_argument("--probe-timeout", type=float, default=5.0, help="Timeout of a single health check")

    # shell
    p.add_argument("--export-dir", help="Directory for exported spreadsheets (default: Documents)")
    p.add_argument("--debug", action="store_true", help="Enable browser DevTools")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    return p


def main(argv: Optional[list[str]] = None):
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    run(
        port=args.port,
        url=args.url,
        api_url=args.api_url,
        java=args.java,
        jar=args.jar,
        workdir=args.workdir,
        dev_backend=args.dev_backend,
        startup_attempts=args.startup_attempts,
        poll_interval=args.poll_interval,
        probe_timeout=args.probe_timeout,
        export_dir=args.export_dir,
        show_backend_output=args.show_backend_output,
        debug=args.debug,
    )


if __name__ == "__main__":
    main()
