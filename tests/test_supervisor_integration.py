"""Supervise the real stand-in backend as a child process."""
import os
import signal
import socket
import subprocess
import sys
import tempfile
import unittest
from unittest.mock import MagicMock

import requests
from openpyxl import load_workbook

from golddesk.bridge import NativeBridge
from golddesk.client import TransactionClient
from golddesk.models import SupervisorState, Transaction
from golddesk.probe import HealthProbe
from golddesk.supervisor import BackendProcess, BackendSupervisor, devserver_command


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestSupervisedDevServer(unittest.TestCase):
    def setUp(self):
        port = free_port()
        self.api_url = f"http://127.0.0.1:{port}/api"
        self.session = requests.Session()
        self.addCleanup(self.session.close)
        self.supervisor = BackendSupervisor(
            HealthProbe(self.session, self.api_url, timeout=2),
            devserver_command(port),
            startup_attempts=60,
            startup_interval=0.5,
            poll_interval=0.5,
            stop_timeout=5,
        )
        self.addCleanup(self.supervisor.stop)
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def test_full_lifecycle(self):
        self.supervisor.start()
        self.assertEqual(self.supervisor.state, SupervisorState.READY)
        process = self.supervisor.process.process
        self.assertIsNone(process.poll())

        client = TransactionClient(self.api_url, session=self.session)
        client.create(Transaction(type="BUY", trade_time="2024-03-05T14:07:09",
                                  weight=10, amount=4800, price_per_gram=480))
        self.assertEqual(len(client.get_all()), 1)

        bridge = NativeBridge(self.session, self.api_url, notifier=lambda t, m: None,
                              export_dir=self.tmpdir.name)
        path = bridge.export_data()
        self.assertTrue(os.path.exists(path), path)
        ws = load_workbook(path).active
        self.assertEqual(ws.cell(row=1, column=1).value, "ID")
        self.assertEqual(ws.cell(row=2, column=2).value, "BUY")

        # A second supervisor adopts the running backend instead of launching another.
        spawned = []
        second = BackendSupervisor(HealthProbe(self.session, self.api_url, timeout=2),
                                   devserver_command(0), spawn=lambda *a, **kw: spawned.append(a))
        second.start()
        self.assertEqual(second.state, SupervisorState.READY)
        self.assertEqual(spawned, [])
        second.stop()
        self.assertIsNone(process.poll())

        self.supervisor.stop()
        self.assertEqual(self.supervisor.state, SupervisorState.STOPPED)
        self.assertIsNotNone(process.poll())


class TestBackendProcess(unittest.TestCase):

    def test_terminate_stops_process(self):
        proc = BackendProcess.spawn([sys.executable, "-c", "import time; time.sleep(30)"])
        popen = proc.process
        self.assertTrue(proc.is_alive())

        proc.terminate(timeout=5)

        self.assertFalse(proc.is_alive())
        self.assertIsNotNone(popen.poll())

    @unittest.skipIf(sys.platform == "win32", "terminate() already kills on Windows")
    def test_terminate_kills_process_ignoring_sigterm(self):
        script = ("import signal, sys, time; signal.signal(signal.SIGTERM, signal.SIG_IGN); "
                  "print('ready', flush=True); time.sleep(30)")
        popen = subprocess.Popen([sys.executable, "-c", script], stdout=subprocess.PIPE, text=True)
        self.addCleanup(popen.stdout.close)
        self.assertEqual(popen.stdout.readline().strip(), "ready")
        proc = BackendProcess([sys.executable, "-c", script], None, popen)

        proc.terminate(timeout=0.5)

        self.assertIsNotNone(popen.poll())
        self.assertEqual(popen.returncode, -signal.SIGKILL)
        self.assertIsNone(proc.process)

    def test_handle_cleared_between_reads(self):
        """is_alive() must not fail when another thread clears the handle mid-check."""
        popen = MagicMock()
        popen.poll.return_value = None

        class HandleClearedAfterFirstRead(BackendProcess):
            @property
            def process(self):
                handle, self._handle = self._handle, None
                return handle

            @process.setter
            def process(self, value):
                self._handle = value

        proc = HandleClearedAfterFirstRead(["backend"], None, popen)

        self.assertTrue(proc.is_alive())
        self.assertFalse(proc.is_alive())
        self.assertIsNone(proc.exit_code())
        self.assertIsNone(proc.pid)


if __name__ == "__main__":
    unittest.main()
