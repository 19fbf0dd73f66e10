import sys
import unittest
from unittest.mock import patch

from golddesk import cli


class TestCli(unittest.TestCase):

    def test_parser_defaults(self):
        args = cli._build_parser().parse_args([])
        self.assertEqual(args.port, 8080)
        self.assertEqual(args.jar, "GoldTradingBackend.jar")
        self.assertEqual(args.startup_attempts, 30)
        self.assertEqual(args.poll_interval, 5.0)
        self.assertFalse(args.dev_backend)

    @patch("golddesk.cli._install_signal_handlers")
    @patch("golddesk.cli.Shell")
    def test_run_wires_java_backend(self, shell_cls, _signals):
        cli.run(jar="backend.jar", port=9090, workdir="/opt/gold")

        supervisor, bridge, session, url = shell_cls.call_args[0]
        self.assertEqual(url, "http://localhost:9090")
        self.assertEqual(supervisor.command, ["java", "-jar", "backend.jar", "--server.port=9090"])
        self.assertEqual(supervisor.cwd, "/opt/gold")
        self.assertTrue(supervisor.redirect_output)
        self.assertEqual(supervisor.probe.url, "http://localhost:9090/api/transactions")
        self.assertIs(bridge.session, session)
        self.assertIs(supervisor.probe.session, session)
        shell_cls.return_value.run.assert_called_once()

    @patch("golddesk.cli._install_signal_handlers")
    @patch("golddesk.cli.Shell")
    def test_main_dev_backend(self, shell_cls, _signals):
        cli.main(["--dev-backend", "--port", "8181", "--show-backend-output", "--export-dir", "/tmp"])

        supervisor, bridge, _, _ = shell_cls.call_args[0]
        self.assertEqual(supervisor.command[:3], [sys.executable, "-m", "golddesk.devserver"])
        self.assertIn("8181", supervisor.command)
        self.assertFalse(supervisor.redirect_output)
        self.assertEqual(str(bridge.export_dir), "/tmp")


if __name__ == "__main__":
    unittest.main()
