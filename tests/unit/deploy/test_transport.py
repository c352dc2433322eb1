"""Unit tests for the TFTP transport."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from avalonbuild.deploy.transport import TftpTransport, TransferResult


def _process(output: str, returncode: int = 0, pid: int = 4242) -> MagicMock:
    process = MagicMock()
    process.pid = pid
    process.returncode = returncode
    process.communicate.return_value = (output, None)
    return process


class TestTftpTransport:
    """Test cases for TftpTransport."""

    def test_build_command(self):
        """Test the tftp command line."""
        transport = TftpTransport("192.168.1.27")

        assert transport.build_command("kernel84.img") == [
            "tftp",
            "-m",
            "binary",
            "192.168.1.27",
            "-c",
            "put",
            "kernel84.img",
        ]

    def test_send_success(self, tmp_path):
        """Test a clean transfer."""
        image = tmp_path / "kernel84.img"
        process = _process("Sent 2048 bytes in 0.1 seconds\n")

        with patch("avalonbuild.deploy.transport.subprocess.Popen", return_value=process) as popen:
            result = TftpTransport("10.0.0.2", timeout=5.0).send(image)

        assert result.success
        assert result.returncode == 0
        assert popen.call_args.kwargs["cwd"] == tmp_path
        assert popen.call_args.args[0][-1] == "kernel84.img"
        process.communicate.assert_called_once_with(timeout=5.0)

    def test_error_token_fails_despite_exit_code(self, tmp_path):
        """Test that an Error line fails the transfer even with exit code 0."""
        process = _process("Error code 2: Access violation\n", returncode=0)

        with patch("avalonbuild.deploy.transport.subprocess.Popen", return_value=process):
            result = TftpTransport("10.0.0.2").send(tmp_path / "kernel84.img")

        assert not result.success
        assert "Access violation" in result.message

    def test_nonzero_exit_fails(self, tmp_path):
        """Test that a nonzero exit code fails the transfer."""
        process = _process("", returncode=1)

        with patch("avalonbuild.deploy.transport.subprocess.Popen", return_value=process):
            result = TftpTransport("10.0.0.2").send(tmp_path / "kernel84.img")

        assert not result.success
        assert result.message == "transfer failed with exit code 1"

    def test_missing_client(self, tmp_path):
        """Test that a missing tftp client is a failed transfer."""
        with patch(
            "avalonbuild.deploy.transport.subprocess.Popen",
            side_effect=FileNotFoundError("tftp"),
        ):
            result = TftpTransport("10.0.0.2").send(tmp_path / "kernel84.img")

        assert not result.success
        assert "Failed to run tftp" in result.output

    def test_timeout_kills_process_tree(self, tmp_path):
        """Test that a hung transfer is killed and reported."""
        process = _process("", returncode=-15)
        process.communicate.side_effect = [
            subprocess.TimeoutExpired(cmd="tftp", timeout=1.0),
            ("", None),
        ]

        with (
            patch("avalonbuild.deploy.transport.subprocess.Popen", return_value=process),
            patch("avalonbuild.deploy.transport.kill_process_tree") as kill,
        ):
            result = TftpTransport("10.0.0.2", timeout=1.0).send(tmp_path / "kernel84.img")

        kill.assert_called_once_with(4242)
        assert result.timed_out
        assert not result.success
        assert result.message == "transfer timed out"

    def test_cancel_without_transfer(self):
        """Test that cancelling while idle does nothing."""
        with patch("avalonbuild.deploy.transport.kill_process_tree") as kill:
            TftpTransport("10.0.0.2").cancel()

        kill.assert_not_called()

    def test_cancel_during_transfer(self, tmp_path):
        """Test that cancel kills the running client and fails the transfer."""
        transport = TftpTransport("10.0.0.2")
        process = _process("", returncode=-15)

        def communicate(timeout=None):
            transport.cancel()
            return ("", None)

        process.communicate.side_effect = communicate

        with (
            patch("avalonbuild.deploy.transport.subprocess.Popen", return_value=process),
            patch("avalonbuild.deploy.transport.kill_process_tree") as kill,
        ):
            result = transport.send(tmp_path / "kernel84.img")

        kill.assert_called_once_with(4242)
        assert result.cancelled
        assert not result.success

    def test_cancel_before_send(self, tmp_path):
        """Test that a cancel issued before send stops the transfer without starting tftp."""
        transport = TftpTransport("10.0.0.2")
        transport.cancel()

        with patch("avalonbuild.deploy.transport.subprocess.Popen") as popen:
            result = transport.send(tmp_path / "kernel84.img")

        popen.assert_not_called()
        assert result.cancelled
        assert not result.success
        assert result.message == "transfer cancelled"

    def test_reset_clears_cancel(self, tmp_path):
        """Test that reset lets the next transfer run after a cancel."""
        transport = TftpTransport("10.0.0.2")
        transport.cancel()
        transport.reset()
        process = _process("Sent 16 bytes\n")

        with patch("avalonbuild.deploy.transport.subprocess.Popen", return_value=process):
            result = transport.send(tmp_path / "kernel84.img")

        assert result.success
        assert not result.cancelled


class TestTransferResult:
    """Test cases for TransferResult messages."""

    @pytest.mark.parametrize(
        "result,message",
        [
            (TransferResult(success=True, output="x"), "transfer complete"),
            (TransferResult(success=False, output="", timed_out=True), "transfer timed out"),
            (TransferResult(success=False, output="", cancelled=True), "transfer cancelled"),
        ],
    )
    def test_message(self, result, message):
        """Test the summary message for each outcome."""
        assert result.message == message
