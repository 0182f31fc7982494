#!/usr/bin/env python3
"""Tests for the ft231x.py command line tool."""

import subprocess
import sys
import unittest
from pathlib import Path
from unittest import mock

import ft231x
from common.config import Parity, PortConfig, StopBits

# Path to ft231x.py (parent directory of test/)
_SCRIPT_DIR = Path(__file__).parent.parent
_TOOL = _SCRIPT_DIR / "ft231x.py"


class TestArguments(unittest.TestCase):
    """Test argument parsing and config building."""

    def test_defaults(self) -> None:
        args = ft231x.build_parser().parse_args(["monitor"])
        self.assertEqual(ft231x.config_from_args(args), PortConfig())
        self.assertEqual(args.vid, 0x0403)
        self.assertEqual(args.pid, 0x6015)

    def test_framing_options(self) -> None:
        args = ft231x.build_parser().parse_args(
            ["-b", "115200", "--bytesize", "7", "-p", "E", "-s", "2", "read", "-n", "16"]
        )
        self.assertEqual(
            ft231x.config_from_args(args),
            PortConfig(115200, 7, StopBits.TWO, Parity.EVEN),
        )
        self.assertEqual(args.count, 16)

    def test_hex_ids(self) -> None:
        args = ft231x.build_parser().parse_args(["--vid", "0403", "--pid", "6001", "monitor"])
        self.assertEqual((args.vid, args.pid), (0x0403, 0x6001))

    def test_one_point_five_stop_bits_parsed(self) -> None:
        # rejected later by the encoder, not by argparse
        args = ft231x.build_parser().parse_args(["-s", "1.5", "monitor"])
        self.assertIs(ft231x.config_from_args(args).stopbits, StopBits.ONE_POINT_FIVE)

    def test_no_mode_prints_help(self) -> None:
        with mock.patch("sys.stdout"):
            self.assertEqual(ft231x.main([]), 2)

    def test_no_device(self) -> None:
        with mock.patch.object(ft231x, "find_device", return_value=None):
            self.assertEqual(ft231x.main(["monitor"]), 2)


class TestCLI(unittest.TestCase):
    """Test the tool as a subprocess."""

    def test_help(self) -> None:
        proc = subprocess.run(
            [sys.executable, str(_TOOL), "--help"],
            capture_output=True,
            text=True,
        )
        self.assertEqual(proc.returncode, 0)
        self.assertIn("monitor", proc.stdout)
        self.assertIn("--baudrate", proc.stdout)

    def test_invalid_bytesize_rejected(self) -> None:
        proc = subprocess.run(
            [sys.executable, str(_TOOL), "--bytesize", "5", "monitor"],
            capture_output=True,
            text=True,
        )
        self.assertNotEqual(proc.returncode, 0)
        self.assertIn("invalid choice", proc.stderr.lower())

    def test_invalid_parity_rejected(self) -> None:
        proc = subprocess.run(
            [sys.executable, str(_TOOL), "-p", "X", "monitor"],
            capture_output=True,
            text=True,
        )
        self.assertNotEqual(proc.returncode, 0)
        self.assertIn("invalid choice", proc.stderr.lower())


if __name__ == "__main__":
    unittest.main()
