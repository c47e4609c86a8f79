import contextlib
import csv
import io
import math
import os
import tempfile
import unittest

from cordic_nco import cli

class CliTests(unittest.TestCase):

    def run_cli(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            self.assertEqual(cli.main(list(argv)), 0)
        return out.getvalue()

    def test_table(self):
        out = self.run_cli("--stages", "8", "table")
        lines = out.splitlines()
        # Header, one row per stage, summary.
        self.assertEqual(len(lines), 10)
        self.assertEqual(lines[1].split()[:2], ["0", "12868"])
        self.assertIn("latency = 10", lines[-1])

    def test_table_guard_bits(self):
        out = self.run_cli("--stages", "20", "--guard-bits", "4", "table")
        self.assertEqual(out.splitlines()[1].split()[:2], ["0", str(round(math.pi / 4 * 2**18))])

    def test_sim_model(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "samples.csv")
            out = self.run_cli("--model", "--samples", "200", "--period", "100",
                               "--csv", path, "sim")
            self.assertIn("200 valid samples", out)
            with open(path, newline="") as f:
                rows = list(csv.reader(f))
            self.assertEqual(rows[0], ["k", "cos", "sin"])
            self.assertEqual(len(rows), 201)

    def test_sim_gateware(self):
        out = self.run_cli("--stages", "8", "--samples", "20", "sim")
        self.assertIn("20 valid samples", out)

    def test_verilog(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "build", "nco.v")
            self.run_cli("--stages", "8", "-o", path, "verilog")
            with open(path) as f:
                self.assertIn("module sincos_nco", f.read())

    def test_bad_config(self):
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                cli.main(["--stages", "40", "table"])
            with self.assertRaises(SystemExit):
                cli.main(["--guard-bits", "-20", "table"])
            with self.assertRaises(SystemExit):
                cli.main(["bogus"])
