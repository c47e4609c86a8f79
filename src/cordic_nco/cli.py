# Copyright (c) 2024 Seb Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
Command-line entry point: inspect the angle table, simulate the NCO, or
export it as Verilog.
"""
import argparse
import csv
import enum
import logging
import math
import sys

import numpy as np

from cordic_nco import sim
from cordic_nco.config import CordicConfig
from cordic_nco.fixed import IO, SQ
from cordic_nco.model import NCOModel
from cordic_nco.nco import SinCosNCO
from cordic_nco.types import ConfigurationError

class CliAction(str, enum.Enum):
    Table    = "table"
    Simulate = "sim"
    Verilog  = "verilog"

def build_config(args):
    internal = SQ(32 - IO.f_bits - args.guard_bits, IO.f_bits + args.guard_bits)
    return CordicConfig(stages=args.stages, internal=internal)

def print_table(config):
    fmt = config.internal
    print(f"{'i':>3} {'raw':>12} {'radians':>12} {'atan(2^-i)':>12}")
    for i, angle in enumerate(config.angles):
        print(f"{i:>3} {angle:>12} {fmt.to_real(angle):>12.9f} {math.atan(2.0**-i):>12.9f}")
    print(f"gain K = {config.gain_float:.9f} (raw {config.gain}), latency = {config.latency}")

def run_simulation(config, args):
    fmt = config.internal
    tuning_word = fmt.to_fixed(2*math.pi / args.period)
    ticks = [(tuning_word, 1, 0)] * (args.samples + config.latency - 1)

    if args.model:
        samples, _ = NCOModel(config).run(ticks)
    else:
        samples = sim.simulate_nco(SinCosNCO(config), ticks, vcd_file=args.vcd)

    valid = [s for s in samples if s.valid]
    k = np.arange(len(valid))
    phase = fmt.to_real(tuning_word) * k
    cos = config.io.to_real(np.array([s.cos for s in valid]))
    sin = config.io.to_real(np.array([s.sin for s in valid]))
    err = max(np.max(np.abs(cos - np.cos(phase))), np.max(np.abs(sin - np.sin(phase))))
    print(f"{len(valid)} valid samples, tuning word {tuning_word}, "
          f"max abs error {err:.3e} ({err * config.io.scale:.2f} LSB)")

    if args.csv:
        with open(args.csv, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["k", "cos", "sin"])
            writer.writerows(zip(k.tolist(), cos.tolist(), sin.tolist()))
        logging.info(f"wrote {len(valid)} samples to '{args.csv}'")

def main(argv=None):

    # Configure logging.
    logging.basicConfig(format="%(levelname)s: %(message)s")

    parser = argparse.ArgumentParser(
        description="Pipelined CORDIC sine/cosine NCO.")
    parser.add_argument('--stages', type=int, default=16,
                        help="Number of CORDIC micro-rotations (default: 16).")
    parser.add_argument('--guard-bits', type=int, default=0,
                        help=("Extra internal fraction bits beyond the I/O format. "
                              "Reduces truncation error at no cost in latency."))
    parser.add_argument('--verbose', action='store_true',
                        help="Enable debug logging.")

    parser.add_argument('--period', type=float, default=1000,
                        help="sim: output period in samples (default: 1000).")
    parser.add_argument('--samples', type=int, default=1000,
                        help="sim: number of valid samples to capture (default: 1000).")
    parser.add_argument('--model', action='store_true',
                        help="sim: run the software model instead of the gateware simulator.")
    parser.add_argument('--vcd', type=str, default=None,
                        help="sim: write a VCD trace to this file.")
    parser.add_argument('--csv', type=str, default=None,
                        help="sim: write captured samples (as reals) to this CSV file.")

    parser.add_argument('--output', '-o', type=str, default="build/sincos_nco.v",
                        help="verilog: destination file (default: build/sincos_nco.v).")

    parser.add_argument("action", type=CliAction,
                        choices=[a.value for a in CliAction])

    argv = sys.argv[1:] if argv is None else argv
    # Print help if no arguments are passed.
    args = parser.parse_args(args=argv if argv else ["--help"])

    logging.getLogger().setLevel(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = build_config(args)
    except (ConfigurationError, TypeError) as e:
        parser.error(str(e))

    if args.action == CliAction.Table:
        print_table(config)
    elif args.action == CliAction.Simulate:
        run_simulation(config, args)
    elif args.action == CliAction.Verilog:
        sim.write_verilog(SinCosNCO(config), args.output, name="sincos_nco")

    return 0

if __name__ == "__main__":
    sys.exit(main())
