# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

import math
import os
import random
import tempfile
import unittest

from amaranth import *
from amaranth.sim import *
from parameterized import parameterized

from cordic_nco import CordicConfig, PipelineEngine, RotationStage, sim
from cordic_nco.fixed import INTERNAL, IO, SQ
from cordic_nco.model import CordicModel

class CordicTests(unittest.TestCase):

    @parameterized.expand([
        ["q14_n16", 16, INTERNAL],
        ["q14_n8",  8,  INTERNAL],
        ["q18_n16", 16, SQ(14, 18)],
    ])
    def test_rotation_matches_model(self, name, stages, internal):

        config = CordicConfig(stages=stages, internal=internal)
        dut = PipelineEngine(config)
        model = CordicModel(config)

        rng = random.Random(stages)
        TWO_PI = config.two_pi
        phases = [rng.randrange(-TWO_PI, TWO_PI) for _ in range(150)]
        phases += [0, config.half_pi, config.half_pi + 1, config.pi, -config.pi,
                   -config.half_pi, -config.half_pi - 1, TWO_PI - 1,
                   internal.max_int, internal.min_int]
        inputs = [(p, rng.random() < 0.8, False) for p in phases]
        # Pulse reset halfway through, then let the pipeline drain.
        inputs[75] = (inputs[75][0], True, True)
        inputs += [(0, False, False)] * config.latency

        expected, _ = model.run(inputs)
        got = sim.simulate_engine(dut, inputs)

        self.assertEqual(len(got), len(expected))
        for n, (g, e) in enumerate(zip(got, expected)):
            self.assertEqual(g, e, f"cycle {n}")

    def test_vectoring_matches_model(self):

        config = CordicConfig(mode="vectoring")
        dut = PipelineEngine(config)
        model = CordicModel(config)

        rng = random.Random(0)
        points = [(rng.randrange(IO.min_int, IO.max_int + 1),
                   rng.randrange(IO.min_int, IO.max_int + 1)) for _ in range(100)]
        points += [(0, 0), (IO.min_int, 0), (0, IO.min_int), (IO.min_int, IO.min_int),
                   (IO.max_int, IO.max_int), (-1, 0), (-1, -1)]
        inputs = [(p, True, False) for p in points]
        inputs += [((0, 0), False, False)] * config.latency

        expected, _ = model.run(inputs)
        got = sim.simulate_engine(dut, inputs)
        self.assertEqual(got, expected)

    def test_cordic_vector(self):

        dut = PipelineEngine(mode="vectoring")

        test_cases = [
            (1.0, 0.0, "Positive real axis"),
            (0.0, 1.0, "Positive imaginary axis"),
            (0.707, 0.707, "45 degrees"),
            (-1.0, 0.0, "Negative real axis"),
            (-0.707, 0.707, "135 degrees"),
            (-0.5, -0.866, "240 degrees"),
            (0.0, -1.0, "Negative imaginary axis"),
            (0.1, 0.1, "Small values"),
            (1.0, 1.0, "Large values"),
        ]
        inputs = [((IO.to_fixed(x), IO.to_fixed(y)), True, False) for x, y, _ in test_cases]
        inputs += [((0, 0), False, False)] * dut.latency
        results = [r for r in sim.simulate_engine(dut, inputs) if r.valid]

        for (real, imag, name), result in zip(test_cases, results):
            expected_mag = math.hypot(real, imag)
            expected_phase = math.atan2(imag, real)
            mag = IO.to_real(result.magnitude)
            phase = INTERNAL.to_real(result.phase)
            print(f"\n{name}")
            print(f"  Expected: mag={expected_mag:.4f}, phase={expected_phase:.4f}")
            print(f"  Got:      mag={mag:.4f}, phase={phase:.4f}")
            self.assertLess(abs(mag - expected_mag), 0.01, f"Magnitude error too large for {name}")
            # -pi and +pi are the same direction.
            phase_error = abs(math.remainder(phase - expected_phase, 2*math.pi))
            self.assertLess(phase_error, 0.01, f"Phase error too large for {name}")

    def test_latency(self):

        dut = PipelineEngine()
        N = dut.config.stages

        async def testbench(ctx):
            ctx.set(dut.i.payload, dut.config.half_pi)
            ctx.set(dut.i.valid, 1)
            await ctx.tick()
            ctx.set(dut.i.valid, 0)
            # Presented on cycle 0, visible after edge N+2 (latency).
            for n in range(1, N + 2):
                self.assertEqual(ctx.get(dut.o.valid), 0, f"cycle {n}")
                await ctx.tick()
            self.assertEqual(ctx.get(dut.o.valid), 1)
            payload = ctx.get(dut.o.payload)
            self.assertLess(abs(IO.to_real(payload.cos)), 2**-9)
            self.assertLess(abs(IO.to_real(payload.sin) - 1.0), 2**-9)
            await ctx.tick()
            self.assertEqual(ctx.get(dut.o.valid), 0)

        self.assertEqual(dut.latency, N + 2)
        sim = Simulator(dut)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

    def test_valid_gaps_keep_order(self):

        dut = PipelineEngine()
        pattern = [1, 0, 0, 1, 1, 0, 1, 0, 0, 0, 1, 1, 1]
        phases = [1000 * (n + 1) for n in range(len(pattern))]
        inputs = [(p, v, False) for p, v in zip(phases, pattern)]
        inputs += [(0, False, False)] * dut.latency
        got = sim.simulate_engine(dut, inputs)

        valid_out = [int(s.valid) for s in got[dut.latency - 1:]]
        self.assertEqual(valid_out[:len(pattern)], pattern)

        # Surviving samples come out in the order they went in.
        launched = [p for p, v in zip(phases, pattern) if v]
        results = [s for s in got if s.valid]
        self.assertEqual(len(results), len(launched))
        for phase, s in zip(launched, results):
            theta = INTERNAL.to_real(phase)
            self.assertLess(abs(IO.to_real(s.cos) - math.cos(theta)), 2**-9)
            self.assertLess(abs(IO.to_real(s.sin) - math.sin(theta)), 2**-9)

    def test_reset_flushes(self):

        dut = PipelineEngine()
        inputs = [(5000, True, False)] * 10 + [(0, False, True)]
        inputs += [(0, False, False)] * dut.latency
        got = sim.simulate_engine(dut, inputs)
        self.assertFalse(any(s.valid for s in got))

    @parameterized.expand([
        ["rotation",  "rotation"],
        ["vectoring", "vectoring"],
    ])
    def test_verilog_export(self, name, mode):

        dut = PipelineEngine(stages=8, mode=mode)
        ports = sim.top_ports(dut)
        # The always_ready strobes are constants and never become ports.
        self.assertFalse(any(isinstance(p, Const) for p in ports))
        # i.valid, i.payload, o.valid, o.payload, reset
        self.assertEqual(len(ports), 5)
        self.assertTrue(any(p is dut.reset for p in ports))

        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "engine.v")
            sim.write_verilog(dut, path, name="cordic_engine")
            with open(path) as f:
                self.assertIn("module cordic_engine", f.read())


class RotationStageTests(unittest.TestCase):

    @parameterized.expand([
        ["positive_z", 0, 12868, 1000, 0, 100,   (1000, 1000, 100 - 12868)],
        ["negative_z", 0, 12868, 1000, 0, -100,  (1000, -1000, -100 + 12868)],
        ["shifted",    3, 2, 800, -800, -1,      (800 + (-800 >> 3), -800 - (800 >> 3), 1)],
        ["floor",      2, 1, 0, -1, 0,           (1, -1, -1)],
    ])
    def test_micro_rotation(self, name, index, angle, x, y, z, expected):

        dut = RotationStage(index, angle, INTERNAL.as_shape())

        async def testbench(ctx):
            ctx.set(dut.i, {"x": x, "y": y, "z": z})
            await ctx.tick()
            o = ctx.get(dut.o)
            self.assertEqual((o.x, o.y, o.z), expected)

        sim = Simulator(dut)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

    def test_wraps(self):

        dut = RotationStage(0, 12868, INTERNAL.as_shape())

        async def testbench(ctx):
            ctx.set(dut.i, {"x": INTERNAL.max_int, "y": 1, "z": -1})
            await ctx.tick()
            o = ctx.get(dut.o)
            self.assertEqual(o.x, INTERNAL.wrap(INTERNAL.max_int + 1))
            self.assertEqual(o.y, INTERNAL.wrap(1 - INTERNAL.max_int))

        sim = Simulator(dut)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()
