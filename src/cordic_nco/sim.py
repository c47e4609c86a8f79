# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0
#

"""Utilities for simulating and exporting CORDIC designs."""

import logging
import os

from amaranth import Signal, Value
from amaranth.back import verilog
from amaranth.sim import Simulator

from .model import PolarSample, Sample
from .types import CordicMode


def _run(dut, testbench, vcd_file=None):
    sim = Simulator(dut)
    sim.add_clock(1e-6)
    sim.add_testbench(testbench)
    if vcd_file is not None:
        logging.info(f"writing simulation trace to '{vcd_file}'")
        with sim.write_vcd(vcd_file=vcd_file):
            sim.run()
    else:
        sim.run()


def simulate_nco(nco, ticks, vcd_file=None):
    """
    Drive a :class:`cordic_nco.nco.SinCosNCO` with one ``(tuning_word,
    enable, reset)`` tuple per clock, and return the :class:`Sample`
    presented on its output after each clock edge.

    The result lines up index for index with :py:`NCOModel.run`.
    """
    ticks = list(ticks)
    samples = []

    async def testbench(ctx):
        for tuning_word, enable, reset in ticks:
            ctx.set(nco.tuning_word, tuning_word)
            ctx.set(nco.enable, enable)
            ctx.set(nco.reset, reset)
            await ctx.tick()
            payload = ctx.get(nco.o.payload)
            samples.append(Sample(payload.cos, payload.sin, bool(ctx.get(nco.o.valid))))

    logging.debug(f"simulating {type(nco).__name__} for {len(ticks)} cycles")
    _run(nco, testbench, vcd_file)
    return samples


def simulate_engine(engine, inputs, vcd_file=None):
    """
    Drive a :class:`cordic_nco.cordic.PipelineEngine` with one ``(payload,
    valid, reset)`` tuple per clock.

    ``payload`` is a raw phase in rotation mode and a raw ``(x, y)`` pair in
    vectoring mode. Returns a :class:`Sample` or :class:`PolarSample` per
    clock, lined up with :py:`CordicModel.run`.
    """
    inputs = list(inputs)
    rotation = engine.config.mode == CordicMode.ROTATION
    outputs = []

    async def testbench(ctx):
        for payload, valid, reset in inputs:
            if rotation:
                ctx.set(engine.i.payload, payload)
            else:
                x, y = payload
                ctx.set(engine.i.payload, {"x": x, "y": y})
            ctx.set(engine.i.valid, valid)
            ctx.set(engine.reset, reset)
            await ctx.tick()
            result = ctx.get(engine.o.payload)
            valid_out = bool(ctx.get(engine.o.valid))
            if rotation:
                outputs.append(Sample(result.cos, result.sin, valid_out))
            else:
                outputs.append(PolarSample(result.magnitude, result.phase, valid_out))

    logging.debug(f"simulating {type(engine).__name__} for {len(inputs)} cycles")
    _run(engine, testbench, vcd_file)
    return outputs


def top_ports(component):
    """
    Signals behind every port member of ``component``. Constant members,
    such as the ``ready`` of an ``always_ready`` stream, are not ports.
    """
    ports = []
    for _path, _member, value in component.signature.flatten(component):
        value = Value.cast(value)
        if isinstance(value, Signal):
            ports.append(value)
    return ports


def write_verilog(component, path, name="top", ports=None):
    """
    Elaborate ``component`` and write it to ``path`` as Verilog. ``ports``
    defaults to :py:`top_ports(component)`.
    """
    if ports is None:
        ports = top_ports(component)
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    logging.info(f"write verilog implementation of '{name}' to '{path}'...")
    with open(path, "w") as f:
        f.write(verilog.convert(component, name=name, ports=ports))
