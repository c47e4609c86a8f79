# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0
#

"""Fully pipelined CORDIC for computing trigonometric functions in hardware."""

import logging

from amaranth import *
from amaranth.lib import stream, wiring
from amaranth.lib.wiring import In, Out

from .config import CordicConfig
from .quadrant import OutputCorrector, QuadrantMapper
from .types import Cartesian, CordicMode, Polar, SinCos, Tag, Vector

__all__ = ["RotationStage", "PipelineEngine"]


class RotationStage(wiring.Component):

    """
    One CORDIC micro-rotation, registered.

    .. code-block:: text

        dx = y >> index
        dy = x >> index

        d = 0:  x' = x - dx,  y' = y + dy,  z' = z - angle
        d = 1:  x' = x + dx,  y' = y - dy,  z' = z + angle

    ``d`` follows the sign of ``z`` in rotation mode (drive the residual
    angle to zero) and of ``y`` in vectoring mode (drive the vector onto the
    x axis). Only shifts and adds are used. All results wrap at the width
    of ``shape``.

    Members
    -------
    i : :py:`In(Vector(shape))`
        Working vector from the previous slot.
    o : :py:`Out(Vector(shape))`
        Working vector after this rotation, one cycle later.
    """

    def __init__(self, index: int, angle: int, shape, mode=CordicMode.ROTATION):
        self.index = index
        self.angle = angle
        self.shape = shape
        self.mode = CordicMode(mode)
        super().__init__({
            "i": In(Vector(shape)),
            "o": Out(Vector(shape)),
        })

    def elaborate(self, platform) -> Module:
        m = Module()

        x, y, z = self.i.x, self.i.y, self.i.z

        dx = Signal(self.shape)
        dy = Signal(self.shape)
        d = Signal()
        m.d.comb += [
            dx.eq(y >> self.index),
            dy.eq(x >> self.index),
        ]
        if self.mode == CordicMode.ROTATION:
            m.d.comb += d.eq(z < 0)
        else:
            m.d.comb += d.eq(y >= 0)

        with m.If(d):  # rotate clockwise
            m.d.sync += [
                self.o.x.eq(x + dx),
                self.o.y.eq(y - dy),
                self.o.z.eq(z + self.angle),
            ]
        with m.Else():  # rotate counter-clockwise
            m.d.sync += [
                self.o.x.eq(x - dx),
                self.o.y.eq(y + dy),
                self.o.z.eq(z - self.angle),
            ]

        return m


class PipelineEngine(wiring.Component):

    """
    Systolic CORDIC pipeline: one new sample per clock, no stalls.

    The pipeline is :class:`QuadrantMapper`, then one :class:`RotationStage`
    per table angle, then :class:`OutputCorrector`. Quadrant and valid bits
    travel in a :class:`Tag` shift register that is delay-matched to the
    arithmetic, so every sample is unfolded with its own quadrant. A result
    appears on ``o`` exactly ``latency = stages + 2`` cycles after its input
    was presented on ``i``, in input order.

    In rotation mode this emits:

    .. code-block:: text

        o.payload.cos = cos(i.payload)
        o.payload.sin = sin(i.payload)

    In vectoring mode:

    .. code-block:: text

        o.payload.magnitude = sqrt(i.payload.x**2 + i.payload.y**2)
        o.payload.phase     = atan2(i.payload.y, i.payload.x)

    Members
    -------
    i : :py:`In(stream.Signature(...))`
        Internal-format phase (rotation) or :class:`Cartesian` vector
        (vectoring). ``i.valid`` marks samples worth keeping; the pipeline
        advances every cycle regardless.
    o : :py:`Out(stream.Signature(SinCos | Polar))`
        Results and their valid strobe.
    reset : :py:`In(1)`
        Synchronous reset of every register in the pipeline. In-flight
        samples are discarded.
    """

    def __init__(self, config: CordicConfig = None, **kwargs):
        """
        config : CordicConfig
            Pipeline parameters. If omitted, ``kwargs`` are forwarded to
            :class:`CordicConfig`, so an unsupported mode or an unusable angle
            table is rejected here, before any elaboration.
        """
        self.config = config or CordicConfig(**kwargs)
        c = self.config
        if c.mode == CordicMode.ROTATION:
            i_shape = c.internal.as_shape()
            o_shape = SinCos(c.io.as_shape())
        else:
            i_shape = Cartesian(c.io.as_shape())
            o_shape = Polar(c.io.as_shape(), c.internal.as_shape())
        super().__init__({
            "i":     In(stream.Signature(i_shape, always_ready=True)),
            "o":     Out(stream.Signature(o_shape, always_ready=True)),
            "reset": In(1),
        })

    @property
    def latency(self):
        return self.config.latency

    def elaborate(self, platform) -> Module:
        m = Module()

        c = self.config
        shape = c.internal.as_shape()

        logging.info(f"elaborating {c.stages}-stage {c.mode.value} CORDIC pipeline "
                     f"(latency {c.latency}, {c.guard_bits} guard bits)")

        m.submodules.mapper = mapper = QuadrantMapper(c)
        wiring.connect(m, wiring.flipped(self.i), mapper.i)

        #
        # Rotation stages and delay-matched tags
        #

        tags = [Signal(Tag(), name=f"tag{n}") for n in range(c.stages + 1)]
        m.d.comb += tags[0].eq(mapper.tag)

        vector = mapper.o
        for index, angle in enumerate(c.angles):
            stage = RotationStage(index, angle, shape, c.mode)
            m.submodules[f"stage{index}"] = stage
            m.d.comb += stage.i.eq(vector)
            m.d.sync += tags[index + 1].eq(tags[index])
            vector = stage.o

        m.submodules.corrector = corrector = OutputCorrector(c)
        m.d.comb += [
            corrector.i.eq(vector),
            corrector.tag.eq(tags[-1]),
        ]
        wiring.connect(m, corrector.o, wiring.flipped(self.o))

        return ResetInserter({'sync': self.reset})(m)
