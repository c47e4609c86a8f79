# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Quadrant folding at the CORDIC pipeline input, and unfolding at its output."""

from amaranth import *
from amaranth.lib import stream, wiring
from amaranth.lib.wiring import In, Out

from .types import Cartesian, CordicMode, Polar, Quadrant, SinCos, Tag, Vector

__all__ = ["QuadrantMapper", "OutputCorrector"]


class QuadrantMapper(wiring.Component):

    """
    First pipeline slot. Folds the input into the region where the
    micro-rotations converge, and records the fold in a :class:`Tag`.

    In rotation mode the raw phase is first wrapped into (-pi, pi], then
    partitioned into four disjoint ranges:

    .. code-block:: text

        Q1:        0 <= z <= pi/2    reduced = z
        Q2:     pi/2 <  z            reduced = pi - z
        Q3:            z <  -pi/2    reduced = -(pi + z)
        Q4:    -pi/2 <= z <  0       reduced = -z

    The working vector starts at ``(K, 0)`` so the CORDIC gain cancels.

    In vectoring mode, vectors in the left half-plane are negated and the
    phase register starts at +/-pi instead of 0.

    Members
    -------
    i : :py:`In(stream.Signature(...))`
        Internal-format phase (rotation) or :class:`Cartesian` I/O-format
        vector (vectoring). Never stalls.
    o : :py:`Out(Vector)`
        Registered initial working vector.
    tag : :py:`Out(Tag)`
        Registered quadrant and valid strobe of the sample in ``o``.
    """

    def __init__(self, config):
        self.config = config
        if config.mode == CordicMode.ROTATION:
            i_shape = config.internal.as_shape()
        else:
            i_shape = Cartesian(config.io.as_shape())
        super().__init__({
            "i":   In(stream.Signature(i_shape, always_ready=True)),
            "o":   Out(Vector(config.internal.as_shape())),
            "tag": Out(Tag()),
        })

    def elaborate(self, platform):
        m = Module()

        c = self.config
        shape = c.internal.as_shape()
        PI, TWO_PI, HALF_PI = c.pi, c.two_pi, c.half_pi

        m.d.sync += self.tag.valid.eq(self.i.valid)

        if c.mode == CordicMode.ROTATION:

            z = self.i.payload
            wrapped = Signal(shape)
            reduced = Signal(shape)
            quadrant = Signal(Quadrant)

            # Wrap into (-pi, pi]
            with m.If(z > PI):
                m.d.comb += wrapped.eq(z - TWO_PI)
            with m.Elif(z <= -PI):
                m.d.comb += wrapped.eq(z + TWO_PI)
            with m.Else():
                m.d.comb += wrapped.eq(z)

            with m.If(wrapped > HALF_PI):
                m.d.comb += [
                    quadrant.eq(Quadrant.Q2),
                    reduced.eq(PI - wrapped),
                ]
            with m.Elif(wrapped >= 0):
                m.d.comb += [
                    quadrant.eq(Quadrant.Q1),
                    reduced.eq(wrapped),
                ]
            with m.Elif(wrapped >= -HALF_PI):
                m.d.comb += [
                    quadrant.eq(Quadrant.Q4),
                    reduced.eq(-wrapped),
                ]
            with m.Else():
                m.d.comb += [
                    quadrant.eq(Quadrant.Q3),
                    reduced.eq(-(PI + wrapped)),
                ]

            m.d.sync += [
                self.o.x.eq(c.gain),
                self.o.y.eq(0),
                self.o.z.eq(reduced),
                self.tag.quadrant.eq(quadrant),
            ]

        else:

            x = Signal(shape)
            y = Signal(shape)
            m.d.comb += [
                x.eq(c.io.hdl_resize(self.i.payload.x, c.internal)),
                y.eq(c.io.hdl_resize(self.i.payload.y, c.internal)),
            ]

            with m.If(x < 0):
                m.d.sync += [
                    self.o.x.eq(-x),
                    self.o.y.eq(-y),
                ]
                with m.If(y >= 0):
                    m.d.sync += [
                        self.o.z.eq(PI),
                        self.tag.quadrant.eq(Quadrant.Q2),
                    ]
                with m.Else():
                    m.d.sync += [
                        self.o.z.eq(-PI),
                        self.tag.quadrant.eq(Quadrant.Q3),
                    ]
            with m.Else():
                m.d.sync += [
                    self.o.x.eq(x),
                    self.o.y.eq(y),
                    self.o.z.eq(0),
                ]
                with m.If(y >= 0):
                    m.d.sync += self.tag.quadrant.eq(Quadrant.Q1)
                with m.Else():
                    m.d.sync += self.tag.quadrant.eq(Quadrant.Q4)

        return m


class OutputCorrector(wiring.Component):

    """
    Last pipeline slot. Undoes the fold recorded in the :class:`Tag` and
    narrows the result to the I/O format (truncating).

    .. code-block:: text

        quadrant   cos     sin
        Q1         x_N     y_N
        Q2        -x_N     y_N
        Q3        -x_N     y_N
        Q4         x_N    -y_N

    In vectoring mode the magnitude is ``x_N`` scaled by the gain constant
    (the one multiplier in the design) and the phase is ``z_N``.

    Members
    -------
    i : :py:`In(Vector)`
        Working vector leaving the last rotation stage.
    tag : :py:`In(Tag)`
        Tag delayed to line up with ``i``.
    o : :py:`Out(stream.Signature(SinCos | Polar))`
        Registered result. ``o.valid`` is the pipeline's valid strobe.
    """

    def __init__(self, config):
        self.config = config
        if config.mode == CordicMode.ROTATION:
            o_shape = SinCos(config.io.as_shape())
        else:
            o_shape = Polar(config.io.as_shape(), config.internal.as_shape())
        super().__init__({
            "i":   In(Vector(config.internal.as_shape())),
            "tag": In(Tag()),
            "o":   Out(stream.Signature(o_shape, always_ready=True)),
        })

    def elaborate(self, platform):
        m = Module()

        c = self.config
        fmt = c.internal

        m.d.sync += self.o.valid.eq(self.tag.valid)

        if c.mode == CordicMode.ROTATION:
            x = Signal(fmt.as_shape())
            y = Signal(fmt.as_shape())
            m.d.comb += [
                x.eq(self.i.x),
                y.eq(self.i.y),
            ]
            with m.If((self.tag.quadrant == Quadrant.Q2) |
                      (self.tag.quadrant == Quadrant.Q3)):
                m.d.comb += x.eq(-self.i.x)
            with m.Elif(self.tag.quadrant == Quadrant.Q4):
                m.d.comb += y.eq(-self.i.y)
            m.d.sync += [
                self.o.payload.cos.eq(fmt.hdl_resize(x, c.io)),
                self.o.payload.sin.eq(fmt.hdl_resize(y, c.io)),
            ]
        else:
            m.d.sync += [
                self.o.payload.magnitude.eq(
                    fmt.hdl_resize(fmt.hdl_mul(self.i.x, c.gain), c.io)),
                self.o.payload.phase.eq(self.i.z),
            ]

        return m
