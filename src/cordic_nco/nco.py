# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

from amaranth import *
from amaranth.lib import stream, wiring
from amaranth.lib.wiring import In, Out

from .config import CordicConfig
from .cordic import PipelineEngine
from .types import ConfigurationError, CordicMode, SinCos

__all__ = ["PhaseAccumulator", "SinCosNCO"]


class PhaseAccumulator(wiring.Component):

    """
    Phase register of a numerically controlled oscillator.

    On every enabled cycle ``phase`` advances by ``tuning_word`` (radians in
    the internal format). Results of 2pi or more have one turn removed, and
    negative results (from negative tuning words) have one turn added, so
    ``phase`` stays in [0, 2pi) as long as ``abs(tuning_word) < 2pi``.
    Larger tuning words are not reduced any further.

    Members
    -------
    tuning_word : :py:`In(signed(width))`
        Phase increment per enabled cycle.
    enable : :py:`In(1)`
        Advance the phase this cycle.
    reset : :py:`In(1)`
        Zero the phase this cycle. Takes priority over ``enable``.
    phase : :py:`Out(signed(width))`
        Current phase, presented every cycle.
    """

    def __init__(self, config: CordicConfig = None, **kwargs):
        self.config = config or CordicConfig(**kwargs)
        shape = self.config.internal.as_shape()
        super().__init__({
            "tuning_word": In(shape),
            "enable":      In(1),
            "reset":       In(1),
            "phase":       Out(shape),
        })

    def elaborate(self, platform):
        m = Module()

        TWO_PI = self.config.two_pi

        # Wraps at the register width on overflow.
        nxt = Signal(self.config.internal.as_shape())
        m.d.comb += nxt.eq(self.phase + self.tuning_word)

        with m.If(self.reset):
            m.d.sync += self.phase.eq(0)
        with m.Elif(self.enable):
            with m.If(nxt >= TWO_PI):
                m.d.sync += self.phase.eq(nxt - TWO_PI)
            with m.Elif(nxt < 0):
                m.d.sync += self.phase.eq(nxt + TWO_PI)
            with m.Else():
                m.d.sync += self.phase.eq(nxt)

        return m


class SinCosNCO(wiring.Component):

    """
    Quadrature Numerically Controlled Oscillator.

    A :class:`PhaseAccumulator` feeding a rotation-mode
    :class:`PipelineEngine`. Each enabled cycle launches one sample whose
    phase is the accumulator value before that cycle's increment, so the
    ``k``-th enabled sample is ``(cos(k*w), sin(k*w))`` for tuning word
    ``w``. It appears on ``o`` ``stages + 2`` cycles later.

    Members
    -------
    tuning_word : :py:`In(signed(width))`
        Phase increment per enabled cycle (internal format, radians).
    enable : :py:`In(1)`
        Launch a sample and advance the phase this cycle.
    reset : :py:`In(1)`
        Zero the phase and flush the pipeline.
    o : :py:`Out(stream.Signature(SinCos))`
        ``o.payload.cos``, ``o.payload.sin`` in the I/O format, ``o.valid``
        strobed once per launched sample.
    """

    def __init__(self, config: CordicConfig = None, **kwargs):
        self.config = config or CordicConfig(**kwargs)
        if self.config.mode != CordicMode.ROTATION:
            raise ConfigurationError("SinCosNCO requires a rotation-mode pipeline")
        super().__init__({
            "tuning_word": In(self.config.internal.as_shape()),
            "enable":      In(1),
            "reset":       In(1),
            "o":           Out(stream.Signature(SinCos(self.config.io.as_shape()),
                                                always_ready=True)),
        })

    @property
    def latency(self):
        return self.config.latency

    def elaborate(self, platform):
        m = Module()

        m.submodules.accumulator = accumulator = PhaseAccumulator(self.config)
        m.submodules.engine = engine = PipelineEngine(self.config)

        m.d.comb += [
            accumulator.tuning_word.eq(self.tuning_word),
            accumulator.enable.eq(self.enable),
            accumulator.reset.eq(self.reset),
            engine.reset.eq(self.reset),
            engine.i.payload.eq(accumulator.phase),
            engine.i.valid.eq(self.enable),
        ]
        wiring.connect(m, engine.o, wiring.flipped(self.o))

        return m
