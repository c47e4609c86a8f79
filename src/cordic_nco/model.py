# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
Bit-accurate software model of the CORDIC pipeline.

The model mirrors the gateware register for register. Pipeline state is an
explicit immutable value: :py:`tick()` takes the state of every slot before a
clock edge and returns the state after it, so a caller can step it one
logical cycle at a time and compare against the simulator. The batch
transforms (:py:`CordicModel.sincos`, :py:`CordicModel.polar`) run the same
arithmetic over numpy arrays of independent samples, one stage at a time.
"""

from dataclasses import dataclass, replace
from typing import NamedTuple

import numpy as np

from .config import CordicConfig
from .types import ConfigurationError, CordicMode, Quadrant


class Sample(NamedTuple):
    cos: int
    sin: int
    valid: bool


class PolarSample(NamedTuple):
    magnitude: int
    phase: int
    valid: bool


@dataclass(frozen=True)
class Slot:
    """Contents of one pipeline slot: working vector and its tag."""
    x: int = 0
    y: int = 0
    z: int = 0
    quadrant: Quadrant = Quadrant.Q1
    valid: bool = False


@dataclass(frozen=True)
class EngineState:
    """
    Every register of the engine. ``slots[0]`` is the quadrant mapper
    output, ``slots[i+1]`` the output of rotation stage ``i``; ``output`` is
    the output corrector register.
    """
    slots: tuple
    output: tuple


@dataclass(frozen=True)
class NCOState:
    """Accumulator phase and engine registers. Start from :py:`NCOModel.reset_state`."""
    phase: int
    engine: EngineState


class CordicModel:

    """
    Model of :class:`cordic_nco.cordic.PipelineEngine`.

    Accepts the same keyword arguments as :class:`CordicConfig`, or a
    ready-made ``config``.
    """

    def __init__(self, config=None, **kwargs):
        self.config = config or CordicConfig(**kwargs)

    @property
    def rotation(self):
        return self.config.mode == CordicMode.ROTATION

    def reset_state(self):
        empty = Sample(0, 0, False) if self.rotation else PolarSample(0, 0, False)
        return EngineState(slots=(Slot(),) * (self.config.stages + 1), output=empty)

    #
    # Pipeline slot functions
    #

    def load(self, payload, valid):
        """Quadrant mapper: fold ``payload`` into the first quadrant."""
        c = self.config
        fmt = c.internal
        if self.rotation:
            z = payload
            if z > c.pi:
                z = fmt.wrap(z - c.two_pi)
            elif z <= -c.pi:
                z = fmt.wrap(z + c.two_pi)
            if z > c.half_pi:
                quadrant, z = Quadrant.Q2, c.pi - z
            elif z >= 0:
                quadrant = Quadrant.Q1
            elif z >= -c.half_pi:
                quadrant, z = Quadrant.Q4, -z
            else:
                quadrant, z = Quadrant.Q3, -(c.pi + z)
            return Slot(x=c.gain, y=0, z=fmt.wrap(z), quadrant=quadrant, valid=bool(valid))
        x, y = (c.io.resize(v, fmt) for v in payload)
        if x < 0:
            return Slot(x=fmt.wrap(-x), y=fmt.wrap(-y),
                        z=c.pi if y >= 0 else -c.pi,
                        quadrant=Quadrant.Q2 if y >= 0 else Quadrant.Q3,
                        valid=bool(valid))
        return Slot(x=x, y=y, z=0,
                    quadrant=Quadrant.Q1 if y >= 0 else Quadrant.Q4,
                    valid=bool(valid))

    def rotate(self, slot, i):
        """Micro-rotation ``i``."""
        fmt = self.config.internal
        angle = self.config.angles[i]
        dx, dy = slot.y >> i, slot.x >> i
        negative = slot.z < 0 if self.rotation else slot.y >= 0
        if negative:
            x, y, z = slot.x + dx, slot.y - dy, slot.z + angle
        else:
            x, y, z = slot.x - dx, slot.y + dy, slot.z - angle
        return replace(slot, x=fmt.wrap(x), y=fmt.wrap(y), z=fmt.wrap(z))

    def correct(self, slot):
        """Output corrector: undo the fold and resize to the I/O format."""
        c = self.config
        fmt = c.internal
        if self.rotation:
            x, y = slot.x, slot.y
            if slot.quadrant in (Quadrant.Q2, Quadrant.Q3):
                x = fmt.wrap(-x)
            elif slot.quadrant == Quadrant.Q4:
                y = fmt.wrap(-y)
            return Sample(fmt.resize(x, c.io), fmt.resize(y, c.io), slot.valid)
        magnitude = fmt.resize(fmt.mul(slot.x, c.gain), c.io)
        return PolarSample(magnitude, slot.z, slot.valid)

    #
    # Tick-driven stream
    #

    def tick(self, state, payload, valid=True, reset=False):
        """Advance every slot by one clock edge and return the new state."""
        if reset:
            return self.reset_state()
        slots = state.slots
        advanced = tuple(self.rotate(slot, i) for i, slot in enumerate(slots[:-1]))
        return EngineState(slots=(self.load(payload, valid),) + advanced,
                           output=self.correct(slots[-1]))

    def run(self, inputs, state=None):
        """
        Feed ``(payload, valid, reset)`` tuples one per tick. Returns the
        output register after each tick and the final state.
        """
        state = state or self.reset_state()
        outputs = []
        for payload, valid, reset in inputs:
            state = self.tick(state, payload, valid, reset)
            outputs.append(state.output)
        return outputs, state

    #
    # Batch transforms
    #

    def _rotate_all(self, x, y, z):
        fmt = self.config.internal
        for i, angle in enumerate(self.config.angles):
            dx, dy = y >> i, x >> i
            negative = z < 0 if self.rotation else y >= 0
            x, y, z = (fmt.wrap(np.where(negative, x + dx, x - dx)),
                       fmt.wrap(np.where(negative, y - dy, y + dy)),
                       fmt.wrap(np.where(negative, z + angle, z - angle)))
        return x, y, z

    def sincos(self, phases):
        """Raw (cos, sin) arrays for an array of raw internal-format phases."""
        if not self.rotation:
            raise ConfigurationError("sincos() needs a rotation-mode model")
        c = self.config
        fmt = c.internal
        z = np.asarray(phases, dtype=np.int64)
        z = fmt.wrap(np.where(z > c.pi, z - c.two_pi, np.where(z <= -c.pi, z + c.two_pi, z)))
        q2 = z > c.half_pi
        q3 = z < -c.half_pi
        q4 = (z < 0) & ~q3
        z = np.select([q2, q3, q4], [c.pi - z, -(c.pi + z), -z], z)
        x, y, _ = self._rotate_all(np.full_like(z, c.gain), np.zeros_like(z), fmt.wrap(z))
        x = np.where(q2 | q3, fmt.wrap(-x), x)
        y = np.where(q4, fmt.wrap(-y), y)
        return fmt.resize(x, c.io), fmt.resize(y, c.io)

    def polar(self, x, y):
        """Raw (magnitude, phase) arrays for arrays of raw I/O-format x and y."""
        if self.rotation:
            raise ConfigurationError("polar() needs a vectoring-mode model")
        c = self.config
        fmt = c.internal
        x = c.io.resize(np.asarray(x, dtype=np.int64), fmt)
        y = c.io.resize(np.asarray(y, dtype=np.int64), fmt)
        left = x < 0
        z = np.where(left, np.where(y >= 0, c.pi, -c.pi), 0)
        x, y, z = self._rotate_all(fmt.wrap(np.where(left, -x, x)),
                                   fmt.wrap(np.where(left, -y, y)),
                                   z.astype(np.int64))
        return fmt.resize(fmt.mul(x, c.gain), c.io), z


class NCOModel:

    """
    Model of :class:`cordic_nco.nco.SinCosNCO`: phase accumulator feeding a
    rotation-mode :class:`CordicModel`.
    """

    def __init__(self, config=None, **kwargs):
        self.engine = CordicModel(config, **kwargs)
        if not self.engine.rotation:
            raise ConfigurationError("the NCO drives a rotation-mode pipeline")
        self.config = self.engine.config

    def reset_state(self):
        return NCOState(phase=0, engine=self.engine.reset_state())

    def accumulate(self, phase, tuning_word):
        """
        One enabled accumulator step. At most one turn is removed or added per
        tick, so tuning words of a full turn or more leave [0, 2pi).
        """
        c = self.config
        nxt = c.internal.wrap(phase + tuning_word)
        if nxt >= c.two_pi:
            nxt -= c.two_pi
        elif nxt < 0:
            nxt += c.two_pi
        return nxt

    def tick(self, state, tuning_word, enable=True, reset=False):
        if reset:
            return self.reset_state()
        engine = self.engine.tick(state.engine, state.phase, enable)
        phase = self.accumulate(state.phase, tuning_word) if enable else state.phase
        return NCOState(phase=phase, engine=engine)

    def run(self, ticks, state=None):
        """
        Feed ``(tuning_word, enable, reset)`` tuples one per tick. Returns the
        :class:`Sample` emitted after each tick and the final state.
        """
        state = state or self.reset_state()
        samples = []
        for tuning_word, enable, reset in ticks:
            state = self.tick(state, tuning_word, enable, reset)
            samples.append(state.engine.output)
        return samples, state
