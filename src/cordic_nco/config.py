# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Construction-time configuration shared by the gateware and the model."""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from .angles import AngleTable
from .fixed import INTERNAL, IO, SQ
from .types import ConfigurationError, CordicMode


@dataclass(frozen=True)
class CordicConfig:

    """
    Validated CORDIC pipeline parameters and the constants derived from them.

    stages : int
        Number of micro-rotations N. Latency of the pipeline is N+2.
    mode : CordicMode or str
        :py:`"rotation"` (phase in, cos/sin out) or :py:`"vectoring"`
        (cartesian in, magnitude/phase out).
    io : SQ
        Format of samples entering and leaving the pipeline.
    internal : SQ
        Format of every stage register. Must be at least as wide as ``io`` and
        carry at least as many fraction bits; extra fraction bits act as guard
        bits against truncation error.
    angle_table : AngleTable
        Optional precomputed table of at least ``stages`` entries, in the
        internal format. Generated when omitted.
    """

    stages: int = 16
    mode: CordicMode = CordicMode.ROTATION
    io: SQ = IO
    internal: SQ = INTERNAL
    angle_table: Optional[AngleTable] = None

    def __post_init__(self):
        try:
            object.__setattr__(self, "mode", CordicMode(self.mode))
        except ValueError:
            raise ConfigurationError(f"unsupported CORDIC mode {self.mode!r}, expected one of "
                                     f"{[m.value for m in CordicMode]}") from None
        if self.stages < 1:
            raise ConfigurationError(f"need at least 1 stage, got {self.stages}")
        if self.internal.width < self.io.width or self.internal.f_bits < self.io.f_bits:
            raise ConfigurationError(f"internal format {self.internal!r} cannot hold "
                                     f"I/O format {self.io!r}")
        if self.angle_table is None:
            object.__setattr__(self, "angle_table", AngleTable.generate(self.stages, self.internal))
        if self.angle_table.fmt != self.internal:
            raise ConfigurationError(f"angle table is in {self.angle_table.fmt!r}, "
                                     f"pipeline runs in {self.internal!r}")
        if self.stages > len(self.angle_table):
            raise ConfigurationError(f"{self.stages} stages exceed angle table "
                                     f"length {len(self.angle_table)}")
        logging.debug(f"cordic config: {self.stages} stages, {self.mode.value}, "
                      f"io={self.io!r}, internal={self.internal!r}")

    @property
    def angles(self):
        return self.angle_table[:self.stages]

    @property
    def latency(self):
        return self.stages + 2

    @property
    def guard_bits(self):
        return self.internal.f_bits - self.io.f_bits

    @property
    def gain_float(self):
        """Inverse of the CORDIC magnitude growth after ``stages`` iterations (~0.607253)."""
        return math.prod(1.0 / math.sqrt(1.0 + 2.0**(-2*i)) for i in range(self.stages))

    @property
    def gain(self):
        return self.internal.to_fixed(self.gain_float)

    @property
    def pi(self):
        return self.internal.to_fixed(math.pi)

    @property
    def two_pi(self):
        return 2 * self.pi

    @property
    def half_pi(self):
        return self.internal.to_fixed(math.pi / 2)
