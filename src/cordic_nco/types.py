# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

import enum

from amaranth.lib import data
from amaranth.lib import enum as hdl_enum


class ConfigurationError(ValueError):
    """Raised when a CORDIC pipeline is constructed with an unusable configuration."""


class CordicMode(str, enum.Enum):
    ROTATION  = "rotation"
    VECTORING = "vectoring"


class Quadrant(hdl_enum.Enum, shape=2):
    """Which fold the quadrant mapper applied to reach the first quadrant."""
    Q1 = 0
    Q2 = 1
    Q3 = 2
    Q4 = 3


class Vector(data.StructLayout):
    """Per-slot CORDIC working registers, all in the internal format."""
    def __init__(self, shape):
        super().__init__({
            "x": shape,
            "y": shape,
            "z": shape,
        })


class Tag(data.StructLayout):
    """Bookkeeping carried alongside each :class:`Vector` through the pipeline."""
    def __init__(self):
        super().__init__({
            "quadrant": Quadrant,
            "valid": 1,
        })


class SinCos(data.StructLayout):
    def __init__(self, shape):
        super().__init__({
            "cos": shape,
            "sin": shape,
        })


class Cartesian(data.StructLayout):
    def __init__(self, shape):
        super().__init__({
            "x": shape,
            "y": shape,
        })


class Polar(data.StructLayout):
    """Vectoring-mode result. ``phase`` uses the internal format as +/-pi does not fit I/O."""
    def __init__(self, magnitude_shape, phase_shape):
        super().__init__({
            "magnitude": magnitude_shape,
            "phase": phase_shape,
        })
