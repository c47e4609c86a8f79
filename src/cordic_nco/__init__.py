# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Pipelined CORDIC sine/cosine generator, as gateware and as a bit-accurate model."""

from .fixed import INTERNAL, IO, SQ
from .types import ConfigurationError, CordicMode, Quadrant
from .angles import AngleTable
from .config import CordicConfig

# Components that are accessed using `cordic_nco.model.NCOModel()`-like pattern (qualified)
from . import model, sim

# Components that can be accessed directly using `cordic_nco.SinCosNCO()`-like pattern
from .cordic import *
from .nco import *
from .quadrant import *
