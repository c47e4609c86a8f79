# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Signed fixed-point formats shared by the gateware and the software model."""

import os
from dataclasses import dataclass

import numpy as np
from amaranth import hdl

__all__ = ["SQ", "IO", "INTERNAL"]


@dataclass(frozen=True)
class SQ:
    """
    Signed Qm.f fixed-point format.

    A raw value is a two's-complement integer of :py:`width` bits, read as
    :py:`raw / 2**f_bits`. All conversions wrap on overflow rather than
    saturating, matching what a register of this width does in hardware.

    Every operation accepts plain Python integers or numpy ``int64`` arrays,
    so the same format drives both the tick-by-tick model and the batch
    transforms.
    """

    i_bits: int
    f_bits: int

    def __post_init__(self):
        if self.i_bits < 1:
            raise TypeError(f"SQ needs at least 1 integer (sign) bit, got {self.i_bits}")
        if self.f_bits < 0:
            raise TypeError(f"SQ fraction bits cannot be negative, got {self.f_bits}")

    @property
    def width(self):
        return self.i_bits + self.f_bits

    @property
    def scale(self):
        return 1 << self.f_bits

    @property
    def min_int(self):
        return -(1 << (self.width - 1))

    @property
    def max_int(self):
        return (1 << (self.width - 1)) - 1

    def as_shape(self):
        return hdl.signed(self.width)

    def wrap(self, raw):
        """Two's-complement narrowing of ``raw`` to :py:`width` bits."""
        half = 1 << (self.width - 1)
        return ((raw + half) & ((1 << self.width) - 1)) - half

    def to_fixed(self, value):
        """Round ``value * 2**f_bits`` to nearest, then wrap."""
        raw = self.wrap(np.rint(np.asarray(value, dtype=np.float64) * self.scale).astype(np.int64))
        return int(raw) if raw.ndim == 0 else raw

    def to_real(self, raw):
        real = np.asarray(raw, dtype=np.float64) / self.scale
        return float(real) if real.ndim == 0 else real

    def resize(self, raw, other):
        """
        Convert ``raw`` from this format into ``other``.

        Extra fraction bits are shifted in as zeros; dropped fraction bits are
        truncated (floor). The result then wraps to the width of ``other``, so
        widening sign-extends and narrowing discards upper integer bits.
        """
        shift = other.f_bits - self.f_bits
        raw = raw << shift if shift >= 0 else raw >> -shift
        return other.wrap(raw)

    def mul(self, a, b):
        """Double-width product of two raw values, shifted back to this format."""
        return self.wrap((a * b) >> self.f_bits)

    def const(self, value):
        """HDL constant for the real ``value``."""
        return hdl.Const(self.to_fixed(value), self.as_shape())

    def hdl_resize(self, value, other):
        """Gateware counterpart of :py:`resize`: a value of :py:`other.as_shape()`."""
        shift = other.f_bits - self.f_bits
        value = value << shift if shift >= 0 else value >> -shift
        return value[:other.width].as_signed()

    def hdl_mul(self, a, b):
        """Gateware counterpart of :py:`mul`."""
        return ((a * b) >> self.f_bits)[:self.width].as_signed()

    def __repr__(self):
        return f"SQ({self.i_bits}, {self.f_bits})"


# Native I/O format: Q2.14 by default. The fraction count follows the width
# so that the +/-2 integer range is preserved.
IO = SQ(2, int(os.environ.get('CORDIC_NCO_IO_WIDTH', '16')) - 2)

# Internal datapath format: 32 bits with the same fraction count as IO.
INTERNAL = SQ(32 - IO.f_bits, IO.f_bits)
