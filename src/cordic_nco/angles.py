# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Arctangent table used by the CORDIC micro-rotations."""

import functools
import logging
from collections.abc import Sequence
from math import atan

from .fixed import INTERNAL
from .types import ConfigurationError


class AngleTable(Sequence):

    """
    Immutable table of elementary rotation angles.

    Entry ``i`` is ``round(atan(2**-i) * 2**f_bits)`` in the given format,
    i.e. the angle by which micro-rotation ``i`` turns the working vector.

    The table must be strictly decreasing. Past the fraction resolution of
    the format, neighbouring entries round to the same value and the extra
    stages stop making progress, so such a table is rejected.
    """

    def __init__(self, entries, fmt=INTERNAL):
        self._entries = tuple(int(e) for e in entries)
        self.fmt = fmt
        for i, (a, b) in enumerate(zip(self._entries, self._entries[1:])):
            if not a > b:
                raise ConfigurationError(
                    f"angle table is not strictly decreasing at entry {i+1} "
                    f"({a} -> {b}); {fmt!r} cannot resolve {len(self._entries)} stages")

    @staticmethod
    @functools.lru_cache(maxsize=None)
    def generate(n, fmt=INTERNAL):
        """Build (once per ``(n, fmt)``) the ``n``-entry table."""
        if n < 1:
            raise ConfigurationError(f"angle table needs at least 1 entry, got {n}")
        table = AngleTable((fmt.to_fixed(atan(2.0**-i)) for i in range(n)), fmt)
        logging.debug(f"generated {n}-entry angle table for {fmt!r}: {list(table)}")
        return table

    def __getitem__(self, index):
        return self._entries[index]

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return f"AngleTable({list(self._entries)}, fmt={self.fmt!r})"
