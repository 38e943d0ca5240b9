# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.
#
# See LICENSE for more details.
#
# Copyright (c) 2026 ScyllaDB

import random
from typing import Iterator

from docstress.config import KeyDistribution, Phase
from docstress.partition import KeyRange


def create_key_generator(
    key_range: KeyRange, phase: Phase, key_dist: KeyDistribution, rng: random.Random | None = None
) -> Iterator[int]:
    """Create an endless generator of key indexes inside ``key_range``.

    The load phase is always sequential so that every key of the range is written once
    when the worker attempts exactly ``key_range.count`` operations.
    """
    rng = rng or random.Random()
    pop_min = key_range.offset
    pop_max = key_range.end - 1

    if key_range.count == 0:
        return iter(())

    if phase == Phase.RUN and key_dist == KeyDistribution.GAUSSIAN:
        mean = (pop_min + pop_max) / 2
        # stdvrng=3, so ~99.7% of the draws land inside the range before clamping
        stdev = max((mean - pop_min) / 3, 1e-9)

        def key_gen():
            while True:
                val = int(round(rng.gauss(mean, stdev)))
                yield max(pop_min, min(pop_max, val))

        return key_gen()

    if phase == Phase.RUN and key_dist == KeyDistribution.UNIFORM:

        def key_gen():
            while True:
                yield rng.randint(pop_min, pop_max)

        return key_gen()

    def key_gen():
        idx = pop_min
        while True:
            yield idx
            idx += 1
            if idx > pop_max:
                idx = pop_min

    return key_gen()


def format_key(idx: int, prefix: str = "") -> str:
    return f"{prefix}{idx}"
