"""
Exact-sum integer partitioning.

Splits one aggregate into k card amounts that add back to it exactly. All
arithmetic is integer, so no rounding can leak into the ledger totals.
"""

import random
from typing import List, Optional


def partition(total: int, k: int, min_part: int = 1, rng: Optional[random.Random] = None) -> List[int]:
    """
    Split `total` into `k` integers summing exactly to `total`.

    Every part is at least `min_part` in magnitude when that is feasible. A
    negative total is split by magnitude and every part carries the minus
    sign, so an inventory decrease stays a decrease in every fragment.

    When k * min_part exceeds |total| the first k-1 parts get the minimum and
    the last part absorbs whatever is left, even if that leaves it below the
    minimum. This never raises.

    Order of the returned parts is shuffled.
    """
    rng = rng or random
    total = int(total)
    if k <= 1:
        return [total]

    sign = -1 if total < 0 else 1
    magnitude = abs(total)

    spare = magnitude - k * min_part
    if spare < 0:
        parts = [min_part] * (k - 1)
        parts.append(magnitude - min_part * (k - 1))
    else:
        # k-1 random cut points over the spare amount
        cuts = sorted(rng.randint(0, spare) for _ in range(k - 1))
        bounds = [0] + cuts + [spare]
        parts = [min_part + (hi - lo) for lo, hi in zip(bounds, bounds[1:])]

    rng.shuffle(parts)
    return [sign * part for part in parts]


def feasible_count(total: int, k: int, min_part: int) -> int:
    """Largest count <= k that lets every part of |total| keep `min_part`."""
    if min_part <= 0:
        return max(1, k)
    return max(1, min(k, abs(int(total)) // min_part))
