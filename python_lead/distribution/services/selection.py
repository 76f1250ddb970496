"""
Weight-proportional advertiser selection.
"""
import logging
import random
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


def select_weighted(candidates: Sequence, rng: Optional[random.Random] = None):
    """
    Pick one candidate with probability proportional to its weight.

    Each candidate must expose a numeric ``weight`` attribute. A single
    candidate is returned without drawing randomness. A candidate with weight
    0 stays in the pool but can never be drawn while any other candidate has
    positive weight; if every weight is 0 the first candidate is returned.

    Args:
        candidates: Non-empty sequence of weighted candidates
        rng: Optional random.Random instance (defaults to the module RNG)

    Returns:
        The selected candidate

    Raises:
        ValueError: If candidates is empty
    """
    if not candidates:
        raise ValueError("Cannot select from an empty candidate list")

    if len(candidates) == 1:
        return candidates[0]

    total_weight = sum(max(c.weight, 0) for c in candidates)
    if total_weight <= 0:
        logger.warning("All candidates have zero weight, picking the first")
        return candidates[0]

    draw = (rng or random).uniform(0, total_weight)

    cumulative = 0
    for candidate in candidates:
        cumulative += max(candidate.weight, 0)
        if draw < cumulative:
            return candidate

    # uniform() may return the upper bound; fall back to the last weighted one
    return [c for c in candidates if c.weight > 0][-1]
