"""
Distractor Sampler - Picks the incorrect options of a question.

The requested count is split between two pools:
    - in-unit:    floor(n / 2) candidates from the question's own unit
    - cross-unit: the rest, from other units / the global pool

Within each pool the pick is a uniform random sample without
replacement. A pool that is too small is taken whole; there is no
backfill from the other pool.
"""

import random
from typing import List, Optional, Sequence

from loguru import logger

from .errors import NoCandidates
from .knowledge_graph import unique


class DistractorSampler:
    """Produces bounded, unbiased distractor lists."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def sample(self, correct: Sequence[str], in_unit_pool: Sequence[str],
               cross_unit_pool: Sequence[str], total_wanted: int,
               kind: str = "question") -> List[str]:
        """
        Sample distractors for a question.

        Args:
            correct: Every option that would be a correct answer
            in_unit_pool: Candidates from the same unit
            cross_unit_pool: Candidates from other units
            total_wanted: Number of distractors to aim for
            kind: Question kind, for error reporting

        Returns:
            Distractors with no duplicates and no overlap with ``correct``

        Raises:
            NoCandidates: if ``correct`` is empty
        """
        if not correct:
            raise NoCandidates(kind)

        correct_set = set(correct)
        in_unit = unique(x for x in in_unit_pool if x not in correct_set)
        # Cross-unit strings that also appear in the unit are excluded
        excluded = correct_set | set(in_unit_pool)
        cross_unit = unique(x for x in cross_unit_pool if x not in excluded)

        in_unit_wanted = max(total_wanted, 0) // 2
        cross_unit_wanted = max(total_wanted, 0) - in_unit_wanted

        picked = self._take(in_unit, in_unit_wanted) + self._take(cross_unit, cross_unit_wanted)

        if len(picked) < total_wanted:
            logger.debug(
                f"{kind}: only {len(picked)}/{total_wanted} distractors "
                f"(in-unit {len(in_unit)}, cross-unit {len(cross_unit)})"
            )
        return picked

    def _take(self, pool: List[str], count: int) -> List[str]:
        return self.rng.sample(pool, min(count, len(pool)))
