"""
Multi-hand target matching.

Each target hand claims the best-scoring detected hand that no earlier
target has claimed. This is a local greedy assignment, not an optimal
bipartite matching: with at most two hands per side it is deterministic
and cheap, which matters more inside the frame loop.
"""

import logging
from typing import Callable, Sequence

from core.types import DetectedHand, MatchResult
from modules.recognition.similarity_scorer import similarity_score, round_half_up

logger = logging.getLogger(__name__)


def match_hands(targets: Sequence[DetectedHand], current: Sequence[DetectedHand],
                scorer: Callable = similarity_score) -> MatchResult:
    """Assign detected hands to target hands and score them.

    Targets are visited in order. Each picks the unused detected hand
    with the strictly highest score (the first one wins ties); a target
    left without a positively scoring candidate scores 0 and claims
    nothing. No detected hand is shared between targets.

    Args:
        targets: Reference hands
        current: Hands detected in the live frame
        scorer: (target_landmarks, current_landmarks) -> int score

    Returns:
        MatchResult with one score per target and their rounded mean
    """
    per_target = [0] * len(targets)
    assignments = [-1] * len(targets)
    used = set()

    for ti, target in enumerate(targets):
        best_score = 0
        best_ci = -1
        for ci, hand in enumerate(current):
            if ci in used:
                continue
            score = scorer(target.landmarks, hand.landmarks)
            if score > best_score:
                best_score = score
                best_ci = ci
        if best_ci >= 0:
            used.add(best_ci)
        per_target[ti] = best_score
        assignments[ti] = best_ci

    total = round_half_up(sum(per_target) / len(per_target)) if per_target else 0

    logger.debug("Matched %d target(s) against %d hand(s): %s -> %d",
                 len(targets), len(current), per_target, total)

    return MatchResult(per_target_scores=per_target, total_score=total,
                       assignments=assignments)
