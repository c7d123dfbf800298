"""Policy for mixing review items into the active queue."""

import random
from dataclasses import dataclass, field

from renshu.domain.models import QueueState


@dataclass
class InterleavingPolicy:
    """
    Decides whether the next active slot is filled from the review queue.

    Attributes:
        review_ratio: Fixed probability of pulling a review item (0.0-1.0).
            When None, the probability is the review queue's share of the
            items still waiting in both source queues.
        rng: Random source, injectable for deterministic tests.
    """

    review_ratio: float | None = None
    rng: random.Random = field(default_factory=random.Random)

    def __post_init__(self) -> None:
        if self.review_ratio is not None and not 0.0 <= self.review_ratio <= 1.0:
            raise ValueError(f"review_ratio must be between 0 and 1, got {self.review_ratio}")

    def ratio(self, queues: QueueState) -> float:
        if self.review_ratio is not None:
            return self.review_ratio
        total = len(queues.module_queue) + len(queues.review_queue)
        return len(queues.review_queue) / total if total else 0.0

    def pull_from_review(self, queues: QueueState) -> bool:
        return self.rng.random() < self.ratio(queues)
