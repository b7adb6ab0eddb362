# services/median.py
"""
Median of cumulative service rewards.

SortedRewardIndex keeps one (reward, service_id) entry per known service in
ascending order, stored as two parallel lists on the global aggregate. A
reward change moves the entry to its new sorted position instead of
re-sorting every service on every checkpoint.
"""

from bisect import bisect_left, insort
from typing import List, Sequence


def median_of_sorted(values: Sequence[int]) -> int:
    """
    Median of an ascending sequence. Even counts average the two middle
    values with integer division. Empty input gives 0.
    """
    n = len(values)
    if n == 0:
        return 0
    mid = n // 2
    if n % 2 == 1:
        return values[mid]
    return (values[mid - 1] + values[mid]) // 2


def compute_median(values: Sequence[int]) -> int:
    return median_of_sorted(sorted(values))


class SortedRewardIndex:
    """
    Parallel arrays sorted by (reward, service_id).

    Ties are ordered by service ID so every entry has exactly one valid
    position, which lets updates locate it with a binary search.
    """

    def __init__(self, service_ids: List[int], rewards: List[int]):
        if len(service_ids) != len(rewards):
            raise ValueError(
                f"Index arrays differ in length: {len(service_ids)} ids, {len(rewards)} rewards"
            )
        self.service_ids = service_ids
        self.rewards = rewards
        self._keys = sorted(zip(rewards, service_ids))
        self._sync()

    @classmethod
    def from_global(cls, global_state) -> "SortedRewardIndex":
        return cls(global_state.ranked_service_ids, global_state.ranked_rewards)

    def __len__(self) -> int:
        return len(self.service_ids)

    def __contains__(self, service_id: int) -> bool:
        return service_id in self._positions

    def median(self) -> int:
        return median_of_sorted(self.rewards)

    def upsert(self, service_id: int, reward: int) -> None:
        """Insert a service or move it to the position for its new reward."""
        if service_id in self._positions:
            old_reward = self.rewards[self._positions[service_id]]
            if old_reward == reward:
                return
            self._remove_key((old_reward, service_id))

        insort(self._keys, (reward, service_id))
        self._sync()

    def _remove_key(self, key) -> None:
        idx = bisect_left(self._keys, key)
        if idx >= len(self._keys) or self._keys[idx] != key:
            raise KeyError(f"Service {key[1]} not found at reward {key[0]}")
        del self._keys[idx]

    def _sync(self) -> None:
        # Lists are updated in place so the owning aggregate sees the change
        self.rewards[:] = [reward for reward, _ in self._keys]
        self.service_ids[:] = [sid for _, sid in self._keys]
        self._positions = {sid: idx for idx, sid in enumerate(self.service_ids)}
