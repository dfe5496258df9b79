import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class UserLockRegistry:
    """One asyncio.Lock per user, so a user's gamification writes run one at a time.

    This serializes writers inside one process. Across processes the storage
    layer's conditional updates and row versions catch what slips through.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._waiters: Dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        self._waiters[user_id] += 1
        try:
            async with self._locks[user_id]:
                yield
        finally:
            self._waiters[user_id] -= 1
            if self._waiters[user_id] == 0:
                # nobody is waiting or holding, drop the lock so the map stays small
                del self._waiters[user_id]
                self._locks.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._locks)
