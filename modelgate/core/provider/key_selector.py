"""API key selection with round-robin, random and failover strategies."""

import random
import threading
from dataclasses import dataclass
from enum import Enum

from modelgate.core.errors import NoKeysAvailable


class KeyStrategy(str, Enum):
    """Rotation strategy for a provider's API keys."""

    ROUND_ROBIN = "round-robin"
    RANDOM = "random"
    FAILOVER = "failover"

    @classmethod
    def parse(cls, value: "str | KeyStrategy | None") -> "KeyStrategy":
        """Parse a configured strategy name, defaulting to round-robin.

        Raises:
            ValueError: If the name is not a known strategy.
        """
        if value is None:
            return cls.ROUND_ROBIN
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown api_key_strategy '{value}' (expected one of: {valid})")


@dataclass(frozen=True, slots=True)
class SelectedKey:
    """A chosen API key and its position in the provider's key list."""

    key: str
    index: int


class KeySelector:
    """Thread-safe per-provider API key selection.

    Responsibilities:
    - Hand out the key to use for the next upstream call
    - Pick a different key when the caller reports a failed index
    - Keep the rotation cursor valid for every strategy

    ``exclude_index`` is -1 for a normal call. A non-negative value means the key
    at that index just failed and a different one is wanted.
    """

    def __init__(
        self,
        keys: list[str],
        strategy: KeyStrategy = KeyStrategy.ROUND_ROBIN,
        provider_name: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._keys = list(keys)
        self._strategy = KeyStrategy.parse(strategy)
        self._provider_name = provider_name
        self._rng = rng or random.Random()
        self._current_index = 0
        self._lock = threading.Lock()

    @property
    def strategy(self) -> KeyStrategy:
        return self._strategy

    @property
    def current_index(self) -> int:
        return self._current_index

    def get_key_count(self) -> int:
        """Return the number of configured keys."""
        return len(self._keys)

    def select_key(self, exclude_index: int = -1) -> SelectedKey:
        """Select the key for the next call.

        Args:
            exclude_index: Index of a key that just failed, or -1.

        Returns:
            The selected key and its index.

        Raises:
            NoKeysAvailable: If the selector holds no keys.
        """
        count = len(self._keys)
        if count == 0:
            raise NoKeysAvailable(self._provider_name)
        if count == 1:
            return SelectedKey(self._keys[0], 0)

        failed = exclude_index >= 0

        with self._lock:
            if self._strategy is KeyStrategy.RANDOM:
                if failed:
                    excluded = exclude_index % count
                    candidates = [i for i in range(count) if i != excluded]
                    index = self._rng.choice(candidates)
                else:
                    index = self._rng.randrange(count)

            elif self._strategy is KeyStrategy.FAILOVER:
                if failed:
                    self._current_index = (exclude_index + 1) % count
                index = self._current_index

            else:
                if failed:
                    # Cursor keeps its own cycle; only this retry skips ahead
                    index = (exclude_index + 1) % count
                else:
                    index = self._current_index
                    self._current_index = (self._current_index + 1) % count

        return SelectedKey(self._keys[index], index)
