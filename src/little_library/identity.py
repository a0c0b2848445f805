"""
Anonymous emoji identifiers for child readers.

A child is recognized by three emojis (e.g. "🐶🌈🎨") instead of a name, so
the library can track reading without collecting personal information.
Identifiers are drawn from a curated pool of kid-friendly symbols; with a
pool of N symbols there are N**3 possible identifiers per organization.

Symbols are compared as extended grapheme clusters (``regex``'s ``\\X``), so
emojis built from several code points, such as "☀️" (sun + variation
selector), count as a single symbol.
"""

import logging
import random
from collections.abc import Collection, Sequence

import regex

from .errors import CollisionExhaustedError

logger = logging.getLogger(__name__)

IDENTIFIER_LENGTH = 3
DEFAULT_MAX_ATTEMPTS = 100

_GRAPHEME = regex.compile(r"\X")

# Animals, nature, food, objects and activities. Avoids faces with strong
# emotions, flags, and anything a child might find upsetting.
EMOJI_POOL: tuple[str, ...] = (
    # Animals
    "🐶", "🐱", "🐭", "🐹", "🐰", "🦊", "🐻", "🐼", "🐨", "🐯",
    "🦁", "🐮", "🐷", "🐸", "🐵", "🐔", "🐧", "🐦", "🐤", "🦆",
    "🦉", "🐴", "🦄", "🐝", "🐛", "🦋", "🐌", "🐞", "🐢", "🐍",
    "🦖", "🦕", "🐙", "🦑", "🦀", "🐠", "🐟", "🐬", "🐳", "🦈",
    "🐊", "🦓", "🦒", "🐘", "🦔", "🦥", "🦦", "🦩", "🦜", "🐿️",
    # Nature and weather
    "🌵", "🌲", "🌴", "🌱", "🍀", "🍁", "🍄", "🌷", "🌹", "🌻",
    "🌼", "🌸", "🌈", "⭐", "🌙", "☀️", "❄️", "🔥", "🌊", "⚡",
    # Food
    "🍎", "🍐", "🍊", "🍋", "🍌", "🍉", "🍇", "🍓", "🍒", "🍑",
    "🥝", "🥥", "🥕", "🌽", "🥦", "🍕", "🍔", "🌮", "🍩", "🍪",
    "🧁", "🍦", "🍭", "🥨", "🧀", "🥞",
    # Objects and activities
    "🎨", "🎯", "🎲", "🧩", "🎸", "🎺", "🥁", "🎻", "🎈", "🎁",
    "🚀", "🚂", "🚲", "🛴", "⛵", "🚁", "🏰", "⛺", "🎡", "🎠",
    "⚽", "🏀", "🏈", "🎾", "🏐", "🪁", "🛹", "🔭", "🔬", "💡",
    "📚", "✏️", "🖍️", "📎", "🔑", "🧲", "🪀", "🧸", "👑", "💎",
)


def split_symbols(value: str) -> list[str]:
    """Segment a string into extended grapheme clusters."""
    return _GRAPHEME.findall(value)


class IdentityAllocator:
    """
    Generates and validates 3-symbol emoji identifiers.

    The allocator holds no state beyond its pool and random source. It never
    touches storage: callers pass a snapshot of identifiers already in use
    and are responsible for persisting the result with a conditional write.
    """

    def __init__(self, pool: Sequence[str] = EMOJI_POOL, rng: random.Random | None = None):
        symbols = tuple(pool)
        if not symbols:
            raise ValueError("Symbol pool must not be empty")
        if len(set(symbols)) != len(symbols):
            raise ValueError("Symbol pool must not contain duplicates")
        for symbol in symbols:
            if len(split_symbols(symbol)) != 1:
                raise ValueError(f"Pool entry {symbol!r} is not a single symbol")

        self.pool = symbols
        self._members = frozenset(symbols)
        self._rng = rng or random.SystemRandom()

    @property
    def space_size(self) -> int:
        """Number of distinct identifiers the pool can produce."""
        return len(self.pool) ** IDENTIFIER_LENGTH

    def generate(self) -> str:
        """Draw three symbols uniformly at random, with replacement."""
        return "".join(self._rng.choice(self.pool) for _ in range(IDENTIFIER_LENGTH))

    def split(self, value: str) -> list[str]:
        return split_symbols(value)

    def is_valid_format(self, value: str) -> bool:
        """Check that ``value`` is exactly three symbols from the pool."""
        if not isinstance(value, str):
            return False
        symbols = split_symbols(value)
        return len(symbols) == IDENTIFIER_LENGTH and all(s in self._members for s in symbols)

    @staticmethod
    def is_unique(value: str, existing: Collection[str]) -> bool:
        return value not in existing

    def generate_unique(
        self, existing: Collection[str], max_attempts: int = DEFAULT_MAX_ATTEMPTS
    ) -> str:
        """
        Generate an identifier that is not in ``existing``.

        Args:
            existing: Identifiers already in use (a snapshot)
            max_attempts: Number of random draws before giving up

        Returns:
            A fresh identifier

        Raises:
            CollisionExhaustedError: If every draw collided
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        in_use = existing if isinstance(existing, (set, frozenset)) else set(existing)
        for attempt in range(1, max_attempts + 1):
            candidate = self.generate()
            if self.is_unique(candidate, in_use):
                if attempt > 1:
                    logger.debug("Found unique emoji ID after %d attempts", attempt)
                return candidate

        logger.error(
            "Emoji ID allocation exhausted after %d attempts (%d of %d identifiers in use)",
            max_attempts,
            len(in_use),
            self.space_size,
        )
        raise CollisionExhaustedError(max_attempts)
