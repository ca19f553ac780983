"""Memorable share tokens of the form ``<adjective>-<noun>-<number>``."""

from collections.abc import Awaitable, Callable
import logging
import random
import re
import secrets


logger = logging.getLogger("wishlist.share_token")

ADJECTIVES: tuple[str, ...] = (
    "happy", "jolly", "merry", "festive", "snowy", "cozy", "sparkly", "magical",
    "frosty", "cheerful", "bright", "golden", "silver", "twinkling", "peaceful",
    "joyful", "warm", "gentle", "dancing", "glowing", "sweet", "lovely",
)
NOUNS: tuple[str, ...] = (
    "snowflake", "reindeer", "penguin", "snowman", "candy", "sleigh", "star",
    "angel", "bell", "candle", "cookie", "gift", "ribbon", "wreath", "mitten",
    "stocking", "elf", "carol", "tinsel", "gingerbread", "cocoa", "fireplace",
)
NUMBER_RANGE = 100

TOKEN_PATTERN = re.compile(r"^(?P<adjective>[a-z]+)-(?P<noun>[a-z]+)-(?P<number>\d{1,2})$")


class ShareTokenExhausted(RuntimeError):
    """No free token was found; the namespace is too small for the data set."""


def is_well_formed(token: str) -> bool:
    match = TOKEN_PATTERN.match(token or "")
    if not match:
        return False
    return (
        match.group("adjective") in ADJECTIVES
        and match.group("noun") in NOUNS
        and 0 <= int(match.group("number")) < NUMBER_RANGE
    )


class ShareTokenGenerator:
    def __init__(
        self,
        *,
        max_attempts: int = 1000,
        rng: random.Random | None = None,
        adjectives: tuple[str, ...] = ADJECTIVES,
        nouns: tuple[str, ...] = NOUNS,
    ) -> None:
        self.max_attempts = max(1, max_attempts)
        self._rng = rng or secrets.SystemRandom()
        self._adjectives = adjectives
        self._nouns = nouns

    @property
    def capacity(self) -> int:
        return len(self._adjectives) * len(self._nouns) * NUMBER_RANGE

    def generate(self) -> str:
        adjective = self._rng.choice(self._adjectives)
        noun = self._rng.choice(self._nouns)
        number = self._rng.randrange(NUMBER_RANGE)
        return f"{adjective}-{noun}-{number}"

    async def generate_unique(self, is_taken: Callable[[str], Awaitable[bool]]) -> str:
        """Draw tokens until ``is_taken`` reports a free one.

        Raises ShareTokenExhausted after ``max_attempts`` collisions in a row.
        """
        for attempt in range(1, self.max_attempts + 1):
            token = self.generate()
            if not await is_taken(token):
                if attempt > 1:
                    logger.info("Share token found after %d attempts", attempt)
                return token
            logger.debug("Share token collision token=%s attempt=%d", token, attempt)

        logger.error(
            "Share token namespace exhausted attempts=%d capacity=%d",
            self.max_attempts,
            self.capacity,
        )
        raise ShareTokenExhausted(
            f"No free share token after {self.max_attempts} attempts"
        )
