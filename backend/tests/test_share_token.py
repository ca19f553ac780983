"""
Share token format, uniqueness and exhaustion.
"""
import random

import pytest

from app.core.share_token import (
    ADJECTIVES,
    NOUNS,
    NUMBER_RANGE,
    ShareTokenExhausted,
    ShareTokenGenerator,
    is_well_formed,
)


class TestShareTokenFormat:

    @pytest.mark.anyio
    async def test_thousand_tokens_against_empty_store(self):
        generator = ShareTokenGenerator(rng=random.Random(7))

        async def nothing_taken(token: str) -> bool:
            return False

        for _ in range(1000):
            token = await generator.generate_unique(nothing_taken)
            adjective, noun, number = token.split("-")
            assert adjective in ADJECTIVES
            assert noun in NOUNS
            assert 0 <= int(number) < NUMBER_RANGE
            assert is_well_formed(token)

    def test_capacity_is_product_of_word_lists(self):
        generator = ShareTokenGenerator()
        assert generator.capacity == len(ADJECTIVES) * len(NOUNS) * NUMBER_RANGE

    @pytest.mark.parametrize(
        "token",
        ["", "happy-elf", "happy-elf-100", "grumpy-elf-3", "happy-dragon-3", "Happy-elf-3", "happy-elf-x"],
    )
    def test_malformed_tokens_rejected(self, token):
        assert is_well_formed(token) is False


class TestShareTokenUniqueness:

    @pytest.mark.anyio
    async def test_skips_taken_tokens(self):
        generator = ShareTokenGenerator(
            rng=random.Random(1), adjectives=("merry",), nouns=("elf",)
        )
        taken = {f"merry-elf-{n}" for n in range(NUMBER_RANGE) if n != 42}

        async def is_taken(token: str) -> bool:
            return token in taken

        assert await generator.generate_unique(is_taken) == "merry-elf-42"

    @pytest.mark.anyio
    async def test_raises_when_namespace_exhausted(self):
        generator = ShareTokenGenerator(max_attempts=25, rng=random.Random(3))
        calls = []

        async def always_taken(token: str) -> bool:
            calls.append(token)
            return True

        with pytest.raises(ShareTokenExhausted):
            await generator.generate_unique(always_taken)
        assert len(calls) == 25

    @pytest.mark.anyio
    async def test_first_free_token_returned_without_retry(self):
        generator = ShareTokenGenerator(rng=random.Random(5))
        calls = []

        async def never_taken(token: str) -> bool:
            calls.append(token)
            return False

        token = await generator.generate_unique(never_taken)
        assert calls == [token]
