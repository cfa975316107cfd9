"""Tests for the generation stream tee."""

import asyncio

import pytest

from docchat.core.errors import GenerationFailure
from docchat.services.streaming import StreamTee


class Source:
    def __init__(self, fragments, error=None):
        self.fragments = fragments
        self.error = error
        self.closed = False

    async def gen(self):
        try:
            for f in self.fragments:
                yield f
            if self.error:
                raise self.error
        finally:
            self.closed = True


async def _read(tee):
    return [f async for f in tee.forward()]


def test_forwards_and_buffers():
    tee = StreamTee(Source(["a", "", "b", "c"]).gen())

    assert asyncio.run(_read(tee)) == ["a", "b", "c"]
    assert tee.text == "abc"
    assert tee.finished is True


def test_single_consumption():
    tee = StreamTee(Source(["a"]).gen())
    asyncio.run(_read(tee))
    with pytest.raises(RuntimeError):
        asyncio.run(_read(tee))


def test_source_errors_become_generation_failure():
    tee = StreamTee(Source(["a"], error=ConnectionError("reset")).gen())

    with pytest.raises(GenerationFailure):
        asyncio.run(_read(tee))
    assert tee.text == "a"
    assert tee.finished is False


def test_closing_forward_closes_source():
    source = Source(["a", "b", "c"])
    tee = StreamTee(source.gen())

    async def take_one():
        forward = tee.forward()
        first = await forward.__anext__()
        await forward.aclose()
        return first

    assert asyncio.run(take_one()) == "a"
    assert source.closed is True
    assert tee.finished is False
