import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio

from core.search import RemoteFetchError
from core.sequencing import SearchSequencer
from factories import make_listing


class TestSearchSequencer:
    def test_tokens_increase(self):
        sequencer = SearchSequencer()
        first = sequencer.issue()
        second = sequencer.issue()
        assert second > first
        assert sequencer.is_current(second)
        assert not sequencer.is_current(first)

    def test_stale_apply_is_ignored(self):
        sequencer = SearchSequencer()
        old = sequencer.issue()
        new = sequencer.issue()
        assert sequencer.apply(new, [make_listing(material_name="new")]) is True
        assert sequencer.apply(old, [make_listing(material_name="old")]) is False
        assert [item.material_name for item in sequencer.results] == ["new"]

    def test_slow_earlier_search_does_not_win(self):
        async def scenario():
            sequencer = SearchSequencer()
            release = asyncio.Event()

            async def slow():
                await release.wait()
                return [make_listing(material_name="slow")]

            async def fast():
                return [make_listing(material_name="fast")]

            first = asyncio.create_task(sequencer.run(slow))
            await asyncio.sleep(0)
            second = await sequencer.run(fast)
            release.set()
            return await first, second, sequencer.results

        first, second, displayed = asyncio.run(scenario())
        assert first is None
        assert [item.material_name for item in second] == ["fast"]
        assert [item.material_name for item in displayed] == ["fast"]

    def test_failure_clears_results(self):
        async def scenario():
            sequencer = SearchSequencer()
            sequencer.results = [make_listing()]

            async def broken():
                raise RemoteFetchError("store unavailable")

            outcome = await sequencer.run(broken)
            return outcome, sequencer.results

        outcome, displayed = asyncio.run(scenario())
        assert outcome == []
        assert displayed == []
