"""Tests for netquality.latency -- sequential HTTP latency probes."""

import asyncio
import unittest
from unittest import mock

import aiohttp
from aioresponses import aioresponses
from yarl import URL

from netquality.errors import AllSamplesFailed
from netquality.latency import LatencySampler

PROBE_URL = "http://probe.test/generate_204"


def _fail(m, times=1):
    for _ in range(times):
        m.get(PROBE_URL, exception=aiohttp.ClientConnectionError("refused"))


def _ok(m, times=1, status=204):
    for _ in range(times):
        m.get(PROBE_URL, status=status)


class TestLatencySampler(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.sampler = LatencySampler(interval=0)

    def _calls(self, m):
        return len(m.requests.get(("GET", URL(PROBE_URL)), []))

    async def test_all_probes_fail(self):
        with aioresponses() as m:
            _fail(m, times=10)
            async with aiohttp.ClientSession() as session:
                with self.assertRaises(AllSamplesFailed) as ctx:
                    await self.sampler.sample(session, PROBE_URL)
            self.assertEqual(self._calls(m), 10)
        self.assertEqual(ctx.exception.url, PROBE_URL)
        self.assertEqual(ctx.exception.attempts, 10)

    async def test_timeouts_count_as_failures(self):
        with aioresponses() as m:
            m.get(PROBE_URL, exception=asyncio.TimeoutError(), repeat=True)
            async with aiohttp.ClientSession() as session:
                with self.assertRaises(AllSamplesFailed):
                    await self.sampler.sample(session, PROBE_URL)

    async def test_exactly_ten_probes(self):
        with aioresponses() as m:
            _ok(m, times=10)
            async with aiohttp.ClientSession() as session:
                stats = await self.sampler.sample(session, PROBE_URL)
            self.assertEqual(self._calls(m), 10)
        self.assertEqual(stats.attempts, 10)
        self.assertEqual(stats.count, 10)

    async def test_partial_failure_absorbed_into_mean(self):
        with aioresponses() as m:
            _fail(m, times=3)
            _ok(m, times=7)
            async with aiohttp.ClientSession() as session:
                stats = await self.sampler.sample(session, PROBE_URL)
        self.assertEqual(stats.count, 7)
        self.assertEqual(stats.failed, 3)
        self.assertAlmostEqual(stats.mean, sum(stats.samples) / 7)

    async def test_single_success_is_the_result(self):
        with aioresponses() as m:
            _fail(m, times=4)
            _ok(m)
            _fail(m, times=5)
            async with aiohttp.ClientSession() as session:
                stats = await self.sampler.sample(session, PROBE_URL)
        self.assertEqual(stats.count, 1)
        self.assertEqual(stats.latency_ms, float(int(stats.samples[0])))

    async def test_single_success_value_in_whole_ms(self):
        clock = mock.Mock()
        # four failed starts, one success (start, headers), five failed starts
        clock.perf_counter.side_effect = [0.0] * 4 + [2.0, 2.0425] + [0.0] * 5
        with aioresponses() as m, mock.patch("netquality.latency.time", clock):
            _fail(m, times=4)
            _ok(m)
            _fail(m, times=5)
            async with aiohttp.ClientSession() as session:
                latency = await self.sampler.measure(session, PROBE_URL)
        self.assertEqual(latency, 42.0)

    async def test_error_status_still_measures_rtt(self):
        with aioresponses() as m:
            _ok(m, times=10, status=500)
            async with aiohttp.ClientSession() as session:
                stats = await self.sampler.sample(session, PROBE_URL)
        self.assertEqual(stats.count, 10)

    async def test_cancelled_before_start_sends_nothing(self):
        cancel = asyncio.Event()
        cancel.set()
        with aioresponses() as m:
            _ok(m, times=10)
            async with aiohttp.ClientSession() as session:
                with self.assertRaises(AllSamplesFailed):
                    await self.sampler.sample(session, PROBE_URL, cancel)
            self.assertEqual(self._calls(m), 0)

    async def test_cancel_mid_run_reports_probes_sent(self):
        cancel = asyncio.Event()
        sent = []

        async def _failing_probe(session, url):
            sent.append(url)
            if len(sent) == 3:
                cancel.set()
            return None

        with mock.patch.object(self.sampler, "_probe_once", _failing_probe):
            with self.assertRaises(AllSamplesFailed) as ctx:
                await self.sampler.sample(None, PROBE_URL, cancel)
        self.assertEqual(len(sent), 3)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIn("3", str(ctx.exception))

    async def test_custom_probe_count(self):
        sampler = LatencySampler(probe_count=3, interval=0)
        with aioresponses() as m:
            _ok(m, times=10)
            async with aiohttp.ClientSession() as session:
                stats = await sampler.sample(session, PROBE_URL)
            self.assertEqual(self._calls(m), 3)
        self.assertEqual(stats.count, 3)


if __name__ == "__main__":
    unittest.main()
