"""Tests for netquality.quality -- stage orchestration, classification, and results."""

import asyncio
import collections
import dataclasses
import unittest
from unittest import mock

from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase

from netquality.config import TestConfiguration
from netquality.errors import (
    AllSamplesFailed,
    ConfigurationError,
    StageError,
    TestCancelled,
)
from netquality.latency import LatencySampler
from netquality.quality import (
    QualityResult,
    QualityTester,
    classify_responsiveness,
    create_session,
    run_quality_test,
)

MEGABYTE_BODY = b"\0" * 1_000_000
UNREACHABLE = "http://127.0.0.1:1/nothing"


class TestClassifyResponsiveness(unittest.TestCase):
    def test_boundaries(self):
        self.assertEqual(classify_responsiveness(199), "High")
        self.assertEqual(classify_responsiveness(200), "Medium")
        self.assertEqual(classify_responsiveness(999), "Medium")
        self.assertEqual(classify_responsiveness(1000), "Low")

    def test_extremes(self):
        self.assertEqual(classify_responsiveness(0), "High")
        self.assertEqual(classify_responsiveness(60_000), "Low")


class TestQualityResult(unittest.TestCase):
    def _result(self):
        return QualityResult(
            downlink_mbps=94.123,
            uplink_mbps=12.5,
            idle_latency_ms=18.0,
            loaded_latency_ms=240.0,
            responsiveness="Medium",
        )

    def test_immutable(self):
        with self.assertRaises(dataclasses.FrozenInstanceError):
            self._result().downlink_mbps = 1.0

    def test_responsiveness_ms_alias(self):
        self.assertEqual(self._result().responsiveness_ms, 240.0)

    def test_to_dict(self):
        d = self._result().to_dict()
        self.assertEqual(d["downlink_mbps"], 94.123)
        self.assertEqual(d["responsiveness"], "Medium")
        self.assertEqual(d["responsiveness_ms"], 240.0)

    def test_format_summary(self):
        text = self._result().format_summary()
        self.assertIn("Uplink capacity: 12.500 Mbps", text)
        self.assertIn("Downlink capacity: 94.123 Mbps", text)
        self.assertIn("Responsiveness: Medium (240.000 milliseconds)", text)
        self.assertIn("Idle Latency: 18.000 milliseconds", text)


class TestConfigurationErrors(unittest.IsolatedAsyncioTestCase):
    async def test_non_positive_duration_makes_no_network_call(self):
        for duration in (0, -5):
            factory = mock.MagicMock()
            with self.assertRaises(ConfigurationError):
                await run_quality_test(TestConfiguration(test_duration=duration), session_factory=factory)
            factory.assert_not_called()

    async def test_empty_download_endpoints(self):
        factory = mock.MagicMock()
        with self.assertRaises(ConfigurationError):
            await run_quality_test(TestConfiguration(download_endpoints=()), session_factory=factory)
        factory.assert_not_called()


class _QualityServerTestCase(AioHTTPTestCase):
    download_delay = 0.02

    async def get_application(self):
        self.hits = collections.Counter()
        self.stages = []

        app = web.Application(client_max_size=4 * 1024 * 1024)
        app.router.add_get("/big", self._big)
        app.router.add_get("/probe", self._probe)
        app.router.add_post("/up", self._up)
        return app

    async def _big(self, request):
        self.hits["big"] += 1
        await asyncio.sleep(self.download_delay)
        return web.Response(body=MEGABYTE_BODY)

    async def _probe(self, request):
        self.hits["probe"] += 1
        return web.Response(status=204)

    async def _up(self, request):
        await request.read()
        self.hits["up"] += 1
        return web.Response(text="ok")

    def url(self, path):
        return str(self.server.make_url(path))

    def config(self, **changes):
        base = TestConfiguration(
            test_duration=0.4,
            download_endpoints=(self.url("/big"), self.url("/probe")),
            upload_endpoints=(self.url("/up"),),
            upload_chunk_size=16 * 1024,
            connection_count=2,
        )
        return base.replace(**changes)

    def _tester(self, config):
        tester = QualityTester(
            config,
            latency_sampler=LatencySampler(probe_count=3, interval=0),
            loaded_latency_delay=0.1,
        )
        tester.on_stage = self.stages.append
        return tester


class TestQualityTester(_QualityServerTestCase):
    async def test_full_run(self):
        result = await self._tester(self.config()).run()

        self.assertIsInstance(result, QualityResult)
        self.assertGreater(result.downlink_mbps, 0)
        self.assertGreater(result.uplink_mbps, 0)
        self.assertGreaterEqual(result.idle_latency_ms, 0)
        self.assertEqual(result.idle_latency_ms, float(int(result.idle_latency_ms)))
        self.assertEqual(result.responsiveness, classify_responsiveness(result.loaded_latency_ms))
        self.assertEqual(result.downlink_mbps, round(result.downlink_mbps, 3))
        # idle + loaded samples
        self.assertEqual(self.hits["probe"], 6)
        self.assertEqual(self.stages, ["idle-latency", "download", "upload"])

    async def test_latency_probe_falls_back_to_download_url(self):
        config = self.config(download_endpoints=(self.url("/big"),))
        await self._tester(config).run()
        self.assertEqual(self.hits["probe"], 0)

    async def test_empty_upload_endpoints_fail_upload_stage(self):
        with self.assertRaises(StageError) as ctx:
            await self._tester(self.config(upload_endpoints=())).run()

        err = ctx.exception
        self.assertEqual(err.stage, "upload")
        self.assertIsInstance(err.cause, ConfigurationError)
        self.assertIs(err.__cause__, err.cause)
        self.assertIn("failed to measure upload", str(err))
        # idle latency and download already ran
        self.assertEqual(self.hits["probe"], 6)
        self.assertGreater(self.hits["big"], 0)

    async def test_idle_latency_failure_aborts_before_download(self):
        config = self.config(download_endpoints=(self.url("/big"), UNREACHABLE))
        with self.assertRaises(StageError) as ctx:
            await self._tester(config).run()

        self.assertEqual(ctx.exception.stage, "idle-latency")
        self.assertIsInstance(ctx.exception.cause, AllSamplesFailed)
        self.assertEqual(self.hits["big"], 0)
        self.assertEqual(self.hits["up"], 0)
        self.assertEqual(self.stages, ["idle-latency"])

    async def test_zero_download_throughput_is_not_an_error(self):
        # every bulk download fails, probes and uploads work
        config = self.config(download_endpoints=(UNREACHABLE, self.url("/probe")))
        result = await self._tester(config).run()
        self.assertEqual(result.downlink_mbps, 0.0)
        self.assertGreater(result.uplink_mbps, 0)

    async def test_cancelled_before_start(self):
        cancel = asyncio.Event()
        cancel.set()
        with self.assertRaises(StageError) as ctx:
            await self._tester(self.config()).run(cancel)
        self.assertEqual(ctx.exception.stage, "idle-latency")
        self.assertIsInstance(ctx.exception.cause, TestCancelled)
        self.assertEqual(sum(self.hits.values()), 0)

    async def test_cancelled_during_download(self):
        cancel = asyncio.Event()

        async def _cancel_soon():
            while self.hits["big"] == 0:
                await asyncio.sleep(0.01)
            cancel.set()

        canceller = asyncio.create_task(_cancel_soon())
        with self.assertRaises(StageError) as ctx:
            await self._tester(self.config(test_duration=10.0)).run(cancel)
        await canceller

        self.assertEqual(ctx.exception.stage, "download")
        self.assertIsInstance(ctx.exception.cause, TestCancelled)
        self.assertEqual(self.hits["up"], 0)

    async def test_default_session_factory(self):
        config = self.config()
        session = create_session(config)
        try:
            self.assertEqual(session.connector.limit, config.connection_count + 1)
        finally:
            await session.close()


class TestEndToEndDownlink(_QualityServerTestCase):
    download_delay = 0.1

    async def test_one_connection_one_second(self):
        config = self.config(test_duration=1.0, connection_count=1)
        result = await self._tester(config).run()

        # every completed request moved 1,000,000 bytes = 8 megabits
        megabits = self.hits["big"] * 8
        self.assertGreater(self.hits["big"], 0)
        self.assertLessEqual(result.downlink_mbps, megabits / 1.0 + 0.001)
        self.assertGreaterEqual(result.downlink_mbps, megabits / 1.5)


if __name__ == "__main__":
    unittest.main()
