"""
Tests for the ping-backed RTT sampler and its output parser.
"""

import asyncio

import pytest

from proximity_monitor.interfaces.errors import CommandError


def _runner(output=None, error=None):
    """Fake run_command returning output or raising error; records argv."""
    calls = []

    async def run(argv, timeout):
        calls.append((list(argv), timeout))
        if error is not None:
            raise error
        return output

    run.calls = calls
    return run


class TestParseProbeOutput:

    def test_macos_output(self, macos_ping_output):
        from proximity_monitor.sampling.probe_rtt import parse_probe_output

        times, jitter = parse_probe_output(macos_ping_output)

        assert times == [4.112, 2.871, 3.004, 12.560, 3.120]
        assert jitter == pytest.approx(3.738)

    def test_linux_output(self, linux_ping_output):
        from proximity_monitor.sampling.probe_rtt import parse_probe_output

        times, jitter = parse_probe_output(linux_ping_output)

        assert times == [0.512, 0.488, 0.530]
        assert jitter == pytest.approx(0.017)

    def test_sub_millisecond_marker(self):
        """Windows-style 'time<1ms' lines are still counted."""
        from proximity_monitor.sampling.probe_rtt import parse_probe_output

        times, jitter = parse_probe_output("Reply from 10.0.0.1: bytes=32 time<1ms TTL=64\n")

        assert times == [1.0]
        assert jitter is None

    def test_no_replies(self):
        from proximity_monitor.sampling.probe_rtt import parse_probe_output

        text = (
            "PING 10.9.9.9 (10.9.9.9): 56 data bytes\n"
            "Request timeout for icmp_seq 0\n"
            "--- 10.9.9.9 ping statistics ---\n"
            "2 packets transmitted, 0 packets received, 100.0% packet loss\n"
        )
        times, jitter = parse_probe_output(text)

        assert times == []
        assert jitter is None


class TestProbeRttSampler:

    def test_measure_summarizes_replies(self, macos_ping_output):
        from proximity_monitor.sampling.probe_rtt import ProbeRttSampler

        sampler = ProbeRttSampler(runner=_runner(macos_ping_output))
        summary = asyncio.run(sampler.measure('192.168.1.1', 5))

        # 5 samples -> 2.871 and 12.560 trimmed from the average
        assert summary.samples == 5
        assert summary.avg_ms == pytest.approx((3.004 + 3.120 + 4.112) / 3)
        assert summary.min_ms == 2.871
        assert summary.max_ms == 12.560
        assert summary.jitter_ms == pytest.approx(3.738)

    def test_argv_includes_count_spacing_and_target(self):
        from proximity_monitor.sampling.probe_rtt import ProbeRttSampler

        runner = _runner("")
        sampler = ProbeRttSampler(command='ping', spacing=0.1, timeout=15.0, runner=runner)
        asyncio.run(sampler.measure('10.0.0.1', 10))

        argv, timeout = runner.calls[0]
        assert argv[0] == 'ping'
        assert argv[argv.index('-c') + 1] == '10'
        assert argv[argv.index('-i') + 1] == '0.1'
        assert '-W' in argv
        assert argv[-1] == '10.0.0.1'
        assert timeout == 15.0

    def test_tool_failure_returns_none(self):
        from proximity_monitor.sampling.probe_rtt import ProbeRttSampler

        sampler = ProbeRttSampler(runner=_runner(error=CommandError("ping: not found")))
        assert asyncio.run(sampler.measure('10.0.0.1')) is None

    def test_no_timing_lines_returns_none(self):
        from proximity_monitor.sampling.probe_rtt import ProbeRttSampler

        sampler = ProbeRttSampler(runner=_runner("ping: sendto: No route to host\n"))
        assert asyncio.run(sampler.measure('10.0.0.1')) is None

    def test_partial_loss_still_counts_replies(self, linux_ping_output):
        """A non-zero exit with replies on stdout still yields a summary."""
        from proximity_monitor.sampling.probe_rtt import ProbeRttSampler

        error = CommandError("ping exited with status 1", returncode=1, stdout=linux_ping_output)
        sampler = ProbeRttSampler(runner=_runner(error=error))
        summary = asyncio.run(sampler.measure('10.0.0.1', 3))

        assert summary is not None
        assert summary.samples == 3
