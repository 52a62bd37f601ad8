"""
Unit tests for RTT sample statistics.

Both samplers share summarize_samples, so the trim policy is tested once
here.
"""

import pytest


class TestSummarizeSamples:
    """Sort/trim/average policy."""

    def test_empty_returns_none(self):
        from proximity_monitor.sampling.statistics import summarize_samples
        assert summarize_samples([]) is None

    def test_four_samples_trim_extremes(self):
        """[10,20,30,40] averages only 20 and 30."""
        from proximity_monitor.sampling.statistics import summarize_samples

        summary = summarize_samples([40, 10, 30, 20])

        assert summary.avg_ms == pytest.approx(25.0)
        assert summary.min_ms == 10
        assert summary.max_ms == 40
        assert summary.samples == 4
        assert summary.all_ms == (10.0, 20.0, 30.0, 40.0)

    def test_three_samples_not_trimmed(self):
        """[10,20,30] averages all three."""
        from proximity_monitor.sampling.statistics import summarize_samples

        summary = summarize_samples([30, 10, 20])

        assert summary.avg_ms == pytest.approx(20.0)
        assert summary.samples == 3
        assert summary.all_ms == (10.0, 20.0, 30.0)

    def test_single_sample(self):
        from proximity_monitor.sampling.statistics import summarize_samples

        summary = summarize_samples([7.5])

        assert summary.avg_ms == summary.min_ms == summary.max_ms == 7.5
        assert summary.samples == 1

    @pytest.mark.parametrize("samples", [
        [0.1, 0.1, 0.1],
        [0.1] * 10,
        [1.0, 1000.0, 1.0, 1.0, 1.0],
        [3.3, 2.2, 1.1, 9.9, 0.01, 5.5],
    ])
    def test_min_avg_max_ordering(self, samples):
        """min <= avg <= max holds even with float rounding."""
        from proximity_monitor.sampling.statistics import summarize_samples

        summary = summarize_samples(samples)

        assert summary.min_ms <= summary.avg_ms <= summary.max_ms
        assert list(summary.all_ms) == sorted(samples)
        assert len(summary.all_ms) == len(samples)

    def test_outlier_does_not_move_trimmed_average(self):
        """A single spike is excluded from the average but kept in max."""
        from proximity_monitor.sampling.statistics import summarize_samples

        summary = summarize_samples([2.0, 2.0, 2.0, 2.0, 250.0])

        assert summary.avg_ms == pytest.approx(2.0)
        assert summary.max_ms == 250.0

    def test_jitter_passed_through(self):
        from proximity_monitor.sampling.statistics import summarize_samples

        assert summarize_samples([1.0, 2.0], jitter_ms=0.4).jitter_ms == 0.4
        assert summarize_samples([1.0, 2.0]).jitter_ms is None


class TestRTTSummaryDict:
    """Wire shape of RTTSummary."""

    def test_jitter_omitted_when_absent(self):
        from proximity_monitor.sampling.statistics import summarize_samples

        data = summarize_samples([1.0, 2.0, 3.0]).to_dict()

        assert 'jitter_ms' not in data
        assert data['all_ms'] == [1.0, 2.0, 3.0]
        assert data['samples'] == 3

    def test_jitter_included_when_present(self):
        from proximity_monitor.sampling.statistics import summarize_samples

        data = summarize_samples([1.0], jitter_ms=0.2).to_dict()
        assert data['jitter_ms'] == 0.2
