"""
RTT sample statistics shared by both measurement methods.

Policy:
    - Sort successful samples ascending.
    - With 4 or more samples, drop the single lowest and single highest
      before averaging. With fewer, average everything.
    - min/max/all_ms are always untrimmed.
"""

from typing import Iterable, Optional

import numpy as np

from ..interfaces.measurement_result import RTTSummary

# Minimum number of samples before the extremes are trimmed
TRIM_THRESHOLD = 4


def summarize_samples(
    samples_ms: Iterable[float],
    jitter_ms: Optional[float] = None
) -> Optional[RTTSummary]:
    """
    Build an RTTSummary from raw round-trip samples.

    Args:
        samples_ms: Successful round-trip times in milliseconds
        jitter_ms: Optional deviation figure reported by the probe tool

    Returns:
        RTTSummary, or None when there are no samples
    """
    values = np.sort(np.asarray(list(samples_ms), dtype=np.float64))
    if values.size == 0:
        return None

    trimmed = values[1:-1] if values.size >= TRIM_THRESHOLD else values
    min_ms = float(values[0])
    max_ms = float(values[-1])

    # Float summation can land a hair outside [min, max]
    avg_ms = min(max(float(trimmed.mean()), min_ms), max_ms)

    return RTTSummary(
        avg_ms=avg_ms,
        min_ms=min_ms,
        max_ms=max_ms,
        samples=int(values.size),
        all_ms=tuple(float(v) for v in values),
        jitter_ms=jitter_ms,
    )
