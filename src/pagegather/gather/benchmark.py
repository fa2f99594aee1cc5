"""One-shot host benchmark used to normalize timing-sensitive metrics."""

from __future__ import annotations

import logging
import math

from pagegather.driver.base import ExecutionContextLike
from pagegather.exceptions import ProtocolError
from pagegather.timing import TimingLog

logger = logging.getLogger(__name__)

# Two ~500ms loops in the page: one dominated by string allocation (and so by
# GC), one by array copies with no allocation. The index is the mean of their
# iterations-per-second.
COMPUTE_BENCHMARK_INDEX_JS = """
function computeBenchmarkIndex() {
  function benchmarkIndexGC() {
    const start = Date.now();
    let iterations = 0;
    while (Date.now() - start < 500) {
      let s = '';
      for (let j = 0; j < 10000; j++) s += 'a';
      iterations++;
    }
    const durationInSeconds = (Date.now() - start) / 1000;
    return Math.round(iterations / durationInSeconds);
  }

  function benchmarkIndexNoGC() {
    const arrA = [];
    const arrB = [];
    for (let i = 0; i < 100000; i++) arrA[i] = arrB[i] = i;

    const start = Date.now();
    let iterations = 0;
    while (iterations % 10 !== 0 || Date.now() - start < 500) {
      const src = iterations % 2 === 0 ? arrA : arrB;
      const tgt = iterations % 2 === 0 ? arrB : arrA;
      for (let j = 0; j < src.length; j++) tgt[j] = src[j];
      iterations++;
    }
    const durationInSeconds = (Date.now() - start) / 1000;
    return Math.round(iterations / durationInSeconds);
  }

  return (benchmarkIndexGC() + benchmarkIndexNoGC()) / 2;
}
"""


async def get_benchmark_index(
    execution_context: ExecutionContextLike,
    timing: TimingLog | None = None,
) -> float:
    """Run the in-page benchmark and return its index.

    Raises:
        ProtocolError: The page returned something other than a finite number.
    """
    timing = timing or TimingLog()
    with timing.measure("pagegather:gather:getBenchmarkIndex", "Benchmarking machine"):
        value = await execution_context.evaluate(COMPUTE_BENCHMARK_INDEX_JS)

    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ProtocolError("Runtime.evaluate", f"benchmark index is not a number: {value!r}")
    logger.debug("Benchmark index: %s", value)
    return float(value)
