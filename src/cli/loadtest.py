"""Step-load the scrape endpoint and report how it held up.

Fires ``requests`` POSTs of a fixed URL batch at ``/api/scrape`` with at most
``concurrency`` in flight. The endpoint only schedules work, so every request
should come back 202 quickly; the report makes slow or failed acceptances
visible.
"""

import asyncio
import statistics
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Sequence

import httpx

# Accepted failure rate before the run counts as failed
MAX_FAILURE_RATE = 0.01

DEFAULT_LOADTEST_URLS = (
    "https://example.com",
    "https://www.python.org",
    "https://github.com",
)


@dataclass
class LoadTestReport:
    """Status code counts and latencies collected during a load test."""

    status_counts: Counter = field(default_factory=Counter)
    latencies_ms: List[float] = field(default_factory=list)
    errors: Counter = field(default_factory=Counter)

    @property
    def total(self) -> int:
        return sum(self.status_counts.values()) + sum(self.errors.values())

    @property
    def failures(self) -> int:
        return self.total - self.status_counts.get(202, 0)

    @property
    def failure_rate(self) -> float:
        return self.failures / self.total if self.total else 0.0

    @property
    def passed(self) -> bool:
        return self.total > 0 and self.failure_rate < MAX_FAILURE_RATE

    def percentile(self, pct: float) -> float:
        """Latency at ``pct`` (0-100) in milliseconds; 0.0 with no samples."""
        if not self.latencies_ms:
            return 0.0
        if len(self.latencies_ms) == 1:
            return self.latencies_ms[0]
        cuts = statistics.quantiles(self.latencies_ms, n=100, method="inclusive")
        index = min(max(int(round(pct)) - 1, 0), len(cuts) - 1)
        return cuts[index]


async def run_load_test(
    base_url: str,
    requests: int,
    concurrency: int,
    urls: Sequence[str] = DEFAULT_LOADTEST_URLS,
    timeout: float = 30.0,
    client: httpx.AsyncClient | None = None,
) -> LoadTestReport:
    """POST ``urls`` to ``{base_url}/api/scrape`` ``requests`` times."""
    report = LoadTestReport()
    semaphore = asyncio.Semaphore(concurrency)
    endpoint = base_url.rstrip("/") + "/api/scrape"
    payload = list(urls)

    async def one(http: httpx.AsyncClient) -> None:
        async with semaphore:
            start = time.perf_counter()
            try:
                response = await http.post(endpoint, json=payload)
            except httpx.HTTPError as e:
                report.errors[type(e).__name__] += 1
                return
            report.latencies_ms.append((time.perf_counter() - start) * 1000)
            report.status_counts[response.status_code] += 1

    if client is not None:
        await asyncio.gather(*(one(client) for _ in range(requests)))
        return report

    async with httpx.AsyncClient(timeout=timeout) as http:
        await asyncio.gather(*(one(http) for _ in range(requests)))
    return report
