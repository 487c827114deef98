# batch_runner.py
# Runs the per-ticker metric computation with bounded parallelism
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List

from metric_logic import empty_metric

logger = logging.getLogger(__name__)


def chunked(items: list, size: int) -> List[list]:
    """Splits items into consecutive chunks of at most `size` elements."""
    return [items[i:i + size] for i in range(0, len(items), size)]


def run_all(tickers: List[str], range_key: str, concurrency: int,
            fetch_metric: Callable[[str, str], dict]) -> List[dict]:
    """
    Computes a metric for every ticker, `concurrency` tickers at a time.

    Each chunk runs in parallel and must fully resolve before the next chunk is
    submitted. Output order always matches input order, and a ticker whose
    computation raises is reported with null price and changePercent.

    Args:
        tickers: Ticker symbols in the order they should be returned.
        range_key: Normalized range passed through to fetch_metric.
        concurrency: Maximum number of in-flight computations.
        fetch_metric: Callable(ticker, range_key) -> metric dict.
    """
    if not tickers:
        return []

    size = max(1, int(concurrency))
    results: List[dict] = []

    with ThreadPoolExecutor(max_workers=size) as executor:
        for chunk in chunked(list(tickers), size):
            futures = [executor.submit(fetch_metric, ticker, range_key) for ticker in chunk]
            # Collecting every future before submitting the next chunk is the batch barrier.
            for ticker, future in zip(chunk, futures):
                try:
                    results.append(future.result())
                except Exception as exc:
                    logger.error(f"{ticker} generated an exception: {exc}", exc_info=True)
                    results.append(empty_metric(ticker))

    logger.info(f"Computed {len(results)} metrics for range={range_key} with concurrency={size}")
    return results
