"""
Precious metal reference rates scraped from the IBJA public page.

The page lists per-gram prices in <li> elements. Two are used:
- "Fine Gold (999)"  -> 24K gold
- "22 KT"            -> 22K gold

Gold headlines are quoted per 10 grams. Silver is NOT scraped: it is derived
from the 24K per-gram price with a fixed ratio and quoted per kilogram. It is
an approximation for display only and must not be treated as a live quote.

Results are cached for an interval (one hour by default). When a refresh
fails the previous result is served unchanged; with no previous result a
"N/A" sentinel is returned and not cached, so the next call fetches again.
"""

import logging
import re
import time
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional, Tuple

import requests
from bs4 import BeautifulSoup

from config import DEFAULT_RATES_URL
from schemas import MetalRates

logger = logging.getLogger(__name__)

GOLD_24K_MARKER = "Fine Gold (999)"
GOLD_22K_MARKER = "22 KT"
PRICE_PATTERN = re.compile(r"₹\s*(\d[\d,]*)")

SILVER_TO_GOLD_RATIO = Decimal("0.0126")
CURRENCY_PREFIX = "₹ "
NOT_AVAILABLE = "N/A"


class RateParseError(ValueError):
    """A marker or its price was missing from the page."""


def format_inr(amount: int) -> str:
    """
    Render an integer with Indian digit grouping and the rupee prefix.

    Example:
        format_inr(7245000) -> "₹ 72,45,000"
    """
    digits = str(abs(amount))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    sign = "-" if amount < 0 else ""
    return f"{CURRENCY_PREFIX}{sign}{digits}"


def derive_silver_per_kg(gold_24k_per_gram: int) -> int:
    # Halves round up: 7500 * 0.0126 = 94.5 -> 95
    per_gram = (Decimal(gold_24k_per_gram) * SILVER_TO_GOLD_RATIO).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(per_gram) * 1000


def _price_after_marker(text: str) -> Optional[int]:
    match = PRICE_PATTERN.search(text)
    if not match:
        return None
    return int(match.group(1).replace(",", ""))


def parse_gold_prices(html: str) -> Tuple[int, int]:
    """
    Extract (24K, 22K) per-gram gold prices from the rates page.

    Raises:
        RateParseError: If either price is missing
    """
    soup = BeautifulSoup(html, "lxml")
    gold_24k = gold_22k = None

    for li in soup.select("ul li"):
        text = li.get_text(" ", strip=True)
        if GOLD_24K_MARKER in text:
            gold_24k = _price_after_marker(text) or gold_24k
        elif GOLD_22K_MARKER in text:
            gold_22k = _price_after_marker(text) or gold_22k

    if not gold_24k or not gold_22k:
        raise RateParseError("Could not parse gold rates from page")
    return gold_24k, gold_22k


def parse_rates(html: str, now: Optional[datetime] = None) -> MetalRates:
    gold_24k, gold_22k = parse_gold_prices(html)
    return MetalRates(
        gold_24k=format_inr(gold_24k * 10),
        gold_22k=format_inr(gold_22k * 10),
        silver=format_inr(derive_silver_per_kg(gold_24k)),
        last_updated=now or datetime.now(timezone.utc),
    )


def unavailable_rates() -> MetalRates:
    na = CURRENCY_PREFIX + NOT_AVAILABLE
    return MetalRates(gold_24k=na, gold_22k=na, silver=na, last_updated=datetime.now(timezone.utc))


class RateFetcher:
    """
    Cached rate lookups.

    Concurrent requests that hit an expired cache may each fetch; the last
    write wins, which is harmless for this data.
    """

    def __init__(self, url: str = DEFAULT_RATES_URL, interval: float = 60 * 60,
                 timeout: float = 15, clock: Callable[[], float] = time.monotonic):
        self.url = url
        self.interval = interval
        self.timeout = timeout
        self.clock = clock

        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
        })

        self._cached: Optional[MetalRates] = None
        self._fetched_at: Optional[float] = None

    def fetch(self) -> MetalRates:
        """Fetch and parse the page, bypassing the cache. Raises on any failure."""
        resp = self.session.get(self.url, timeout=self.timeout)
        resp.raise_for_status()
        return parse_rates(resp.text)

    def get_rates(self) -> MetalRates:
        if self._cached is not None and self._fetched_at is not None:
            age = self.clock() - self._fetched_at
            if age < self.interval:
                logger.debug("Serving cached rates (%d minutes old)", age // 60)
                return self._cached

        logger.info("Fetching fresh rates from %s", self.url)
        try:
            rates = self.fetch()
        except (requests.RequestException, RateParseError) as e:
            logger.error("Error fetching rates: %s", e)
            if self._cached is not None:
                logger.warning("Returning stale cached rates")
                return self._cached
            return unavailable_rates()

        self._cached = rates
        self._fetched_at = self.clock()
        logger.info("Rates updated: 24K %s, 22K %s", rates.gold_24k, rates.gold_22k)
        return rates
