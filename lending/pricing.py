"""
pricing.py - Oracle reads and cross-asset exchange ratios

PriceNormalizer is the only place that talks to PriceFeed collaborators. Every
read is validated (positive, fresh) and normalized to 18-decimal fixed point
before it reaches the risk calculations, so a broken feed surfaces as a hard
StaleOrInvalidPriceData failure rather than a fallback value.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Callable

from .core import PriceFeed, PriceQuote, InvalidPrice, StalePrice, DivisionByZero
from .fixed_point import to_scale18, scaled_ratio


class PriceNormalizer:
    """
    Reads oracle quotes against a clock and a maximum tolerated age.

    Args:
        clock: Returns the current time (the pool's logical clock).
        stale_time: Quotes older than this are rejected.
    """

    def __init__(self, clock: Callable[[], datetime], stale_time: timedelta):
        self._clock = clock
        self.stale_time = stale_time

    def quote(self, feed: PriceFeed) -> PriceQuote:
        """
        Read and validate the latest quote from `feed`.

        Raises:
            InvalidPrice: if the reported price is not positive.
            StalePrice: if now - updated_at exceeds the stale window.
        """
        price, updated_at = feed.latest_quote()
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            raise InvalidPrice(f"oracle returned invalid price {price!r}")
        if self._clock() - updated_at > self.stale_time:
            raise StalePrice(
                f"quote from {updated_at} is older than {self.stale_time} at {self._clock()}"
            )
        return PriceQuote(value=price, decimals=feed.decimals(), updated_at=updated_at)

    def price18(self, feed: PriceFeed) -> int:
        """Latest validated price at 18-decimal scale."""
        q = self.quote(feed)
        return to_scale18(q.value, q.decimals)

    def ratio(self, feed_from: PriceFeed, feed_to: PriceFeed) -> int:
        """
        How many units of the `to` asset one unit of the `from` asset is worth (18 decimals).

        Raises:
            DivisionByZero: if the `to` price normalizes to zero.
        """
        from18 = self.price18(feed_from)
        to18 = self.price18(feed_to)
        if to18 == 0:
            raise DivisionByZero("target price normalizes to zero")
        return scaled_ratio(from18, to18)
