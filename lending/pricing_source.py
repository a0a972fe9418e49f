"""
pricing_source.py - In-memory price oracles

Concrete PriceFeed implementations for simulations, demos and tests.

Classes:
- StaticPriceFeed: A single price updated by hand, stamped with the update time
- TimeSeriesPriceFeed: Historical prices replayed against a clock

Both quote raw integers with a fixed number of decimals, the way an on-chain
aggregator does (e.g. 2000.00 USD with 8 decimals is 200_000_000_000).
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple, Union
from bisect import bisect_right


def to_raw_price(price: Union[int, str, Decimal], decimals: int) -> int:
    """
    Convert a human price into the raw integer an oracle would report.

    Example:
        to_raw_price("2000", 8) == 200_000_000_000
    """
    return int(Decimal(str(price)).scaleb(decimals).to_integral_value())


class StaticPriceFeed:
    """
    Price feed with a price that only changes when updated.

    The update time is recorded with each change, so a feed that is not
    refreshed eventually goes stale against the pool's clock.
    """

    def __init__(
        self,
        price: Union[int, str, Decimal],
        decimals: int = 8,
        updated_at: Optional[datetime] = None,
        raw: bool = False,
    ):
        """
        Args:
            price: Human price (e.g. "2000.5"), or a raw integer if raw=True
            decimals: Oracle precision
            updated_at: Time of the initial observation (default: 1970-01-01)
            raw: Treat `price` as already scaled by `decimals`
        """
        self._decimals = decimals
        self._price = int(price) if raw else to_raw_price(price, decimals)
        self.updated_at = updated_at or datetime(1970, 1, 1)

    def latest_quote(self) -> Tuple[int, datetime]:
        return self._price, self.updated_at

    def decimals(self) -> int:
        return self._decimals

    def update_price(self, price: Union[int, str, Decimal], updated_at: datetime, raw: bool = False):
        """Update the price and its observation time."""
        self._price = int(price) if raw else to_raw_price(price, self._decimals)
        self.updated_at = updated_at

    def __repr__(self):
        return f"StaticPriceFeed({self._price} @ {self._decimals}dp, updated={self.updated_at})"


class TimeSeriesPriceFeed:
    """
    Price feed that replays a price history against a clock.

    latest_quote() returns the most recent observation at or before clock(),
    together with that observation's timestamp, so gaps in the history show up
    as stale quotes.

    Example:
        feed = TimeSeriesPriceFeed(
            [(t0, "2000"), (t1, "1800"), (t2, "1000")],
            clock=lambda: pool.current_time,
        )
    """

    def __init__(
        self,
        history: Optional[List[Tuple[datetime, Union[int, str, Decimal]]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        decimals: int = 8,
    ):
        self._decimals = decimals
        self._clock = clock or datetime.now
        self.price_history: List[Tuple[datetime, int]] = []
        for timestamp, price in history or []:
            self.add_price(timestamp, price)

    def add_price(self, timestamp: datetime, price: Union[int, str, Decimal], raw: bool = False):
        """Add an observation, keeping the history in chronological order."""
        value = int(price) if raw else to_raw_price(price, self._decimals)
        self.price_history.append((timestamp, value))
        self.price_history.sort(key=lambda x: x[0])

    def latest_quote(self) -> Tuple[int, datetime]:
        """
        Return the observation in effect at clock().

        Returns (0, datetime.min) when there is no observation yet; the pool
        rejects that as an invalid price.
        """
        timestamps = [ts for ts, _ in self.price_history]
        idx = bisect_right(timestamps, self._clock())
        if idx == 0:
            return 0, datetime.min
        timestamp, price = self.price_history[idx - 1]
        return price, timestamp

    def decimals(self) -> int:
        return self._decimals

    def __repr__(self):
        return f"TimeSeriesPriceFeed({len(self.price_history)} observations, {self._decimals}dp)"
