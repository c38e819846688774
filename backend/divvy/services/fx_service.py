"""
Foreign exchange service for currency normalization.
"""
import asyncio
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Optional, Protocol
from sqlalchemy.orm import Session, sessionmaker
import httpx
import logging
from divvy.core.config import settings
from divvy.core.errors import InvalidAmountError, RateRefreshError
from divvy.models.exchange_rate import ExchangeRate
from divvy.services.snapshot import RateTable

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def round_cents(value: Decimal) -> Decimal:
    """Round to 2 decimal places, halves away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def validate_amount(amount, expense_id=None) -> Decimal:
    """
    Coerce an amount to Decimal and reject anything that must not be summed.
    NaN, infinities, zero and negatives raise InvalidAmountError.
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(amount, expense_id)
    if not value.is_finite() or value <= 0:
        raise InvalidAmountError(amount, expense_id)
    return value


def _usable_rate(rate: Optional[Decimal]) -> bool:
    return rate is not None and rate.is_finite() and rate > 0


def normalize(
    amount,
    source_currency: str,
    display_currency: str,
    rates: Optional[RateTable]
) -> Decimal:
    """
    Convert an amount into the display currency.

    Rates are quoted against the table's base (1 base = rate X), so conversion
    goes source -> base -> display. The result is rounded once to cents.

    With no rate table, or when either side has no usable rate, the amount is
    returned unconverted (still rounded to cents) so the caller can show
    something; totals may then mix currencies.

    Raises:
        InvalidAmountError: amount is NaN, infinite, zero or negative
    """
    value = validate_amount(amount)

    if not rates:
        logger.debug("No exchange rates available, passing amount through unconverted")
        return round_cents(value)

    source = source_currency.upper()
    display = display_currency.upper()
    if source == display:
        return round_cents(value)

    from_rate = rates.get(source)
    to_rate = rates.get(display)
    if not _usable_rate(from_rate):
        logger.warning(f"Missing or invalid exchange rate for {source}, returning original amount")
        return round_cents(value)
    if not _usable_rate(to_rate):
        logger.warning(f"Missing or invalid exchange rate for {display}, returning original amount")
        return round_cents(value)

    return round_cents(value / from_rate * to_rate)


def rebase_rates(rates: Dict[str, float], base: str) -> Dict[str, Decimal]:
    """
    Re-quote a provider table onto `base`.
    Provider rates are "units of X per 1 provider-base"; dividing by the
    provider's rate for `base` gives "units of X per 1 base".
    """
    base_upper = base.upper()
    base_rate = rates.get(base_upper)
    if base_rate is None:
        raise RateRefreshError(f"{base_upper} not found in provider rates")
    try:
        pivot = Decimal(str(base_rate))
    except InvalidOperation:
        raise RateRefreshError(f"Invalid provider rate for {base_upper}: {base_rate}")
    if not pivot.is_finite() or pivot <= 0:
        raise RateRefreshError(f"Invalid provider rate for {base_upper}: {pivot}")

    rebased = {}
    for code, rate in rates.items():
        try:
            value = Decimal(str(rate))
        except InvalidOperation:
            value = Decimal("NaN")
        if not value.is_finite() or value <= 0:
            logger.warning(f"Skipping invalid provider rate {code}={rate}")
            continue
        rebased[code.upper()] = value / pivot
    rebased[base_upper] = Decimal(1)
    return rebased


async def fetch_latest_rates(
    client: Optional[httpx.AsyncClient] = None,
    api_key: Optional[str] = None,
    base: Optional[str] = None
) -> Dict[str, Decimal]:
    """
    Fetch the latest rates from the provider and re-base them.

    The provider (exchangeratesapi.io style) answers
    {"success": true, "base": "EUR", "rates": {"USD": 1.08, ...}}.

    Raises:
        RateRefreshError: missing key, HTTP failure, or unusable payload
    """
    key = api_key if api_key is not None else settings.FX_API_KEY
    base_currency = (base or settings.FX_BASE_CURRENCY).upper()
    if not key:
        logger.error("FX_API_KEY is not configured. Please set it in .env file.")
        raise RateRefreshError("FX_API_KEY is required to refresh exchange rates")

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=settings.FX_TIMEOUT_SECONDS)

    try:
        logger.info("Fetching latest exchange rates")
        response = await client.get(settings.FX_API_URL, params={"access_key": key})
        response.raise_for_status()
        data = response.json()

        if settings.DEBUG:
            logger.debug(f"Exchange rate response: {data}")

        if not data.get("success"):
            error = data.get("error") or {}
            error_type = error.get("type", "Unknown error") if isinstance(error, dict) else str(error)
            logger.error(f"Exchange rate provider returned error: {error_type}")
            raise RateRefreshError(f"Exchange rate provider error: {error_type}")

        rates = data.get("rates") or {}
        if not rates:
            raise RateRefreshError("Exchange rate provider returned no rates")

        rebased = rebase_rates(rates, base_currency)
        logger.info(f"Fetched {len(rebased)} exchange rates quoted in {base_currency}")
        return rebased

    except httpx.HTTPStatusError as e:
        logger.error(f"HTTP error from exchange rate provider: {e.response.status_code} - {e.response.text}")
        raise RateRefreshError(f"Exchange rate provider HTTP error: {e.response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"Network error from exchange rate provider: {e}")
        raise RateRefreshError(f"Exchange rate provider network error: {e}")
    except ValueError as e:
        # Malformed JSON body
        logger.error(f"Unreadable exchange rate payload: {e}")
        raise RateRefreshError("Exchange rate provider returned an unreadable payload")
    finally:
        if owns_client:
            await client.aclose()


def hours_since(updated_at: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Whole hours elapsed since `updated_at`, or None when it is unknown."""
    if updated_at is None:
        return None
    now = now or datetime.utcnow()
    return int((now - updated_at).total_seconds() // 3600)


class RateSource(Protocol):
    """Contract of the exchange rate collaborator."""

    def get_cached_rates(self) -> RateTable:
        ...

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        ...

    async def refresh(self) -> RateTable:
        ...


class DatabaseRateSource:
    """Rate source backed by the exchange_rates table and a remote provider."""

    def __init__(
        self,
        session_factory: sessionmaker,
        client: Optional[httpx.AsyncClient] = None,
        base: Optional[str] = None,
        stale_hours: Optional[int] = None
    ):
        self.session_factory = session_factory
        self.client = client
        self.base = (base or settings.FX_BASE_CURRENCY).upper()
        self.stale_hours = stale_hours if stale_hours is not None else settings.FX_STALE_HOURS

    def get_cached_rates(self) -> RateTable:
        """Load the stored rates as an immutable table."""
        db: Session = self.session_factory()
        try:
            rows = db.query(ExchangeRate).filter(ExchangeRate.from_currency == self.base).all()
        finally:
            db.close()

        rates = {row.to_currency.upper(): Decimal(str(row.rate)) for row in rows}
        updated_at = max((row.fetched_at for row in rows), default=None)
        return RateTable(rates=rates, base=self.base, updated_at=updated_at)

    def hours_since_update(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole hours since the last refresh, or None if nothing is stored."""
        return hours_since(self.get_cached_rates().updated_at, now)

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        """True when no rates are stored or the newest is older than the threshold."""
        return self.table_is_stale(self.get_cached_rates(), now)

    def table_is_stale(self, table: RateTable, now: Optional[datetime] = None) -> bool:
        hours = hours_since(table.updated_at, now)
        return hours is None or hours >= self.stale_hours

    def save_rates(self, rates: Dict[str, Decimal], fetched_at: Optional[datetime] = None) -> None:
        """Upsert one row per currency."""
        fetched_at = fetched_at or datetime.utcnow()
        db: Session = self.session_factory()
        try:
            existing = {
                row.to_currency: row
                for row in db.query(ExchangeRate).filter(ExchangeRate.from_currency == self.base).all()
            }
            for code, rate in rates.items():
                row = existing.get(code)
                if row:
                    row.rate = rate
                    row.fetched_at = fetched_at
                else:
                    db.add(ExchangeRate(
                        from_currency=self.base,
                        to_currency=code,
                        rate=rate,
                        fetched_at=fetched_at
                    ))
            db.commit()
            logger.info(f"Saved {len(rates)} exchange rates")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def refresh(self) -> RateTable:
        """
        Fetch fresh rates, store them, and return the new table.

        Raises:
            RateRefreshError: the provider could not be used
        """
        rates = await fetch_latest_rates(self.client, base=self.base)
        # Session work stays off the event loop
        await asyncio.to_thread(self.save_rates, rates)
        return await asyncio.to_thread(self.get_cached_rates)


async def refresh_rates_quietly(rate_source: RateSource) -> Optional[RateTable]:
    """Refresh for fire-and-forget callers: failures are logged, never raised."""
    try:
        return await rate_source.refresh()
    except Exception as e:
        logger.error(f"Failed to update exchange rates: {e}")
        return None
