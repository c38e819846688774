"""
Foreign exchange rates routes.
"""
import asyncio
from fastapi import APIRouter, Depends, HTTPException, status
from divvy.api.dependencies import get_rate_source
from divvy.core.errors import RateRefreshError
from divvy.schemas.exchange_rate import RateTableResponse
from divvy.services.fx_service import DatabaseRateSource, hours_since

router = APIRouter(prefix="/fx-rates", tags=["fx-rates"])


def build_rate_response(rate_source: DatabaseRateSource) -> RateTableResponse:
    table = rate_source.get_cached_rates()
    return RateTableResponse(
        base_currency=table.base,
        rates=dict(table.rates),
        updated_at=table.updated_at,
        hours_since_update=hours_since(table.updated_at),
        is_stale=rate_source.table_is_stale(table)
    )


@router.get("", response_model=RateTableResponse)
async def get_rates(rate_source: DatabaseRateSource = Depends(get_rate_source)):
    """Get the cached exchange rate table and its age."""
    return await asyncio.to_thread(build_rate_response, rate_source)


@router.post("/refresh", response_model=RateTableResponse)
async def refresh_rates(rate_source: DatabaseRateSource = Depends(get_rate_source)):
    """Fetch fresh rates from the provider now."""
    try:
        await rate_source.refresh()
    except RateRefreshError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to fetch exchange rates: {str(e)}"
        )
    return await asyncio.to_thread(build_rate_response, rate_source)
