"""
Balance routes: open amounts with each housemate.
"""
from fastapi import APIRouter, Depends
from divvy.api.dependencies import get_dashboard
from divvy.schemas.settlement import BalanceItem, BalanceSummaryResponse, TransferItem
from divvy.services.dashboard_service import DashboardSession
from divvy.services.settlement_service import suggest_settle_up, summarize_balances

router = APIRouter(prefix="/balances", tags=["balances"])


@router.get("", response_model=BalanceSummaryResponse)
async def get_balances(dashboard: DashboardSession = Depends(get_dashboard)):
    """What the user owes and is owed since the last settle-up with each person."""
    balances = dashboard.balances()
    totals = summarize_balances(balances)
    transfers = suggest_settle_up(balances, dashboard.user_id)
    
    return BalanceSummaryResponse(
        display_currency=dashboard.display_currency,
        you_owe=totals["you_owe"],
        youre_owed=totals["youre_owed"],
        net=totals["net"],
        balances=[
            BalanceItem(user_id=other, amount=amount)
            for other, amount in sorted(balances.items())
        ],
        transfers=[
            TransferItem(from_user_id=t.from_user_id, to_user_id=t.to_user_id, amount=t.amount)
            for t in transfers
        ]
    )
