"""
Shared route dependencies.
"""
from fastapi import Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, sessionmaker
from divvy.db.session import SessionLocal, get_db
from divvy.models.user import User
from divvy.services.budget_limit import SqlBudgetStore
from divvy.services.dashboard_service import DashboardSession, SqlLedgerRepository
from divvy.services.fx_service import DatabaseRateSource


def get_session_factory() -> sessionmaker:
    """Session factory for services that open their own sessions."""
    return SessionLocal


def get_rate_source(session_factory: sessionmaker = Depends(get_session_factory)) -> DatabaseRateSource:
    """Exchange rate source backed by the database."""
    return DatabaseRateSource(session_factory)


def get_current_user(
    user_id: int = Query(..., description="User whose budget is being viewed"),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the requesting user. Sign-in is handled outside this service."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


async def get_dashboard(
    current_user: User = Depends(get_current_user),
    session_factory: sessionmaker = Depends(get_session_factory),
    rate_source: DatabaseRateSource = Depends(get_rate_source)
):
    """Dashboard loaded for the current user, closed after the request."""
    dashboard = DashboardSession(
        current_user.id,
        SqlLedgerRepository(session_factory),
        rate_source,
        SqlBudgetStore(session_factory)
    )
    # Stale rates are refreshed by the routes as a background task
    await dashboard.load(refresh_rates=False)
    try:
        yield dashboard
    finally:
        await dashboard.close()
