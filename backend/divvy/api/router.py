"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from divvy.api.routes import budget, expenses, balances, fx_rates

api_router = APIRouter()

# Include all route modules
api_router.include_router(budget.router)
api_router.include_router(expenses.router)
api_router.include_router(balances.router)
api_router.include_router(fx_rates.router)
