"""
Utility functions for the application.
"""
from decimal import Decimal

# Currency symbols used when formatting amounts for display
CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "INR": "₹",
    "CAD": "C$",
    "AUD": "A$",
    "CHF": "CHF",
    "MXN": "MX$",
    "BRL": "R$",
    "KRW": "₩",
    "RUB": "₽",
}


def format_currency_amount(amount: Decimal, currency: str) -> str:
    """
    Format an amount with its currency symbol.
    Whole amounts drop the decimals ("$12"), others keep two places ("$12.50").
    Unknown currencies fall back to the code itself as the prefix.
    """
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())
    value = Decimal(amount)
    if value == value.to_integral_value():
        text = f"{value:.0f}"
    else:
        text = f"{value:.2f}"
    return f"{symbol}{text}"
