"""Display formatting helpers for reports and exports."""


def format_currency(amount: float, currency: str = "CNY") -> str:
    """Format an amount with thousands separators, prefixed with ¥ for CNY."""
    if currency == "CNY":
        return f"¥{amount:,.2f}"
    return f"{amount:,.2f}"


def format_percentage(value: float, decimals: int = 2) -> str:
    """Format a fraction (0.1234) as a percentage string (12.34%)."""
    return f"{value * 100:.{decimals}f}%"


def format_wan(amount: float) -> str:
    """Format an amount in units of 10,000 (万)."""
    return f"¥{amount / 10000:.1f}万"
