"""
Application constants shared across the codebase.
"""
from enum import Enum


class InvestmentSector(str, Enum):
    """Investment sectors tracked by the portfolio."""
    AUTO_DRIVING = "车与智能驾驶"
    AI_COMPUTING = "AI算力"
    MILITARY = "军工"
    ADVANCED_MANUFACTURING = "高端制造"
    ROBOTICS = "机器人"
    NEW_ENERGY = "新能源"


class RiskLevel(str, Enum):
    """Risk level tag."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TransactionType(str, Enum):
    """Transaction side."""
    BUY = "BUY"
    SELL = "SELL"


class ReportType(str, Enum):
    """Report kinds."""
    MORNING = "MORNING"
    CLOSING = "CLOSING"
    ALERT = "ALERT"


class ExportFormat(str, Enum):
    """Report export formats."""
    HTML = "html"
    CSV = "csv"
    JSON = "json"
    TEXT = "text"


SECTORS = [sector.value for sector in InvestmentSector]

# Risk status ordering (escalation only moves right)
STATUS_ORDER = ['safe', 'info', 'warning', 'danger']

# Volatility multipliers per sector (used for report beta)
SECTOR_BETA = {
    InvestmentSector.NEW_ENERGY.value: 1.2,
    InvestmentSector.AI_COMPUTING.value: 1.5,
    InvestmentSector.AUTO_DRIVING.value: 1.3,
}

# Annualized volatility assumed per risk tag (percent)
RISK_LEVEL_VOLATILITY = {
    RiskLevel.HIGH.value: 25.0,
    RiskLevel.MEDIUM.value: 18.0,
    RiskLevel.LOW.value: 12.0,
}

# Report metric assumptions (percent)
RISK_FREE_RATE = 3.0
BENCHMARK_RETURN = 8.0
BENCHMARK_VOLATILITY = 15.0

# Database query limits
DEFAULT_QUERY_LIMIT = 50
MAX_QUERY_LIMIT = 500
RECENT_TRANSACTIONS_LIMIT = 10
