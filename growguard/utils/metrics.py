"""Prometheus metrics exporters."""
from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry

# Create registry
registry = CollectorRegistry()

# ========== RISK METRICS ==========
risk_assessments = Counter(
    'risk_assessments_total',
    'Total number of portfolio risk assessments computed',
    ['risk_level'],
    registry=registry
)

risk_assessment_time = Histogram(
    'risk_assessment_seconds',
    'Portfolio risk assessment time in seconds',
    registry=registry
)

risk_score = Gauge(
    'portfolio_risk_score',
    'Latest weighted risk score per portfolio',
    ['portfolio_id'],
    registry=registry
)

# ========== ALERT METRICS ==========
alerts_raised = Counter(
    'risk_alerts_total',
    'Total stop-loss and take-profit alerts raised',
    ['alert_type'],
    registry=registry
)

rebalance_suggestions = Counter(
    'rebalance_suggestions_total',
    'Total rebalance suggestions generated',
    ['suggestion_type'],
    registry=registry
)

# ========== TRANSACTION METRICS ==========
transactions_recorded = Counter(
    'transactions_recorded_total',
    'Total number of transactions recorded',
    ['type'],
    registry=registry
)

# ========== PORTFOLIO METRICS ==========
portfolio_value = Gauge(
    'portfolio_value_cny',
    'Total portfolio market value in CNY',
    ['portfolio_id'],
    registry=registry
)

# ========== HELPER FUNCTIONS ==========
def record_risk_assessment(portfolio_id: str, risk_level: str, score: float):
    """Record a completed risk assessment."""
    risk_assessments.labels(risk_level=risk_level).inc()
    risk_score.labels(portfolio_id=portfolio_id).set(score)

def record_alert(alert_type: str, count: int = 1):
    """Record raised alerts."""
    if count:
        alerts_raised.labels(alert_type=alert_type).inc(count)

def record_rebalance_suggestion(suggestion_type: str):
    """Record a generated rebalance suggestion."""
    rebalance_suggestions.labels(suggestion_type=suggestion_type).inc()

def record_transaction(transaction_type: str):
    """Record a transaction."""
    transactions_recorded.labels(type=transaction_type).inc()

def update_portfolio_value(portfolio_id: str, value: float):
    """Update current portfolio value metric."""
    portfolio_value.labels(portfolio_id=portfolio_id).set(value)
