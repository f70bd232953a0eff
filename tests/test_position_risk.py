"""Tests for single-position risk scoring."""

from datetime import timedelta

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from growguard.core.exceptions import DivisionByZeroError, InvalidInputError
from growguard.core.position_risk import PositionRiskScorer, escalate


@pytest.fixture
def scorer():
    return PositionRiskScorer()


class TestReferenceScenario:
    """BYD holding at 185.2 against a 180.5 cost, 14.8% weight, 30 days held."""

    def test_scores(self, scorer, make_position, now):
        position = make_position(
            stock_code="002594",
            stock_name="比亚迪",
            sector="车与智能驾驶",
            avg_cost=180.5,
            current_price=185.2,
            stop_loss=162.45,
            take_profit=216.6,
            weight=0.148,
            risk_level="medium",
            last_update=now - timedelta(days=30),
        )

        risk = scorer.score(position, now)

        assert risk.price_risk.score == 0
        assert risk.price_risk.status == "safe"
        assert risk.concentration_risk.score == 15
        assert risk.volatility_risk.score == 20
        assert risk.holding_days == 30
        assert risk.total_risk_score == pytest.approx(10.5)
        assert risk.risk_level == "low"
        assert risk.recommendations == ["风险可控，保持当前策略"]


class TestPriceRisk:

    def test_at_stop_loss_is_danger(self, scorer, make_position):
        position = make_position(avg_cost=100.0, current_price=90.0, stop_loss=90.0)

        component = scorer.price_risk(position)

        # 40 for touching the stop plus 2 x 10% loss
        assert component.score == pytest.approx(60)
        assert component.status == "danger"

    def test_near_stop_loss_is_warning(self, scorer, make_position):
        position = make_position(avg_cost=100.0, current_price=108.0, stop_loss=100.0)

        component = scorer.price_risk(position)

        assert component.score == pytest.approx(25)
        assert component.status == "warning"

    def test_close_to_take_profit_is_warning(self, scorer, make_position):
        position = make_position(avg_cost=100.0, current_price=119.0, take_profit=120.0)

        component = scorer.price_risk(position)

        assert component.score == pytest.approx(20)
        assert component.status == "warning"

    def test_approaching_take_profit_is_info(self, scorer, make_position):
        position = make_position(avg_cost=100.0, current_price=116.0, take_profit=120.0)

        component = scorer.price_risk(position)

        assert component.score == pytest.approx(20)
        assert component.status == "info"

    def test_loss_is_capped(self, scorer, make_position):
        position = make_position(avg_cost=100.0, current_price=50.0)

        component = scorer.price_risk(position)

        assert component.score == pytest.approx(30)
        assert component.status == "warning"

    @pytest.mark.parametrize("current_price,score,status", [
        (105.0, 40, "danger"),
        (105.5, 25, "warning"),
        (110.0, 25, "warning"),
        (110.5, 0, "safe"),
    ])
    def test_stop_loss_distance_bounds_are_inclusive(self, scorer, make_position, current_price, score, status):
        position = make_position(avg_cost=100.0, current_price=current_price, stop_loss=100.0)

        component = scorer.price_risk(position)

        assert component.score == pytest.approx(score)
        assert component.status == status

    @pytest.mark.parametrize("current_price,score,status", [
        (118.0, 20, "warning"),
        (117.5, 20, "info"),
        (115.0, 20, "info"),
        (114.5, 0, "safe"),
    ])
    def test_take_profit_distance_bounds_are_inclusive(self, scorer, make_position, current_price, score, status):
        position = make_position(avg_cost=100.0, current_price=current_price, take_profit=120.0)

        component = scorer.price_risk(position)

        assert component.score == pytest.approx(score)
        assert component.status == status

    def test_status_never_downgrades(self, scorer, make_position):
        # Danger from the stop, then an info-level take-profit hit
        position = make_position(avg_cost=100.0, current_price=101.0, stop_loss=100.0, take_profit=104.0)

        component = scorer.price_risk(position)

        assert component.status == "danger"
        assert component.score == pytest.approx(60)

    def test_missing_thresholds_are_skipped(self, scorer, make_position):
        position = make_position(avg_cost=100.0, current_price=100.0)

        component = scorer.price_risk(position)

        assert component.score == 0
        assert component.status == "safe"


class TestConcentrationRisk:

    @pytest.mark.parametrize("weight,score,status", [
        (0.30, 50, "danger"),
        (0.25, 30, "warning"),
        (0.20, 30, "warning"),
        (0.15, 15, "info"),
        (0.12, 15, "info"),
        (0.10, 5, "safe"),
        (0.0, 5, "safe"),
    ])
    def test_tiers_use_strict_thresholds(self, scorer, weight, score, status):
        component = scorer.concentration_risk(weight)

        assert component.score == score
        assert component.status == status

    @given(
        a=st.floats(min_value=0, max_value=1, allow_nan=False),
        b=st.floats(min_value=0, max_value=1, allow_nan=False),
    )
    @settings(max_examples=200)
    def test_monotone_in_weight(self, a, b):
        scorer = PositionRiskScorer()
        low, high = sorted((a, b))

        assert scorer.concentration_risk(low).score <= scorer.concentration_risk(high).score


class TestVolatilityRisk:

    def test_short_holding_adds_bonus(self, scorer):
        assert scorer.volatility_risk("high", 5).score == 45

    def test_long_holding_is_discounted(self, scorer):
        assert scorer.volatility_risk("low", 200).score == 5

    def test_boundaries_are_unadjusted(self, scorer):
        assert scorer.volatility_risk("medium", 30).score == 20
        assert scorer.volatility_risk("medium", 180).score == 20

    def test_unknown_tag_falls_back_to_medium(self, scorer):
        component = scorer.volatility_risk("extreme", 100)

        assert component.score == 20
        assert component.status == "warning"

    def test_holding_days_without_timestamps(self, scorer, make_position, now):
        position = make_position(last_update=None, created_at=None)

        assert scorer.holding_days(position, now) == 0


class TestValidation:

    def test_zero_average_cost(self, scorer, make_position):
        with pytest.raises(DivisionByZeroError):
            scorer.score(make_position(avg_cost=0.0))

    def test_negative_average_cost(self, scorer, make_position):
        with pytest.raises(InvalidInputError):
            scorer.score(make_position(avg_cost=-5.0))

    def test_non_positive_price(self, scorer, make_position):
        with pytest.raises(InvalidInputError):
            scorer.score(make_position(current_price=0.0))

    def test_division_error_is_an_input_error(self):
        assert issubclass(DivisionByZeroError, InvalidInputError)
        assert DivisionByZeroError.kind == "DIVISION_BY_ZERO"


class TestScoreRange:

    @given(
        avg_cost=st.floats(min_value=0.01, max_value=5000, allow_nan=False, allow_infinity=False),
        current_price=st.floats(min_value=0.01, max_value=5000, allow_nan=False, allow_infinity=False),
        stop_loss=st.one_of(st.none(), st.floats(min_value=0.01, max_value=5000, allow_nan=False)),
        take_profit=st.one_of(st.none(), st.floats(min_value=0.01, max_value=5000, allow_nan=False)),
        weight=st.floats(min_value=0, max_value=1, allow_nan=False),
        risk_level=st.sampled_from(["low", "medium", "high"]),
        days=st.integers(min_value=0, max_value=2000),
    )
    @settings(max_examples=300, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_total_within_reachable_range(
        self, make_position, now, avg_cost, current_price, stop_loss, take_profit, weight, risk_level, days
    ):
        position = make_position(
            avg_cost=avg_cost,
            current_price=current_price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            weight=weight,
            risk_level=risk_level,
            last_update=now - timedelta(days=days),
        )

        risk = PositionRiskScorer().score(position, now)

        assert 3.0 <= risk.total_risk_score <= 64.5
        assert risk.risk_level in ("low", "medium")

    def test_worst_case_reaches_upper_bound(self, scorer, make_position, now):
        position = make_position(
            avg_cost=100.0,
            current_price=50.0,
            stop_loss=60.0,
            take_profit=51.0,
            weight=0.5,
            risk_level="high",
            last_update=now - timedelta(days=1),
        )

        risk = scorer.score(position, now)

        assert risk.total_risk_score == pytest.approx(64.5)
        assert risk.risk_level == "medium"

    def test_deterministic(self, scorer, make_position, now):
        position = make_position(current_price=93.0, stop_loss=90.0, weight=0.2)

        assert scorer.score(position, now) == scorer.score(position, now)


def test_escalate():
    assert escalate("safe", "warning") == "warning"
    assert escalate("danger", "info") == "danger"
    assert escalate("info", "info") == "info"
