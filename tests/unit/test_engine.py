"""Unit tests for the execution engine."""

import pytest

from metaexchange.core.engine import ExecutionEngine, plan_execution
from metaexchange.core.ledger import BalanceLedger
from metaexchange.core.models import (
    ExecutionPlan,
    InvalidInputError,
    PriceLevel,
    Side,
    VenueBalance,
)
from tests.unit.conftest import VENUE_1, VENUE_2


class RecordingLedger(BalanceLedger):
    """Ledger that remembers every fill applied to it."""

    def __init__(self, balances):
        super().__init__(balances)
        self.applied = []

    def apply_fill(self, venue_id, amount, price, side):
        self.applied.append((venue_id, amount, price))
        return super().apply_fill(venue_id, amount, price, side)


@pytest.fixture
def engine():
    """Create engine."""
    return ExecutionEngine()


class TestBuyScenarios:
    """Buy targets against the two-venue book."""

    def test_unconstrained_buy(self, engine, sorted_asks, ample_balances):
        """Should consume the cheapest levels in full before the next tier."""
        plan = engine.plan(2.0, Side.BUY, sorted_asks, ample_balances)

        assert plan.total_filled == pytest.approx(2.0)
        assert plan.average_price == pytest.approx(3145.0)
        assert plan.venue_ids == [VENUE_1, VENUE_2]

        first, second = plan.venue_fills
        assert first.filled_amount == pytest.approx(0.2)
        assert first.average_price == pytest.approx(3000.0)
        assert first.remaining_base == pytest.approx(100.0)
        assert first.remaining_quote == pytest.approx(29400.0)

        assert second.filled_amount == pytest.approx(1.8)
        assert second.average_price == pytest.approx(3161.111111, abs=1e-6)
        assert second.remaining_base == pytest.approx(100.0)
        assert second.remaining_quote == pytest.approx(54310.0)

    def test_balance_constrained_buy(self, engine, sorted_asks):
        """Should clamp each venue to what its quote balance can pay for."""
        balances = {
            VENUE_1: VenueBalance(base_balance=0.5, quote_balance=3000.0),
            VENUE_2: VenueBalance(base_balance=10.0, quote_balance=4000.0),
        }

        plan = engine.plan(2.0, Side.BUY, sorted_asks, balances)

        assert plan.total_filled == pytest.approx(2.0)
        assert plan.average_price == pytest.approx(3171.40625)
        assert plan.venue_ids == [VENUE_1, VENUE_2]

        first, second = plan.venue_fills
        assert first.filled_amount == pytest.approx(0.728125)
        assert first.average_price == pytest.approx(3217.596567, abs=1e-6)
        assert first.remaining_base == pytest.approx(0.5)
        assert first.remaining_quote == pytest.approx(657.1875)

        assert second.filled_amount == pytest.approx(1.271875)
        assert second.average_price == pytest.approx(3144.963145, abs=1e-6)
        assert second.remaining_base == pytest.approx(10.0)
        assert second.remaining_quote == pytest.approx(0.0, abs=1e-9)
        assert second.remaining_quote >= 0.0

    def test_constrained_buy_fills_less_per_venue(self, engine, sorted_asks, ample_balances):
        """Should shift volume away from the constrained venue."""
        unconstrained = engine.plan(2.0, Side.BUY, sorted_asks, ample_balances)
        constrained = engine.plan(2.0, Side.BUY, sorted_asks, {
            VENUE_1: VenueBalance(0.5, 3000.0),
            VENUE_2: VenueBalance(10.0, 4000.0),
        })

        assert constrained.venue_fills[1].filled_amount < unconstrained.venue_fills[1].filled_amount

    def test_target_exceeds_liquidity(self, engine, sorted_asks, ample_balances):
        """Should return a partial plan rather than no liquidity."""
        plan = engine.plan(10.0, Side.BUY, sorted_asks, ample_balances)

        assert plan is not None
        assert plan.total_filled == pytest.approx(0.2 + 0.62 + 0.7 + 1.2)
        assert plan.total_filled < 10.0
        assert plan.is_partial is True

    def test_target_exceeds_clamped_capacity(self, engine, sorted_asks):
        """Should fill exactly the sum of clamped capacities."""
        balances = {
            VENUE_1: VenueBalance(0.0, 600.0),
            VENUE_2: VenueBalance(0.0, 310.0),
        }

        plan = engine.plan(5.0, Side.BUY, sorted_asks, balances)

        assert plan.total_filled == pytest.approx(0.2 + 0.1)
        assert plan.venue_fills[0].remaining_quote == pytest.approx(0.0, abs=1e-9)
        assert plan.venue_fills[1].remaining_quote == pytest.approx(0.0, abs=1e-9)


class TestSellScenarios:
    """Sell targets against the two-venue book."""

    def test_single_venue_sufficient(self, engine, sorted_bids, ample_balances):
        """Should fill from one venue at that level's price."""
        plan = engine.plan(2.0, Side.SELL, sorted_bids, ample_balances)

        assert plan.total_filled == pytest.approx(2.0)
        assert plan.average_price == pytest.approx(2900.0)
        assert len(plan.venue_fills) == 1

        fill = plan.venue_fills[0]
        assert fill.venue_id == VENUE_1
        assert fill.average_price == pytest.approx(2900.0)
        assert fill.remaining_base == pytest.approx(98.0)
        assert fill.remaining_quote == pytest.approx(30000.0)

    def test_balance_constrained_sell(self, engine, sorted_bids):
        """Should skip a venue once its base balance is exhausted."""
        balances = {
            VENUE_1: VenueBalance(base_balance=1.0, quote_balance=3000.0),
            VENUE_2: VenueBalance(base_balance=2.0, quote_balance=6000.0),
        }

        plan = engine.plan(2.0, Side.SELL, sorted_bids, balances)

        assert plan.total_filled == pytest.approx(2.0)
        assert plan.average_price == pytest.approx(2884.0)

        first, second = plan.venue_fills
        assert first.filled_amount == pytest.approx(1.0)
        assert first.average_price == pytest.approx(2900.0)
        assert first.remaining_base == pytest.approx(0.0)
        assert first.remaining_quote == pytest.approx(3000.0)

        assert second.filled_amount == pytest.approx(1.0)
        assert second.average_price == pytest.approx(2868.0)
        assert second.remaining_base == pytest.approx(1.0)
        assert second.remaining_quote == pytest.approx(6000.0)


class TestNoLiquidity:
    """Tests for the no-liquidity signal."""

    def test_zero_balances(self, engine, sorted_asks):
        """Should return None when every capacity clamps to zero."""
        balances = {VENUE_1: VenueBalance(0.0, 0.0), VENUE_2: VenueBalance(0.0, 0.0)}

        assert engine.plan(1.0, Side.BUY, sorted_asks, balances) is None

    def test_no_levels(self, engine, ample_balances):
        """Should return None for an empty book."""
        assert engine.plan(1.0, Side.SELL, [], ample_balances) is None

    def test_all_venues_unknown(self, engine, sorted_bids):
        """Should treat unknown venues as zero capacity."""
        assert engine.plan(1.0, Side.SELL, sorted_bids, {}) is None


class TestEdgeCases:
    """Tests for level skipping rules."""

    def test_unknown_venue_skipped(self, engine):
        """Should skip levels from venues missing in the balances."""
        levels = [
            PriceLevel("ghost", 100.0, 5.0),
            PriceLevel("real", 110.0, 5.0),
        ]
        plan = engine.plan(1.0, Side.BUY, levels, {"real": VenueBalance(0.0, 1000.0)})

        assert plan.venue_ids == ["real"]
        assert plan.average_price == pytest.approx(110.0)

    def test_exact_fill_does_not_spill_to_next_venue(self, engine):
        """Should stop once float leftovers of an exact fill remain."""
        levels = [
            PriceLevel("a", 100.0, 0.7),
            PriceLevel("a", 101.0, 0.3),
            PriceLevel("b", 102.0, 5.0),
        ]
        balances = {"a": VenueBalance(0.0, 1e6), "b": VenueBalance(0.0, 1e6)}

        plan = engine.plan(1.0, Side.BUY, levels, balances)

        assert plan.venue_ids == ["a"]
        assert plan.total_filled == pytest.approx(1.0)
        assert plan.average_price == pytest.approx(100.3)

    def test_non_positive_amount_skipped(self, engine):
        """Should skip a zero-size level without failing."""
        levels = [PriceLevel("a", 100.0, 0.0), PriceLevel("a", 101.0, 1.0)]
        plan = engine.plan(1.0, Side.BUY, levels, {"a": VenueBalance(0.0, 1000.0)})

        assert plan.average_price == pytest.approx(101.0)

    def test_capacity_drops_across_levels(self, engine):
        """Should see the balance left by earlier fills of the same venue."""
        levels = [PriceLevel("a", 100.0, 1.0), PriceLevel("a", 100.0, 1.0)]
        plan = engine.plan(2.0, Side.SELL, levels, {"a": VenueBalance(1.5, 0.0)})

        assert plan.total_filled == pytest.approx(1.5)
        assert plan.venue_fills[0].remaining_base == pytest.approx(0.0)

    def test_stops_when_target_reached(self, engine):
        """Should not touch levels once the target is met."""
        ledger = RecordingLedger({"a": VenueBalance(10.0, 0.0), "b": VenueBalance(10.0, 0.0)})
        levels = [PriceLevel("a", 100.0, 1.0), PriceLevel("b", 99.0, 1.0)]

        plan = engine.plan(1.0, Side.SELL, levels, ledger)

        assert plan.venue_ids == ["a"]
        assert len(ledger.applied) == 1

    def test_snapshot_not_mutated(self, engine, sorted_asks, ample_balances):
        """Should work on a private copy of the balances."""
        engine.plan(2.0, Side.BUY, sorted_asks, ample_balances)

        assert ample_balances[VENUE_1].quote_balance == 30000.0
        assert ample_balances[VENUE_2].quote_balance == 60000.0

    def test_repeat_runs_identical(self, engine, sorted_asks, ample_balances):
        """Should give the same plan for the same inputs."""
        first = engine.plan(1.5, Side.BUY, sorted_asks, ample_balances)
        second = engine.plan(1.5, Side.BUY, sorted_asks, ample_balances)

        assert first == second

    def test_accepts_string_side(self, engine, sorted_bids, ample_balances):
        """Should parse side names."""
        plan = engine.plan(1.0, "Sell", sorted_bids, ample_balances)

        assert plan.side == Side.SELL


class TestInvalidInput:
    """Tests for rejected requests."""

    @pytest.mark.parametrize("target", [0, -1.0, float("nan"), float("inf"), "2", None, True])
    def test_bad_target(self, engine, sorted_asks, ample_balances, target):
        """Should reject non-positive or non-numeric targets."""
        with pytest.raises(InvalidInputError):
            engine.plan(target, Side.BUY, sorted_asks, ample_balances)

    def test_unknown_side(self, engine, sorted_asks, ample_balances):
        """Should reject unknown sides."""
        with pytest.raises(InvalidInputError, match="Unknown side"):
            engine.plan(1.0, "hold", sorted_asks, ample_balances)

    def test_malformed_level(self, engine, ample_balances):
        """Should reject a level with a non-positive price."""
        with pytest.raises(InvalidInputError, match="Invalid level 0"):
            engine.plan(1.0, Side.BUY, [PriceLevel(VENUE_1, -5.0, 1.0)], ample_balances)

    def test_non_level_entry(self, engine, ample_balances):
        """Should reject entries that are not price levels."""
        with pytest.raises(InvalidInputError):
            engine.plan(1.0, Side.BUY, [(VENUE_1, 3000.0, 1.0)], ample_balances)

    def test_negative_balance(self, engine, sorted_asks):
        """Should reject a negative balance before the pass starts."""
        with pytest.raises(InvalidInputError, match="quote_balance"):
            engine.plan(1.0, Side.BUY, sorted_asks, {VENUE_1: VenueBalance(0.0, -1.0)})


class TestPlanProperties:
    """Invariants that hold for any run."""

    @pytest.mark.parametrize("side", [Side.BUY, Side.SELL])
    @pytest.mark.parametrize("target", [0.05, 0.5, 1.0, 2.0, 3.3, 50.0])
    def test_conservation(self, engine, order_books, side, target):
        """Should account for every unit filled and never exceed the target."""
        from metaexchange.core.ordering import build_ordered_levels

        levels = build_ordered_levels(order_books, side)
        balances = {VENUE_1: VenueBalance(1.2, 2500.0), VENUE_2: VenueBalance(0.9, 4100.0)}

        plan = engine.plan(target, side, levels, balances)

        assert sum(f.filled_amount for f in plan.venue_fills) == pytest.approx(plan.total_filled)
        assert plan.total_filled <= target + 1e-12
        for fill in plan.venue_fills:
            assert fill.filled_amount > 0
            assert fill.remaining_base >= 0
            assert fill.remaining_quote >= 0

    @pytest.mark.parametrize("side", [Side.BUY, Side.SELL])
    def test_price_priority_monotonic(self, order_books, side):
        """Should fill at non-worsening prices in processing order."""
        from metaexchange.core.ordering import build_ordered_levels

        levels = build_ordered_levels(order_books, side)
        ledger = RecordingLedger({VENUE_1: VenueBalance(1.0, 2000.0), VENUE_2: VenueBalance(1.0, 2000.0)})

        ExecutionEngine().plan(10.0, side, levels, ledger)

        prices = [price for _, _, price in ledger.applied]
        assert len(prices) > 1
        if side == Side.BUY:
            assert prices == sorted(prices)
        else:
            assert prices == sorted(prices, reverse=True)

    def test_weighted_average_matches_fills(self, sorted_asks):
        """Should equal the sum of take * price per venue."""
        ledger = RecordingLedger({VENUE_1: VenueBalance(0.0, 1e6), VENUE_2: VenueBalance(0.0, 1e6)})

        plan = ExecutionEngine().plan(2.5, Side.BUY, sorted_asks, ledger)

        for fill in plan.venue_fills:
            notional = sum(a * p for v, a, p in ledger.applied if v == fill.venue_id)
            assert fill.average_price * fill.filled_amount == pytest.approx(notional)
        assert plan.total_cost == pytest.approx(sum(a * p for _, a, p in ledger.applied))


class TestPlanExecution:
    """Tests for the convenience wrapper."""

    def test_returns_plan(self, sorted_asks, ample_balances):
        """Should behave like ExecutionEngine.plan."""
        plan = plan_execution(2.0, Side.BUY, sorted_asks, ample_balances)

        assert isinstance(plan, ExecutionPlan)
        assert plan.average_price == pytest.approx(3145.0)
