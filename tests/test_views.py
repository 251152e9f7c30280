from datetime import date

from positions_dashboard.linker import link_positions
from positions_dashboard.models import (
    BondPosition,
    OptionContract,
    OptionPosition,
    OptionType,
    QuantitySign,
    StockPosition,
)
from positions_dashboard.views import (
    SortState,
    filter_groups,
    filter_positions,
    filter_strategy_legs,
    group_by_strategy,
    matches_query,
    positions_frame,
    sort_groups,
    sort_positions,
    value_bond,
)


def _stock(symbol, last="10.00", pct="+1.0%"):
    return StockPosition(
        symbol=symbol,
        sign=QuantitySign.LONG,
        quantity=10.0,
        avg_price=5.0,
        last_price=last,
        percent_change=pct,
        days="-",
        raw={"Symbol": symbol, "Last": last, "%Change": pct},
    )


def _option(symbol, underlying, strategy="Covered Call / Bear Call Spread"):
    return OptionPosition(
        symbol=symbol,
        sign=QuantitySign.SHORT,
        quantity=1.0,
        avg_price=1.0,
        last_price="1.00",
        percent_change="+0.0%",
        days="10",
        raw={"Symbol": symbol},
        contract=OptionContract(underlying, date(2025, 1, 17), OptionType.CALL, 150.0),
        days_to_expiry=10,
        strategy=strategy,
    )


def test_sort_state_toggle():
    state = SortState()
    assert (state.key, state.ascending) == ("Symbol", True)
    state = state.toggle("Symbol")
    assert state.ascending is False
    state = state.toggle("Symbol")
    assert state.ascending is True
    state = state.toggle("Symbol").toggle("Last")
    assert (state.key, state.ascending) == ("Last", True)


def test_symbol_descending_reverses_ascending():
    rows = [_stock("MSFT"), _stock("AAPL"), _stock("NVDA"), _stock("AMZN")]
    asc = sort_positions(rows, SortState("Symbol", True))
    desc = sort_positions(rows, SortState("Symbol", False))
    assert [p.symbol for p in asc] == ["AAPL", "AMZN", "MSFT", "NVDA"]
    assert desc == list(reversed(asc))


def test_numeric_sort_and_stability():
    rows = [_stock("A", last="100.00"), _stock("B", last="9.50"), _stock("C", last="9.50"), _stock("D", last="")]
    out = sort_positions(rows, SortState("Last", True))
    # blank first, ties keep input order, then numeric not lexicographic
    assert [p.symbol for p in out] == ["D", "B", "C", "A"]
    out = sort_positions(rows, SortState("Last", False))
    assert [p.symbol for p in out] == ["A", "B", "C", "D"]


def test_group_sort_without_stock_uses_blank():
    snap = link_positions([_stock("MSFT", last="400"), _stock("AAPL", last="150"), _option(".TSLA", "TSLA")])
    groups = sort_groups(list(snap.groups.values()), SortState("Last", True))
    assert [g.symbol for g in groups] == ["TSLA", "AAPL", "MSFT"]
    groups = sort_groups(list(snap.groups.values()), SortState("Symbol", False))
    assert [g.symbol for g in groups] == ["TSLA", "MSFT", "AAPL"]


def test_filters_are_case_insensitive():
    opt = _option(".AAPL250117C150", "AAPL")
    assert matches_query(opt, "aapl")
    assert matches_query(opt, "")
    assert not matches_query(_stock("MSFT"), "aap")

    tsla = _option(".X1", "TSLA")
    assert filter_positions([opt, tsla], "tsl") == [tsla]

    snap = link_positions([_stock("AAPL"), _stock("MSFT")])
    assert [g.symbol for g in filter_groups(snap.groups, "ms")] == ["MSFT"]


def test_group_by_strategy_annotates_stock_symbol():
    aapl = _stock("AAPL")
    covered = _option(".AAPL250117C150", "AAPL")
    orphan = _option(".TSLA250117P100", "TSLA", strategy="Cash Secured Put / Bear Put Spread")
    snap = link_positions([aapl, covered, orphan])
    buckets = group_by_strategy(snap)
    assert list(buckets) == ["Covered Call / Bear Call Spread", "Cash Secured Put / Bear Put Spread"]
    assert [(leg.option, leg.stock_symbol) for leg in buckets["Covered Call / Bear Call Spread"]] == [(covered, "AAPL")]
    # orphan appears once even though it also sits in a stock-less group
    assert [(leg.option, leg.stock_symbol) for leg in buckets["Cash Secured Put / Bear Put Spread"]] == [(orphan, "TSLA")]
    # grouping is a view: snapshot unchanged
    assert snap.groups["AAPL"].options == (covered,)


def test_bond_valuation():
    bond = BondPosition(
        symbol="912828XG8",
        sign=QuantitySign.LONG,
        quantity=10.0,
        avg_price=98.0,
        last_price="$99.50",
        percent_change="",
        days="",
    )
    val = value_bond(bond, multiplier=10)
    assert val.cost_basis == 9800.0
    assert val.market_value == 9950.0
    assert val.pnl == 150.0


def test_positions_frame_has_option_columns():
    df = positions_frame([_stock("AAPL"), _option(".AAPL250117C150", "AAPL")])
    assert list(df["Type"]) == ["Stock/ETF", "Option"]
    assert df.loc[1, "Leg"] == "Short Call"
    assert df.loc[1, "Strike"] == 150.0


def test_filter_strategy_legs_matches_stock_or_option():
    covered = _option(".AAPL250117C150", "AAPL")
    orphan = _option(".TSLA250117P100", "TSLA")
    snap = link_positions([_stock("AAPL"), covered, orphan])
    legs = group_by_strategy(snap)["Covered Call / Bear Call Spread"]
    assert filter_strategy_legs(legs, "") == legs
    assert [leg.option for leg in filter_strategy_legs(legs, "tsla")] == [orphan]
    assert [leg.option for leg in filter_strategy_legs(legs, "C150")] == [covered]
    assert filter_strategy_legs(legs, "msft") == []
