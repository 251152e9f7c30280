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
from positions_dashboard.strategy import tag_strategy


def _stock(symbol, qty=100.0, avg=10.0):
    return StockPosition(symbol=symbol, sign=QuantitySign.LONG, quantity=qty, avg_price=avg, last_price="", percent_change="", days="-")


def _option(symbol, underlying=None, otype=OptionType.CALL, short=True, expiry=date(2025, 1, 17)):
    sign = QuantitySign.SHORT if short else QuantitySign.LONG
    contract = OptionContract(underlying, expiry, otype, 100.0) if underlying else None
    return OptionPosition(
        symbol=symbol,
        sign=sign,
        quantity=1.0,
        avg_price=1.0,
        last_price="",
        percent_change="",
        days="",
        contract=contract,
        strategy=tag_strategy(sign, otype) if underlying else None,
    )


def test_options_attach_to_their_stock_in_input_order():
    aapl = _stock("AAPL")
    c1 = _option(".AAPL250117C150", "AAPL")
    c2 = _option(".AAPL250117P140", "AAPL", OptionType.PUT)
    snap = link_positions([c1, aapl, c2])
    group = snap.groups["AAPL"]
    assert group.stock is aapl
    assert group.options == (c1, c2)
    assert snap.orphaned_options == ()


def test_orphan_gets_stockless_group_and_orphan_entry():
    t = _option(".TSLA250110P200", "TSLA", OptionType.PUT)
    snap = link_positions([_stock("AAPL"), t])
    assert snap.groups["TSLA"].stock is None
    assert snap.groups["TSLA"].options == (t,)
    assert snap.orphaned_options == (t,)
    for opt in snap.orphaned_options:
        assert opt.underlying_symbol not in snap.stock_symbols


def test_unresolved_options_are_left_out():
    bad = _option(".BADSYMBOL")
    snap = link_positions([_stock("AAPL"), bad])
    assert list(snap.groups) == ["AAPL"]
    assert snap.orphaned_options == ()
    assert snap.unresolved_options == (bad,)
    assert bad not in snap.option_universe()


def test_duplicate_stock_last_row_wins():
    issues = []
    first, second = _stock("AAPL", qty=1.0), _stock("AAPL", qty=2.0)
    snap = link_positions([first, second], issues)
    assert snap.groups["AAPL"].stock is second
    assert len(issues) == 1


def test_bonds_and_strategies_collected():
    bond = BondPosition(symbol="912828XG8", sign=QuantitySign.LONG, quantity=10.0, avg_price=98.0, last_price="99", percent_change="", days="")
    put = _option(".AAPL250117P140", "AAPL", OptionType.PUT, short=False)
    call = _option(".AAPL250117C150", "AAPL")
    call2 = _option(".AAPL250221C160", "AAPL")
    snap = link_positions([bond, put, call, call2])
    assert snap.bonds == (bond,)
    assert snap.strategies == ("Protective Put / Bull Put Spread", "Covered Call / Bear Call Spread")


def test_orphans_counted_once_in_universe():
    t = _option(".TSLA250110P200", "TSLA", OptionType.PUT)
    snap = link_positions([t])
    assert snap.option_universe() == [t]
