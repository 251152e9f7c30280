import pytest

HEADER = "Symbol,Last,Pos Qty,%Change,Avg Price,Days"

PREAMBLE = [
    '"Positions for account Individual ...1234 as of 09:41 AM ET, 01/10/2025"',
    "",
    "Account Summary,,,",
]


def build_export(*rows, preamble=PREAMBLE, footer=("", "Total,,,,,", "")):
    return "\n".join([*preamble, HEADER, *rows, *footer])


@pytest.fixture
def make_export():
    return build_export


@pytest.fixture
def mixed_export():
    return build_export(
        "AAPL,150.00,+100,+1.2%,140.00,-",
        ".AAPL250117C150,5.00,-2,+3.0%,4.00,30",
        ".AAPL250321P140,2.10,+1,-0.5%,2.50,95",
        ".TSLA250110P200,1.00,-3,-2.0%,1.50,7",
        "912828XG8,99.50,\"+10,000\",+0.1%,98.75,-",
        ".BADSYMBOL,1.00,+1,+0.0%,1.00,-",
        "MSFT,410.10,+50,-0.3%,\"$1,200.00\",-",
    )
