"""Per-leg strategy labels.

The label only looks at one leg's side and right. It does not detect
multi-leg spreads, so each label names both readings of the leg.
"""
from typing import Dict, Optional, Tuple

from .models import OptionType, QuantitySign

COVERED_CALL = "Covered Call / Bear Call Spread"
PROTECTIVE_PUT = "Protective Put / Bull Put Spread"
CASH_SECURED_PUT = "Cash Secured Put / Bear Put Spread"
LONG_CALL = "Long Call / Bull Call Spread"

STRATEGY_LABELS: Dict[Tuple[QuantitySign, OptionType], str] = {
    (QuantitySign.SHORT, OptionType.CALL): COVERED_CALL,
    (QuantitySign.LONG, OptionType.PUT): PROTECTIVE_PUT,
    (QuantitySign.SHORT, OptionType.PUT): CASH_SECURED_PUT,
    (QuantitySign.LONG, OptionType.CALL): LONG_CALL,
}


def tag_strategy(sign: Optional[QuantitySign], option_type: Optional[OptionType]) -> Optional[str]:
    if sign is None or option_type is None:
        return None
    return STRATEGY_LABELS[(sign, option_type)]
