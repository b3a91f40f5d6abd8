"""Half-up rounding for integer game quantities.

Python's ``round`` sends .5 to the nearest even integer. Costs, restore
amounts, severities and condition damage round .5 upward instead.
"""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 toward positive infinity."""
    return int(math.floor(value + 0.5))
