from __future__ import annotations

from datetime import date
from typing import Callable

Clock = Callable[[], date]


def system_clock() -> date:
    return date.today()
