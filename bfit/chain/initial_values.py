"""
Steady-state populations at the start of the free-decay window.

After many identical cycles the untrapped populations at t = 0 reproduce
themselves: what is left of them after a full cycle of decay, plus what the
capture window of that cycle adds, equals the starting value. For a
population with untrapped lifetime tU this gives

    X0 = Xcap(t_cycle) / (1 - exp(-t_cycle / tU))

The feeding populations Y2 and Y3 are also fed during the free-decay window
by the untrapped totals of the earlier generations, so generation 2 can only
be solved once U10 is known and generation 3 once U20 is known.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from ..cases import CaseConstants
from ..populations.capture import v_cap, w_cap, x_cap, y_cap, z_cap
from .amplitudes import ChainCoefficients


@dataclass(frozen=True)
class InitialValues:
    """Untrapped populations at t = 0 of a steady-state cycle."""

    V10: float
    V20: float
    V30: float
    W10: float
    W20: float
    W30: float
    Z10: float
    Z20: float
    Z30: float
    X20: float
    X30: float
    Y20: float
    Y30: float
    U10: float
    U20: float

    def get(self, species: str, i: int) -> float:
        """Initial value of a species, 0 for species a generation does not have."""
        return getattr(self, f"{species}{i}0", 0.0)


def _closed_form(c: ChainCoefficients, case: CaseConstants, values: Dict[str, float]) -> None:
    t_cycle = case.t_cycle
    for i in (1, 2, 3):
        keep = 1.0 - c.untrapped_survival(i)
        values[f"V{i}0"] = v_cap(c, case, i, t_cycle) / keep
        values[f"W{i}0"] = w_cap(c, case, i, t_cycle) / keep
        values[f"Z{i}0"] = z_cap(c, case, i, t_cycle) / keep
    for i in (2, 3):
        values[f"X{i}0"] = x_cap(c, case, i, t_cycle) / (1.0 - c.untrapped_survival(i))


def _generation1_total(c: ChainCoefficients, case: CaseConstants, values: Dict[str, float]) -> None:
    values["U10"] = values["V10"] + values["W10"] + values["Z10"]


def _generation2_feeding(c: ChainCoefficients, case: CaseConstants, values: Dict[str, float]) -> None:
    e1, e2 = c.eU1tCyc, c.eU2tCyc
    fed_from_u1 = values["U10"] * c.tU1 / c.t1 * c.tU2 / (c.tU2 - c.tU1) * (e2 - e1)
    values["Y20"] = (y_cap(c, case, 2, case.t_cycle) + fed_from_u1) / (1.0 - e2)


def _generation2_total(c: ChainCoefficients, case: CaseConstants, values: Dict[str, float]) -> None:
    values["U20"] = values["V20"] + values["W20"] + values["Z20"] + values["X20"] + values["Y20"]


def _generation3_feeding(c: ChainCoefficients, case: CaseConstants, values: Dict[str, float]) -> None:
    e1, e2, e3 = c.eU1tCyc, c.eU2tCyc, c.eU3tCyc
    tU1, tU2, tU3 = c.tU1, c.tU2, c.tU3
    fed_from_u2 = values["U20"] * tU2 / c.t2 * tU3 / (tU3 - tU2) * (e3 - e2)
    fed_from_u1 = (values["U10"] * tU1 / c.t1 * tU2 / c.t2 * tU3 / c.ThetaU
                   * (c.cYU1 * e1 - c.cYU2 * e2 + c.cYU3 * e3))
    values["Y30"] = (y_cap(c, case, 3, case.t_cycle) + fed_from_u2 + fed_from_u1) / (1.0 - e3)


# Each step only reads values produced by the steps before it.
SOLVE_ORDER: Tuple[Tuple[str, Callable[[ChainCoefficients, CaseConstants, Dict[str, float]], None]], ...] = (
    ("closed_form", _closed_form),
    ("generation1_total", _generation1_total),
    ("generation2_feeding", _generation2_feeding),
    ("generation2_total", _generation2_total),
    ("generation3_feeding", _generation3_feeding),
)


def solve_initial_values(c: ChainCoefficients, case: CaseConstants) -> InitialValues:
    """
    Solve the periodic boundary condition generation by generation.

    Parameters
    ----------
    c : ChainCoefficients
        Coefficients of the current parameter vector
    case : CaseConstants
        Cycle timing

    Returns
    -------
    InitialValues
        Self-consistent populations at the start of the cycle
    """
    values: Dict[str, float] = {}
    for _, step in SOLVE_ORDER:
        step(c, case, values)
    return InitialValues(**values)
