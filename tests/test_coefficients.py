"""
Closed-form injection sums and parameter-derived chain coefficients.
"""

"python -m pytest tests/test_coefficients.py -v"

import dataclasses

import numpy as np
import pytest

from bfit.chain.amplitudes import compute_chain_coefficients, effective_parameters
from bfit.chain.coefficients import (
    injection_index,
    modified_lifetime,
    sigma_t,
    sigma_w,
    sigma_z,
)
from bfit.parameters import PAR_INDEX

T_CAPT = 6000.0


def test_modified_lifetime_units():
    """Shifts are quoted in 1/s and enter as 1/ms."""
    assert modified_lifetime(1000.0, 0.0) == pytest.approx(1000.0)
    # 1/1000 ms^-1 + 1 s^-1 = 2/1000 ms^-1
    assert modified_lifetime(1000.0, 1.0) == pytest.approx(500.0)
    # negative shift lengthens the lifetime
    assert modified_lifetime(1000.0, -0.5) == pytest.approx(2000.0)


def test_sigma_t_is_geometric_sum():
    rho, tau = 0.9, 3000.0
    q = rho * np.exp(-T_CAPT / tau)
    assert sigma_t(rho, tau, 0, T_CAPT) == pytest.approx(0.0)
    assert sigma_t(rho, tau, 1, T_CAPT) == pytest.approx(1.0)
    assert sigma_t(rho, tau, 4, T_CAPT) == pytest.approx(1 + q + q**2 + q**3)


@pytest.mark.parametrize("n", [-1, 0, 1])
def test_mixed_sums_vanish_before_second_injection(n):
    assert sigma_w(0.95, 3000.0, 4000.0, n, T_CAPT) == 0.0
    assert sigma_z(0.95, 3000.0, 4000.0, n, T_CAPT) == 0.0


def test_mixed_sums_after_second_injection():
    """After two injections only the first bunch has been exposed to a capture."""
    rho, t_t, t_u = 0.95, 3000.0, 4000.0
    exp_t = np.exp(-T_CAPT / t_t)
    exp_u = np.exp(-T_CAPT / t_u)
    assert np.isclose(sigma_w(rho, t_t, t_u, 2, T_CAPT), exp_t, rtol=1e-6)
    assert np.isclose(sigma_z(rho, t_t, t_u, 2, T_CAPT), exp_u - exp_t, rtol=1e-6)


def test_injection_index(case):
    tb, tc = case.t_bkgd, case.t_capt
    assert injection_index(tb, tb, tc) == 0
    assert injection_index(tb + 1.0, tb, tc) == 1
    assert injection_index(tb + tc, tb, tc) == 1
    assert injection_index(tb + tc + 1.0, tb, tc) == 2
    assert injection_index(case.t_cycle, tb, tc) == case.n_injections == 25


def test_zero_shifts_keep_nominal_lifetimes(case, parameters):
    c = compute_chain_coefficients(parameters, case)
    for i, t_nom in enumerate(case.lifetimes, start=1):
        assert c.nominal(i) == pytest.approx(t_nom)
        assert c.trapped_lifetime(i) == pytest.approx(t_nom)
        assert c.untrapped_lifetime(i) == pytest.approx(t_nom)
    # regularised gammaT / (gammaT - gammaU) tends to 1 for vanishing shifts
    assert c.zeta1 == pytest.approx(1.0)


def test_bunch_is_split_between_trap_and_untrapped(case, parameters):
    c = compute_chain_coefficients(parameters, case)
    for i, name in enumerate(("r1", "r2", "r3"), start=1):
        bunch = parameters[name] * case.t_capt
        assert c.amp("T", i) + c.amp("V", i) == pytest.approx(bunch)
        assert c.amp("W", i) == pytest.approx(bunch * parameters["p"] * (1 - parameters["rho"]))


def test_shifts_shorten_lifetimes(case, shifted_parameters):
    c = compute_chain_coefficients(shifted_parameters, case)
    assert c.tT1 < c.t1
    assert c.tU1 < c.t1
    assert c.tT1 < c.tU1
    # gammaT / (gammaT - gammaU) = 0.05 / 0.03
    assert c.zeta1 == pytest.approx(0.05 / 0.03, rel=1e-6)


def test_degenerate_parameters_do_not_raise(case, parameters):
    """Unphysical inputs propagate as non-finite or negative values."""
    t1 = case.lifetimes[0]
    c = compute_chain_coefficients(parameters.replace(gammaT1=-2000.0 / t1), case)
    assert c.tT1 < 0

    c = compute_chain_coefficients(parameters.replace(r1=float("nan")), case)
    assert np.isnan(c.ampT1)
    assert np.isfinite(c.ampT2)


def test_tie_applies_to_private_copy(case, parameters):
    tied_case = dataclasses.replace(case, tie_gammaT3_to_gammaT2=True)
    par = parameters.replace(gammaT2=0.03, gammaT3=0.0)

    a = effective_parameters(par, tied_case)
    assert a[PAR_INDEX["gammaT3"]] == pytest.approx(0.03)
    assert par["gammaT3"] == 0.0, "caller's vector must not be modified"

    untied = compute_chain_coefficients(par, case)
    tied = compute_chain_coefficients(par, tied_case)
    assert tied.tT3 < untied.tT3
    assert np.isclose(untied.tT3, case.lifetimes[2])
