"""
Time-domain populations over one cycle.

Generation 1 and the X2 daughters are checked against a direct numerical
integration of the decay equations with an impulsive injection at every
capture start.
"""

"python -m pytest tests/test_populations.py -v"

import numpy as np
import pytest
from scipy.integrate import solve_ivp  # type: ignore[import]

from bfit.chain.cache import compute_derived_state
from bfit.populations.capture import u_cap, y2_kernel, y3_kernel
from bfit.populations.evaluator import (
    SPECIES_GENERATIONS,
    species_value,
    t_tot,
    u_tot,
    v_tot,
    w_tot,
    x_tot,
    y_tot,
    z_tot,
)


def _physical_sets(parameters):
    return {
        "zero_shifts": parameters,
        "gen1_shifts": parameters.replace(gammaT1=0.05, gammaU1=0.02),
        "gen23_shifts": parameters.replace(gammaT2=0.03, gammaU2=0.01, gammaT3=0.002, gammaU3=0.001),
    }


def _time_grid(case):
    # avoid landing exactly on capture starts
    return np.concatenate([np.linspace(0.0, case.t_bkgd, 101),
                           np.linspace(case.t_bkgd + 1.0, case.t_cycle, 725)])


@pytest.mark.parametrize("label", ["zero_shifts", "gen1_shifts", "gen23_shifts"])
def test_populations_non_negative(case, parameters, label):
    state = compute_derived_state(_physical_sets(parameters)[label], case)
    for species, generations in SPECIES_GENERATIONS.items():
        for i in generations:
            values = np.array([species_value(state, case, species, i, t) for t in _time_grid(case)])
            assert np.all(np.isfinite(values)), f"{species}{i} not finite ({label})"
            scale = max(1.0, float(np.max(np.abs(values))))
            assert np.all(values >= -1e-9 * scale), \
                f"{species}{i} negative ({label}): min {values.min():.3e}"


def test_outside_cycle_is_zero(case, shifted_parameters):
    state = compute_derived_state(shifted_parameters, case)
    for t in (-1.0, case.t_cycle + 1.0):
        for species, generations in SPECIES_GENERATIONS.items():
            for i in generations:
                assert species_value(state, case, species, i, t) == 0.0
        assert u_tot(state, case, 1, t) == 0.0


def test_trapped_only_during_capture(case, parameters):
    state = compute_derived_state(parameters, case)
    for t in (0.0, 50_000.0, case.t_bkgd - 1.0):
        for i in (1, 2, 3):
            assert t_tot(state, case, i, t) == 0.0
            assert u_tot(state, case, i, t) == 0.0
    # right after the first injection the trap holds the captured bunch
    c = state.coeffs
    assert np.isclose(t_tot(state, case, 1, case.t_bkgd + 1e-6), c.ampT1, rtol=1e-6)


def test_capture_term_vanishes_at_capture_start(case, shifted_parameters):
    state = compute_derived_state(shifted_parameters, case)
    c, init, tb = state.coeffs, state.initial, case.t_bkgd
    for i in (1, 2, 3):
        free = np.exp(-tb / c.untrapped_lifetime(i))
        assert np.isclose(v_tot(state, case, i, tb), init.get("V", i) * free, rtol=1e-12)
        assert np.isclose(w_tot(state, case, i, tb), init.get("W", i) * free, rtol=1e-12)
        assert np.isclose(z_tot(state, case, i, tb), init.get("Z", i) * free, rtol=1e-12)
    for i in (2, 3):
        free = np.exp(-tb / c.untrapped_lifetime(i))
        assert np.isclose(x_tot(state, case, i, tb), init.get("X", i) * free, rtol=1e-12)


@pytest.mark.parametrize("fn", [z_tot, x_tot, y_tot], ids=["Z", "X", "Y"])
def test_fed_populations_continuous_across_capture_start(case, parameters, fn):
    """Populations fed by a decay start from zero, unlike the injected V, W and T."""
    state = compute_derived_state(_physical_sets(parameters)["gen23_shifts"], case)
    tb = case.t_bkgd
    for i in (2, 3):
        before = fn(state, case, i, tb - 1e-6)
        after = fn(state, case, i, tb + 1e-6)
        scale = max(abs(fn(state, case, i, tb + 0.5 * case.t_capt)), abs(before))
        assert abs(after - before) <= 1e-6 * scale, \
            f"{fn.__name__} gen {i} jumps at capture start: {before:.6e} -> {after:.6e}"
    # the injected population does jump by the untrapped share of the bunch
    jump = v_tot(state, case, 1, tb + 1e-6) - v_tot(state, case, 1, tb - 1e-6)
    assert np.isclose(jump, state.coeffs.ampV1, rtol=1e-6)


def test_daughter_kernels_vanish_at_injection(case, parameters):
    c = compute_derived_state(parameters, case).coeffs
    assert y2_kernel(c, 0.0) == pytest.approx(0.0, abs=1e-12)
    assert y3_kernel(c, 0.0) == pytest.approx(0.0, abs=1e-12)
    assert y2_kernel(c, 5000.0) > 0.0


def test_untrapped_total_is_sum_of_species(case, shifted_parameters):
    state = compute_derived_state(shifted_parameters, case)
    t = 180_500.0
    for i in (1, 2, 3):
        parts = sum(species_value(state, case, s, i, t)
                    for s in ("V", "W", "Z", "X", "Y") if i in SPECIES_GENERATIONS[s])
        assert np.isclose(u_tot(state, case, i, t), parts, rtol=1e-12)


def test_species_value_rejects_bad_input(case, parameters):
    state = compute_derived_state(parameters, case)
    with pytest.raises(ValueError, match="Unknown species"):
        species_value(state, case, "Q", 1, 0.0)
    with pytest.raises(ValueError, match="Generation"):
        species_value(state, case, "V", 4, 0.0)


# ---- direct integration of the decay equations -------------------------------

def _integrate_cycle(state, case, samples):
    """
    Integrate T1, V1, W1, Z1, X2 over one cycle starting from the steady state.

    At every capture start a fraction 1 - rho of the trapped ions is lost to
    W1, then the new bunch is split between the trap and V1.
    """
    c, init = state.coeffs, state.initial
    g_t = c.gammaT1 * 1e-3

    def rhs(_t, y):
        T, V, W, Z, X = y
        return [-T / c.tT1,
                -V / c.tU1,
                -W / c.tU1,
                g_t * T - Z / c.tU1,
                T / c.t1 - X / c.tU2]

    starts = case.t_bkgd + np.arange(case.n_injections) * case.t_capt
    stops = np.unique(np.concatenate([[0.0, case.t_cycle], starts, samples]))
    start_set = set(starts.tolist())
    sample_set = set(np.asarray(samples, dtype=float).tolist())

    y = np.array([0.0, init.V10, init.W10, init.Z10, init.X20])
    recorded = {}
    for a, b in zip(stops[:-1], stops[1:]):
        if a in start_set:
            T, V, W, Z, X = y
            y = np.array([c.rho * T + c.ampT1, V + c.ampV1, W + (1 - c.rho) * T, Z, X])
        sol = solve_ivp(rhs, (a, b), y, method="DOP853", rtol=1e-11, atol=1e-12)
        assert sol.success, sol.message
        y = sol.y[:, -1]
        if b in sample_set:
            recorded[b] = y.copy()
    return y, recorded


@pytest.mark.parametrize("label", ["zero_shifts", "gen1_shifts"])
def test_generation1_matches_direct_integration(case, parameters, shifted_parameters, label):
    par = parameters if label == "zero_shifts" else shifted_parameters
    state = compute_derived_state(par, case)
    init = state.initial
    samples = [50_000.0, 101_500.0, 130_700.0, 200_000.0, 245_900.0]

    end, recorded = _integrate_cycle(state, case, samples)

    # steady state: the end of the cycle reproduces the start (trap ejected)
    for value, expected, name in zip(end[1:], (init.V10, init.W10, init.Z10, init.X20),
                                     ("V1", "W1", "Z1", "X2")):
        assert np.isclose(value, expected, rtol=1e-6, atol=1e-8), \
            f"{name} ({label}): integrated {value:.8e} vs steady state {expected:.8e}"

    for t, y in recorded.items():
        model = (t_tot(state, case, 1, t), v_tot(state, case, 1, t), w_tot(state, case, 1, t),
                 z_tot(state, case, 1, t), x_tot(state, case, 2, t))
        for value, expected, name in zip(y, model, ("T1", "V1", "W1", "Z1", "X2")):
            assert np.isclose(value, expected, rtol=1e-6, atol=1e-8), \
                f"{name} at t={t:.0f} ms ({label}): integrated {value:.8e} vs model {expected:.8e}"


def test_capture_contribution_on_top_of_carry_over(case, shifted_parameters):
    state = compute_derived_state(shifted_parameters, case)
    c, init = state.coeffs, state.initial
    t = 222_222.0
    carried = (init.V10 + init.W10 + init.Z10) * np.exp(-t / c.tU1)
    assert np.isclose(u_tot(state, case, 1, t), carried + u_cap(c, case, 1, t), rtol=1e-12)
    # generation 2 also holds daughters of ions carried over from the last cycle
    assert u_tot(state, case, 2, t) > u_cap(c, case, 2, t)
