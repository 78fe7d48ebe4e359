# -*- mode: python; coding: utf-8 -*-
# Copyright 2011-2017 (inclusive) Peter Williams
# Licensed under the MIT License.

import numpy as np
from numpy.testing import assert_array_almost_equal as Taaae
from numpy.testing import assert_allclose
import pytest

from nlsolve import ScaleMode, Status, hybrid, hybrd, hybrd1, hybrj, hybrj1
from nlsolve.problems import get_problem

# A diagonal linear system whose solution the first dogleg step hits exactly.

DIAG_A = np.array([2.0, 4.0, 8.0])
DIAG_B = np.array([6.0, -4.0, 4.0])


def diag_y(x, vec):
    vec[:] = DIAG_A * x - DIAG_B


def diag_j(x, jac):
    jac[:] = np.diag(DIAG_A)


def test_hybrj_linear_one_step():
    soln = hybrj(diag_y, diag_j, np.ones(3))
    assert soln.status == Status.xtol
    assert soln.info == 1
    assert soln.converged
    assert soln.niter == 1
    assert soln.nfev == 2
    assert soln.njev == 1
    Taaae(soln.params, [3.0, -1.0, 0.5])
    assert soln.fnorm == 0


def test_hybrd_linear_one_step():
    soln = hybrd(diag_y, np.ones(3))
    assert soln.status == Status.xtol
    assert soln.nfev == 5  # one start, three for the Jacobian, one step
    assert soln.njev == 0
    Taaae(soln.params, [3.0, -1.0, 0.5])


def test_hybrid_at_root():
    root = np.array([3.0, -1.0, 0.5])

    soln = hybrj(diag_y, diag_j, root)
    assert soln.status == Status.xtol
    assert soln.niter == 0
    Taaae(soln.params, root)

    soln = hybrd(diag_y, root)
    assert soln.status == Status.xtol
    assert soln.niter == 0
    Taaae(soln.params, root)


def test_ftol_test():
    a = np.array([[4.0, 1, 0], [2, 3, 1], [0, 1, 2]])
    b = np.array([1.0, 2, 3])

    def y(x, vec):
        vec[:] = np.dot(a, x) - b

    def j(x, jac):
        jac[:] = a.T

    soln = hybrj(y, j, np.zeros(3), ftol=1e-9)
    assert soln.status == Status.ftol
    assert soln.converged
    assert soln.info == -2
    assert soln.niter == 1
    Taaae(soln.params, np.linalg.solve(a, b))


def test_gtol_test():
    soln = hybrj(diag_y, diag_j, np.ones(3), gtol=1.0)
    assert soln.status == Status.gtol
    assert soln.info == -2
    assert soln.niter == 0
    assert soln.nfev == 1
    assert soln.njev == 1


def test_maxfev():
    prob = get_problem("rosenbrock")
    soln = hybrj(prob.yfunc, prob.jfunc, prob.start(), maxfev=1)
    assert soln.status == Status.maxfev
    assert soln.info == 2
    assert not soln.converged


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(xtol=-1.0),
        dict(factor=0.0),
        dict(maxfev=0),
        dict(ftol=-1.0),
        dict(gtol=-1.0),
        dict(mode=ScaleMode.user),
        dict(mode=ScaleMode.user, diag=[1.0, 0.0, 1.0]),
        dict(mode=ScaleMode.user, diag=[1.0, 1.0]),
        dict(mode="bogus"),
        dict(upper=[1.0, 2.0]),
    ],
)
def test_invalid_input(kwargs):
    calls = []

    def y(x, vec):
        calls.append(1)
        diag_y(x, vec)

    soln = hybrd(y, np.ones(3), **kwargs)
    assert soln.status == Status.invalid_input
    assert soln.info == 0
    assert soln.nfev == 0
    assert not calls
    Taaae(soln.params, np.ones(3))


def test_not_callable():
    with pytest.raises(ValueError):
        hybrd(None, np.ones(3))

    with pytest.raises(ValueError):
        hybrj(diag_y, "jac", np.ones(3))

    with pytest.raises(ValueError):
        hybrd(diag_y, np.ones((2, 2)))


def test_abort_at_start():
    def y(x, vec):
        vec[:] = 1
        return False

    soln = hybrd(y, [1.0, 2.0])
    assert soln.status == Status.user_abort
    assert soln.info == -1
    assert soln.nfev == 1
    assert np.isnan(soln.fnorm)
    Taaae(soln.params, [1.0, 2.0])


def test_abort_later():
    prob = get_problem("helical_valley")
    calls = []

    def y(x, vec):
        calls.append(1)
        prob.yfunc(x, vec)
        if len(calls) == 6:
            return False

    soln = hybrd(y, prob.start())
    assert soln.status == Status.user_abort
    assert soln.nfev == 6


def test_abort_in_jacobian():
    prob = get_problem("helical_valley")

    def j(x, jac):
        prob.jfunc(x, jac)
        return False

    soln = hybrj(prob.yfunc, j, prob.start())
    assert soln.status == Status.user_abort
    assert soln.njev == 1


def _trapped_line():
    """F(x) = x - 0.5, except that the second evaluation returns infinity."""
    calls = []

    def y(x, vec):
        calls.append(x[0])
        if len(calls) == 2:
            vec[0] = np.inf
        else:
            vec[0] = x[0] - 0.5

    def j(x, jac):
        jac[0, 0] = 1.0

    return calls, y, j


def test_nonfinite_trial_is_rejected():
    calls, y, j = _trapped_line()
    soln = hybrj1(y, j, [-3.0])
    assert soln.converged
    Taaae(soln.params, [0.5])
    assert np.isfinite(soln.fnorm)

    # The full Newton step blew up, so a shorter one was tried from the
    # same point.
    assert_allclose(calls[1], 0.5)
    assert -3 < calls[2] < 0.5


def test_overflowing_exponential():
    def y(x, vec):
        vec[0] = np.exp(10 * x[0]) - 1

    def j(x, jac):
        jac[0, 0] = 10 * np.exp(10 * x[0])

    for soln in [hybrj1(y, j, [-3.0]), hybrd1(y, [-3.0])]:
        assert soln.status in Status
        assert np.isfinite(soln.params).all()
        assert soln.fnorm <= 1


def test_nonfinite_start():
    def y(x, vec):
        vec[:] = np.nan

    soln = hybrj(y, diag_j, np.ones(3))
    assert soln.status == Status.nonfinite
    assert soln.info == -2
    assert not soln.converged
    assert soln.nfev == 1
    assert soln.njev == 0
    Taaae(soln.params, np.ones(3))


def test_nonfinite_jacobian():
    def j(x, jac):
        jac[:] = np.diag(DIAG_A)
        jac[1, 2] = np.inf

    soln = hybrj(diag_y, j, np.ones(3))
    assert soln.status == Status.nonfinite
    assert not soln.converged
    assert soln.njev == 1
    Taaae(soln.params, np.ones(3))

    # Differences that land on an overflow make the same kind of Jacobian.
    def y(x, vec):
        diag_y(x, vec)
        if x[0] != 1:
            vec[0] = np.inf

    soln = hybrd(y, np.ones(3))
    assert soln.status == Status.nonfinite
    assert soln.nfev == 4


def _rootless_y(x, vec):
    vec[0] = x[0] ** 2 + 1


def _rootless_j(x, jac):
    jac[0, 0] = 2 * x[0]


def test_stall_without_root():
    stalls = (Status.xeps, Status.slow_jacobian, Status.slow_iteration)

    for soln in [
        hybrj(_rootless_y, _rootless_j, [1.0]),
        hybrd(_rootless_y, [1.0]),
    ]:
        assert soln.status in stalls
        assert soln.info in (3, 4, 5)
        assert not soln.converged
        assert soln.fnorm >= 1


def test_auto_scaling_never_shrinks():
    prob = get_problem("rosenbrock")
    norms = []

    def j(x, jac):
        prob.jfunc(x, jac)
        norms.append(np.sqrt((jac**2).sum(axis=1)))

    soln = hybrj(prob.yfunc, j, prob.start(10))
    assert soln.converged
    assert len(norms) == soln.njev

    # Every rescaling takes the larger of the old factor and the new
    # column norm.
    assert_allclose(soln.diag, np.max(norms, axis=0))
    for nrm in norms:
        assert (soln.diag >= nrm * (1 - 1e-12)).all()


@pytest.mark.parametrize("name", ["circle_line", "rosenbrock", "helical_valley"])
def test_small_problems(name):
    prob = get_problem(name)

    for soln in [
        hybrd(prob.yfunc, prob.start()),
        hybrj(prob.yfunc, prob.jfunc, prob.start()),
        hybrd1(prob.yfunc, prob.start()),
        hybrj1(prob.yfunc, prob.jfunc, prob.start()),
    ]:
        assert soln.converged
        assert soln.fnorm < 1e-8
        assert_allclose(soln.fnorm, prob.fnorm(soln.params), atol=1e-12)


def test_circle_line():
    prob = get_problem("circle_line")
    soln = hybrj(prob.yfunc, prob.jfunc, prob.start())
    Taaae(soln.params, [np.sqrt(0.5), np.sqrt(0.5)])


def test_rosenbrock_far_start():
    prob = get_problem("rosenbrock")
    soln = hybrj(prob.yfunc, prob.jfunc, prob.start(10))
    assert soln.converged
    Taaae(soln.params, [1.0, 1.0])


def test_powell_singular():
    # The Jacobian is singular at the root, so progress is only linear; any
    # of the convergence or stall codes is acceptable, but the residual must
    # be small.
    prob = get_problem("powell_singular")
    soln = hybrj(prob.yfunc, prob.jfunc, prob.start())
    assert soln.fnorm < 1e-6


def test_factors_reproduce_jacobian():
    # After a fresh factorization with no Broyden update, Q R is the
    # Jacobian at the point where it was evaluated.
    soln = hybrj(diag_y, diag_j, np.ones(3))
    jac = np.diag(DIAG_A)
    Taaae(np.dot(soln.q, soln.r), jac)
    Taaae(np.dot(soln.q.T, soln.q), np.eye(3))
    assert list(soln.pmut) == [0, 1, 2]


@pytest.mark.parametrize("name", ["broyden_tridiagonal", "broyden_banded"])
def test_banded(name):
    prob = get_problem(name, n=12)

    dense = hybrd(prob.yfunc, prob.start())
    banded = hybrd(prob.yfunc, prob.start(), ml=prob.ml, mu=prob.mu)

    assert banded.converged
    assert banded.fnorm < 1e-8
    assert banded.nfev < dense.nfev
    assert_allclose(banded.params, dense.params, rtol=1e-6, atol=1e-8)


def test_negative_band_is_dense():
    prob = get_problem("broyden_tridiagonal", n=8)
    a = hybrd(prob.yfunc, prob.start())
    b = hybrd(prob.yfunc, prob.start(), ml=-1, mu=-1)
    assert a.nfev == b.nfev
    Taaae(a.params, b.params)


def test_user_scaling():
    prob = get_problem("helical_valley")
    soln = hybrj(
        prob.yfunc, prob.jfunc, prob.start(), mode=ScaleMode.user, diag=[1.0, 2, 3]
    )
    assert soln.converged
    Taaae(soln.diag, [1.0, 2, 3])
    Taaae(soln.params, [1.0, 0, 0])


def test_simplified_defaults(monkeypatch):
    seen = {}

    def fake(*args, **kwargs):
        seen.update(kwargs)
        return "called"

    monkeypatch.setattr(hybrid, "hybrd", fake)
    assert hybrid.hybrd1(diag_y, np.ones(3), tol=1e-6) == "called"
    assert seen["maxfev"] == 800
    assert seen["xtol"] == 1e-6
    assert seen["mode"] == ScaleMode.user
    Taaae(seen["diag"], np.ones(3))

    seen.clear()
    monkeypatch.setattr(hybrid, "hybrj", fake)
    assert hybrid.hybrj1(diag_y, diag_j, np.ones(3)) == "called"
    assert seen["maxfev"] == 400
    assert seen["mode"] == ScaleMode.user


def test_simplified_bad_tol():
    soln = hybrd1(diag_y, np.ones(3), tol=-1)
    assert soln.status == Status.invalid_input
    assert soln.nfev == 0

    soln = hybrj1(diag_y, diag_j, np.ones(3), tol=-1)
    assert soln.status == Status.invalid_input


def test_upper_bound_respected():
    # The difference steps stay below the bound.
    seen = []

    def y(x, vec):
        seen.append(x.copy())
        diag_y(x, vec)

    hybrd(y, np.ones(3), upper=np.ones(3))
    for x in seen[1:4]:
        assert np.all(x <= 1)


def test_debug_output(capsys):
    prob = get_problem("circle_line")
    hybrj(prob.yfunc, prob.jfunc, prob.start(), debug_calls=True, debug_iter=True)
    out = capsys.readouterr()[0]
    assert "Call: #   1 f(" in out
    assert "j(" in out
    assert "Iter: #" in out
