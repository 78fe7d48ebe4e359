# -*- mode: python; coding: utf-8 -*-
# Copyright 2011-2017 (inclusive) Peter Williams
# Licensed under the MIT License.

import numpy as np
from numpy.testing import assert_array_almost_equal as Taaae
from numpy.testing import assert_allclose
import pytest

from nlsolve import NLError
from nlsolve.fdjac import forward_jacobian
from nlsolve.problems import (
    ModelProblem,
    UnknownProblemError,
    get_problem,
    list_problems,
)

ALL = list_problems()


def test_list():
    assert ALL == sorted(ALL)
    for name in "bard broyden_banded circle_line rosenbrock watson".split():
        assert name in ALL


def test_unknown():
    with pytest.raises(UnknownProblemError) as e:
        get_problem("nope")
    assert "rosenbrock" in str(e.value)
    assert isinstance(e.value, NLError)


def test_sizes():
    prob = get_problem("trigonometric", n=4)
    assert prob.npar == prob.nout == 4
    assert prob.square

    prob = get_problem("linear_full_rank", n=3, m=8)
    assert (prob.npar, prob.nout) == (3, 8)
    assert not prob.square
    Taaae(prob.known_fnorm, np.sqrt(5))

    with pytest.raises(NLError):
        get_problem("rosenbrock", n=3)

    with pytest.raises(NLError):
        get_problem("linear_full_rank", n=5, m=2)

    with pytest.raises(NLError):
        get_problem("watson", n=1)


def test_start():
    prob = get_problem("rosenbrock")
    Taaae(prob.start(), [-1.2, 1.0])
    Taaae(prob.start(10), [-12.0, 10.0])

    # A zero start is replaced by the factor itself.
    prob = get_problem("watson", n=3)
    Taaae(prob.start(), [0.0, 0, 0])
    Taaae(prob.start(100), [100.0, 100, 100])


def test_start_is_a_copy():
    prob = get_problem("broyden_tridiagonal")
    x = prob.start()
    x[0] = 7
    assert prob.start()[0] == -1


@pytest.mark.parametrize("name", ALL)
def test_jacobians(name):
    prob = get_problem(name)
    n, m = prob.npar, prob.nout

    # Offset from the standard start so that no term is degenerate.
    x = prob.start() + 0.1 * np.arange(1, n + 1) / n
    fvec = np.empty(m)
    prob.yfunc(x, fvec)

    explicit = np.empty((n, m))
    prob.jfunc(x, explicit)

    approx = np.empty((n, m))
    forward_jacobian(prob.yfunc, x, fvec, approx)
    assert_allclose(explicit, approx, rtol=1e-5, atol=1e-5)

    # Rows agree with the full Jacobian.
    row = np.empty(n)
    for i in range(m):
        prob.jrowfunc(x, i, row)
        Taaae(row, explicit[:, i])


@pytest.mark.parametrize(
    "name, x",
    [
        ("circle_line", [np.sqrt(0.5), np.sqrt(0.5)]),
        ("rosenbrock", [1.0, 1.0]),
        ("helical_valley", [1.0, 0, 0]),
        ("powell_singular", [0.0, 0, 0, 0]),
        ("broyden_tridiagonal", None),
    ],
)
def test_known_roots(name, x):
    prob = get_problem(name)
    if x is None:
        assert prob.known_fnorm == 0
        return
    assert prob.fnorm(x) < 1e-12


def test_known_minima():
    prob = get_problem("bard")
    x = [0.8241057657583339e-01, 0.1133036653471504e01, 0.2343694638941154e01]
    assert_allclose(prob.fnorm(x), prob.known_fnorm, rtol=1e-8)

    prob = get_problem("freudenstein_roth")
    x = [0.114124844655e02, -0.896827913732e00]
    assert_allclose(prob.fnorm(x), prob.known_fnorm, rtol=1e-8)


def test_bands():
    for name in ALL:
        prob = get_problem(name)
        assert (prob.ml is None) == (prob.mu is None)

    prob = get_problem("broyden_banded")
    assert (prob.ml, prob.mu) == (5, 1)


def test_base_class():
    prob = ModelProblem()
    with pytest.raises(NotImplementedError):
        prob.yfunc(np.zeros(1), np.zeros(1))
