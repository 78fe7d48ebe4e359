# -*- mode: python; coding: utf-8 -*-
# Copyright 2011-2017 (inclusive) Peter Williams
# Licensed under the MIT License.

"""Standard test problems for the solvers.

These are classic problems from the MINPACK test collection (Moré, Garbow
and Hillstrom, "Testing Unconstrained Optimization Software", ACM TOMS 7,
1981), plus a couple of small ones that make good smoke tests. Each problem
provides its function, its Jacobian in the package's transposed layout
(``jac[j,i] = dF_i/dx_j``), and a standard starting point.

Usage::

  from nlsolve import lmder
  from nlsolve.problems import get_problem

  prob = get_problem("rosenbrock")
  soln = lmder(prob.yfunc, prob.jfunc, prob.start(), prob.nout)

"""

__all__ = "ModelProblem UnknownProblemError get_problem list_problems".split()

import numpy as np

from . import NLError


class UnknownProblemError(NLError):
    """Raised when a problem name is not recognized."""


_registry = {}


def _register(cls):
    _registry[cls.name] = cls
    return cls


def list_problems():
    """Return the sorted names of all known problems."""
    return sorted(_registry)


def get_problem(name, **kwargs):
    """Instantiate the problem called *name*. Keyword arguments are passed to
    its constructor; the problems with adjustable sizes accept ``n`` (and
    some ``m``)."""
    cls = _registry.get(name)
    if cls is None:
        raise UnknownProblemError(
            'no such problem "%s"; known problems are: %s',
            name,
            ", ".join(list_problems()),
        )
    for kw in kwargs:
        if kw not in cls.sizes:
            raise NLError('problem "%s" does not accept size parameter "%s"', name, kw)

    try:
        return cls(**kwargs)
    except ValueError as e:
        raise NLError('bad size for problem "%s": %s', name, e)


class ModelProblem(object):
    """A test problem. Attributes:

    name        - The problem's registry name.
    summary     - A one-line description.
    npar        - The number of variables, n.
    nout        - The number of functions, m.
    x0          - The standard starting point.
    ml, mu      - The band structure of the Jacobian, or None if dense.
    known_fnorm - The final residual norm reported for the standard start,
                  if there is a well-known value.
    sizes       - The names of the constructor arguments that change the
                  problem size.

    """

    name = None
    summary = ""
    npar = None
    nout = None
    x0 = None
    ml = None
    mu = None
    known_fnorm = None
    sizes = ()

    @property
    def square(self):
        return self.npar == self.nout

    def start(self, factor=1.0):
        """Return the starting point scaled by *factor*. The standard
        collection uses factors of 1, 10 and 100; a zero start is replaced
        by *factor* itself."""
        x = np.array(self.x0, dtype=float)
        if factor != 1 and not np.any(x):
            x.fill(factor)
            return x
        return factor * x

    def yfunc(self, x, vec):
        raise NotImplementedError()

    def jfunc(self, x, jac):
        raise NotImplementedError()

    def jrowfunc(self, x, i, row):
        jac = np.empty((self.npar, self.nout))
        self.jfunc(x, jac)
        row[:] = jac[:, i]

    def fnorm(self, x):
        vec = np.empty(self.nout)
        self.yfunc(np.asarray(x, dtype=float), vec)
        return np.sqrt(np.dot(vec, vec))


@_register
class CircleLine(ModelProblem):
    name = "circle_line"
    summary = "Intersection of the unit circle with the line x0 = x1"
    npar = nout = 2
    x0 = (0.5, 0.5)
    known_fnorm = 0.0

    def yfunc(self, x, vec):
        vec[0] = x[0] ** 2 + x[1] ** 2 - 1
        vec[1] = x[0] - x[1]

    def jfunc(self, x, jac):
        jac[0, 0] = 2 * x[0]
        jac[1, 0] = 2 * x[1]
        jac[0, 1] = 1
        jac[1, 1] = -1


@_register
class LinearFullRank(ModelProblem):
    name = "linear_full_rank"
    summary = "A full-rank linear function"
    sizes = ("n", "m")

    def __init__(self, n=5, m=10):
        if m < n:
            raise ValueError("need m >= n")
        self.npar = n
        self.nout = m
        self.x0 = np.ones(n)
        self.known_fnorm = np.sqrt(m - n)

    def yfunc(self, x, vec):
        temp = 2.0 * x.sum() / self.nout + 1
        vec[:] = -temp
        vec[: x.size] += x

    def jfunc(self, x, jac):
        jac.fill(-2.0 / self.nout)
        for i in range(self.npar):
            jac[i, i] += 1


@_register
class Rosenbrock(ModelProblem):
    name = "rosenbrock"
    summary = "Rosenbrock's banana valley"
    npar = nout = 2
    x0 = (-1.2, 1.0)
    known_fnorm = 0.0

    def yfunc(self, x, vec):
        vec[0] = 10 * (x[1] - x[0] ** 2)
        vec[1] = 1 - x[0]

    def jfunc(self, x, jac):
        jac[0, 0] = -20 * x[0]
        jac[0, 1] = -1
        jac[1, 0] = 10
        jac[1, 1] = 0


@_register
class HelicalValley(ModelProblem):
    name = "helical_valley"
    summary = "Fletcher and Powell's helical valley"
    npar = nout = 3
    x0 = (-1.0, 0.0, 0.0)
    known_fnorm = 0.0

    def yfunc(self, x, vec):
        tpi = 2 * np.pi

        if x[0] == 0:
            tmp1 = np.copysign(0.25, x[1])
        elif x[0] > 0:
            tmp1 = np.arctan(x[1] / x[0]) / tpi
        else:
            tmp1 = np.arctan(x[1] / x[0]) / tpi + 0.5

        tmp2 = np.sqrt(x[0] ** 2 + x[1] ** 2)

        vec[0] = 10 * (x[2] - 10 * tmp1)
        vec[1] = 10 * (tmp2 - 1)
        vec[2] = x[2]

    def jfunc(self, x, jac):
        temp = x[0] ** 2 + x[1] ** 2
        tmp1 = 2 * np.pi * temp
        tmp2 = np.sqrt(temp)
        jac[0, 0] = 100 * x[1] / tmp1
        jac[0, 1] = 10 * x[0] / tmp2
        jac[0, 2] = 0
        jac[1, 0] = -100 * x[0] / tmp1
        jac[1, 1] = 10 * x[1] / tmp2
        jac[1, 2] = 0
        jac[2, 0] = 10
        jac[2, 1] = 0
        jac[2, 2] = 1


@_register
class PowellSingular(ModelProblem):
    name = "powell_singular"
    summary = "Powell's singular function; the Jacobian is singular at the root"
    npar = nout = 4
    x0 = (3.0, -1.0, 0.0, 1.0)
    known_fnorm = 0.0

    def yfunc(self, x, vec):
        vec[0] = x[0] + 10 * x[1]
        vec[1] = np.sqrt(5) * (x[2] - x[3])
        vec[2] = (x[1] - 2 * x[2]) ** 2
        vec[3] = np.sqrt(10) * (x[0] - x[3]) ** 2

    def jfunc(self, x, jac):
        jac.fill(0)
        jac[0, 0] = 1
        jac[0, 3] = 2 * np.sqrt(10) * (x[0] - x[3])
        jac[1, 0] = 10
        jac[1, 2] = 2 * (x[1] - 2 * x[2])
        jac[2, 1] = np.sqrt(5)
        jac[2, 2] = -2 * jac[1, 2]
        jac[3, 1] = -np.sqrt(5)
        jac[3, 3] = -jac[0, 3]


@_register
class FreudensteinRoth(ModelProblem):
    name = "freudenstein_roth"
    summary = "Freudenstein and Roth; has a local minimum near the start"
    npar = nout = 2
    x0 = (0.5, -2.0)
    known_fnorm = 0.699887517585e01

    def yfunc(self, x, vec):
        vec[0] = -13 + x[0] + ((5 - x[1]) * x[1] - 2) * x[1]
        vec[1] = -29 + x[0] + ((1 + x[1]) * x[1] - 14) * x[1]

    def jfunc(self, x, jac):
        jac[0] = 1
        jac[1, 0] = x[1] * (10 - 3 * x[1]) - 2
        jac[1, 1] = x[1] * (2 + 3 * x[1]) - 14


@_register
class Bard(ModelProblem):
    name = "bard"
    summary = "Bard's rational model fit to 15 data points"
    npar = 3
    nout = 15
    x0 = (1.0, 1.0, 1.0)
    known_fnorm = 0.9063596033904667e-01

    y = np.array(
        [
            0.14,
            0.18,
            0.22,
            0.25,
            0.29,
            0.32,
            0.35,
            0.39,
            0.37,
            0.58,
            0.73,
            0.96,
            1.34,
            2.10,
            4.39,
        ]
    )

    def _terms(self):
        u = np.arange(1.0, 16.0)
        v = 16.0 - u
        w = np.minimum(u, v)
        return u, v, w

    def yfunc(self, x, vec):
        u, v, w = self._terms()
        vec[:] = self.y - (x[0] + u / (x[1] * v + x[2] * w))

    def jfunc(self, x, jac):
        u, v, w = self._terms()
        tmp4 = (x[1] * v + x[2] * w) ** 2
        jac[0] = -1
        jac[1] = u * v / tmp4
        jac[2] = u * w / tmp4


@_register
class KowalikOsborne(ModelProblem):
    name = "kowalik_osborne"
    summary = "Kowalik and Osborne's enzyme reaction model"
    npar = 4
    nout = 11
    x0 = (0.25, 0.39, 0.415, 0.39)
    known_fnorm = 0.1753583772112895e-01

    v = np.array([4, 2, 1, 0.5, 0.25, 0.167, 0.125, 0.1, 0.0833, 0.0714, 0.0625])
    y = np.array(
        [
            0.1957,
            0.1947,
            0.1735,
            0.16,
            0.0844,
            0.0627,
            0.0456,
            0.0342,
            0.0323,
            0.0235,
            0.0246,
        ]
    )

    def yfunc(self, x, vec):
        v = self.v
        tmp1 = v * (v + x[1])
        tmp2 = v * (v + x[2]) + x[3]
        vec[:] = self.y - x[0] * tmp1 / tmp2

    def jfunc(self, x, jac):
        v = self.v
        tmp1 = v * (v + x[1])
        tmp2 = v * (v + x[2]) + x[3]
        jac[0] = -tmp1 / tmp2
        jac[1] = -v * x[0] / tmp2
        jac[2] = jac[0] * jac[1]
        jac[3] = jac[2] / v


_watson_fnorms = {
    6: 0.4782959390976008e-01,
    9: 0.1183114592124197e-02,
    12: 0.2173104025358612e-04,
}


@_register
class Watson(ModelProblem):
    name = "watson"
    summary = "Watson's polynomial fit, 31 functions"
    nout = 31
    sizes = ("n",)

    def __init__(self, n=6):
        if n < 2 or n > 31:
            raise ValueError("need 2 <= n <= 31")
        self.npar = n
        self.x0 = np.zeros(n)
        self.known_fnorm = _watson_fnorms.get(n)

    def yfunc(self, x, vec):
        div = (np.arange(29) + 1.0) / 29
        s1 = 0
        dx = 1

        for j in range(1, x.size):
            s1 += j * dx * x[j]
            dx *= div

        s2 = 0
        dx = 1

        for j in range(x.size):
            s2 += dx * x[j]
            dx *= div

        vec[:29] = s1 - s2**2 - 1
        vec[29] = x[0]
        vec[30] = x[1] - x[0] ** 2 - 1

    def jfunc(self, x, jac):
        jac.fill(0)
        div = (np.arange(29) + 1.0) / 29
        s2 = 0
        dx = 1

        for j in range(x.size):
            s2 += dx * x[j]
            dx *= div

        temp = 2 * div * s2
        dx = 1.0 / div

        for j in range(x.size):
            jac[j, :29] = dx * (j - temp)
            dx *= div

        jac[0, 29] = 1
        jac[0, 30] = -2 * x[0]
        jac[1, 30] = 1


@_register
class Trigonometric(ModelProblem):
    name = "trigonometric"
    summary = "A sum of trigonometric functions"
    sizes = ("n",)

    def __init__(self, n=10):
        self.npar = self.nout = n
        self.x0 = np.ones(n) / n

    def yfunc(self, x, vec):
        n = x.size
        c = np.cos(x)
        vec[:] = n - c.sum() + np.arange(1, n + 1) * (1 - c) - np.sin(x)

    def jfunc(self, x, jac):
        n = x.size
        jac[:] = np.sin(x)[:, np.newaxis]
        idx = np.arange(n)
        jac[idx, idx] = (idx + 2) * np.sin(x) - np.cos(x)


@_register
class BroydenTridiagonal(ModelProblem):
    name = "broyden_tridiagonal"
    summary = "Broyden's tridiagonal system"
    ml = mu = 1
    sizes = ("n",)

    def __init__(self, n=10):
        self.npar = self.nout = n
        self.x0 = -np.ones(n)
        self.known_fnorm = 0.0

    def yfunc(self, x, vec):
        vec[:] = (3 - 2 * x) * x + 1
        vec[1:] -= x[:-1]
        vec[:-1] -= 2 * x[1:]

    def jfunc(self, x, jac):
        n = x.size
        jac.fill(0)
        idx = np.arange(n)
        jac[idx, idx] = 3 - 4 * x
        jac[idx[:-1], idx[1:]] = -1
        jac[idx[1:], idx[:-1]] = -2


@_register
class BroydenBanded(ModelProblem):
    name = "broyden_banded"
    summary = "Broyden's banded system, five sub- and one super-diagonal"
    ml = 5
    mu = 1
    sizes = ("n",)

    def __init__(self, n=10):
        self.npar = self.nout = n
        self.x0 = -np.ones(n)
        self.known_fnorm = 0.0

    def yfunc(self, x, vec):
        n = x.size
        g = x * (1 + x)

        for i in range(n):
            lo = max(0, i - self.ml)
            hi = min(n, i + self.mu + 1)
            vec[i] = x[i] * (2 + 5 * x[i] ** 2) + 1 - (g[lo:hi].sum() - g[i])

    def jfunc(self, x, jac):
        n = x.size
        jac.fill(0)

        for i in range(n):
            lo = max(0, i - self.ml)
            hi = min(n, i + self.mu + 1)
            jac[lo:hi, i] = -(1 + 2 * x[lo:hi])
            jac[i, i] = 2 + 15 * x[i] ** 2
