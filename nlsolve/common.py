# -*- mode: python; coding: utf-8 -*-
# Copyright 2011-2017 (inclusive) Peter Williams
# Licensed under the MIT License.

"""Pieces shared by the hybrid and Levenberg-Marquardt drivers.

Status codes
------------

Every driver reports why it stopped through :data:`Status`. The classic
MINPACK ``info`` integers are available from :attr:`Solution.info`:

================  =======  ==========
Status            LM info  hybrid info
================  =======  ==========
invalid_input     0        0
ftol              1        (none)
xtol              2        1
ftol_xtol         3        (none)
gtol              4        (none)
maxfev            5        2
feps              6        (none)
xeps              7        3
geps              8        (none)
slow_jacobian     (none)   4
slow_iteration    (none)   5
user_abort        -1       -1
nonfinite         (none)   (none)
================  =======  ==========

The hybrid solvers can optionally test the function norm and the gradient
too; they then report ``ftol`` and ``gtol``, which have no classic code and
map to -2, as does ``nonfinite``.

"""

__all__ = "Evaluator ScaleMode Solution Status SQRT_EPS".split()

import numpy as np

from .simpleenum import enumeration

SQRT_EPS = float(np.sqrt(np.finfo(float).eps))


@enumeration
class Status(object):
    """Why a solver stopped.

    ftol, xtol, ftol_xtol, gtol
      Converged: the relative reduction in the sum of squares, the relative
      step size, or the cosine between the residuals and the Jacobian
      columns fell below the requested tolerance.
    maxfev
      The function-evaluation budget was used up.
    feps, xeps, geps
      The requested tolerance is too small: no further improvement is
      possible at machine precision.
    slow_jacobian
      Five consecutive Jacobian evaluations did not produce good progress.
    slow_iteration
      Ten consecutive iterations did not produce good progress.
    invalid_input
      The arguments were rejected before any evaluation.
    user_abort
      A user callback returned False.
    nonfinite
      The function or its Jacobian was infinite or NaN at the current
      point, so the iteration cannot continue.

    """

    invalid_input = "invalid-input"
    ftol = "ftol"
    xtol = "xtol"
    ftol_xtol = "ftol+xtol"
    gtol = "gtol"
    maxfev = "maxfev"
    feps = "feps"
    xeps = "xeps"
    geps = "geps"
    slow_jacobian = "slow-jacobian"
    slow_iteration = "slow-iteration"
    user_abort = "user-abort"
    nonfinite = "nonfinite"


@enumeration
class ScaleMode(object):
    """How the variables are scaled.

    auto
      Scale factors come from the column norms of the Jacobian and may grow
      as the iteration proceeds.
    user
      The caller supplies fixed, positive scale factors in ``diag``.

    """

    auto = "auto"
    user = "user"


_converged = frozenset(
    (Status.ftol, Status.xtol, Status.ftol_xtol, Status.gtol)
)

_lm_info = {
    Status.invalid_input: 0,
    Status.ftol: 1,
    Status.xtol: 2,
    Status.ftol_xtol: 3,
    Status.gtol: 4,
    Status.maxfev: 5,
    Status.feps: 6,
    Status.xeps: 7,
    Status.geps: 8,
    Status.user_abort: -1,
}

_hybrid_info = {
    Status.invalid_input: 0,
    Status.xtol: 1,
    Status.maxfev: 2,
    Status.xeps: 3,
    Status.slow_jacobian: 4,
    Status.slow_iteration: 5,
    Status.user_abort: -1,
}


class Solution(object):
    """The result of running one of the solvers. Attributes:

    family - Either "hybrid" or "lm".
    status - A :data:`Status` value saying why the iteration stopped.
    params - The final parameters: the best point found.
    fvec   - The function values at ``params``.
    fnorm  - The Euclidean norm of ``fvec``.
    r      - The n-by-n upper triangular factor R of the last Jacobian, in
             textbook orientation (see below).
    q      - Hybrid solvers only: the n-by-n orthogonal factor Q, in
             textbook orientation.
    fjac   - Least-squares solvers other than lmstr: the packed
             :class:`nlsolve.linalg.FactoredJacobian` of the last Jacobian.
    qtf    - The first n elements of Q^T fvec, as of the last factorization
             or Broyden update.
    pmut   - n-vector, the column permutation P of the factorization.
    diag   - The scale factors in use at the end.
    nfev   - The number of function evaluations.
    njev   - The number of explicit Jacobian evaluations.
    niter  - The number of accepted steps.
    covar  - Least-squares solvers: the covariance matrix inverse(J^T J) at
             the last factored Jacobian, or None.
    perror - Least-squares solvers: square roots of the diagonal of covar.

    With J the m-by-n Jacobian in textbook orientation, the factors satisfy
    ``J[:,pmut] = Q R`` (for the hybrid solvers, after Broyden updates, only
    approximately). The presence of 'ftol', 'xtol', 'ftol+xtol' or 'gtol'
    in `status` indicates success; see :attr:`converged`.

    """

    family = None
    status = None
    params = None
    fvec = None
    fnorm = None
    r = None
    q = None
    fjac = None
    qtf = None
    pmut = None
    diag = None
    nfev = 0
    njev = 0
    niter = 0
    covar = None
    perror = None

    def __init__(self, family):
        self.family = family

    @property
    def info(self):
        """The MINPACK ``info`` code corresponding to :attr:`status`."""
        table = _hybrid_info if self.family == "hybrid" else _lm_info
        return table.get(self.status, -2)

    @property
    def converged(self):
        return self.status in _converged

    def __repr__(self):
        return "<Solution %s status=%s fnorm=%r nfev=%d>" % (
            self.family,
            self.status,
            self.fnorm,
            self.nfev,
        )


class Evaluator(object):
    """Wraps the caller's callbacks, counting calls and noticing aborts.

    The function callback has the form ``yfunc(x, vec)`` and fills ``vec``
    in place. The Jacobian callback has the form ``jfunc(x, jac)`` and fills
    the n-by-m array ``jac`` with ``jac[j,i] = dF_i/dx_j``. The row callback
    has the form ``jrowfunc(x, i, row)`` and fills the n-vector ``row`` with
    the derivatives of F_i. Any callback may return False to stop the
    solver; any other return value is ignored.

    """

    nfev = 0
    njev = 0
    aborted = False
    debug_calls = False

    def __init__(self, yfunc, jfunc=None, jrowfunc=None, debug_calls=False):
        if not callable(yfunc):
            raise ValueError("yfunc must be callable")
        if jfunc is not None and not callable(jfunc):
            raise ValueError("jfunc must be callable")
        if jrowfunc is not None and not callable(jrowfunc):
            raise ValueError("jrowfunc must be callable")

        self._yfunc = yfunc
        self._jfunc = jfunc
        self._jrowfunc = jrowfunc
        self.debug_calls = debug_calls

    def ycall(self, x, vec):
        self.nfev += 1

        if self.debug_calls:
            print("Call: #%4d f(%s) ->" % (self.nfev, x), end="")
        rv = self._yfunc(x, vec)
        if self.debug_calls:
            print(vec)

        if rv is False:
            self.aborted = True
        return not self.aborted

    def jcall(self, x, jac):
        self.njev += 1

        if self.debug_calls:
            print("Call: #%4d j(%s) ->" % (self.njev, x), end="")
        rv = self._jfunc(x, jac)
        if self.debug_calls:
            print(jac)

        if rv is False:
            self.aborted = True
        return not self.aborted

    def jrowcall(self, x, i, row):
        # Rows are counted as part of a whole Jacobian by the caller.
        rv = self._jrowfunc(x, i, row)
        if rv is False:
            self.aborted = True
        return not self.aborted


def check_scaling(mode, diag, n):
    """Validate the scaling arguments shared by all drivers.

    Returns the working copy of the scale factors (None in automatic mode),
    or raises ValueError if the combination is unusable.

    """
    if mode not in ScaleMode:
        raise ValueError("unrecognized scaling mode %r" % (mode,))

    if mode == ScaleMode.auto:
        return None

    if diag is None:
        raise ValueError("user scaling requires diag")

    diag = np.array(diag, dtype=float, ndmin=1)
    if diag.shape != (n,):
        raise ValueError("diag must have exactly %d elements" % n)
    if not np.all(diag > 0):
        raise ValueError("all elements of diag must be positive")

    return diag


def start_point(x0):
    x = np.array(x0, dtype=float, ndmin=1)
    if x.ndim != 1:
        raise ValueError("initial parameters must be a vector")
    return x


def invalid(family, x, ev):
    soln = Solution(family)
    soln.status = Status.invalid_input
    soln.params = x
    soln.nfev = ev.nfev
    soln.njev = ev.njev
    return soln
