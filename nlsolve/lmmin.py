# -*- mode: python; coding: utf-8 -*-
# Copyright (C) 1997-2003, 2004, 2005, 2006, 2007, 2008, 2009, 2010, 2011, Craig Markwardt
# Copyright 2003 Mark Rivers
# Copyright 2006, 2009-2011 (inclusive) Nadia Dencheva
# Copyright 2011-2017 (inclusive) Peter Williams
#
# This software is provided as is without any warranty whatsoever. Permission
# to use, copy, modify, and distribute modified or unmodified copies is
# granted, provided this copyright and disclaimer are included unchanged.

### lmmin holds the Levenberg-Marquardt least-squares drivers, derived
### (circuitously) from the classic MINPACK implementation. Usage
### information is given in the docstring farther below.

# == Provenance ==
#
# This implementation of the Levenberg-Marquardt technique has its origins in
# MINPACK-1 (the lmdif, lmder and lmstr subroutines), by Jorge Moré, Burt
# Garbow, and Ken Hillstrom, implemented around 1980. It passed through
# Craig Markwardt's IDL MPFIT, Mark Rivers' mpfit.py and the Numpy nmpfit.py
# before being reworked into its present form.
#
# == Transposition ==
#
# The matrices used in intermediate calculations are transposed relative to
# the Fortran. In Fortran the columns are directly adjacent in memory, while
# in Python the rows are, so transposing matches the algorithms to the memory
# layout as intended in the original. The main operation of interest is the
# Q R factorization, which in the Fortran version involves matrices such that
#
#  A P = Q R or, in Python,
#  a[:,pmut] == np.dot (q, r)
#
# while in the transposed version
#
#  A P = R Q or, in Python,
#  a[pmut] == np.dot (r, q)
#
# where A is n-by-m and R is n-by-m and lower triangular. The user-facing
# Jacobian follows suit: jac[j,i] is the derivative of the i'th function with
# respect to the j'th parameter.

"""Levenberg-Marquardt solvers for nonlinear least squares.

Given ``m`` functions ``F`` of ``n <= m`` variables, these drivers minimize
the sum of squares ``|F(x)|^2``.

- :func:`lmdif` approximates the Jacobian by forward differences.
- :func:`lmder` calls a user-supplied Jacobian function.
- :func:`lmstr` calls a user-supplied function that returns one row of the
  Jacobian at a time, so that only an n-by-n triangular factor is ever
  stored.
- :func:`lmdif1`, :func:`lmder1` and :func:`lmstr1` run the same algorithms
  with default settings.

Callbacks::

  def yfunc(x, fvec):
      fvec[:] = ...          # m values; return False to abort

  def jfunc(x, jac):
      jac[j,i] = dF_i/dx_j   # n-by-m; return False to abort

  def jrowfunc(x, i, row):
      row[j] = dF_i/dx_j     # n values; return False to abort

Termination codes (see also :data:`nlsolve.Status`):

'ftol' (MINPACK equiv: 1)
  "both actual and predicted relative reductions in the sum of squares
  are at most ftol." Also reported if the residuals are exactly zero.

'xtol' (MINPACK equiv: 2)
  "relative error between two consecutive iterates is at most xtol."

'ftol+xtol' (MINPACK equiv: 3)
  Both of the above.

'gtol' (MINPACK equiv: 4)
  "the cosine of the angle between fvec and any column of the jacobian
  is at most gtol in absolute value."

'maxfev' (MINPACK equiv: 5)
  "number of calls to fcn has reached or exceeded maxfev." For lmder and
  lmstr the Jacobian calls are not counted.

'feps' (MINPACK equiv: 6)
  "ftol is too small. no further reduction in the sum of squares is
  possible."

'xeps' (MINPACK equiv: 7)
  "xtol is too small. no further improvement in the approximate
  solution x is possible."

'geps' (MINPACK equiv: 8)
  "gtol is too small. fvec is orthogonal to the columns of the jacobian
  to machine precision." The ``1`` variants report this as 'gtol'.

"""

__all__ = "lmder lmder1 lmdif lmdif1 lmstr lmstr1".split()

import numpy as np

from .common import (
    SQRT_EPS,
    Evaluator,
    ScaleMode,
    Solution,
    Status,
    check_scaling,
    invalid,
    start_point,
)
from .fdjac import forward_jacobian
from .linalg import (
    calc_covariance,
    enorm_fast,
    enorm_mpfit_careful,
    qr_factor,
    row_update,
)
from .trstep import lm_solve

_DIF, _DER, _STR = "dif", "der", "str"


def lmdif(
    yfunc,
    x0,
    nout,
    ftol=SQRT_EPS,
    xtol=SQRT_EPS,
    gtol=0.0,
    maxfev=400,
    epsfcn=0.0,
    mode=ScaleMode.auto,
    diag=None,
    factor=100.0,
    upper=None,
    debug_calls=False,
    debug_iter=False,
):
    """Minimize a sum of squares with a forward-difference Jacobian.

    Parameters:
    yfunc  - Callable ``yfunc(x, fvec)`` filling the m-vector ``fvec``.
    x0     - n-vector, the starting point.
    nout   - m, the number of functions. Must be at least n.
    ftol   - Stop when both the actual and predicted relative reductions
             in the sum of squares are at most ftol.
    xtol   - Stop when the relative error between two consecutive iterates
             is at most xtol.
    gtol   - Stop when the cosine of the angle between fvec and any column
             of the Jacobian is at most gtol in absolute value.
    maxfev - Stop after this many calls to yfunc, including those used for
             the Jacobian.
    epsfcn - Relative error of the function values, used to choose the
             difference steps.
    mode   - :data:`ScaleMode.auto` or :data:`ScaleMode.user`.
    diag   - n-vector of positive scale factors, required if mode is user.
    factor - The initial trust-region radius is factor times the scaled
             norm of x0 (or factor itself if that is zero).
    upper  - Optional n-vector of upper bounds that the difference steps
             should not cross.
    debug_calls, debug_iter - Print each function call or iteration.

    Returns:
    A :class:`nlsolve.Solution`.

    """
    ev = Evaluator(yfunc, debug_calls=debug_calls)
    return _solve(
        ev,
        _DIF,
        x0,
        nout,
        ftol,
        xtol,
        gtol,
        maxfev,
        epsfcn,
        mode,
        diag,
        factor,
        upper,
        debug_iter,
    )


def lmder(
    yfunc,
    jfunc,
    x0,
    nout,
    ftol=SQRT_EPS,
    xtol=SQRT_EPS,
    gtol=0.0,
    maxfev=400,
    mode=ScaleMode.auto,
    diag=None,
    factor=100.0,
    debug_calls=False,
    debug_iter=False,
):
    """Minimize a sum of squares with a user-supplied Jacobian.

    The parameters are as for :func:`lmdif`, with *jfunc* a callable
    ``jfunc(x, jac)`` filling the n-by-m array ``jac``. Only calls to
    *yfunc* count against *maxfev*.

    """
    if not callable(jfunc):
        raise ValueError("jfunc must be callable")

    ev = Evaluator(yfunc, jfunc=jfunc, debug_calls=debug_calls)
    return _solve(
        ev,
        _DER,
        x0,
        nout,
        ftol,
        xtol,
        gtol,
        maxfev,
        0.0,
        mode,
        diag,
        factor,
        None,
        debug_iter,
    )


def lmstr(
    yfunc,
    jrowfunc,
    x0,
    nout,
    ftol=SQRT_EPS,
    xtol=SQRT_EPS,
    gtol=0.0,
    maxfev=400,
    mode=ScaleMode.auto,
    diag=None,
    factor=100.0,
    debug_calls=False,
    debug_iter=False,
):
    """Minimize a sum of squares, receiving the Jacobian one row at a time.

    The parameters are as for :func:`lmdif`, with *jrowfunc* a callable
    ``jrowfunc(x, i, row)`` filling the n-vector ``row`` with the derivatives
    of the i'th function. Each row is folded into an n-by-n triangular
    factor as it arrives, which keeps the storage independent of m.

    """
    if not callable(jrowfunc):
        raise ValueError("jrowfunc must be callable")

    ev = Evaluator(yfunc, jrowfunc=jrowfunc, debug_calls=debug_calls)
    return _solve(
        ev,
        _STR,
        x0,
        nout,
        ftol,
        xtol,
        gtol,
        maxfev,
        0.0,
        mode,
        diag,
        factor,
        None,
        debug_iter,
    )


def _simple(soln):
    # The simplified drivers fold "gtol is too small" into plain gtol.
    if soln.status == Status.geps:
        soln.status = Status.gtol
    return soln


def lmdif1(yfunc, x0, nout, tol=SQRT_EPS, debug_calls=False, debug_iter=False):
    """Minimize a sum of squares with a forward-difference Jacobian and
    default settings.

    *tol* is used for both ftol and xtol; gtol is zero and the evaluation
    budget is ``200 * (n + 1)``.

    """
    x = start_point(x0)

    if not tol >= 0:
        return invalid("lm", x, Evaluator(yfunc))

    return _simple(
        lmdif(
            yfunc,
            x,
            nout,
            ftol=tol,
            xtol=tol,
            maxfev=200 * (x.size + 1),
            debug_calls=debug_calls,
            debug_iter=debug_iter,
        )
    )


def lmder1(
    yfunc, jfunc, x0, nout, tol=SQRT_EPS, debug_calls=False, debug_iter=False
):
    """Minimize a sum of squares with a user-supplied Jacobian and default
    settings.

    As :func:`lmdif1`, with an evaluation budget of ``100 * (n + 1)``.

    """
    x = start_point(x0)

    if not tol >= 0:
        return invalid("lm", x, Evaluator(yfunc))

    return _simple(
        lmder(
            yfunc,
            jfunc,
            x,
            nout,
            ftol=tol,
            xtol=tol,
            maxfev=100 * (x.size + 1),
            debug_calls=debug_calls,
            debug_iter=debug_iter,
        )
    )


def lmstr1(
    yfunc, jrowfunc, x0, nout, tol=SQRT_EPS, debug_calls=False, debug_iter=False
):
    """Minimize a sum of squares with a row-at-a-time Jacobian and default
    settings.

    As :func:`lmdif1`, with an evaluation budget of ``100 * (n + 1)``.

    """
    x = start_point(x0)

    if not tol >= 0:
        return invalid("lm", x, Evaluator(yfunc))

    return _simple(
        lmstr(
            yfunc,
            jrowfunc,
            x,
            nout,
            ftol=tol,
            xtol=tol,
            maxfev=100 * (x.size + 1),
            debug_calls=debug_calls,
            debug_iter=debug_iter,
        )
    )


def _factor_by_rows(ev, x, fvec, n, enorm, finfo):
    """Accumulate the triangular factor of the Jacobian one row at a time.

    Returns ``(status, factors)``: status is None and factors is
    ``(r, qtf, pmut, acnorm)`` on success; otherwise status says why the
    factorization could not be completed and factors is None.

    """
    r = np.zeros((n, n))
    qtf = np.zeros(n)
    row = np.empty(n)

    for i in range(fvec.size):
        if not ev.jrowcall(x, i, row):
            return Status.user_abort, None
        if not np.isfinite(row).all():
            return Status.nonfinite, None
        row_update(r, row, qtf, fvec[i], finfo)

    ev.njev += 1

    if not np.isfinite(r).all():
        return Status.nonfinite, None

    # If the factor is singular, redo it with column pivoting so that the
    # Levenberg-Marquardt solve can find a least-squares step.

    if not np.any(r.diagonal() == 0):
        pmut = np.arange(n)
        acnorm = np.array([enorm(r[j, : j + 1], finfo) for j in range(n)])
        return None, (r, qtf, pmut, acnorm)

    fac = qr_factor(r, enorm, finfo, pivot=True)
    qtf = fac.apply_qt(qtf)
    return None, (fac.r_lower(), qtf, fac.pmut, fac.acnorm)


def _solve(
    ev,
    kind,
    x0,
    nout,
    ftol,
    xtol,
    gtol,
    maxfev,
    epsfcn,
    mode,
    diag,
    factor,
    upper,
    debug_iter,
):
    finfo = np.finfo(float)
    epsmch = finfo.eps
    enorm = enorm_mpfit_careful
    x = start_point(x0)
    n = x.size
    m = int(nout)

    # Check the input parameters for errors.

    if (
        n < 1
        or m < n
        or not ftol >= 0
        or not xtol >= 0
        or not gtol >= 0
        or maxfev <= 0
        or not factor > 0
    ):
        return invalid("lm", x, ev)

    try:
        diag = check_scaling(mode, diag, n)
    except ValueError:
        return invalid("lm", x, ev)

    if upper is not None:
        upper = np.array(upper, dtype=float, ndmin=1)
        if upper.shape != (n,):
            return invalid("lm", x, ev)

    # Evaluate the function at the starting point and calculate its norm.

    soln = Solution("lm")
    fvec = np.empty(m)
    jac = np.empty((n, m))
    status = None
    fac = r = qtf = pmut = None
    par = 0.0
    niter = 1

    if not ev.ycall(x, fvec):
        status = Status.user_abort
        fnorm = np.nan
    elif not np.isfinite(fvec).all():
        status = Status.nonfinite
        fnorm = enorm_fast(fvec, finfo)
    else:
        fnorm = enorm(fvec, finfo)

    # Beginning of the outer loop.

    while status is None:
        # Calculate the Jacobian matrix and its QR factorization. In the
        # row-at-a-time case the factorization is built as we go.

        if kind == _STR:
            status, t = _factor_by_rows(ev, x, fvec, n, enorm, finfo)
            if status is not None:
                break
            r, qtf, pmut, acnorm = t
        else:
            if kind == _DER:
                ev.jcall(x, jac)
            else:
                forward_jacobian(
                    ev.ycall, x, fvec, jac, epsfcn, upper=upper, finfo=finfo
                )

            if ev.aborted:
                status = Status.user_abort
                break

            if not np.isfinite(jac).all():
                status = Status.nonfinite
                break

            fac = qr_factor(jac, enorm, finfo, pivot=True)
            qtf = fac.apply_qt(fvec)[:n]
            r = fac.r_lower()
            pmut = fac.pmut
            acnorm = fac.acnorm

        # On the first iteration, scale according to the norms of the
        # columns of the initial Jacobian, and calculate the norm of the
        # scaled x to initialize the step bound delta.

        if niter == 1:
            if mode == ScaleMode.auto:
                diag = acnorm.copy()
                diag[diag == 0] = 1.0

            xnorm = enorm(diag * x, finfo)
            delta = factor * xnorm
            if delta == 0:
                delta = factor

        # Exact zero residuals cannot be improved on.

        if fnorm == 0:
            status = Status.ftol
            break

        # Compute the norm of the scaled gradient.

        gnorm = 0.0
        colnorm = acnorm[pmut]
        wh = colnorm != 0
        if wh.any():
            g = np.dot(np.tril(r), qtf)[wh] / fnorm / colnorm[wh]
            gnorm = np.abs(g).max()

        # Test for convergence of the gradient norm.

        if gnorm <= gtol:
            status = Status.gtol
            break

        # Rescale if necessary.

        if mode == ScaleMode.auto:
            diag = np.maximum(diag, acnorm)

        # Beginning of the inner loop.

        while True:
            # Determine the Levenberg-Marquardt parameter. The strict upper
            # triangle of r is used as scratch space.

            par, p = lm_solve(r, pmut, diag, qtf, delta, par, enorm, finfo)

            # Store the direction p and x + p. Calculate the norm of p.

            p = -p
            xtrial = x + p
            pnorm = enorm(diag * p, finfo)

            # On the first iteration, adjust the initial step bound.

            if niter == 1:
                delta = min(delta, pnorm)

            # Evaluate the function at x + p and calculate its norm.

            ftrial = np.empty(m)
            if not ev.ycall(xtrial, ftrial):
                status = Status.user_abort
                break

            # A trial point where F blows up is a failed step.

            if np.isfinite(ftrial).all():
                fnorm1 = enorm(ftrial, finfo)
            else:
                fnorm1 = np.inf

            # Compute the scaled actual reduction.

            actred = -1.0
            if 0.1 * fnorm1 < fnorm:
                actred = 1 - (fnorm1 / fnorm) ** 2

            # Compute the scaled predicted reduction and the scaled
            # directional derivative.

            wa3 = np.dot(p[pmut], np.tril(r))
            temp1 = enorm(wa3, finfo) / fnorm
            temp2 = np.sqrt(par) * pnorm / fnorm
            prered = temp1**2 + temp2**2 / 0.5
            dirder = -(temp1**2 + temp2**2)

            # Compute the ratio of the actual to the predicted reduction.

            ratio = 0.0
            if prered != 0:
                ratio = actred / prered

            # Update the step bound.

            if ratio <= 0.25:
                if actred >= 0:
                    temp = 0.5
                else:
                    temp = 0.5 * dirder / (dirder + 0.5 * actred)

                if 0.1 * fnorm1 >= fnorm or temp < 0.1:
                    temp = 0.1

                delta = temp * min(delta, pnorm / 0.1)
                par /= temp
            elif par == 0 or ratio >= 0.75:
                delta = pnorm / 0.5
                par *= 0.5

            # Test for successful iteration.

            if ratio >= 1e-4:
                x = xtrial
                fvec = ftrial
                xnorm = enorm(diag * x, finfo)
                fnorm = fnorm1
                niter += 1

            if debug_iter:
                print(
                    "Iter: #%3d fnorm=%g pnorm=%g delta=%g par=%g ratio=%g"
                    % (niter - 1, fnorm, pnorm, delta, par, ratio)
                )

            # Tests for convergence, then for termination and stringent
            # tolerances. The first condition that holds wins.

            fconv = abs(actred) <= ftol and prered <= ftol and 0.5 * ratio <= 1
            xconv = delta <= xtol * xnorm

            if fconv and xconv:
                status = Status.ftol_xtol
            elif fconv:
                status = Status.ftol
            elif xconv:
                status = Status.xtol
            elif ev.nfev >= maxfev:
                status = Status.maxfev
            elif abs(actred) <= epsmch and prered <= epsmch and 0.5 * ratio <= 1:
                status = Status.feps
            elif delta <= epsmch * xnorm:
                status = Status.xeps
            elif gnorm <= epsmch:
                status = Status.geps

            # End of the inner loop. Repeat if the iteration was
            # unsuccessful and nothing has stopped us.

            if status is not None or ratio >= 1e-4:
                break

    soln.status = status
    soln.params = x
    soln.fvec = fvec
    soln.fnorm = fnorm
    soln.diag = diag
    soln.nfev = ev.nfev
    soln.njev = ev.njev
    soln.niter = niter - 1

    if r is not None:
        rl = np.tril(r)
        soln.r = rl.T
        soln.qtf = qtf
        soln.pmut = pmut
        soln.fjac = fac
        soln.covar = calc_covariance(rl, pmut)
        d = soln.covar.diagonal()
        soln.perror = np.where(d >= 0, np.sqrt(np.abs(d)), 0.0)

    return soln
