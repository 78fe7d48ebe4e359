# -*- mode: python; coding: utf-8 -*-
# Copyright 2011-2017 (inclusive) Peter Williams
# Licensed under the MIT License.

"""Powell hybrid solvers for square systems of nonlinear equations.

Given ``n`` functions ``F`` of ``n`` variables, these drivers look for ``x``
such that ``F(x) = 0``. Each iteration takes a dogleg step inside a trust
region; the Jacobian is factored as ``J = Q R`` and then carried along with
Broyden rank-one updates, so that it only needs to be recomputed when
progress stalls.

:func:`hybrd` and :func:`hybrd1` approximate the Jacobian by forward
differences (optionally exploiting band structure); :func:`hybrj` and
:func:`hybrj1` call a user-supplied Jacobian function. The ``1`` variants
have fewer knobs.

Callbacks::

  def yfunc(x, fvec):
      fvec[:] = ...          # n values; return False to abort

  def jfunc(x, jac):
      jac[j,i] = dF_i/dx_j   # note the transposition; return False to abort

"""

__all__ = "hybrd hybrd1 hybrj hybrj1".split()

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
    enorm_fast,
    enorm_mpfit_careful,
    qr_factor,
    r1_apply,
    r1_update,
)
from .trstep import dogleg


def hybrd(
    yfunc,
    x0,
    xtol=SQRT_EPS,
    maxfev=2000,
    ml=None,
    mu=None,
    epsfcn=0.0,
    mode=ScaleMode.auto,
    diag=None,
    factor=100.0,
    ftol=0.0,
    gtol=0.0,
    upper=None,
    debug_calls=False,
    debug_iter=False,
):
    """Solve ``F(x) = 0`` with a forward-difference Jacobian.

    Parameters:
    yfunc  - Callable ``yfunc(x, fvec)`` filling the n-vector ``fvec``.
    x0     - n-vector, the starting point.
    xtol   - Stop when the relative error between two consecutive iterates
             is at most xtol.
    maxfev - Stop after this many calls to yfunc, including those used for
             the Jacobian.
    ml, mu - Number of sub- and super-diagonals within the band of the
             Jacobian. None or a negative value means the Jacobian is dense.
    epsfcn - Relative error of the function values, used to choose the
             difference steps.
    mode   - :data:`ScaleMode.auto` or :data:`ScaleMode.user`.
    diag   - n-vector of positive scale factors, required if mode is user.
    factor - The initial trust-region radius is factor times the scaled
             norm of x0 (or factor itself if that is zero).
    ftol   - If positive, also stop when the norm of F is at most ftol.
    gtol   - If positive, also stop when the largest cosine between F and a
             column of the Jacobian is at most gtol.
    upper  - Optional n-vector of upper bounds that the difference steps
             should not cross.
    debug_calls, debug_iter - Print each function call or iteration.

    Returns:
    A :class:`nlsolve.Solution` whose ``info`` attribute gives the MINPACK
    code.

    """
    ev = Evaluator(yfunc, debug_calls=debug_calls)
    x = start_point(x0)
    n = x.size

    if ml is None or ml < 0:
        ml = n - 1
    if mu is None or mu < 0:
        mu = n - 1

    return _solve(
        ev,
        x,
        False,
        xtol,
        maxfev,
        ml,
        mu,
        epsfcn,
        mode,
        diag,
        factor,
        ftol,
        gtol,
        upper,
        debug_iter,
    )


def hybrj(
    yfunc,
    jfunc,
    x0,
    xtol=SQRT_EPS,
    maxfev=1000,
    mode=ScaleMode.auto,
    diag=None,
    factor=100.0,
    ftol=0.0,
    gtol=0.0,
    debug_calls=False,
    debug_iter=False,
):
    """Solve ``F(x) = 0`` with a user-supplied Jacobian.

    The parameters are as for :func:`hybrd`, with *jfunc* a callable
    ``jfunc(x, jac)`` filling the n-by-n array ``jac`` with ``jac[j,i] =
    dF_i/dx_j``. Only calls to *yfunc* count against *maxfev*; Jacobian
    evaluations are reported separately as ``njev``.

    """
    if not callable(jfunc):
        raise ValueError("jfunc must be callable")

    ev = Evaluator(yfunc, jfunc=jfunc, debug_calls=debug_calls)
    x = start_point(x0)
    n = x.size
    return _solve(
        ev,
        x,
        True,
        xtol,
        maxfev,
        n - 1,
        n - 1,
        0.0,
        mode,
        diag,
        factor,
        ftol,
        gtol,
        None,
        debug_iter,
    )


def hybrd1(yfunc, x0, tol=SQRT_EPS, debug_calls=False, debug_iter=False):
    """Solve ``F(x) = 0`` with a forward-difference Jacobian and default
    settings.

    *tol* is the relative error desired in the solution. The evaluation
    budget is ``200 * (n + 1)``, the Jacobian is treated as dense, and the
    variables are not rescaled.

    """
    x = start_point(x0)
    n = x.size

    if not tol >= 0:
        return invalid("hybrid", x, Evaluator(yfunc))

    return hybrd(
        yfunc,
        x,
        xtol=tol,
        maxfev=200 * (n + 1),
        mode=ScaleMode.user,
        diag=np.ones(n),
        debug_calls=debug_calls,
        debug_iter=debug_iter,
    )


def hybrj1(yfunc, jfunc, x0, tol=SQRT_EPS, debug_calls=False, debug_iter=False):
    """Solve ``F(x) = 0`` with a user-supplied Jacobian and default settings.

    As :func:`hybrd1`, with an evaluation budget of ``100 * (n + 1)``.

    """
    x = start_point(x0)
    n = x.size

    if not tol >= 0:
        return invalid("hybrid", x, Evaluator(yfunc))

    return hybrj(
        yfunc,
        jfunc,
        x,
        xtol=tol,
        maxfev=100 * (n + 1),
        mode=ScaleMode.user,
        diag=np.ones(n),
        debug_calls=debug_calls,
        debug_iter=debug_iter,
    )


def _solve(
    ev,
    x,
    use_jfunc,
    xtol,
    maxfev,
    ml,
    mu,
    epsfcn,
    mode,
    diag,
    factor,
    ftol,
    gtol,
    upper,
    debug_iter,
):
    finfo = np.finfo(float)
    epsmch = finfo.eps
    enorm = enorm_mpfit_careful
    n = x.size

    # Check the input parameters for errors.

    if (
        n < 1
        or not xtol >= 0
        or not ftol >= 0
        or not gtol >= 0
        or maxfev <= 0
        or not factor > 0
    ):
        return invalid("hybrid", x, ev)

    try:
        diag = check_scaling(mode, diag, n)
    except ValueError:
        return invalid("hybrid", x, ev)

    if upper is not None:
        upper = np.array(upper, dtype=float, ndmin=1)
        if upper.shape != (n,):
            return invalid("hybrid", x, ev)

    # Evaluate the function at the starting point and calculate its norm.

    soln = Solution("hybrid")
    fvec = np.empty(n)
    status = None
    niter = 1
    ncsuc = ncfail = nslow1 = nslow2 = 0
    jac = np.empty((n, n))
    r = q = qtf = None

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
        jeval = True

        # Calculate the Jacobian matrix.

        if use_jfunc:
            ev.jcall(x, jac)
        else:
            forward_jacobian(ev.ycall, x, fvec, jac, epsfcn, ml, mu, upper, finfo)

        if ev.aborted:
            status = Status.user_abort
            break

        if not np.isfinite(jac).all():
            status = Status.nonfinite
            break

        # Compute the QR factorization of the Jacobian. The hybrid method
        # does not pivot.

        fac = qr_factor(jac, enorm, finfo, pivot=False)

        # On the first iteration scale according to the norms of the
        # columns of the initial Jacobian, and calculate the norm of the
        # scaled x to initialize the step bound delta.

        if niter == 1:
            if mode == ScaleMode.auto:
                diag = fac.acnorm.copy()
                diag[diag == 0] = 1.0

            xnorm = enorm(diag * x, finfo)
            delta = factor * xnorm
            if delta == 0:
                delta = factor

        qtf = fac.apply_qt(fvec)
        r = fac.r_lower()
        q = fac.form_q()

        if gtol > 0 and fnorm != 0:
            wh = fac.acnorm != 0
            if wh.any():
                cosines = np.dot(jac, fvec)[wh] / fac.acnorm[wh] / fnorm
                if np.abs(cosines).max() <= gtol:
                    status = Status.gtol
                    break

        if mode == ScaleMode.auto:
            diag = np.maximum(diag, fac.acnorm)

        # Beginning of the inner loop.

        while True:
            # Determine the direction p.

            p = -dogleg(r, diag, qtf, delta, enorm, finfo)

            # Store the direction p and x + p. Calculate the norm of p.

            xtrial = x + p
            pnorm = enorm(diag * p, finfo)

            # On the first iteration, adjust the initial step bound.

            if niter == 1:
                delta = min(delta, pnorm)

            # Evaluate the function at x + p and calculate its norm.

            ftrial = np.empty(n)
            if not ev.ycall(xtrial, ftrial):
                status = Status.user_abort
                break

            # A trial point where F blows up is a failed step.

            finite = np.isfinite(ftrial).all()
            if finite:
                fnorm1 = enorm(ftrial, finfo)
            else:
                fnorm1 = np.inf

            # Compute the scaled actual reduction.

            actred = -1.0
            if fnorm1 < fnorm:
                actred = 1 - (fnorm1 / fnorm) ** 2

            # Compute the scaled predicted reduction.

            wa3 = qtf + np.dot(p, r)
            temp = enorm(wa3, finfo)
            prered = 0.0
            if temp < fnorm:
                prered = 1 - (temp / fnorm) ** 2

            # Compute the ratio of the actual to the predicted reduction.

            ratio = 0.0
            if prered > 0:
                ratio = actred / prered

            # Update the step bound.

            if ratio < 0.1:
                ncsuc = 0
                ncfail += 1
                delta *= 0.5
            else:
                ncfail = 0
                ncsuc += 1
                if ratio >= 0.5 or ncsuc > 1:
                    delta = max(delta, pnorm / 0.5)
                if abs(ratio - 1) <= 0.1:
                    delta = pnorm / 0.5

            # Test for successful iteration.

            if ratio >= 1e-4:
                x = xtrial
                fvec = ftrial
                xnorm = enorm(diag * x, finfo)
                fnorm = fnorm1
                niter += 1

            # Determine the progress of the iteration.

            nslow1 += 1
            if actred >= 0.001:
                nslow1 = 0
            if jeval:
                nslow2 += 1
            if actred >= 0.1:
                nslow2 = 0

            if debug_iter:
                print(
                    "Iter: #%3d fnorm=%g pnorm=%g delta=%g ratio=%g"
                    % (niter - 1, fnorm, pnorm, delta, ratio)
                )

            # Test for convergence, then for termination and stringent
            # tolerances. The first condition that holds wins.

            if ftol > 0 and fnorm <= ftol:
                status = Status.ftol
            elif delta <= xtol * xnorm or fnorm == 0:
                status = Status.xtol
            elif ev.nfev >= maxfev:
                status = Status.maxfev
            elif 0.1 * max(0.1 * delta, pnorm) <= epsmch * xnorm:
                status = Status.xeps
            elif nslow2 == 5:
                status = Status.slow_jacobian
            elif nslow1 == 10:
                status = Status.slow_iteration

            if status is not None:
                break

            # Criterion for recalculating the Jacobian.

            if ncfail == 2:
                break

            # A non-finite trial leaves the factors as they were.

            if not finite:
                continue

            # Calculate the rank-one modification to the Jacobian and
            # update qtf if necessary.

            qtfnew = np.dot(q, ftrial)
            v = (qtfnew - wa3) / pnorm
            u = diag * ((diag * p) / pnorm)
            if ratio >= 1e-4:
                qtf = qtfnew

            # Compute the QR factorization of the updated Jacobian.

            w, _ = r1_update(r, u, v, finfo)
            r1_apply(q, v, w)
            r1_apply(qtf, v, w)
            jeval = False

            # An update that overflowed is replaced by a fresh Jacobian.

            if not all(np.isfinite(a).all() for a in (r, q, qtf)):
                break

    soln.status = status
    soln.params = x
    soln.fvec = fvec
    soln.fnorm = fnorm
    soln.pmut = np.arange(n)
    soln.diag = diag
    soln.nfev = ev.nfev
    soln.njev = ev.njev
    soln.niter = niter - 1

    if r is not None:
        soln.r = np.tril(r).T
        soln.q = q.T
        soln.qtf = qtf

    return soln
