# -*- mode: python; coding: utf-8 -*-
# Copyright 2011-2017 (inclusive) Peter Williams
# Licensed under the MIT License.

"""Forward-difference approximation of Jacobians, and a checker for
hand-written Jacobians.

Functions use the package's transposed Jacobian convention: for ``m``
functions of ``n`` variables the Jacobian is an n-by-m array with
``jac[j,i] = dF_i/dx_j``.

"""

__all__ = "check_derivative forward_jacobian".split()

import numpy as np


def forward_jacobian(
    ycall, x, fvec, jac, epsfcn=0.0, ml=None, mu=None, upper=None, finfo=None
):
    """Approximate a Jacobian by forward differences.

    Parameters:
    ycall  - Callable ``ycall(x, vec)`` that fills ``vec`` with the function
             values at ``x`` and returns False to request an abort.
    x      - n-vector, the point of evaluation. It is not modified.
    fvec   - m-vector, the function values at ``x``.
    jac    - output n-by-m array.
    epsfcn - Estimated relative error of the function values. The step for
             variable j is ``sqrt(max(epsfcn, eps)) * max(|x[j]|, 1)``.
    ml, mu - Number of sub- and super-diagonals of a banded Jacobian. If
             both are given and ``ml + mu + 1 < n``, variables whose
             columns cannot overlap are perturbed together and entries
             outside the band are set to zero. Only meaningful for square
             systems.
    upper  - Optional n-vector of upper bounds. A step that would cross its
             bound is taken backwards instead.
    finfo  - A Numpy finfo object.

    Returns:
    The number of calls made to *ycall*. This is ``n`` for a dense Jacobian
    and ``ml + mu + 1`` for a banded one. If *ycall* requests an abort,
    evaluation stops early and the count of calls made so far is returned.

    """
    if finfo is None:
        finfo = np.finfo(float)

    n = x.size
    m = fvec.size
    eps = np.sqrt(max(epsfcn, finfo.eps))
    h = eps * np.maximum(np.abs(x), 1.0)

    if upper is not None:
        wh = np.where(x + h > upper)
        h[wh] = -h[wh]

    xp = x.copy()
    fp = np.empty(m, finfo.dtype)

    if ml is None or mu is None or ml + mu + 1 >= n:
        for j in range(n):
            xp[j] = x[j] + h[j]
            ok = ycall(xp, fp)
            xp[j] = x[j]

            if ok is False:
                return j + 1

            jac[j] = (fp - fvec) / h[j]

        return n

    # Banded: every width'th variable can be perturbed in the same call,
    # since no function depends on two of them at once.

    width = ml + mu + 1
    rows = np.arange(m)

    for k in range(width):
        group = np.arange(k, n, width)
        xp[group] = x[group] + h[group]
        ok = ycall(xp, fp)
        xp[group] = x[group]

        if ok is False:
            return k + 1

        for j in group:
            inband = (rows >= j - mu) & (rows <= j + ml)
            jac[j] = np.where(inband, (fp - fvec) / h[j], 0.0)

    return width


def check_derivative(yfunc, jfunc, x, nout, epsfcn=0.0):
    """Check a Jacobian function against forward differences.

    Parameters:
    yfunc  - Callable ``yfunc(x, vec)`` filling the m-vector ``vec``.
    jfunc  - Callable ``jfunc(x, jac)`` filling the n-by-m array ``jac``.
    x      - n-vector, the point at which to check.
    nout   - m, the number of function values.
    epsfcn - Relative error of the function values, as for
             :func:`forward_jacobian`.

    Returns:
    explicit - the n-by-m Jacobian computed by *jfunc*
    auto     - the n-by-m forward-difference estimate
    score    - m-vector of per-function scores in [0, 1]

    A score of 1 means that the derivatives of that function are consistent
    with the function values to within the expected roundoff; a score of 0
    means they are clearly wrong. Intermediate values come from comparing
    the change in the function along a small step with the change predicted
    by *jfunc*, on a logarithmic scale.

    """
    finfo = np.finfo(float)
    x = np.array(x, dtype=float, ndmin=1)
    n = x.size

    fvec = np.empty(nout)
    yfunc(x, fvec)

    explicit = np.empty((n, nout))
    jfunc(x.copy(), explicit)

    auto = np.empty((n, nout))
    forward_jacobian(yfunc, x, fvec, auto, epsfcn, finfo=finfo)

    # Score along a single step that moves every variable at once.

    epsmch = finfo.eps
    eps = np.sqrt(epsmch)
    epsf = 100 * epsmch
    epslog = np.log10(eps)

    step = eps * np.abs(x)
    step[step == 0] = eps
    fvecp = np.empty(nout)
    yfunc(x + step, fvecp)

    predicted = np.dot(np.where(x == 0, 1.0, np.abs(x)), explicit)
    score = np.ones(nout)

    for i in range(nout):
        temp = 1.0
        dfi = fvecp[i] - fvec[i]

        if fvec[i] != 0 and fvecp[i] != 0 and abs(dfi) >= epsf * abs(fvec[i]):
            temp = (
                eps * abs(dfi / eps - predicted[i]) / (abs(fvec[i]) + abs(fvecp[i]))
            )

        if temp >= eps:
            score[i] = 0.0
        elif temp > epsmch:
            score[i] = (np.log10(temp) - epslog) / epslog

    return explicit, auto, score
