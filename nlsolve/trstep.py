# -*- mode: python; coding: utf-8 -*-
# Copyright (C) 1997-2003, 2004, 2005, 2006, 2007, 2008, 2009, 2010, 2011, Craig Markwardt
# Copyright 2003 Mark Rivers
# Copyright 2006, 2009-2011 (inclusive) Nadia Dencheva
# Copyright 2011-2017 (inclusive) Peter Williams
#
# This software is provided as is without any warranty whatsoever. Permission
# to use, copy, modify, and distribute modified or unmodified copies is
# granted, provided this copyright and disclaimer are included unchanged.

"""Trust-region step computations.

:func:`dogleg` produces the Powell dogleg step used by the hybrid solvers.
:func:`lm_solve` computes the Levenberg-Marquardt parameter and step used by
the least-squares solvers. Both take the triangular factor in the package's
transposed (lower triangular) storage; see :mod:`nlsolve.linalg`.

"""

__all__ = "dogleg lm_solve".split()

import numpy as np

from .linalg import qrd_solve


def dogleg(r, diag, qtb, delta, enorm, finfo):
    """Compute the dogleg step for a trust region.

    Parameters:
    r     - n-by-n array whose lower triangle is the transposed triangular
            factor R. The strict upper triangle must be zero.
    diag  - n-vector, the diagonal of the scaling matrix D.
    qtb   - n-vector, the first n elements of Q^T b.
    delta - positive scalar, the trust-region radius.
    enorm - norm-computing function.
    finfo - info about chosen floating-point representation.

    Returns:
    x     - n-vector, the step.

    Given A = Q R, this finds the convex combination x of the Gauss-Newton
    direction and the scaled gradient direction that minimizes ``|A x - b|``
    along the dogleg path, subject to ``|D x| <= delta``. If the
    Gauss-Newton step is inside the region it is returned unchanged;
    otherwise the step ends on the boundary. The caller negates it to get
    the step for ``F(x) = 0``.

    """
    epsmch = finfo.eps
    n = r.shape[0]
    x = np.empty(n, finfo.dtype)

    # Calculate the Gauss-Newton direction. A zero diagonal element is
    # replaced by a tiny multiple of its column's largest entry.

    for j in range(n - 1, -1, -1):
        s = np.dot(r[j + 1 :, j], x[j + 1 :])
        temp = r[j, j]

        if temp == 0:
            temp = epsmch * np.abs(r[j, : j + 1]).max()
            if temp == 0:
                temp = epsmch

        x[j] = (qtb[j] - s) / temp

    qnorm = enorm(diag * x, finfo)

    if qnorm <= delta:
        return x

    # The Gauss-Newton direction is not acceptable. Calculate the scaled
    # gradient direction.

    wa1 = np.dot(r, qtb) / diag

    # Calculate the norm of the scaled gradient and test for the special
    # case in which the scaled gradient is zero.

    gnorm = enorm(wa1, finfo)
    sgnorm = 0.0
    alpha = delta / qnorm

    if gnorm != 0:
        # Calculate the point along the scaled gradient at which the
        # quadratic is minimized.

        wa1 = (wa1 / gnorm) / diag
        wa2 = np.dot(wa1, r)
        temp = enorm(wa2, finfo)
        sgnorm = (gnorm / temp) / temp

        # Test whether the scaled gradient direction is acceptable.

        alpha = 0.0

        if sgnorm < delta:
            # The scaled gradient direction is not acceptable. Calculate
            # the point along the dogleg at which the quadratic is
            # minimized.

            bnorm = enorm(qtb, finfo)
            temp = (bnorm / gnorm) * (bnorm / qnorm) * (sgnorm / delta)
            temp = (
                temp
                - (delta / qnorm) * (sgnorm / delta) ** 2
                + np.sqrt(
                    (temp - delta / qnorm) ** 2
                    + (1 - (delta / qnorm) ** 2) * (1 - (sgnorm / delta) ** 2)
                )
            )
            alpha = ((delta / qnorm) * (1 - (sgnorm / delta) ** 2)) / temp

    # Form appropriate convex combination of the Gauss-Newton direction
    # and the scaled gradient direction.

    temp = (1 - alpha) * min(sgnorm, delta)
    return temp * wa1 + alpha * x


def lm_solve(r, pmut, ddiag, bqt, delta, par0, enorm, finfo):
    """Compute the Levenberg-Marquardt parameter and solution vector.

    Parameters:
    r     - IN/OUT n-by-n matrix. On input, the full lower triangle is the
            full lower triangle of R and the strict upper triangle is
            ignored. On output, the strict upper triangle has been
            obliterated; the lower triangle is unchanged.
    pmut  - n-vector, defines permutation of R
    ddiag - n-vector, diagonal elements of D
    bqt   - n-vector, first elements of B Q^T
    delta - positive scalar, specifies scale of enorm(Dx)
    par0  - nonnegative scalar, initial estimate of the LM parameter
    enorm - norm-computing function
    finfo - info about chosen floating-point representation

    Returns:
    par   - nonnegative scalar, final estimate of LM parameter
    x     - n-vector, least-squares solution of LM equation (see below)

    This routine computes the Levenberg-Marquardt parameter 'par' and a LM
    solution vector 'x'. Given an m-by-n matrix A, an n-by-n nonsingular
    diagonal matrix D, an m-vector B, and a positive number delta, the
    problem is to determine values such that 'x' is the least-squares
    solution to

     A x = B
     sqrt(par) * D x = 0

    and either

     (1) par = 0, dxnorm - delta <= 0.1 delta or
     (2) par > 0 and |dxnorm - delta| <= 0.1 delta

    where dxnorm = enorm(D x).

    This routine is given the full lower triangle of the transposed,
    column-pivoted QR factorization of A, a vector defining P ('pmut'), and
    the first n components of B Q^T ('bqt'). These values are essentially
    passed verbatim to :func:`nlsolve.linalg.qrd_solve`.

    This routine iterates to estimate par. Usually only a few iterations
    are needed, but no more than 10 are performed.

    """
    dwarf = finfo.tiny
    n = r.shape[0]
    x = np.empty_like(bqt)
    sdiag = np.empty_like(bqt)

    # Compute and store x in the Gauss-Newton direction. If the Jacobian
    # is rank-deficient, obtain a least-squares solution.

    nnonsingular = n
    wa1 = bqt.copy()

    for i in range(n):
        if r[i, i] == 0:
            nnonsingular = i
            wa1[i:] = 0
            break

    for j in range(nnonsingular - 1, -1, -1):
        wa1[j] /= r[j, j]
        wa1[:j] -= r[j, :j] * wa1[j]

    x[pmut] = wa1

    # Initial function evaluation. Check if the Gauss-Newton direction
    # was good enough.

    wa2 = ddiag * x
    dxnorm = enorm(wa2, finfo)
    normdiff = dxnorm - delta

    if normdiff <= 0.1 * delta:
        return 0.0, x

    # If the Jacobian is not rank deficient, the Newton step provides a
    # lower bound for the zero of the function.

    par_lower = 0.0

    if nnonsingular == n:
        wa1 = ddiag[pmut] * wa2[pmut] / dxnorm
        wa1[0] /= r[0, 0]

        for j in range(1, n):
            wa1[j] = (wa1[j] - np.dot(wa1[:j], r[j, :j])) / r[j, j]

        temp = enorm(wa1, finfo)
        par_lower = normdiff / delta / temp**2

    # We can always find an upper bound.

    for j in range(n):
        wa1[j] = np.dot(bqt[: j + 1], r[j, : j + 1]) / ddiag[pmut[j]]

    gnorm = enorm(wa1, finfo)
    par_upper = gnorm / delta
    if par_upper == 0:
        par_upper = dwarf / min(delta, 0.1)

    # If the input par lies outside of the interval (par_lower, par_upper),
    # set par to the closer endpoint.

    par = np.clip(par0, par_lower, par_upper)
    if par == 0:
        par = gnorm / dxnorm

    itercount = 0

    while True:
        itercount += 1

        if par == 0:
            par = max(dwarf, par_upper * 0.001)

        temp = np.sqrt(par)
        wa1 = temp * ddiag
        x = qrd_solve(r, pmut, wa1, bqt, sdiag)  # sdiag is an output arg here
        wa2 = ddiag * x
        dxnorm = enorm(wa2, finfo)
        olddiff = normdiff
        normdiff = dxnorm - delta

        if abs(normdiff) <= 0.1 * delta:
            break  # converged
        if par_lower == 0 and normdiff <= olddiff and olddiff < 0:
            break
        if itercount == 10:
            break

        # Compute and apply the Newton correction.

        wa1 = ddiag[pmut] * wa2[pmut] / dxnorm

        for j in range(n - 1):
            wa1[j] /= sdiag[j]
            wa1[j + 1 : n] -= r[j, j + 1 : n] * wa1[j]
        wa1[n - 1] /= sdiag[n - 1]

        par_delta = normdiff / delta / enorm(wa1, finfo) ** 2

        if normdiff > 0:
            par_lower = max(par_lower, par)
        elif normdiff < 0:
            par_upper = min(par_upper, par)

        par = max(par_lower, par + par_delta)

    return float(par), x
