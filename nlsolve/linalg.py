# -*- mode: python; coding: utf-8 -*-
# Copyright (C) 1997-2003, 2004, 2005, 2006, 2007, 2008, 2009, 2010, 2011, Craig Markwardt
# Copyright 2003 Mark Rivers
# Copyright 2006, 2009-2011 (inclusive) Nadia Dencheva
# Copyright 2011-2017 (inclusive) Peter Williams
#
# This software is provided as is without any warranty whatsoever. Permission
# to use, copy, modify, and distribute modified or unmodified copies is
# granted, provided this copyright and disclaimer are included unchanged.

"""Dense linear algebra kernels shared by the solvers.

Euclidean norms, the pivoted Householder Q-R factorization, rank-one and
row-append updates of a triangular factor, the damped least-squares solve,
and the covariance matrix of a factored Jacobian.

== Transposition ==

As in the rest of this package, matrices are stored transposed relative to
the textbook (and Fortran) presentation. A Jacobian of ``m`` functions in
``n`` variables is an n-by-m array ``jac`` with ``jac[j,i] = dF_i/dx_j``, so
that each row holds the derivatives with respect to one variable. The Q-R
factorization

  J P = Q R or, in Python,
  a[pmut] == np.dot(r, q)

gives an n-by-m (or n-by-n) *lower* triangular ``r`` whose row ``j`` holds
column ``j`` of the textbook upper triangular R, and an m-by-m ``q`` whose
rows are the columns of the textbook Q. "Column j of R" is therefore
``r[j,:j+1]`` throughout.

"""

__all__ = """FactoredJacobian calc_covariance enorm_fast enorm_minpack
enorm_mpfit_careful qr_factor qr_factor_full qrd_solve r1_apply r1_update
row_update""".split()

import numpy as np


# Euclidean norm-calculating functions. The naive implementation is
# fast but can be sensitive to under/overflows. The "mpfit_careful"
# version is slower but tries to be more robust. The "minpack"
# version emulates the MINPACK implementation exactly, one element at
# a time.

enorm_fast = lambda v, finfo: np.sqrt(np.dot(v, v))


def enorm_mpfit_careful(v, finfo):
    if v.size == 0:
        return 0.0

    mx = max(abs(v.max()), abs(v.min()))

    if mx == 0:
        return v[0] * 0.0  # preserve type
    if not np.isfinite(mx):
        raise ValueError("tried to compute norm of a vector with nonfinite values")
    if mx > finfo.max / v.size or mx < finfo.tiny * v.size:
        return mx * np.sqrt(np.dot(v / mx, v / mx))

    return np.sqrt(np.dot(v, v))


def enorm_minpack(v, finfo):
    rdwarf = 3.834e-20
    rgiant = 1.304e19
    agiant = rgiant / max(v.size, 1)

    s1 = s2 = s3 = x1max = x3max = 0.0

    for i in range(v.size):
        xabs = abs(v[i])

        if xabs > rdwarf and xabs < agiant:
            s2 += xabs**2
        elif xabs <= rdwarf:
            if xabs <= x3max:
                if xabs != 0.0:
                    s3 += (xabs / x3max) ** 2
            else:
                s3 = 1 + s3 * (x3max / xabs) ** 2
                x3max = xabs
        else:
            if xabs <= x1max:
                s1 += (xabs / x1max) ** 2
            else:
                s1 = 1.0 + s1 * (x1max / xabs) ** 2
                x1max = xabs

    if s1 != 0.0:
        return x1max * np.sqrt(s1 + (s2 / x1max) / x1max)

    if s2 == 0.0:
        return x3max * np.sqrt(s3)

    if s2 >= x3max:
        return np.sqrt(s2 * (1 + (x3max / s2) * (x3max * s3)))

    return np.sqrt(x3max * ((s2 / x3max) + (x3max * s3)))


# Plane rotations. Every update routine below eliminates one number
# against another with the same numerically careful construction.


def _givens(keep, elim, giant):
    """Compute the rotation that zeros *elim* against *keep*.

    Returns ``(cos, sin, tau)``. Applying ``keep' = cos*keep + sin*elim``
    and ``elim' = -sin*keep + cos*elim`` makes ``elim'`` vanish. *tau* is a
    single number from which *cos* and *sin* can be recovered later; see
    :func:`_ungivens`.

    """
    if elim == 0:
        return 1.0, 0.0, 0.0

    if abs(keep) < abs(elim):
        cotan = keep / elim
        sin = 0.5 / np.sqrt(0.25 + 0.25 * cotan**2)
        cos = sin * cotan
        tau = 1.0
        if abs(cos) * giant > 1:
            tau = 1 / cos
    else:
        tan = elim / keep
        cos = 0.5 / np.sqrt(0.25 + 0.25 * tan**2)
        sin = cos * tan
        tau = sin

    return cos, sin, tau


def _ungivens(tau):
    if abs(tau) > 1:
        cos = 1 / tau
        sin = np.sqrt(1 - cos**2)
    else:
        sin = tau
        cos = np.sqrt(1 - sin**2)
    return cos, sin


# Q-R factorization.


class FactoredJacobian(object):
    """The packed Householder Q-R factorization of a Jacobian. Attributes:

    packed - n-by-m array. Its strict lower triangle holds the strict lower
             triangle of ``r``; its upper trapezoid holds the Householder
             vectors that define ``q``.
    rdiag  - n-vector, the diagonal of ``r``.
    pmut   - n-vector permutation. ``a[pmut]`` is the permuted input.
    acnorm - n-vector, the norms of the rows of the unpermuted input.

    Use :meth:`apply_qt` to transform a vector by the orthogonal factor,
    :meth:`r_lower` to get the triangular factor, and :meth:`form_q` to get
    the orthogonal factor as an explicit matrix.

    """

    packed = None
    rdiag = None
    pmut = None
    acnorm = None

    def __init__(self, packed, rdiag, pmut, acnorm):
        self.packed = packed
        self.rdiag = rdiag
        self.pmut = pmut
        self.acnorm = acnorm

    @property
    def shape(self):
        return self.packed.shape

    def apply_qt(self, b):
        """Apply the orthogonal factor to the m-vector *b*.

        In textbook orientation this computes ``Q^T b``; with the transposed
        storage of this package it is ``np.dot(q, b)``. Returns a new
        m-vector; the leading ``n`` entries are what the solvers call
        ``qtf``.

        """
        n, m = self.packed.shape
        wa = np.array(b, dtype=self.packed.dtype)

        if wa.shape != (m,):
            raise ValueError("expected a %d-element vector" % m)

        for j in range(n):
            vjj = self.packed[j, j]
            if vjj != 0:
                vj = self.packed[j, j:]
                wa[j:] -= vj * np.dot(wa[j:], vj) / vjj

        return wa

    def r_lower(self):
        """Return the n-by-n lower triangular factor ``r``, with zeros
        above the diagonal."""
        n = self.packed.shape[0]
        r = np.tril(self.packed[:, :n], -1)
        r[np.diag_indices(n)] = self.rdiag
        return r

    def form_q(self):
        """Return the m-by-m orthogonal factor ``q`` as an explicit matrix,
        so that ``np.dot(self.r_full(), q) == a[pmut]``.

        This accumulates the Householder reflections in the packed storage.
        The solvers only need it for the Broyden-updated hybrid iteration,
        where ``q`` is carried along between Jacobian evaluations.

        """
        n, m = self.packed.shape
        q = np.eye(m, dtype=self.packed.dtype)
        v = np.empty(m, dtype=self.packed.dtype)

        for i in range(n):
            if self.packed[i, i] == 0:
                continue

            v[:] = self.packed[i]
            v[:i] = 0
            q -= np.outer(v, np.dot(v, q)) / v[i]

        return q

    def r_full(self):
        """Return the n-by-m lower trapezoidal factor ``r``."""
        n, m = self.packed.shape
        r = np.zeros((n, m), dtype=self.packed.dtype)
        r[:, :n] = self.r_lower()
        return r


def qr_factor(a, enorm=enorm_mpfit_careful, finfo=None, pivot=True):
    """Compute the packed Q-R factorization of a matrix.

    Parameters:
    a     - An n-by-m matrix, m >= n. It is not modified.
    enorm - A Euclidean-norm-computing function.
    finfo - A Numpy finfo object. Defaults to that of ``a``.
    pivot - Whether to apply column pivoting.

    Returns:
    A :class:`FactoredJacobian`.

    Computes the transposed Q-R factorization of the matrix 'a', such that

      np.dot(r, q) = a[pmut]

    where q is m-by-m and q q^T = ident and r is n-by-m and is lower
    triangular. The packed form of output is all that is used by the
    Levenberg-Marquardt iteration; :meth:`FactoredJacobian.form_q` expands it
    when the explicit orthogonal matrix is needed.

    "Pivoting" refers to permuting the rows of 'a' to have their norms in
    nonincreasing order. 'pmut' maps the unpermuted rows of 'a' to permuted
    rows. That is, the norms of the rows of a[pmut] are in nonincreasing
    order. Without pivoting, 'pmut' is the identity.

    The form of this transformation and the method of pivoting first
    appeared in Linpack.

    """
    a = np.array(a, dtype=float if finfo is None else finfo.dtype, ndmin=2)

    if finfo is None:
        finfo = np.finfo(a.dtype)

    machep = finfo.eps
    n, m = a.shape

    if m < n:
        raise ValueError('"a" must be at least as tall as it is wide')

    acnorm = np.empty(n, finfo.dtype)
    for j in range(n):
        acnorm[j] = enorm(a[j], finfo)

    rdiag = acnorm.copy()
    wa = acnorm.copy()
    pmut = np.arange(n)

    for i in range(n):
        if pivot:
            # Bring the row with the largest remaining norm into the i'th
            # position and note it in the pivot vector.
            kmax = rdiag[i:].argmax() + i

            if kmax != i:
                pmut[[i, kmax]] = pmut[[kmax, i]]
                rdiag[kmax] = rdiag[i]
                wa[kmax] = wa[i]
                a[[i, kmax]] = a[[kmax, i]]

        # Compute the Householder transformation to reduce the i'th
        # row of A to a multiple of the i'th unit vector.

        ainorm = enorm(a[i, i:], finfo)

        if ainorm == 0:
            rdiag[i] = 0
            continue

        if a[i, i] < 0:
            ainorm = -ainorm

        a[i, i:] /= ainorm
        a[i, i] += 1

        # Apply the transformation to the remaining rows and update
        # the norms.

        for j in range(i + 1, n):
            a[j, i:] -= a[i, i:] * np.dot(a[i, i:], a[j, i:]) / a[i, i]

            if pivot and rdiag[j] != 0:
                rdiag[j] *= np.sqrt(max(1 - (a[j, i] / rdiag[j]) ** 2, 0))

                if 0.05 * (rdiag[j] / wa[j]) ** 2 <= machep:
                    # Too much cancellation; recompute from scratch.
                    wa[j] = rdiag[j] = enorm(a[j, i + 1 :], finfo)

        rdiag[i] = -ainorm

    return FactoredJacobian(a, rdiag, pmut, acnorm)


def qr_factor_full(a, pivot=True):
    """Compute the Q-R factorization of a matrix as explicit matrices.

    Returns ``(q, r, pmut)`` such that ``np.dot(r, q) == a[pmut]``, with q
    m-by-m orthogonal and r n-by-m lower triangular. This goes through
    :func:`qr_factor` and is meant for checking it; the solvers work with
    the packed form.

    """
    fac = qr_factor(a, pivot=pivot)
    return fac.form_q(), fac.r_full(), fac.pmut


# Updates of a triangular factor.


def r1_update(s, u, v, finfo=None):
    """Update a lower triangular factor for a rank-one modification.

    Parameters:
    s     - IN/OUT m-by-n array, m >= n, lower trapezoidal (entries above
            the diagonal are ignored and left alone).
    u     - m-vector.
    v     - IN/OUT n-vector.
    finfo - A Numpy finfo object.

    Returns:
    w     - m-vector, the transformed copy of u (see below).
    sing  - True if any diagonal element of the updated factor is zero.

    In textbook orientation ``s`` holds an m-by-n lower trapezoidal matrix S,
    and this routine finds an orthogonal Q such that

      (S + u v^T) Q

    is again lower trapezoidal. Q is the product of two sequences of plane
    rotations, and is not formed. On output ``v`` encodes the first sequence
    and ``w`` the second, in the compact form read by :func:`r1_apply`, and
    ``s`` holds the updated factor.

    The hybrid solvers pass the transposed ``r`` (so S = R^T); the update
    then turns R into the triangular factor of ``R + v u^T``.

    """
    if finfo is None:
        finfo = np.finfo(s.dtype)

    giant = finfo.max
    m, n = s.shape
    w = np.zeros(m, s.dtype)
    nm1 = n - 1

    # Initialize the diagonal element pointer with the last column of S.

    w[nm1:] = s[nm1:, nm1]

    # Rotate the vector v into a multiple of the n'th unit vector in such a
    # way that a spike is introduced into w.

    for j in range(n - 2, -1, -1):
        w[j] = 0.0

        if v[j] == 0:
            continue

        cos, sin, tau = _givens(v[nm1], v[j], giant)
        v[nm1] = sin * v[j] + cos * v[nm1]
        v[j] = tau

        temp = cos * s[j:, j] - sin * w[j:]
        w[j:] = sin * s[j:, j] + cos * w[j:]
        s[j:, j] = temp

    # Add the spike from the rank-one update to w.

    w += v[nm1] * u

    # Eliminate the spike.

    sing = False

    for j in range(nm1):
        if w[j] != 0:
            cos, sin, tau = _givens(s[j, j], w[j], giant)
            temp = cos * s[j:, j] + sin * w[j:]
            w[j:] = -sin * s[j:, j] + cos * w[j:]
            s[j:, j] = temp
            w[j] = tau

        if s[j, j] == 0:
            sing = True

    # Move w back into the last column of S.

    s[nm1:, nm1] = w[nm1:]
    if s[nm1, nm1] == 0:
        sing = True

    return w, sing


def r1_apply(a, v, w):
    """Apply the rotations computed by :func:`r1_update`.

    Parameters:
    a - IN/OUT array whose leading axis has length n. It may be an n-vector
        or an n-by-k matrix.
    v - n-vector, the first rotation sequence from :func:`r1_update`.
    w - m-vector, m >= n, the second rotation sequence.

    Each rotation mixes the j'th entry (row) of ``a`` with the last one. In
    the hybrid solvers this carries the orthogonal factor ``q`` and the
    vector ``qtf`` through a Broyden update.

    """
    n = a.shape[0]
    nm1 = n - 1

    for j in range(n - 2, -1, -1):
        cos, sin = _ungivens(v[j])
        temp = cos * a[j] - sin * a[nm1]
        a[nm1] = sin * a[j] + cos * a[nm1]
        a[j] = temp

    for j in range(nm1):
        cos, sin = _ungivens(w[j])
        temp = cos * a[j] + sin * a[nm1]
        a[nm1] = -sin * a[j] + cos * a[nm1]
        a[j] = temp


def row_update(r, w, b, alpha, finfo=None):
    """Add one row to a triangular factor.

    Parameters:
    r     - IN/OUT n-by-n array. Its full lower triangle holds the
            triangular factor; the strict upper triangle is not touched.
    w     - n-vector, the row to add. It is not modified.
    b     - IN/OUT n-vector.
    alpha - scalar.

    Returns:
    alpha - the updated scalar.

    In textbook orientation, given an upper triangular R and a row w, this
    determines an orthogonal Q such that

      Q [R; w^T] = [R'; 0]

    and applies the same rotations to the augmented vector ``[b; alpha]``.
    Row-at-a-time Jacobian accumulation uses this so that the full m-by-n
    Jacobian never needs to be stored.

    """
    if finfo is None:
        finfo = np.finfo(r.dtype)

    giant = finfo.max
    n = r.shape[0]
    coss = np.ones(n, r.dtype)
    sins = np.zeros(n, r.dtype)

    for j in range(n):
        rowj = w[j]

        # Apply the previous transformations to column j of R.

        for i in range(j):
            temp = coss[i] * r[j, i] + sins[i] * rowj
            rowj = -sins[i] * r[j, i] + coss[i] * rowj
            r[j, i] = temp

        if rowj == 0:
            continue

        cos, sin, tau = _givens(r[j, j], rowj, giant)
        coss[j] = cos
        sins[j] = sin

        r[j, j] = cos * r[j, j] + sin * rowj
        temp = cos * b[j] + sin * alpha
        alpha = -sin * b[j] + cos * alpha
        b[j] = temp

    return alpha


# QR solution.


def qrd_solve(r, pmut, ddiag, bqt, sdiag):
    """Solve an equation given a QR factored matrix and a diagonal.

    Parameters:
    r     - **input-output** n-by-n array. The full lower triangle contains
            the full lower triangle of R. On output, the strict upper
            triangle contains the transpose of the strict lower triangle of
            S. The strict lower triangle and the diagonal are preserved.
    pmut  - n-vector describing the permutation matrix P.
    ddiag - n-vector containing the diagonal of the matrix D in the base
            problem (see below).
    bqt   - n-vector containing the first n elements of B Q^T.
    sdiag - output n-vector. It is filled with the diagonal of S. Should
            be preallocated by the caller.

    Returns:
    x     - n-vector solving the equation.

    Compute the n-vector x such that

      A^T x = B, D x = 0

    in the least-squares sense, where A is an n-by-m matrix, B is an
    m-vector, and D is an n-by-n diagonal matrix. We are given the pivoted
    transposed QR factorization of A,

      A P = R Q

    If x = P z, then we need to solve

      R z = B Q^T,
      P^T D P z = 0

    If the system is rank-deficient, these equations are solved as well as
    possible in a least-squares sense. For the Levenberg-Marquardt
    parameter iteration we also compute the lower triangular n-by-n matrix S
    such that

      P^T (A A^T + D D) P = S S^T

    """
    n = r.shape[0]
    giant = np.finfo(r.dtype).max

    # Copy r and bqt to preserve input and initialize S. In particular,
    # save the diagonal elements of r in x. On input only the full lower
    # triangle of R is meaningful, so we can mirror that into the upper
    # triangle without issues.

    for i in range(n):
        r[i, i:] = r[i:, i]

    x = r.diagonal().copy()
    zwork = np.array(bqt, dtype=r.dtype)

    # Eliminate the diagonal matrix D using Givens rotations.

    for i in range(n):
        # Prepare the row of D to be eliminated, locating the diagonal
        # element using P from the QR factorization.

        li = pmut[i]
        if ddiag[li] == 0:
            sdiag[i] = r[i, i]
            r[i, i] = x[i]
            continue

        sdiag[i:] = 0
        sdiag[i] = ddiag[li]

        # The transformations to eliminate the row of D modify only a
        # single element of B Q^T beyond the first n, which is initially
        # zero.

        bqtpi = 0.0

        for j in range(i, n):
            if sdiag[j] == 0:
                continue

            cos, sin, _ = _givens(r[j, j], sdiag[j], giant)

            # Compute the modified diagonal element of R and the modified
            # element of (B Q^T, 0).
            r[j, j] = cos * r[j, j] + sin * sdiag[j]
            temp = cos * zwork[j] + sin * bqtpi
            bqtpi = -sin * zwork[j] + cos * bqtpi
            zwork[j] = temp

            # Accumulate the transformation in the row of S.
            if j + 1 < n:
                temp = cos * r[j, j + 1 :] + sin * sdiag[j + 1 :]
                sdiag[j + 1 :] = -sin * r[j, j + 1 :] + cos * sdiag[j + 1 :]
                r[j, j + 1 :] = temp

        # Save the diagonal of S and restore the diagonal of R from its
        # saved location in x.
        sdiag[i] = r[i, i]
        r[i, i] = x[i]

    # Solve the triangular system for z. If the system is singular then
    # obtain a least-squares solution.

    nsing = n

    for i in range(n):
        if sdiag[i] == 0.0:
            nsing = i
            zwork[i:] = 0
            break

    if nsing > 0:
        zwork[nsing - 1] /= sdiag[nsing - 1]

        for i in range(nsing - 2, -1, -1):
            s = np.dot(zwork[i + 1 : nsing], r[i, i + 1 : nsing])
            zwork[i] = (zwork[i] - s) / sdiag[i]

    # Permute the components of z back to components of x.
    x[pmut] = zwork
    return x


def calc_covariance(r, pmut, tol=1e-14):
    """Calculate the covariance matrix of the fitted parameters

    Parameters:
    r    - n-by-n matrix, the full lower triangle of R
    pmut - n-vector, defines the permutation of R
    tol  - scalar, relative column scale for determining rank
           deficiency. Default 1e-14.

    Returns:
    cov  - n-by-n matrix, the covariance matrix C

    Given an m-by-n Jacobian J, the corresponding covariance matrix is

      C = inverse(J^T J)

    This routine is given the pivoted transposed QR factorization of J, in
    particular the full lower triangle of R ('r') and a vector describing
    P ('pmut'). The covariance matrix is then

      C = P inverse(R^T R) P^T

    If J is nearly rank-deficient, the covariance matrix is computed for
    the linearly-independent columns only. If k is the largest integer such
    that ``|R[k,k]| > tol*|R[0,0]|``, the entries belonging to the later
    columns (``pmut[j]`` for j > k) are set to zero.

    """
    n = r.shape[1]
    assert r.shape[0] >= n
    r = np.tril(r[:n])

    # Form the inverse of R in the full lower triangle of R.

    jrank = -1
    abstol = tol * abs(r[0, 0])

    for i in range(n):
        if abs(r[i, i]) <= abstol:
            break

        r[i, i] **= -1

        for j in range(i):
            temp = r[i, i] * r[i, j]
            r[i, j] = 0.0
            r[i, : j + 1] -= temp * r[j, : j + 1]

        jrank = i

    # Form the full lower triangle of inverse(R^T R) in the full lower
    # triangle of R.

    for i in range(jrank + 1):
        for j in range(i):
            r[j, : j + 1] += r[i, j] * r[i, : j + 1]
        r[i, : i + 1] *= r[i, i]

    # Form the full upper triangle of the covariance matrix in the strict
    # upper triangle of R and in wa.

    wa = np.empty(n)
    wa.fill(r[0, 0])

    for i in range(n):
        pi = pmut[i]
        sing = i > jrank

        for j in range(i + 1):
            if sing:
                r[i, j] = 0.0

            pj = pmut[j]
            if pj > pi:
                r[pi, pj] = r[i, j]
            elif pj < pi:
                r[pj, pi] = r[i, j]

        wa[pi] = r[i, i]

    # Symmetrize.

    for i in range(n):
        r[i, : i + 1] = r[: i + 1, i]
        r[i, i] = wa[i]

    return r
