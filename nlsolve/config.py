# -*- mode: python; coding: utf-8 -*-
# Copyright 2014-2023 Peter Williams <peter@newton.cx> and collaborators.
# Licensed under the MIT License.

"""Keyword-driven configuration of the solvers.

:class:`SolveConfig` collects solver settings in the ``key=value`` style of
:mod:`nlsolve.kwargv`, so that a run can be described either in code or on
the command line::

  from nlsolve.config import SolveConfig, solve_problem
  from nlsolve.problems import get_problem

  cfg = SolveConfig().parse(["ftol=1e-12", "maxfev=500"])
  soln = solve_problem("lmder", get_problem("bard"), cfg)

Settings that are left unset fall back to the defaults of the chosen entry
point, so that, e.g., ``hybrd`` and ``hybrj`` keep their different
evaluation budgets.

"""

__all__ = "SolveConfig Variant get_variant list_variants solve_problem".split()

import numpy as np

from . import NLError, hybrid, lmmin
from .common import ScaleMode
from .kwargv import Custom, ParseKeywords


class SolveConfig(ParseKeywords):
    """Solver settings. Attributes left as None use the entry point's own
    defaults.

    ftol, xtol, gtol - Convergence tolerances.
    tol              - The single tolerance of the simplified ``1`` variants.
    maxfev           - The function-evaluation budget.
    factor           - Scale of the initial trust-region radius.
    epsfcn           - Relative error of the function values, for the
                       finite-difference step.
    ml, mu           - Jacobian band widths for ``hybrd``.
    mode             - "auto" or "user" scaling.
    diag             - Scale factors for user scaling.
    x0               - Explicit starting point.
    scale            - Multiplier applied to a problem's standard start.
    n, m             - Sizes for the problems that have adjustable sizes.
    debug_calls      - Print every function and Jacobian evaluation.
    debug_iter       - Print a summary of every iteration.

    """

    ftol = float
    xtol = float
    gtol = float
    tol = float
    maxfev = int
    factor = float
    epsfcn = float
    ml = int
    mu = int
    diag = [float]
    x0 = [float]
    scale = 1.0
    n = int
    m = int
    debug_calls = False
    debug_iter = False

    @Custom(str)
    def mode(value):
        if value is None:
            return None
        if value not in ScaleMode:
            raise ValueError('scaling mode must be "auto" or "user"')
        return value


class Variant(object):
    """Describes how to call one of the solver entry points.

    name     - The entry point's name.
    func     - The entry point itself.
    family   - "hybrid" or "lm".
    jacobian - The name of the problem method passed as the Jacobian
               callback ("jfunc" or "jrowfunc"), or None.
    keywords - The :class:`SolveConfig` settings that the entry point accepts.

    """

    def __init__(self, name, func, family, jacobian, keywords):
        self.name = name
        self.func = func
        self.family = family
        self.jacobian = jacobian
        self.keywords = tuple(keywords.split())


_solver_keywords = "ftol xtol gtol tol maxfev factor epsfcn ml mu mode diag".split()

_hybrid_common = "xtol maxfev mode diag factor ftol gtol"
_lm_common = "ftol xtol gtol maxfev mode diag factor"

_variants = {}

for _v in [
    Variant("hybrd", hybrid.hybrd, "hybrid", None, _hybrid_common + " ml mu epsfcn"),
    Variant("hybrj", hybrid.hybrj, "hybrid", "jfunc", _hybrid_common),
    Variant("hybrd1", hybrid.hybrd1, "hybrid", None, "tol"),
    Variant("hybrj1", hybrid.hybrj1, "hybrid", "jfunc", "tol"),
    Variant("lmdif", lmmin.lmdif, "lm", None, _lm_common + " epsfcn"),
    Variant("lmder", lmmin.lmder, "lm", "jfunc", _lm_common),
    Variant("lmstr", lmmin.lmstr, "lm", "jrowfunc", _lm_common),
    Variant("lmdif1", lmmin.lmdif1, "lm", None, "tol"),
    Variant("lmder1", lmmin.lmder1, "lm", "jfunc", "tol"),
    Variant("lmstr1", lmmin.lmstr1, "lm", "jrowfunc", "tol"),
]:
    _variants[_v.name] = _v

del _v


def list_variants():
    return sorted(_variants)


def get_variant(name):
    v = _variants.get(name)
    if v is None:
        raise NLError(
            'no such solver "%s"; choose one of: %s', name, ", ".join(list_variants())
        )
    return v


def make_problem(name, cfg):
    """Instantiate the test problem *name* with the sizes given in *cfg*."""
    from .problems import get_problem

    sizes = {}
    if cfg.n is not None:
        sizes["n"] = cfg.n
    if cfg.m is not None:
        sizes["m"] = cfg.m
    return get_problem(name, **sizes)


def solve_problem(variant, prob, cfg):
    """Run the solver *variant* on the test problem *prob* with the settings
    in the :class:`SolveConfig` *cfg*. Returns the :class:`nlsolve.Solution`.

    Raises :exc:`nlsolve.NLError` if the settings do not make sense for the
    chosen solver. If the variant takes band widths and none are given, the
    problem's own band structure is used.

    """
    v = get_variant(variant)

    if v.family == "hybrid" and not prob.square:
        raise NLError(
            'solver "%s" needs a square system, but problem "%s" has %d '
            "functions of %d variables",
            v.name,
            prob.name,
            prob.nout,
            prob.npar,
        )

    settings = cfg.to_dict()
    kwargs = {}

    for kw in _solver_keywords:
        val = settings.get(kw)
        if val is None or (isinstance(val, list) and not len(val)):
            continue
        if kw not in v.keywords:
            raise NLError('solver "%s" does not accept setting "%s"', v.name, kw)
        kwargs[kw] = val

    if "ml" in v.keywords and "ml" not in kwargs and "mu" not in kwargs:
        if prob.ml is not None:
            kwargs["ml"] = prob.ml
            kwargs["mu"] = prob.mu

    if cfg.x0:
        x0 = np.array(cfg.x0, dtype=float)
        if x0.size != prob.npar:
            raise NLError(
                'problem "%s" has %d variables, but %d starting values were given',
                prob.name,
                prob.npar,
                x0.size,
            )
    else:
        x0 = prob.start(cfg.scale)

    args = [prob.yfunc]
    if v.jacobian is not None:
        args.append(getattr(prob, v.jacobian))
    args.append(x0)
    if v.family == "lm":
        args.append(prob.nout)

    return v.func(
        *args, debug_calls=cfg.debug_calls, debug_iter=cfg.debug_iter, **kwargs
    )
