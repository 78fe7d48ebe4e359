# -*- mode: python; coding: utf-8 -*-
# Copyright 2014-2023 Peter Williams <peter@newton.cx> and collaborators.
# Licensed under the MIT License.

import numpy as np
from numpy.testing import assert_array_almost_equal as Taaae
import pytest

from nlsolve import NLError, ScaleMode, Status
from nlsolve.config import (
    SolveConfig,
    get_variant,
    list_variants,
    make_problem,
    solve_problem,
)
from nlsolve.kwargv import (
    Custom,
    KwargvError,
    ParseError,
    ParseKeywords,
    _parse_bool,
)
from nlsolve.problems import get_problem


# Generic keyword parsing.


class Basic(ParseKeywords):
    count = 3
    label = str
    ratio = float
    verbose = False
    values = [int]


class Fancy(Basic):
    needed = Custom(float, required=True)
    short = Custom([float], maxvals=2)
    dashed = Custom(int, uiname="max-fev")
    coords = Custom([float], sep=":")

    @Custom(str)
    def upper(value):
        if value is None:
            return "NONE"
        if value == "bad":
            raise ValueError("no bad values")
        return value.upper()


def test_defaults():
    b = Basic()
    assert b.count == 3
    assert b.label is None
    assert b.ratio is None
    assert b.verbose is False
    assert b.values == []
    assert b.keywords() == ["count", "label", "ratio", "values", "verbose"]


def test_parse():
    b = Basic().parse(
        ["count=7", "label=hello=world", "ratio=0.5", "verbose=yes", "values=1,2,3"]
    )
    assert b.count == 7
    assert b.label == "hello=world"
    assert b.ratio == 0.5
    assert b.verbose is True
    assert b.values == [1, 2, 3]

    assert Basic().parse(["verbose=off"]).verbose is False


@pytest.mark.parametrize(
    "args",
    [
        ["count"],
        ["bogus=1"],
        ["count="],
        ["count=abc"],
        ["verbose=maybe"],
        ["values=1,x"],
    ],
)
def test_parse_errors(args):
    with pytest.raises(KwargvError):
        Basic().parse(args)


def test_bad_bool_is_parse_error():
    with pytest.raises(ParseError):
        _parse_bool("maybe")


def test_custom():
    f = Fancy()
    assert f.count == 3  # inherited
    assert f.upper == "NONE"
    assert "max-fev" in f.keywords()
    assert "dashed" not in f.keywords()

    with pytest.raises(KwargvError):
        Fancy().parse([])

    f = Fancy().parse(
        ["needed=1.5", "max-fev=10", "upper=abc", "coords=1:2:3", "short=4,5"]
    )
    assert f.needed == 1.5
    assert f.dashed == 10
    assert f.upper == "ABC"
    assert f.coords == [1.0, 2.0, 3.0]
    assert f.short == [4.0, 5.0]

    with pytest.raises(KwargvError):
        Fancy().parse(["needed=1", "short=1,2,3"])

    with pytest.raises(KwargvError):
        Fancy().parse(["needed=1", "upper=bad"])


def test_parse_or_die():
    with pytest.raises(SystemExit):
        Basic().parse_or_die(["bogus=1"])


def test_kwargv_error_is_nlerror():
    with pytest.raises(NLError):
        Basic().parse(["bogus=1"])


# Solver settings.


def test_solve_config_defaults():
    cfg = SolveConfig()
    for kw in "ftol xtol gtol tol maxfev factor epsfcn ml mu mode n m".split():
        assert cfg.get(kw) is None
    assert cfg.diag == []
    assert cfg.x0 == []
    assert cfg.scale == 1.0
    assert cfg.debug_calls is False


def test_solve_config_parse():
    cfg = SolveConfig().parse(
        ["ftol=1e-12", "maxfev=50", "mode=user", "diag=1,2", "x0=0.5,0.5"]
    )
    assert cfg.ftol == 1e-12
    assert cfg.maxfev == 50
    assert cfg.mode == ScaleMode.user
    assert cfg.diag == [1.0, 2.0]
    assert cfg.x0 == [0.5, 0.5]

    with pytest.raises(KwargvError):
        SolveConfig().parse(["mode=sideways"])


def test_variants():
    names = list_variants()
    assert len(names) == 10
    assert "hybrd" in names and "lmstr1" in names

    v = get_variant("lmder")
    assert v.family == "lm"
    assert v.jacobian == "jfunc"
    assert "ftol" in v.keywords

    with pytest.raises(NLError):
        get_variant("newton")


@pytest.mark.parametrize("variant", list_variants())
def test_every_variant(variant):
    prob = get_problem("circle_line")
    soln = solve_problem(variant, prob, SolveConfig())
    assert soln.converged
    Taaae(np.abs(soln.params), [np.sqrt(0.5), np.sqrt(0.5)])


def test_settings_are_passed():
    prob = get_problem("rosenbrock")
    cfg = SolveConfig().parse(["maxfev=1"])
    soln = solve_problem("lmder", prob, cfg)
    assert soln.status == Status.maxfev

    cfg = SolveConfig().parse(["mode=user"])
    soln = solve_problem("hybrj", prob, cfg)
    assert soln.status == Status.invalid_input


def test_hybrid_needs_square():
    with pytest.raises(NLError):
        solve_problem("hybrd", get_problem("bard"), SolveConfig())


def test_unaccepted_setting():
    prob = get_problem("rosenbrock")

    with pytest.raises(NLError):
        solve_problem("hybrd1", prob, SolveConfig().parse(["maxfev=10"]))

    with pytest.raises(NLError):
        solve_problem("lmder", prob, SolveConfig().parse(["epsfcn=1e-6"]))

    with pytest.raises(NLError):
        solve_problem("lmdif", prob, SolveConfig().parse(["ml=1"]))


def test_starting_points():
    prob = get_problem("rosenbrock")

    soln = solve_problem("lmder", prob, SolveConfig().parse(["x0=1,1"]))
    assert soln.nfev == 1
    Taaae(soln.params, [1.0, 1.0])

    soln = solve_problem("lmder", prob, SolveConfig().parse(["scale=10"]))
    assert soln.converged
    Taaae(soln.params, [1.0, 1.0])

    with pytest.raises(NLError):
        solve_problem("lmder", prob, SolveConfig().parse(["x0=1,1,1"]))


def test_problem_band_is_used():
    cfg = SolveConfig().parse(["n=12"])
    prob = make_problem("broyden_banded", cfg)
    assert prob.npar == 12

    banded = solve_problem("hybrd", prob, cfg)
    dense = solve_problem("hybrd", prob, SolveConfig().parse(["ml=-1", "mu=-1"]))
    assert banded.converged
    assert banded.nfev < dense.nfev


def test_make_problem_sizes():
    prob = make_problem("linear_full_rank", SolveConfig().parse(["n=2", "m=4"]))
    assert (prob.npar, prob.nout) == (2, 4)

    with pytest.raises(NLError):
        make_problem("rosenbrock", SolveConfig().parse(["n=4"]))


def test_user_scaling_is_passed():
    prob = get_problem("helical_valley")
    cfg = SolveConfig().parse(["mode=user", "diag=1,2,3"])
    soln = solve_problem("hybrj", prob, cfg)
    assert soln.converged
    Taaae(soln.diag, [1.0, 2.0, 3.0])
