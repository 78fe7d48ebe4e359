# -*- mode: python; coding: utf-8 -*-
# Copyright 2011-2017 (inclusive) Peter Williams
# Licensed under the MIT License.

import numpy as np
from numpy.testing import assert_array_almost_equal as Taaae
import pytest

from nlsolve import Holder, NLError, ScaleMode, Solution, Status
from nlsolve.common import Evaluator, check_scaling, start_point
from nlsolve.simpleenum import enumeration


def test_nlerror():
    e = NLError("value %d of %s", 3, "x")
    assert str(e) == "value 3 of x"
    assert repr(e) == "NLError('value 3 of x')"

    # A lone argument is not formatted.
    assert str(NLError("100%")) == "100%"


def test_holder():
    h = Holder(a=1, b="two")
    assert h.a == 1
    assert h.get("b") == "two"
    assert h.get("c", 3) == 3
    assert "a" in h
    assert "c" not in h

    h.set(c=4).set_one("d", 5)
    assert h.to_dict() == dict(a=1, b="two", c=4, d=5)
    assert sorted(k for k, v in h) == ["a", "b", "c", "d"]
    assert str(Holder(x=1, y=2)) == "{x=1, y=2}"
    assert repr(Holder(x=1)) == "Holder(x=1)"


def test_enumeration():
    @enumeration
    class Colors(object):
        red = "r"
        blue = "b"

    assert Colors.red == "r"
    assert list(Colors) == ["blue", "red"]
    assert "b" in Colors
    assert "blue" not in Colors
    assert [] not in Colors

    with pytest.raises(AttributeError):
        Colors.green

    with pytest.raises(AttributeError):
        Colors.red = "x"


def test_status_values():
    assert Status.ftol_xtol == "ftol+xtol"
    assert len(list(Status)) == 13
    assert Status.nonfinite == "nonfinite"
    assert ScaleMode.auto in ScaleMode
    assert "sideways" not in ScaleMode


def test_info_codes():
    lm = Solution("lm")
    hy = Solution("hybrid")

    for status, lmcode, hycode in [
        (Status.invalid_input, 0, 0),
        (Status.ftol, 1, -2),
        (Status.xtol, 2, 1),
        (Status.ftol_xtol, 3, -2),
        (Status.gtol, 4, -2),
        (Status.maxfev, 5, 2),
        (Status.feps, 6, -2),
        (Status.xeps, 7, 3),
        (Status.geps, 8, -2),
        (Status.slow_jacobian, -2, 4),
        (Status.slow_iteration, -2, 5),
        (Status.user_abort, -1, -1),
        (Status.nonfinite, -2, -2),
    ]:
        lm.status = hy.status = status
        assert lm.info == lmcode
        assert hy.info == hycode


def test_converged():
    soln = Solution("lm")
    for status in Status:
        soln.status = getattr(Status, status)
        assert soln.converged == (status in ("ftol", "xtol", "ftol_xtol", "gtol"))


def test_solution_repr():
    soln = Solution("hybrid")
    soln.status = Status.xtol
    soln.fnorm = 0.0
    assert repr(soln) == "<Solution hybrid status=xtol fnorm=0.0 nfev=0>"


def test_evaluator_counts():
    def y(x, vec):
        vec[:] = x

    def j(x, jac):
        jac[:] = 1

    ev = Evaluator(y, jfunc=j)
    vec = np.empty(2)
    assert ev.ycall(np.ones(2), vec)
    assert ev.ycall(np.ones(2), vec)
    assert ev.jcall(np.ones(2), np.empty((2, 2)))
    assert (ev.nfev, ev.njev) == (2, 1)
    assert not ev.aborted


def test_evaluator_abort():
    def y(x, vec):
        vec[:] = 0
        return False

    ev = Evaluator(y)
    assert not ev.ycall(np.ones(1), np.empty(1))
    assert ev.aborted

    # Any other return value is ignored.
    ev = Evaluator(lambda x, vec: 0)
    assert ev.ycall(np.ones(1), np.empty(1))


def test_evaluator_rejects_noncallables():
    with pytest.raises(ValueError):
        Evaluator(1)
    with pytest.raises(ValueError):
        Evaluator(len, jfunc="x")
    with pytest.raises(ValueError):
        Evaluator(len, jrowfunc=[])


def test_check_scaling():
    assert check_scaling(ScaleMode.auto, None, 3) is None
    Taaae(check_scaling(ScaleMode.user, [1, 2], 2), [1.0, 2.0])

    for diag in (None, [1.0], [1.0, 0.0], [1.0, np.nan]):
        with pytest.raises(ValueError):
            check_scaling(ScaleMode.user, diag, 2)

    with pytest.raises(ValueError):
        check_scaling("other", None, 2)


def test_start_point():
    x0 = [1, 2]
    x = start_point(x0)
    assert x.dtype == np.float64
    x[0] = 5
    assert x0[0] == 1

    Taaae(start_point(3.0), [3.0])

    with pytest.raises(ValueError):
        start_point(np.ones((2, 2)))
