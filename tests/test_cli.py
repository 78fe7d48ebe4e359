# -*- mode: python; coding: utf-8 -*-
# Copyright 2015 Peter Williams <peter@newton.cx> and collaborators.
# Licensed under the MIT License.

import pytest

from nlsolve import NLError
from nlsolve.cli import die, warn, wrong_usage
from nlsolve.cli import multitool
from nlsolve.cli.nltool import commandline


def run(capsys, *args):
    commandline(["nltool"] + list(args))
    return capsys.readouterr()


def run_exit(capsys, *args):
    with pytest.raises(SystemExit) as e:
        commandline(["nltool"] + list(args))
    out, err = capsys.readouterr()
    return e.value.code, out, err


def test_list(capsys):
    out = run(capsys, "list").out
    lines = out.splitlines()
    assert len(lines) >= 12
    assert any(l.startswith("rosenbrock") for l in lines)
    assert "ml=5 mu=1" in out


def test_list_takes_no_args(capsys):
    code, out, err = run_exit(capsys, "list", "extra")
    assert code == 1
    assert "takes no arguments" in err


def test_solve(capsys):
    out = run(capsys, "solve", "lmder", "bard", "ftol=1e-12").out
    assert "solver: lmder" in out
    assert "problem: bard (n=3, m=15)" in out
    assert "status:" in out
    assert "perror:" in out
    assert "reference fnorm: 0.09063596034" in out


def test_solve_hybrid(capsys):
    out = run(capsys, "solve", "hybrd", "broyden_banded", "n=15").out
    assert "problem: broyden_banded (n=15, m=15)" in out
    assert "(info 1)" in out
    assert "perror:" not in out


def test_solve_warns_without_convergence(capsys):
    err = run(capsys, "solve", "lmder", "rosenbrock", "maxfev=1").err
    assert "warning:" in err


def test_solve_bad_keyword(capsys):
    code, out, err = run_exit(capsys, "solve", "lmder", "bard", "bogus=1")
    assert code == 1
    assert 'unrecognized keyword argument "bogus"' in err


def test_solve_bad_problem(capsys):
    code, out, err = run_exit(capsys, "solve", "lmder", "nope")
    assert code.startswith("error: no such problem")


def test_solve_not_square(capsys):
    code, out, err = run_exit(capsys, "solve", "hybrj", "bard")
    assert "square" in code


def test_solve_too_few_args(capsys):
    code, out, err = run_exit(capsys, "solve", "lmder")
    assert code == 1


def test_checkderiv(capsys):
    res = run(capsys, "checkderiv", "rosenbrock", "scale=10")
    assert "x: -12 10" in res.out
    assert "scores: " in res.out
    assert "max relative difference:" in res.out
    assert res.err == ""


def test_checkderiv_zero_function(capsys):
    res = run(capsys, "checkderiv", "helical_valley")
    assert "function 1 is zero" in res.err
    assert "function 2 is zero" in res.err


def test_no_args_prints_help(capsys):
    code, out, err = run_exit(capsys)
    assert code == 0
    assert "nltool solve" in out
    assert "nltool checkderiv" in out


def test_help_command(capsys):
    code, out, err = run_exit(capsys, "help", "solve")
    assert code == 0
    assert "Solvers are: hybrd, hybrd1" in out


def test_unknown_command(capsys):
    code, out, err = run_exit(capsys, "frobnicate")
    assert code == 1
    assert 'no such command "frobnicate"' in err


def test_die():
    with pytest.raises(SystemExit) as e:
        die("bad %s %d", "thing", 3)
    assert e.value.code == "error: bad thing 3"

    with pytest.raises(SystemExit) as e:
        die("100%")
    assert e.value.code == "error: 100%"


def test_warn(capsys):
    warn("careful with %s", "that")
    assert capsys.readouterr().err == "warning: careful with that\n"


def test_wrong_usage(capsys):
    with pytest.raises(SystemExit) as e:
        wrong_usage("prog <arg>\n\nMore text.", "bad %d", 5)
    assert e.value.code == 1
    err = capsys.readouterr().err
    assert "error: bad 5" in err
    assert "Usage: prog <arg>" in err
    assert "More text." not in err


def test_usage_error_is_nlerror():
    assert issubclass(multitool.UsageError, NLError)
    assert str(multitool.UsageError("no such %s", "thing")) == "no such thing"


def test_duplicate_command():
    class Once(multitool.Command):
        name = "once"

    dc = multitool.DelegatingCommand(populate_from_self=False)
    dc.register(Once())

    with pytest.raises(ValueError):
        dc.register(Once())

    with pytest.raises(ValueError):
        dc.register(multitool.Command())
