# -*- mode: python; coding: utf-8 -*-
# Copyright 2014 Peter Williams <peter@newton.cx> and collaborators.
# Licensed under the MIT License.

"""nlsolve.cli.nltool - the 'nltool' program."""

__all__ = ['commandline']

import numpy as np

from .. import NLError
from ..config import SolveConfig, list_variants, make_problem, solve_problem
from ..fdjac import check_derivative
from ..kwargv import KwargvError, ParseKeywords
from ..problems import get_problem, list_problems
from . import die, multitool, warn


def fmtvec (v):
    return ' '.join ('%.10g' % x for x in v)


# The commands.

class List (multitool.Command):
    name = 'list'
    argspec = ''
    summary = 'List the bundled test problems.'
    help_if_no_args = False

    def invoke (self, args, **kwargs):
        if len (args):
            raise multitool.UsageError ('list takes no arguments')

        names = list_problems ()
        maxlen = max (len (n) for n in names)

        for name in names:
            prob = get_problem (name)
            band = ''
            if prob.ml is not None:
                band = ' ml=%d mu=%d' % (prob.ml, prob.mu)
            print ('%-*s  n=%-2d m=%-2d%s  %s' % (maxlen, name, prob.npar, prob.nout,
                                                 band, prob.summary))


class Solve (multitool.Command):
    name = 'solve'
    argspec = '<solver> <problem> [keywords...]'
    summary = 'Run a solver on a bundled test problem.'
    more_help = '''Solvers are: %s

Keywords are: %s

Settings that are not given use the solver's own defaults. For example,

  nltool solve lmder bard ftol=1e-12 maxfev=500
  nltool solve hybrd broyden_banded n=20 mode=user diag=%s''' % (
        ', '.join (list_variants ()),
        ', '.join (SolveConfig ().keywords ()),
        ','.join (['1'] * 20))

    def invoke (self, args, **kwargs):
        if len (args) < 2:
            raise multitool.UsageError ('solve expected at least 2 arguments')

        variant, probname = args[:2]

        try:
            cfg = SolveConfig ().parse (args[2:])
        except KwargvError as e:
            raise multitool.UsageError (str (e))

        try:
            prob = make_problem (probname, cfg)
            soln = solve_problem (variant, prob, cfg)
        except NLError as e:
            die (e)

        print ('solver:', variant)
        print ('problem: %s (n=%d, m=%d)' % (prob.name, prob.npar, prob.nout))
        print ('status: %s (info %d)' % (soln.status, soln.info))
        print ('nfev: %d  njev: %d  niter: %d' % (soln.nfev, soln.njev, soln.niter))
        print ('fnorm: %.10g' % soln.fnorm)
        print ('params:', fmtvec (soln.params))

        if soln.perror is not None:
            print ('perror:', fmtvec (soln.perror))

        if prob.known_fnorm is not None and cfg.scale == 1 and not cfg.x0:
            print ('reference fnorm: %.10g' % prob.known_fnorm)

        if not soln.converged:
            warn ('the solver did not report convergence')


class CheckConfig (ParseKeywords):
    scale = 1.0
    epsfcn = 0.0
    n = int
    m = int


class Checkderiv (multitool.Command):
    name = 'checkderiv'
    argspec = '<problem> [scale=<factor>] [epsfcn=<eps>] [n=<n>] [m=<m>]'
    summary = 'Compare analytic and finite-difference Jacobians of a problem.'
    more_help = '''The check is done at the standard starting point multiplied
by "scale". Each function gets a score between 0 (derivatives clearly wrong)
and 1 (derivatives consistent with the function values).'''

    def invoke (self, args, **kwargs):
        if len (args) < 1:
            raise multitool.UsageError ('checkderiv expected at least 1 argument')

        try:
            cfg = CheckConfig ().parse (args[1:])
        except KwargvError as e:
            raise multitool.UsageError (str (e))

        try:
            prob = make_problem (args[0], cfg)
        except NLError as e:
            die (e)

        x = prob.start (cfg.scale)
        explicit, auto, score = check_derivative (prob.yfunc, prob.jfunc, x,
                                                  prob.nout, cfg.epsfcn)

        scale = np.maximum (np.abs (explicit), np.abs (auto))
        scale[scale == 0] = 1
        relerr = np.abs (explicit - auto) / scale

        print ('problem: %s (n=%d, m=%d)' % (prob.name, prob.npar, prob.nout))
        print ('x:', fmtvec (x))
        print ('max relative difference: %.3g' % relerr.max ())
        print ('scores:', ' '.join ('%.3f' % s for s in score))

        # The score is always 0 for a function that vanishes at x.
        fvec = np.empty (prob.nout)
        prob.yfunc (x, fvec)

        for i in np.nonzero (score < 0.5)[0]:
            if fvec[i] == 0:
                warn ('function %d is zero at x; its score is meaningless', i)
            else:
                warn ('derivatives of function %d look wrong (score %.3f)', i, score[i])


class Nltool (multitool.Multitool):
    cli_name = 'nltool'
    summary = 'Run the nonlinear solvers on standard test problems.'


HelpCommand = multitool.HelpCommand


def commandline (argv=None):
    multitool.invoke_tool (globals (), argv=argv)
