# -*- mode: python; coding: utf-8 -*-
# Copyright 2014-2023 Peter Williams <peter@newton.cx> and collaborators.
# Licensed under the MIT License.

"""Solvers for systems of nonlinear equations and nonlinear least-squares
problems, in the tradition of MINPACK.

The drivers fall into two families:

- The *hybrid* (Powell dogleg) solvers, :func:`hybrd`, :func:`hybrj`,
  :func:`hybrd1` and :func:`hybrj1`, which find a zero of a system of ``n``
  equations in ``n`` unknowns.
- The *Levenberg-Marquardt* solvers, :func:`lmdif`, :func:`lmder`,
  :func:`lmstr` and their simplified ``1`` variants, which minimize the sum of
  squares of ``m >= n`` functions of ``n`` unknowns.

Each driver returns a :class:`Solution`. The reason the iteration stopped is
recorded in its ``status`` attribute as a value from :data:`Status`.

"""

__all__ = """Holder NLError ScaleMode Solution Status hybrd hybrd1 hybrj hybrj1
lmder lmder1 lmdif lmdif1 lmstr lmstr1""".split()

__version__ = "0.3.0"  # also edit ../setup.py


class NLError(Exception):
    """A generic base class for exceptions.

    All custom exceptions raised by :mod:`nlsolve` modules should be
    subclasses of this class.

    The constructor automatically applies old-fashioned ``printf``-like
    (``%``-based) string formatting if more than one argument is given::

      NLError('no such problem %r (of %d)', name, nprob)
      # has text content equal to:
      'no such problem %r (of %d)' % (name, nprob)

    If only a single argument is given, the exception text is its
    stringification without applying ``printf``-style formatting.

    """

    def __init__(self, fmt, *args):
        if not len(args):
            self.args = (str(fmt),)
        else:
            self.args = (str(fmt) % args,)

    def __str__(self):
        return self.args[0]

    def __repr__(self):
        return self.__class__.__name__ + "(" + repr(self.args[0]) + ")"


class Holder(object):
    """Create a new :class:`Holder`. Any keyword arguments will be assigned as
    properties on the object itself, for instance, ``o = Holder(foo=1)``
    yields an object such that ``o.foo`` is 1.

    """

    def __init__(self, **kwargs):
        self.set(**kwargs)

    def __str__(self):
        d = self.__dict__
        s = sorted(d.keys())
        return "{" + ", ".join("%s=%s" % (k, d[k]) for k in s) + "}"

    def __repr__(self):
        d = self.__dict__
        s = sorted(d.keys())
        return "%s(%s)" % (
            self.__class__.__name__,
            ", ".join("%s=%r" % (k, d[k]) for k in s),
        )

    def __iter__(self):
        return iter(self.__dict__.items())

    def __contains__(self, key):
        return key in self.__dict__

    def set(self, **kwargs):
        """For each keyword argument, sets an attribute on this :class:`Holder` to its
        value. Returns *self*.

        """
        self.__dict__.update(kwargs)
        return self

    def get(self, name, defval=None):
        """Get an attribute on this :class:`Holder`.

        Equivalent to ``getattr(self, name, defval)``.

        """
        return self.__dict__.get(name, defval)

    def set_one(self, name, value):
        """Set a single attribute on this object.

        Equivalent to ``setattr(self, name, value)``. Returns *self*.

        """
        self.__dict__[name] = value
        return self

    def to_dict(self):
        """Return a copy of this object converted to a :class:`dict`."""
        return self.__dict__.copy()


# The drivers import NLError from this module, so these come last.

from .common import ScaleMode, Solution, Status
from .hybrid import hybrd, hybrd1, hybrj, hybrj1
from .lmmin import lmder, lmder1, lmdif, lmdif1, lmstr, lmstr1
