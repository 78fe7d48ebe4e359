# -*- mode: python; coding: utf-8 -*-
# Copyright 2012-2015, 2018 Peter Williams <peter@newton.cx> and collaborators.
# Licensed under the MIT License.

"""The :mod:`nlsolve.kwargv` module provides a framework for parsing
keyword-style arguments such as ``ftol=1e-10 maxfev=500``. It lets a solver
configuration be built either programmatically or from the command line.

Keywords are defined by declaring a subclass of the :class:`ParseKeywords`
class with fields corresponding to the supported keywords::

  from nlsolve.kwargv import ParseKeywords, Custom

  class RunConfig(ParseKeywords):
      maxfev = 400
      label = str
      x0 = [float]
      tol = Custom(float, required=True)

      @Custom(str)
      def mode(value):
          return value.lower()

Instantiating the subclass fills in all defaults. Calling the
:meth:`ParseKeywords.parse` method parses a list of strings (defaulting to
``sys.argv[1:]``) and updates the instance's attributes.


Keyword Specification Format
----------------------------

- ``foo = 1`` defines a keyword with a default value, type inferred as
  ``int``. Likewise for ``str``, ``bool``, ``float``.

- ``bar = str`` defines a string keyword with default value of None.
  Likewise for ``int``, ``bool``, ``float``.

- ``multi = [float]`` parses as a list of floats of any length, defaulting to
  the empty list ``[]``. List items are separated by commas.

- ``extra = Custom(float, required=True)`` parses like ``float`` and then
  customizes keyword properties. Supported properties are the attributes of
  the :class:`KeywordInfo` class.

- Using :class:`Custom` as a decorator on a function ``foo`` defines a
  keyword ``foo`` whose parsed value is passed through ``foo()``. The fixup
  function is also applied to the default, so it should be cheap.

"""

__all__ = "Custom KwargvError ParseError KeywordInfo ParseKeywords".split()

from . import Holder, NLError


class KwargvError(NLError):
    """Raised when invalid arguments have been provided."""


class ParseError(KwargvError):
    """Raised when the structure of the arguments appears legitimate, but a
    particular value cannot be parsed into its expected type.

    """


class KeywordInfo(object):
    """Properties that a keyword argument may have."""

    parser = None
    """A callable used to convert the argument text to a Python value.
    This attribute is assigned automatically upon setup."""

    default = None
    """The default value for the keyword if it's left unspecified."""

    required = False
    """Whether an error should be raised if the keyword is not seen while
    parsing."""

    sep = ","
    """The textual separator between items for list-valued keywords."""

    maxvals = None
    """The maximum number of values allowed in a list-valued keyword."""

    printexc = False
    """Include the underlying exception text if a value cannot be parsed."""

    fixupfunc = None
    """If not ``None``, the final value of the keyword is set to the return value
    of ``fixupfunc(intermediate_value)``.

    """
    _attrname = None

    uiname = None
    """The name of the keyword as typed by the user, for names that are not
    legal Python identifiers; e.g. ``Custom(int, uiname="max-fev")``.

    """


class KeywordOptions(Holder):
    uiname = None
    subval = None

    def __init__(self, subval, **kwargs):
        self.set(**kwargs)
        self.subval = subval

    def __call__(self, fixupfunc):
        # Used as a decorator on fixup functions.
        self.fixupfunc = fixupfunc
        return self


Custom = KeywordOptions


def _parse_bool(s):
    s = s.lower()

    if s in "y yes t true on 1".split():
        return True
    if s in "n no f false off 0".split():
        return False
    raise ParseError('don\'t know how to interpret "%s" as a boolean', s)


def _val_to_parser(v):
    if isinstance(v, bool):
        return _parse_bool
    if isinstance(v, (int, float, str)):
        return v.__class__
    raise ValueError("can't figure out how to parse %r" % (v,))


def _val_or_func_to_parser(v):
    if v is bool:
        return _parse_bool
    if callable(v):
        return v
    return _val_to_parser(v)


def _val_or_func_to_default(v):
    if callable(v):
        return None
    if isinstance(v, (int, float, bool, str)):
        return v
    raise ValueError("can't figure out a default for %r" % (v,))


def _handle_list(ki, ks):
    if len(ks) != 1 or not callable(ks[0]):
        raise ValueError("list keywords must be declared as [type], not %r" % (ks,))

    elemparser = _val_or_func_to_parser(ks[0])

    def listparse(val):
        return [elemparser(i) for i in val.split(ki.sep)]

    return listparse, []


class ParseKeywords(Holder):
    """The template class for defining keyword arguments. A subclass of
    :class:`nlsolve.Holder`. Declare attributes in a subclass following the
    scheme described above, then call the :meth:`ParseKeywords.parse` method.

    """

    def __init__(self):
        kwinfos = {}

        # 'kw' is the keyword name exposed to the user; 'attrname' is the
        # name of the attribute to set on the resulting object. Keywords of
        # base classes are inherited.

        kwspecs = {}
        for klass in reversed(self.__class__.__mro__):
            if issubclass(klass, ParseKeywords) and klass is not ParseKeywords:
                kwspecs.update(klass.__dict__)

        for kw, ks in kwspecs.items():
            if kw[0] == "_":
                continue

            ki = KeywordInfo()
            ko = None
            attrname = kw

            if isinstance(ks, KeywordOptions):
                ko = ks
                ks = ko.subval

                if ko.uiname is not None:
                    kw = ko.uiname

            if isinstance(ks, list):
                parser, default = _handle_list(ki, ks)
            elif callable(ks):
                parser = _val_or_func_to_parser(ks)
                default = _val_or_func_to_default(ks)
            else:
                parser = _val_to_parser(ks)
                default = _val_or_func_to_default(ks)

            ki._attrname = attrname
            ki.parser = parser
            ki.default = default

            if ko is not None:
                ki.__dict__.update(ko.__dict__)

            if ki.required:
                ki.default = None
            elif ki.fixupfunc is not None:
                ki.default = ki.fixupfunc(ki.default)

            kwinfos[kw] = ki

        for kw, ki in kwinfos.items():
            self.set_one(ki._attrname, ki.default)

        self._kwinfos = kwinfos

    def keywords(self):
        """Return the sorted names of the keywords that :meth:`parse` accepts."""
        return sorted(self._kwinfos)

    def parse(self, args=None):
        """Parse textual keywords as described by this class's attributes, and
        update this instance's attributes with the parsed values. *args* is a
        list of strings; if ``None``, it defaults to ``sys.argv[1:]``.
        Returns *self* for convenience. Raises :exc:`KwargvError` if invalid
        keywords are encountered.

        """
        if args is None:
            import sys

            args = sys.argv[1:]

        seen = set()

        for arg in args:
            t = arg.split("=", 1)
            if len(t) < 2:
                raise KwargvError('don\'t know what to do with argument "%s"', arg)

            kw, val = t
            ki = self._kwinfos.get(kw)

            if ki is None:
                raise KwargvError('unrecognized keyword argument "%s"', kw)

            if not len(val):
                raise KwargvError('empty value for keyword argument "%s"', kw)

            try:
                pval = ki.parser(val)
            except ParseError as e:
                raise KwargvError(
                    'cannot parse value "%s" for keyword argument "%s": %s',
                    val,
                    kw,
                    e,
                )
            except Exception as e:
                if ki.printexc:
                    raise KwargvError(
                        'cannot parse value "%s" for keyword argument "%s": %s',
                        val,
                        kw,
                        e,
                    )
                raise KwargvError(
                    'cannot parse value "%s" for keyword argument "%s"', val, kw
                )

            if ki.maxvals is not None and len(pval) > ki.maxvals:
                raise KwargvError(
                    'keyword argument "%s" may have at most %d values, but got %d',
                    kw,
                    ki.maxvals,
                    len(pval),
                )

            if ki.fixupfunc is not None:
                try:
                    pval = ki.fixupfunc(pval)
                except ValueError as e:
                    raise KwargvError(
                        'bad value "%s" for keyword argument "%s": %s', val, kw, e
                    )

            seen.add(kw)
            self.set_one(ki._attrname, pval)

        for kw, ki in self._kwinfos.items():
            if ki.required and kw not in seen:
                raise KwargvError('required keyword argument "%s" was not provided', kw)

        return self

    def parse_or_die(self, args=None):
        """Like :meth:`ParseKeywords.parse`, but calls :func:`nlsolve.cli.die` if a
        :exc:`KwargvError` is raised, printing the exception text. Returns
        *self* for convenience.

        """
        from .cli import die

        try:
            return self.parse(args)
        except KwargvError as e:
            die(e)
