# -*- mode: python; coding: utf-8 -*-
# Copyright 2014-2015 Peter Williams and collaborators
# Licensed under the MIT License.

"""The :mod:`nlsolve.simpleenum` module contains a single decorator function
for creating “enumerations”, by which we mean a group of named, un-modifiable
values. The solver status codes and scaling modes are defined this way::

  from nlsolve.simpleenum import enumeration

  @enumeration
  class ScaleMode(object):
      auto = "auto"
      user = "user"

  if mode == ScaleMode.user:
      ...

The enumeration also knows the full set of its values, so that arguments can
be validated with ``value in ScaleMode``.

"""

__all__ = "enumeration".split()


def enumeration(cls):
    """A very simple decorator for creating enumerations. Unlike Python 3.4
    enumerations, this just gives a way to use a class declaration to create
    an immutable object containing only the values specified in the class.

    Iterating over the result yields the member names in sorted order, and
    the ``in`` operator tests membership among the member *values*.

    """
    name = cls.__name__
    members = {}

    for key in dir(cls):
        if not key.startswith("_"):
            members[key] = getattr(cls, key)

    values = frozenset(members.values())

    def __str__(self):
        return "<enumeration holder %s>" % name

    def getattr_error(self, attr):
        raise AttributeError(
            "enumeration %s does not contain attribute %s" % (name, attr)
        )

    def modattr_error(self, *args, **kwargs):
        raise AttributeError("modification of %s enumeration not allowed" % name)

    def __iter__(self):
        return iter(sorted(members))

    def __contains__(self, value):
        try:
            return value in values
        except TypeError:  # unhashable
            return False

    clsdict = {
        "__doc__": cls.__doc__,
        "__slots__": (),
        "__str__": __str__,
        "__repr__": __str__,
        "__getattr__": getattr_error,
        "__setattr__": modattr_error,
        "__delattr__": modattr_error,
        "__iter__": __iter__,
        "__contains__": __contains__,
    }
    clsdict.update(members)

    enumcls = type(name, (object,), clsdict)
    return enumcls()
