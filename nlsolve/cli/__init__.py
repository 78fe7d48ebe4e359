# -*- mode: python; coding: utf-8 -*-
# Copyright 2012-2015 Peter Williams <peter@newton.cx> and collaborators.
# Licensed under the MIT License.

"""nlsolve.cli - utilities for the command-line programs.

Functions:

backtrace_on_usr1 - Make it so that a Python backtrace is printed on SIGUSR1.
check_usage       - Print usage and exit if --help is in argv.
die               - Print an error and exit.
propagate_sigint  - Ensure that calling shells know when we die from SIGINT.
show_usage        - Print a usage message.
warn              - Print a warning.
wrong_usage       - Print an error about wrong usage and the usage help.

Submodules:

multitool - Framework for command-line programs with sub-commands.
nltool    - The ``nltool`` program.

"""

__all__ = """backtrace_on_usr1 check_usage die propagate_sigint show_usage
             warn wrong_usage""".split()

import os, signal, sys


class _InterruptSignalPropagator(object):
    """Ensure that calling shells know when we die from SIGINT.

    Python turns SIGINT into a KeyboardInterrupt, and an uncaught
    KeyboardInterrupt exits the program normally rather than through
    death-by-signal. A shell running a loop of solver invocations then does
    not notice that the user hit control-C. Calling this object installs a
    ``sys.excepthook`` shim that re-raises an honest SIGINT after reporting
    an uncaught KeyboardInterrupt. The previous hook is kept as
    ``propagate_sigint.inner_excepthook``.

    """

    inner_excepthook = None

    def __call__(self):
        if self.inner_excepthook is None:
            self.inner_excepthook = sys.excepthook
            sys.excepthook = self.excepthook

    def excepthook(self, etype, evalue, etb):
        self.inner_excepthook(etype, evalue, etb)

        if issubclass(etype, KeyboardInterrupt):
            # os.kill(0, ...) would signal the whole process group.
            signal.signal(signal.SIGINT, signal.SIG_DFL)
            os.kill(os.getpid(), signal.SIGINT)


propagate_sigint = _InterruptSignalPropagator()


def _print_backtrace_signal_handler(signum, frame):
    import traceback

    print("*** Printing traceback due to receipt of signal #%d" % signum, file=sys.stderr)
    for fn, line, func, text in traceback.extract_stack(frame):
        print("***   %s (%s:%d): %s" % (fn, func, line, text or "??"), file=sys.stderr)
    print("*** End of traceback (innermost call is last)", file=sys.stderr)


def backtrace_on_usr1():
    """Install a signal handler such that this program prints a Python traceback
    upon receipt of SIGUSR1. Handy for seeing where a long solve is spending
    its time. Python only runs the handler between bytecodes, so a signal
    that arrives during a long numpy call is seen when that call returns.

    """
    try:
        signal.signal(signal.SIGUSR1, _print_backtrace_signal_handler)
    except (AttributeError, ValueError) as e:
        # No SIGUSR1 on this platform, or not the main thread.
        warn("failed to set up Python backtraces on SIGUSR1: %s", e)


def die(fmt, *args):
    """Raise a :exc:`SystemExit` exception with a formatted error message.

    If *args* is empty, a :exc:`SystemExit` exception is raised with the
    argument ``'error: ' + str(fmt)``. Otherwise, the string component is
    ``fmt % args``. If uncaught, the interpreter exits with an error code and
    prints the exception argument.

    Example::

       if prob.nout < prob.npar:
          die('need at least %d functions, not %d', prob.npar, prob.nout)

    """
    if not len(args):
        raise SystemExit("error: " + str(fmt))
    raise SystemExit("error: " + (fmt % args))


def warn(fmt, *args):
    if not len(args):
        s = str(fmt)
    else:
        s = fmt % args

    print("warning:", s, file=sys.stderr)


def show_usage(docstring, short, stream, exitcode):
    """Print program usage information and exit.

    If *short* is true, only the first stanza of *docstring* is printed,
    followed by a hint about ``--help``. Usually :func:`check_usage` or
    :func:`wrong_usage` should be used instead of calling this directly.

    """
    if stream is None:
        from sys import stdout as stream

    if not short:
        print("Usage:", docstring.strip(), file=stream)
    else:
        intext = False
        for l in docstring.splitlines():
            if intext:
                if not len(l):
                    break
                print(l, file=stream)
            elif len(l):
                intext = True
                print("Usage:", l, file=stream)

        print(
            "\nRun with a sole argument --help for more detailed usage information.",
            file=stream,
        )

    raise SystemExit(exitcode)


def check_usage(docstring, argv=None, usageifnoargs=False):
    """Check if the program has been run with a --help argument; if so,
    print usage information and exit.

    *argv* defaults to :data:`sys.argv`, so ``argv[0]`` should be the program
    name. If *usageifnoargs* is true, usage is also printed when no arguments
    are given; if it is the string "long", the full text is printed.

    """
    if argv is None:
        from sys import argv

    if len(argv) == 1 and usageifnoargs:
        show_usage(docstring, (usageifnoargs != "long"), None, 0)
    if len(argv) == 2 and argv[1] in ("-h", "--help"):
        show_usage(docstring, False, None, 0)


def wrong_usage(docstring, *rest):
    """Print a message indicating invalid command-line arguments and exit with an
    error code.

    The message in *rest* is treated as follows. If *rest* is empty, the
    text "invalid command-line arguments" is printed. If it is a single item,
    its stringification is printed. Otherwise, the first item is a format
    string for the remaining values. The first stanza of *docstring* is then
    printed and the program exits with code 1.

    """
    if len(rest) == 0:
        detail = "invalid command-line arguments"
    elif len(rest) == 1:
        detail = rest[0]
    else:
        detail = rest[0] % tuple(rest[1:])

    print("error:", detail, "\n", file=sys.stderr)  # extra NL
    show_usage(docstring, True, sys.stderr, 1)
