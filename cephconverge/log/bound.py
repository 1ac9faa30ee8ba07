"""
Bound logging on top of twisted's log module.

Convergence needs three severities: plain messages, warnings (probe
failures, skipped units, unrecognized values) and errors. Twisted only knows
``msg`` and ``err``, so warnings are messages carrying a ``level`` field that
the observer chain in :mod:`cephconverge.log.formatters` honours.
"""

from functools import partial

from cephconverge.log.formatters import LogLevel


REDACTED = '********'


class BoundLog(object):
    """
    A pair of ``msg`` and ``err`` callables with fields applied to both,
    e.g. the role a recipe builds resources for.
    """
    def __init__(self, msg, err):
        self.msg = msg
        self.err = err

    def bind(self, **fields):
        """
        Return a :obj:`BoundLog` adding ``fields`` to every message and
        error, on top of the fields already bound.
        """
        return type(self)(partial(self.msg, **fields),
                          partial(self.err, **fields))

    def warn(self, message, **fields):
        """
        Log ``message`` at warning level.
        """
        fields.setdefault('level', LogLevel.WARNING)
        self.msg(message, **fields)
