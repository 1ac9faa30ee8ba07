"""
Logging as effects.

Resources and recipes log by returning :func:`msg`, :func:`warn` and
:func:`err` effects instead of calling a logger. :func:`with_log` binds
fields, such as the resource being converged, to every log effect performed
while another effect runs. :func:`get_log_dispatcher` performs them with the
:obj:`BoundLog` of the run.
"""

import attr

from effect import (
    ComposedDispatcher, Effect, TypeDispatcher, perform, sync_performer)

from toolz.dicttoolz import merge

from twisted.python.failure import Failure

from cephconverge.log.formatters import LogLevel


def _as_failure(error):
    # Error callbacks get plain exceptions; log.err wants a Failure.
    # Failure itself is a BaseException on newer Twisted.
    if isinstance(error, Failure):
        return error
    if isinstance(error, BaseException):
        return Failure(error)
    return error


@attr.s(frozen=True)
class Log(object):
    """
    Intent to log ``msg``, a PEP 3101 template, with ``fields``.
    """
    msg = attr.ib()
    fields = attr.ib()


@attr.s(frozen=True)
class LogErr(object):
    """
    Intent to log an error. ``failure`` may be an exception or a
    :obj:`Failure`.
    """
    failure = attr.ib(converter=_as_failure)
    msg = attr.ib()
    fields = attr.ib()


@attr.s(frozen=True)
class BoundFields(object):
    """
    Intent to perform ``effect`` with ``fields`` added to every log intent
    performed on the way.
    """
    effect = attr.ib()
    fields = attr.ib()


def with_log(effect, **fields):
    """Return Effect of ``effect`` logging with ``fields`` bound."""
    return Effect(BoundFields(effect, fields))


def msg(msg, **fields):
    return Effect(Log(msg, fields))


def warn(msg, **fields):
    """Return Effect of a message at warning level."""
    return Effect(Log(msg, merge({'level': LogLevel.WARNING}, fields)))


def err(failure, msg, **fields):
    return Effect(LogErr(failure, msg, fields))


def get_log_dispatcher(log, fields):
    """
    Return a dispatcher performing the logging intents with ``log``.
    ``fields`` are added to every message; fields of the intent win.
    """
    @sync_performer
    def log_msg(disp, intent):
        log.msg(intent.msg, **merge(fields, intent.fields))

    @sync_performer
    def log_err(disp, intent):
        log.err(intent.failure, intent.msg, **merge(fields, intent.fields))

    def bind_fields(disp, intent, box):
        bound = get_log_dispatcher(log, merge(fields, intent.fields))
        perform(ComposedDispatcher([bound, disp]),
                intent.effect.on(box.succeed, box.fail))

    return TypeDispatcher({
        Log: log_msg,
        LogErr: log_err,
        BoundFields: bind_fields,
    })
