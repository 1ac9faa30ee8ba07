"""
Observers turning Twisted log events into one JSON document per line.

Each wrapper takes the next observer in the chain and returns a new one;
:func:`cephconverge.log.setup.make_observer_chain` puts them in order.
"""
import json
import time
from datetime import datetime, timezone
from functools import singledispatch

from constantly import NamedConstant

from pyrsistent import PMap, PVector, thaw

from twisted.python.failure import Failure


class LogLevel(object):
    """ Syslog style log levels """
    ERROR = 3
    WARNING = 4
    INFO = 6


ERROR_FIELDS = frozenset(['isError', 'failure', 'why'])

# Bookkeeping Twisted adds to every event, not worth shipping.
TWISTED_FIELDS = frozenset(['time', 'system', 'format', 'id', 'message'])


@singledispatch
def serialize_to_jsonable(obj):
    """
    Serialize any object to a JSONable form, falling back to its repr.

    Used as the ``default`` of the JSON encoder, so any field value of a
    log event goes through it. Error types register structured forms in
    :mod:`cephconverge.errors`.
    """
    return repr(obj)


@serialize_to_jsonable.register(bytes)
def _serialize_bytes(obj):
    # captured command output
    return obj.decode('utf-8', 'replace')


@serialize_to_jsonable.register(NamedConstant)
def _serialize_constant(obj):
    return obj.name


@serialize_to_jsonable.register(PMap)
@serialize_to_jsonable.register(PVector)
def _serialize_frozen(obj):
    return thaw(obj)


@serialize_to_jsonable.register(set)
@serialize_to_jsonable.register(frozenset)
def _serialize_set(obj):
    return sorted(obj, key=str)


@serialize_to_jsonable.register(datetime)
def _serialize_datetime(obj):
    return obj.isoformat()


@serialize_to_jsonable.register(Failure)
def _serialize_failure(obj):
    return str(obj)


def JSONObserverWrapper(observer, **kwargs):
    """
    Return an observer that dumps the whole event as JSON (``kwargs`` go to
    :func:`json.dumps`) and hands it on as the message of a new event.
    """
    def JSONObserver(event):
        text = json.dumps(event, default=serialize_to_jsonable, **kwargs)
        observer({'message': (text,)})

    return JSONObserver


def StreamObserverWrapper(stream):
    """
    Return an observer writing each message to ``stream`` on a line of its
    own, flushing after every event so that a long running command does not
    hold back what was logged before it.
    """
    def StreamObserver(event):
        stream.write(''.join(event['message']) + '\n')
        stream.flush()

    return StreamObserver


def SystemFilterWrapper(observer, default_system='cephconverge'):
    """
    Name ``default_system`` as the system of events logged without one, or
    with Twisted's comma separated context, which is kept as
    ``context``.
    """
    def SystemFilterObserver(event):
        system = event.get('system', '-')
        if system == '-':
            system = default_system
        elif ',' in system:
            event['context'] = system
            system = default_system
        event['system'] = system
        observer(event)

    return SystemFilterObserver


def _format(template, event):
    return template.format(**event)


def PEP3101FormattingWrapper(observer):
    """
    Format message and ``why`` templates with the fields of the event, e.g.
    ``log.msg('Skipping {resource}', resource=...)``.

    A message that cannot be formatted is passed on as it is, with the
    problem in ``message_formatting_error``.
    """
    def PEP3101FormattingObserver(event):
        if event.get('why'):
            try:
                event['why'] = _format(event['why'], event)
            except (KeyError, IndexError, ValueError):
                pass

        template = ' '.join(event.get('message', ()))
        if template:
            try:
                event['message'] = (_format(template, event),)
            except Exception:
                event['message_formatting_error'] = str(Failure())
                event['message'] = (template,)

        observer(event)

    return PEP3101FormattingObserver


def _failure_fields(failure, summary):
    fields = {
        'traceback': failure.getTraceback(),
        'exception_type': type(failure.value).__name__,
    }
    details = serialize_to_jsonable(failure.value)
    if details != summary:
        fields['error_details'] = details
    return fields


def ErrorFormattingWrapper(observer):
    """
    Return an observer that turns the error fields of ``log.err`` events into
    a message, a level and structured details.

    The message of an error event, unless it has one, becomes
    ``<why>: <repr of the exception>``. The traceback and exception type are
    added, and ``error_details`` when the exception serializes to more than
    its repr (a failed command with its output, say). ``isError``,
    ``failure`` and ``why`` are removed. Events that already carry a
    ``level`` keep it.
    """
    def ErrorFormattingObserver(event):
        message = ''.join(event.get('message', ()))
        level = LogLevel.INFO

        if event.get('isError'):
            level = LogLevel.ERROR
            summary = ''
            failure = event.get('failure')
            if failure is not None:
                summary = repr(failure.value)
                event.update(_failure_fields(failure, summary))
            if event.get('why'):
                summary = '{0}: {1}'.format(event['why'], summary)
            message = message or summary

        event['message'] = (message,)
        event.setdefault('level', level)
        for key in ERROR_FIELDS:
            event.pop(key, None)

        observer(event)

    return ErrorFormattingObserver


def EnvelopeWrapper(observer, hostname, seconds=None):
    """
    Return an observer that wraps the event fields in the envelope every
    emitted document has: timestamp, host, system, level and message.

    Twisted's own bookkeeping fields, including the ``log_*`` fields of its
    newer logging system, are dropped.

    :param str hostname: Host the run converges.
    :param seconds: A 0-argument callable returning the current time, for
        events that carry none.
    """
    seconds = seconds or time.time

    def EnvelopeObserver(event):
        timestamp = datetime.fromtimestamp(event.get('time', seconds()),
                                           timezone.utc)
        envelope = {
            '@timestamp': timestamp.isoformat(),
            'host': hostname,
            'system': event.get('system', 'cephconverge'),
            'message': ''.join(event['message']),
        }
        for key, value in event.items():
            if key not in TWISTED_FIELDS and not key.startswith('log_'):
                envelope[key] = value
        observer(envelope)

    return EnvelopeObserver
