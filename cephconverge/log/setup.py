"""
Observer factories used to configure logging of a convergence run.
"""
import socket
import sys

from cephconverge.log.formatters import (
    EnvelopeWrapper,
    ErrorFormattingWrapper,
    JSONObserverWrapper,
    PEP3101FormattingWrapper,
    StreamObserverWrapper,
    SystemFilterWrapper,
)


def make_observer_chain(ultimate_observer, indent=None, hostname=None):
    """
    Return the observers that format an event and turn it into JSON,
    wrapped around ``ultimate_observer``.
    """
    return PEP3101FormattingWrapper(
        SystemFilterWrapper(
            ErrorFormattingWrapper(
                EnvelopeWrapper(
                    JSONObserverWrapper(ultimate_observer, sort_keys=True,
                                        indent=indent),
                    hostname=hostname or socket.gethostname()))))


def observer_factory(stream=None):
    """
    Log one compact JSON document per line, to stdout by default.
    """
    return make_observer_chain(StreamObserverWrapper(stream or sys.stdout))


def observer_factory_debug(stream=None):
    """
    Log pretty printed JSON documents, to stdout by default.
    """
    return make_observer_chain(StreamObserverWrapper(stream or sys.stdout),
                               indent=2)
