"""
Package for all cephconverge specific logging functionality.
"""

from twisted.python.log import err, msg

from cephconverge.log.bound import BoundLog
from cephconverge.log.setup import observer_factory, observer_factory_debug


log = BoundLog(msg, err).bind(system='cephconverge')


__all__ = ['observer_factory', 'observer_factory_debug', 'log']
