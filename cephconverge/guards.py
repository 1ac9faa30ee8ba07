"""
Guards decide whether the action of a resource runs.

A resource runs iff every ``only_if`` guard holds and no ``not_if`` guard
holds. Guards are read-only probes evaluated afresh every time the resource
is about to run, never cached, since other nodes and operators change the
cluster out of band.

A probe that cannot be carried out (missing binary, permission denied,
unparseable output) evaluates to False and logs a warning: "cannot check"
is treated like "does not exist yet".
"""

import re

import attr

from effect import Effect, Func
from effect.do import do

from zope.interface import Interface, implementer

from cephconverge.attributes import get_attribute
from cephconverge.errors import (
    CommandFailed, CommandTimedOut, CommandUnavailable)
from cephconverge.log.intents import warn
from cephconverge.util.fileio import stat_path
from cephconverge.util.process import Run


PROBE_ERRORS = (CommandUnavailable, CommandTimedOut, CommandFailed, OSError,
                ValueError)


class IGuard(Interface):
    """
    A read-only predicate over the node, the cluster or the attribute store.
    """

    def as_effect():
        """
        Return an Effect of a boolean.
        """

    def describe():
        """
        Return a short description for logging.
        """


@implementer(IGuard)
@attr.s(frozen=True)
class Command(object):
    """
    Holds if ``argv`` exits zero and, when ``pattern`` is given, its output
    matches the (case insensitive) regular expression.
    """
    argv = attr.ib(converter=tuple)
    pattern = attr.ib(default=None)

    def as_effect(self):
        def check(result):
            if not result.succeeded:
                return False
            if self.pattern is None:
                return True
            return re.search(self.pattern, result.text,
                             re.IGNORECASE | re.MULTILINE) is not None
        return Effect(Run(self.argv)).on(check)

    def describe(self):
        cmd = ' '.join(self.argv)
        if self.pattern is not None:
            return '{0} | grep {1}'.format(cmd, self.pattern)
        return cmd


@implementer(IGuard)
@attr.s(frozen=True)
class PathExists(object):
    path = attr.ib()

    def as_effect(self):
        return stat_path(self.path).on(lambda info: info.exists)

    def describe(self):
        return 'exists {0}'.format(self.path)


@implementer(IGuard)
@attr.s(frozen=True)
class IsFile(object):
    path = attr.ib()

    def as_effect(self):
        return stat_path(self.path).on(lambda info: info.is_file)

    def describe(self):
        return 'file {0}'.format(self.path)


@implementer(IGuard)
@attr.s(frozen=True)
class IsDirectory(object):
    path = attr.ib()

    def as_effect(self):
        return stat_path(self.path).on(lambda info: info.is_dir)

    def describe(self):
        return 'directory {0}'.format(self.path)


@implementer(IGuard)
@attr.s(frozen=True)
class NonEmptyFile(object):
    path = attr.ib()

    def as_effect(self):
        return stat_path(self.path).on(
            lambda info: info.is_file and info.size > 0)

    def describe(self):
        return 'non-empty {0}'.format(self.path)


@implementer(IGuard)
@attr.s(frozen=True)
class Attribute(object):
    """
    Holds if ``test`` is true of the resolved attribute at ``path``.
    """
    path = attr.ib()
    test = attr.ib(default=bool)

    def as_effect(self):
        return get_attribute(self.path).on(self.test)

    def describe(self):
        return 'attribute {0}'.format(self.path)


@implementer(IGuard)
@attr.s(frozen=True, eq=False)
class Check(object):
    """
    Holds if the Effect returned by ``factory`` results in a true value.
    Used with the typed queries of :obj:`cephconverge.cluster.CephAdmin`.
    """
    factory = attr.ib()
    description = attr.ib(default='check')

    def as_effect(self):
        return self.factory().on(bool)

    def describe(self):
        return self.description


@implementer(IGuard)
@attr.s(frozen=True, eq=False)
class Predicate(object):
    """
    Holds if ``fn()`` is true. ``fn`` is called when the guard is evaluated,
    not when it is declared.
    """
    fn = attr.ib()
    description = attr.ib(default='predicate')

    def as_effect(self):
        return Effect(Func(self.fn)).on(bool)

    def describe(self):
        return self.description


def evaluate(guard, **fields):
    """
    Evaluate one guard, turning probe errors into False plus a warning.

    :return: Effect of bool
    """
    def probe_failed(exc):
        if not isinstance(exc, PROBE_ERRORS):
            raise exc
        return warn('Guard probe failed, treating "{guard}" as false: '
                    '{reason}', guard=guard.describe(), reason=str(exc),
                    **fields).on(lambda _: False)
    return guard.as_effect().on(error=probe_failed)


@do
def should_run(only_if=(), not_if=(), **fields):
    """
    Combine the guards of a resource.

    :return: Effect of ``(run, reason)``: whether the action should run and,
        if not, a description of the guard that prevented it.
    """
    for guard in only_if:
        holds = yield evaluate(guard, **fields)
        if not holds:
            return False, 'only_if {0}'.format(guard.describe())
    for guard in not_if:
        holds = yield evaluate(guard, **fields)
        if holds:
            return False, 'not_if {0}'.format(guard.describe())
    return True, None
