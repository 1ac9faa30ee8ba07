"""
Resources: the declarative units of a convergence graph.

Each resource has an identity ``(ResourceKind, name)``, optional ``only_if``
and ``not_if`` guards, notifications, and an action. Its :meth:`as_effect`
performs the action and results in True if something outside the process
changed, False if the desired state was already in place. Resources are
immutable; the executor tracks their state separately.
"""

import attr

from effect import Constant, Effect, Func
from effect.do import do

from zope.interface import Attribute, Interface, implementer

from cephconverge.errors import CommandFailed
from cephconverge.log.intents import warn
from cephconverge.model import Action, ResourceKind
from cephconverge.system import EnsurePackage, RestartService, SetServiceState
from cephconverge.templating import render_template
from cephconverge.util.fileio import (
    MakeDirectory, WriteFileAtomic, read_file, stat_path)
from cephconverge.util.process import Run


class IResource(Interface):
    """
    A unit of desired state.
    """
    kind = Attribute("The :obj:`ResourceKind` of this resource.")
    name = Attribute("Name, unique within the kind.")
    only_if = Attribute("Guards that must all hold for the action to run.")
    not_if = Attribute("Guards none of which may hold for the action to run.")
    notifies = Attribute("Tuple of :obj:`Notification`.")
    action = Attribute("Default :obj:`Action` of the main pass.")
    best_effort = Attribute("If True a failed action does not abort the run.")

    def as_effect(action):
        """
        Return an Effect that performs ``action`` and results in a bool:
        whether external state changed.
        """


def _lazy(value):
    """
    Return an Effect of ``value``, calling it first if it is callable so
    that it is computed when the resource runs rather than when it is
    declared.
    """
    if callable(value):
        return Effect(Func(value))
    return Effect(Constant(value))


@attr.s(frozen=True, kw_only=True)
class Resource(object):
    """
    Fields shared by all resources.
    """
    kind = None

    only_if = attr.ib(converter=tuple, default=())
    not_if = attr.ib(converter=tuple, default=())
    notifies = attr.ib(converter=tuple, default=())
    best_effort = attr.ib(default=False)

    @property
    def identity(self):
        return (self.kind, self.name)

    def describe(self):
        return '{0}[{1}]'.format(self.kind.name.lower(), self.name)


@implementer(IResource)
@attr.s(frozen=True, kw_only=True)
class Package(Resource):
    kind = ResourceKind.PACKAGE

    name = attr.ib()
    version = attr.ib(default=None)
    action = attr.ib(default=Action.INSTALL)

    def as_effect(self, action=None):
        return Effect(EnsurePackage(self.name, self.version,
                                    action or self.action))


@implementer(IResource)
@attr.s(frozen=True, kw_only=True)
class Directory(Resource):
    """
    A directory, created with its parents if missing.
    """
    kind = ResourceKind.DIRECTORY

    name = attr.ib()
    owner = attr.ib(default=None)
    group = attr.ib(default=None)
    mode = attr.ib(default=None)
    action = attr.ib(default=Action.CREATE)

    @do
    def as_effect(self, action=None):
        info = yield stat_path(self.name)
        if info.is_dir:
            return False
        yield Effect(MakeDirectory(self.name, self.mode, self.owner,
                                   self.group))
        return True


@implementer(IResource)
@attr.s(frozen=True, kw_only=True)
class File(Resource):
    """
    A file with the given content. Without ``content`` the file is only
    created (empty) if it does not exist and its content is left alone.
    """
    kind = ResourceKind.FILE

    name = attr.ib()
    content = attr.ib(default=None)
    owner = attr.ib(default=None)
    group = attr.ib(default=None)
    mode = attr.ib(default=None)
    action = attr.ib(default=Action.CREATE)

    @do
    def as_effect(self, action=None):
        if self.content is None:
            info = yield stat_path(self.name)
            if info.exists:
                return False
            content = b''
        else:
            content = yield _lazy(self.content)
            existing = yield read_file(self.name)
            if existing == content:
                return False
        yield Effect(WriteFileAtomic(self.name, content, self.mode,
                                     self.owner, self.group))
        return True


@implementer(IResource)
@attr.s(frozen=True, kw_only=True)
class Template(Resource):
    """
    A file rendered from template ``source``. ``variables`` is a mapping or
    a callable returning one, called when the resource runs.
    """
    kind = ResourceKind.TEMPLATE

    name = attr.ib()
    source = attr.ib()
    variables = attr.ib(default=None)
    owner = attr.ib(default=None)
    group = attr.ib(default=None)
    mode = attr.ib(default=None)
    action = attr.ib(default=Action.CREATE)

    @do
    def as_effect(self, action=None):
        variables = yield _lazy(self.variables)
        content = yield render_template(self.source, variables or {})
        existing = yield read_file(self.name)
        if existing == content:
            return False
        yield Effect(WriteFileAtomic(self.name, content, self.mode,
                                     self.owner, self.group))
        return True


@implementer(IResource)
@attr.s(frozen=True, kw_only=True)
class Execute(Resource):
    """
    An external command.

    :ivar command: argv tuple, or a callable returning one.
    :ivar creates: Path whose existence means the command already ran.
    :ivar bool ignore_failure: Accept non-zero exit statuses.
    :ivar bool sensitive: Keep the command line out of logs and errors.
    """
    kind = ResourceKind.EXECUTE

    name = attr.ib()
    command = attr.ib()
    creates = attr.ib(default=None)
    stdin = attr.ib(default=None)
    timeout = attr.ib(default=None)
    ignore_failure = attr.ib(default=False)
    sensitive = attr.ib(default=False)
    action = attr.ib(default=Action.RUN)

    @do
    def as_effect(self, action=None):
        if self.creates is not None:
            info = yield stat_path(self.creates)
            if info.exists:
                return False
        argv = yield _lazy(self.command)
        result = yield Effect(Run(argv, stdin=self.stdin,
                                  timeout=self.timeout))
        if not result.succeeded:
            if not self.ignore_failure:
                raise CommandFailed(argv, result, sensitive=self.sensitive)
            yield warn('Ignoring exit status {exit_code} of {resource}',
                       exit_code=result.exit_code, resource=self.describe())
        return True


@implementer(IResource)
@attr.s(frozen=True, kw_only=True)
class Service(Resource):
    kind = ResourceKind.SERVICE

    name = attr.ib()
    provider = attr.ib()
    action = attr.ib(default=Action.ENABLE_AND_START)

    def as_effect(self, action=None):
        if (action or self.action) is Action.RESTART:
            return Effect(RestartService(self.name, self.provider))
        return Effect(SetServiceState(self.name, enabled=True, running=True,
                                      provider=self.provider))


@implementer(IResource)
@attr.s(frozen=True, kw_only=True, eq=False)
class Block(Resource):
    """
    An in-process step, typically reading or writing the attribute store.

    :ivar block: Zero-argument callable returning an Effect (or a plain
        value). A true result means something changed.
    """
    kind = ResourceKind.BLOCK

    name = attr.ib()
    block = attr.ib()
    action = attr.ib(default=Action.RUN)

    def as_effect(self, action=None):
        return Effect(Func(self.block)).on(bool)

