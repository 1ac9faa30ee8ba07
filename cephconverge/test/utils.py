"""
Mixins and utilities to be used for testing.
"""

from effect import (
    ComposedDispatcher, TypeDispatcher, base_dispatcher, sync_performer)

import mock

from cephconverge.attributes import AttributeStore, get_attribute_dispatcher
from cephconverge.log.bound import BoundLog
from cephconverge.log.intents import BoundFields, Log, LogErr
from cephconverge.system import (
    EnsurePackage, RestartService, SetServiceState)
from cephconverge.templating import get_template_dispatcher
from cephconverge.util.fileio import (
    ChangeOwner, MakeDirectory, PathInfo, ReadFile, ResolvePath, StatPath,
    TouchFiles, WriteFileAtomic)
from cephconverge.util.process import CommandResult, Run


def mock_log(*args, **kwargs):
    """
    Returns a BoundLog whose msg and err methods are mocks.  Makes it easier
    to test logging, since instead of making a mock object and testing::

        log.bind.return_value.msg.assert_called_with(...)

    This can be done instead::

        log.msg.assert_called_with(mock.ANY, bound_value1="val", ...)
    """
    msg = mock.Mock(spec=[])
    msg.return_value = None
    err = mock.Mock(spec=[])
    err.return_value = None
    return BoundLog(msg, err)


class matches(object):
    """
    Use a testtools matcher where mock compares for equality::

        log.msg.assert_called_once_with(
            matches(StartsWith('Skipping')), reason='done')
    """
    def __init__(self, matcher):
        self._matcher = matcher
        self._last_match = None

    def __eq__(self, other):
        self._last_match = self._matcher.match(other)
        return self._last_match is None

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        if self._last_match:
            return 'matches({0}): <mismatch: {1}>'.format(
                self._matcher, self._last_match.describe())
        return 'matches({0!s})'.format(self._matcher)


def noop(_):
    """Ignore input and return None."""
    pass


def const(v):
    """
    Return function that takes an argument but always return given `v`.
    Useful with `SequenceDispatcher`. For example,

    >>> SequenceDispatcher([(Run(('true',)), const(ok()))])
    """
    return lambda i: v


def conste(e):
    """
    Like ``const`` but takes an exception and returns function that raises
    the exception
    """
    def raise_(_):
        raise e
    return raise_


def ok(stdout='', stderr=''):
    """A successful :obj:`CommandResult` with the given output."""
    return CommandResult(0, stdout.encode('utf-8'), stderr.encode('utf-8'))


def failed(exit_code=1, stdout='', stderr=''):
    """A failed :obj:`CommandResult`."""
    return CommandResult(exit_code, stdout.encode('utf-8'),
                         stderr.encode('utf-8'))


MISSING = PathInfo()
DIRECTORY = PathInfo(exists=True, is_dir=True, size=4096)


def a_file(size=0):
    return PathInfo(exists=True, is_file=True, size=size)


def ignore_logging_dispatcher():
    """
    Dispatcher that drops log intents and performs the effects wrapped by
    :obj:`BoundFields`.
    """
    return TypeDispatcher({
        Log: sync_performer(lambda d, i: None),
        LogErr: sync_performer(lambda d, i: None),
        BoundFields: sync_performer(lambda d, i: i.effect),
    })


def test_dispatcher(disp=None, store=None):
    """
    Fallback dispatcher for :func:`effect.testing.perform_sequence`: pure
    intents, logging, and attribute intents against ``store``.
    """
    disps = [base_dispatcher, ignore_logging_dispatcher()]
    if store is not None:
        disps.append(get_attribute_dispatcher(store))
    if disp is not None:
        disps.append(disp)
    return ComposedDispatcher(disps)


def make_store(**tiers):
    """Build an :obj:`AttributeStore` from keyword tiers."""
    return AttributeStore(**tiers)


# Not a test, despite the name.
test_dispatcher.__test__ = False


class FakeNode(object):
    """
    Performs system intents against canned node state and records the
    commands that were run.

    :ivar dict commands: argv tuple to :obj:`CommandResult`, or to a
        function of the node returning one. Unknown commands succeed with no
        output.
    :ivar dict files: path to bytes content.
    :ivar dict paths: path to :obj:`PathInfo` of non-file paths.
    :ivar dict owners: path to the ``(owner, group)`` it was handed to.
    """

    def __init__(self, commands=None, files=None, paths=None):
        self.commands = dict(commands or {})
        self.files = dict(files or {})
        self.paths = dict(paths or {})
        self.owners = {}
        self.ran = []

    def run(self, argv):
        self.ran.append(argv)
        result = self.commands.get(argv, ok())
        if callable(result):
            return result(self)
        return result

    def has_run(self, *argv):
        return argv in self.ran

    def stat(self, path):
        if path in self.files:
            return a_file(len(self.files[path]))
        return self.paths.get(path, MISSING)

    def write(self, path, content):
        self.files[path] = content

    def mkdir(self, path):
        self.paths[path] = DIRECTORY

    def touch(self, paths):
        for path in paths:
            self.files.setdefault(path, b'')

    def chown(self, path, owner, group):
        self.owners[path] = (owner, group)

    def dispatcher(self):
        return TypeDispatcher({
            Run: sync_performer(lambda d, i: self.run(i.argv)),
            StatPath: sync_performer(lambda d, i: self.stat(i.path)),
            ResolvePath: sync_performer(lambda d, i: i.path),
            ReadFile: sync_performer(lambda d, i: self.files.get(i.path)),
            WriteFileAtomic: sync_performer(
                lambda d, i: self.write(i.path, i.content)),
            MakeDirectory: sync_performer(lambda d, i: self.mkdir(i.path)),
            TouchFiles: sync_performer(lambda d, i: self.touch(i.paths)),
            ChangeOwner: sync_performer(
                lambda d, i: self.chown(i.path, i.owner, i.group)),
            EnsurePackage: sync_performer(lambda d, i: False),
            SetServiceState: sync_performer(lambda d, i: False),
            RestartService: sync_performer(lambda d, i: True),
        })


def node_dispatcher(node, store):
    """
    Dispatcher converging against ``node``, with real template rendering.
    """
    return ComposedDispatcher([node.dispatcher(), get_template_dispatcher(),
                               test_dispatcher(store=store)])
