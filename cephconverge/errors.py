"""
Errors raised while converging, and their operator-facing presentation.
"""
from functools import singledispatch

from cephconverge.log.bound import REDACTED
from cephconverge.log.formatters import serialize_to_jsonable


def _command_line(argv, sensitive=False):
    if sensitive:
        return '{0} {1}'.format(argv[0], REDACTED) if argv else REDACTED
    return ' '.join(argv)


def _text(output):
    if isinstance(output, bytes):
        return output.decode('utf-8', 'replace')
    return output or ''


class CommandFailed(Exception):
    """
    An external command exited with a non-zero status.

    :ivar tuple argv: The command line.
    :ivar result: The :obj:`CommandResult` with captured output.
    """
    def __init__(self, argv, result, sensitive=False):
        super(CommandFailed, self).__init__(
            '{0!r} exited with status {1}'.format(
                _command_line(argv, sensitive), result.exit_code))
        self.argv = tuple(argv)
        self.result = result
        self.sensitive = sensitive


class CommandUnavailable(Exception):
    """
    An external command could not be started at all (missing binary,
    permission denied).
    """
    def __init__(self, argv, reason):
        super(CommandUnavailable, self).__init__(
            'Cannot run {0!r}: {1}'.format(argv[0] if argv else '', reason))
        self.argv = tuple(argv)
        self.reason = reason


class CommandTimedOut(Exception):
    """
    An external command did not finish within its process-level timeout.
    """
    def __init__(self, argv, timeout):
        super(CommandTimedOut, self).__init__(
            '{0!r} timed out after {1}s'.format(
                argv[0] if argv else '', timeout))
        self.argv = tuple(argv)
        self.timeout = timeout


class TemplateError(Exception):
    """
    A template could not be found or rendered.
    """
    def __init__(self, template, reason):
        super(TemplateError, self).__init__(
            'Cannot render template {0}: {1}'.format(template, reason))
        self.template = template
        self.reason = reason


class ActionFailed(Exception):
    """
    The action of a resource failed.

    :ivar identity: The ``(kind, name)`` of the failing resource.
    :ivar cause: The underlying exception.
    """
    def __init__(self, identity, cause):
        super(ActionFailed, self).__init__(
            '{0}[{1}] failed: {2}'.format(identity[0].name, identity[1],
                                          cause))
        self.identity = identity
        self.cause = cause


class DuplicateResource(Exception):
    """
    A resource with the same kind and name was already declared.
    """
    def __init__(self, identity):
        super(DuplicateResource, self).__init__(
            'Duplicate resource {0}[{1}]'.format(identity[0].name,
                                                 identity[1]))
        self.identity = identity


class UnknownNotificationTarget(Exception):
    """
    A resource notifies a target that is not part of the graph.
    """
    def __init__(self, source, target):
        super(UnknownNotificationTarget, self).__init__(
            '{0}[{1}] notifies unknown {2}[{3}]'.format(
                source[0].name, source[1], target[0].name, target[1]))
        self.source = source
        self.target = target


@singledispatch
def present_error(exception):
    """Get an operator-facing description of an error."""
    return str(exception)


@present_error.register(CommandFailed)
def _present_command_failed(exception):
    lines = ['Command failed with status {0}: {1}'.format(
        exception.result.exit_code,
        _command_line(exception.argv, exception.sensitive))]
    stdout = _text(exception.result.stdout).strip()
    stderr = _text(exception.result.stderr).strip()
    if stdout:
        lines.append('---- stdout ----')
        lines.append(stdout)
    if stderr:
        lines.append('---- stderr ----')
        lines.append(stderr)
    return '\n'.join(lines)


@present_error.register(ActionFailed)
def _present_action_failed(exception):
    return '{0}[{1}]: {2}'.format(exception.identity[0].name,
                                  exception.identity[1],
                                  present_error(exception.cause))


@serialize_to_jsonable.register(CommandFailed)
def _serialize_command_failed(exception):
    return {
        'command': _command_line(exception.argv, exception.sensitive),
        'exit_code': exception.result.exit_code,
        'stdout': _text(exception.result.stdout),
        'stderr': _text(exception.result.stderr)}


@serialize_to_jsonable.register(ActionFailed)
def _serialize_action_failed(exception):
    return {
        'resource': '{0}[{1}]'.format(exception.identity[0].name,
                                      exception.identity[1]),
        'cause': serialize_to_jsonable(exception.cause)}
