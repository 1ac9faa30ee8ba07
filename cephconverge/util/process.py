"""
Effect based execution of external commands.

The only way to observe or change the cluster is by running its
administration tools, so every invocation goes through the :obj:`Run`
intent. Performing it blocks until the process exits; there is no
cancellation of a started command, only an optional process-level timeout.
"""

import subprocess

import attr
from attr.validators import instance_of, optional

from effect import Effect, TypeDispatcher, sync_performer

from cephconverge.errors import (
    CommandFailed, CommandTimedOut, CommandUnavailable)


@attr.s(frozen=True)
class CommandResult(object):
    """
    Outcome of a finished command.

    :ivar int exit_code: Process exit status.
    :ivar bytes stdout: Captured standard output.
    :ivar bytes stderr: Captured standard error.
    """
    exit_code = attr.ib(validator=instance_of(int))
    stdout = attr.ib(default=b'')
    stderr = attr.ib(default=b'')

    @property
    def succeeded(self):
        return self.exit_code == 0

    @property
    def text(self):
        """Standard output decoded as text."""
        return self.stdout.decode('utf-8', 'replace')


@attr.s(frozen=True)
class Run(object):
    """
    Intent to run a command and capture its output.

    :ivar tuple argv: Command line; never interpreted by a shell.
    :ivar bytes stdin: Data fed to the process, if any.
    :ivar timeout: Seconds before the process is killed, or None.
    """
    argv = attr.ib(converter=tuple)
    stdin = attr.ib(default=None, validator=optional(instance_of(bytes)))
    timeout = attr.ib(default=None)


def run(*argv, **kwargs):
    """Return an Effect of :obj:`Run`."""
    return Effect(Run(argv, **kwargs))


def run_checked(argv, sensitive=False, **kwargs):
    """
    Run a command and raise :obj:`CommandFailed` if it exits non-zero.

    :return: Effect of :obj:`CommandResult`
    """
    def check(result):
        if not result.succeeded:
            raise CommandFailed(argv, result, sensitive=sensitive)
        return result
    return Effect(Run(argv, **kwargs)).on(check)


def _execute(intent, timeout=None):
    if intent.timeout is not None:
        timeout = intent.timeout
    try:
        proc = subprocess.run(
            list(intent.argv), input=intent.stdin, stdout=subprocess.PIPE,
            stderr=subprocess.PIPE, timeout=timeout)
    except subprocess.TimeoutExpired:
        raise CommandTimedOut(intent.argv, timeout)
    except OSError as e:
        raise CommandUnavailable(intent.argv, e.strerror or str(e))
    return CommandResult(proc.returncode, proc.stdout, proc.stderr)


def get_process_dispatcher(timeout=None):
    """
    Return dispatcher performing :obj:`Run`. ``timeout`` is applied to
    intents that don't specify their own.
    """
    return TypeDispatcher({
        Run: sync_performer(lambda d, i: _execute(i, timeout))})
