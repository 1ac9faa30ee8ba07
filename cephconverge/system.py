"""
Package manager and service manager collaborators.

Both are reached through intents whose performers return effects of
:obj:`Run`, so that tests see exactly which commands would be invoked.
Performers report whether anything changed; satisfied requests are no-ops.
"""

import attr

from effect import TypeDispatcher, sync_performer
from effect.do import do

from cephconverge.constants import InitStyle
from cephconverge.model import Action
from cephconverge.util.process import run, run_checked


@attr.s(frozen=True)
class EnsurePackage(object):
    """
    Intent to have package ``name`` installed, at ``version`` if given.

    :ivar action: :obj:`Action.INSTALL` or :obj:`Action.UPGRADE`.
    """
    name = attr.ib()
    version = attr.ib(default=None)
    action = attr.ib(default=Action.INSTALL)


@attr.s(frozen=True)
class SetServiceState(object):
    """
    Intent to have a service enabled at boot and/or running.
    """
    name = attr.ib()
    enabled = attr.ib(default=True)
    running = attr.ib(default=True)
    provider = attr.ib(default=InitStyle.SYSTEMD)


@attr.s(frozen=True)
class RestartService(object):
    name = attr.ib()
    provider = attr.ib(default=InitStyle.SYSTEMD)


def _apt(*args):
    return ('env', 'DEBIAN_FRONTEND=noninteractive', 'apt-get', '-q', '-y',
            '-o', 'Dpkg::Options::=--force-confold') + args


@do
def installed_version(name, family):
    """
    Return an Effect of the installed version of ``name``, or None.
    """
    if family == 'debian':
        result = yield run('dpkg-query', '-W', '-f=${Status} ${Version}',
                           name)
        fields = result.text.split()
        if result.succeeded and fields[:3] == ['install', 'ok', 'installed']:
            return fields[3] if len(fields) > 3 else ''
        return None
    result = yield run('rpm', '-q', '--qf', '%{VERSION}-%{RELEASE}', name)
    return result.text.strip() if result.succeeded else None


def _install_argv(intent, family, installed):
    name = intent.name
    if family == 'debian':
        if intent.version:
            return _apt('install', '{0}={1}'.format(name, intent.version))
        if intent.action is Action.UPGRADE and installed is not None:
            return _apt('install', '--only-upgrade', name)
        return _apt('install', name)
    if intent.version:
        name = '{0}-{1}'.format(name, intent.version)
    if family == 'suse':
        return ('zypper', '--non-interactive', 'install', name)
    if intent.action is Action.UPGRADE and installed is not None:
        return ('yum', '-y', 'upgrade', name)
    return ('yum', '-y', 'install', name)


@do
def ensure_package(intent, family):
    """
    Converge one package. Installing is a no-op if the package is present
    (at the requested version, if any); upgrading is a no-op when the
    package manager finds nothing newer.

    :return: Effect of bool, True if the installed version changed.
    """
    before = yield installed_version(intent.name, family)
    if before is not None:
        if intent.version:
            if before == intent.version or before.startswith(
                    intent.version + '-'):
                return False
        elif intent.action is Action.INSTALL:
            return False
    yield run_checked(_install_argv(intent, family, before))
    after = yield installed_version(intent.name, family)
    return after != before


@do
def _systemd_state(intent):
    changed = False
    if intent.enabled:
        enabled = yield run('systemctl', 'is-enabled', '--quiet', intent.name)
        if not enabled.succeeded:
            yield run_checked(('systemctl', 'enable', intent.name))
            changed = True
    if intent.running:
        active = yield run('systemctl', 'is-active', '--quiet', intent.name)
        if not active.succeeded:
            yield run_checked(('systemctl', 'start', intent.name))
            changed = True
    return changed


@do
def _upstart_state(intent):
    # Upstart jobs are enabled by the presence of their job file.
    if not intent.running:
        return False
    status = yield run('initctl', 'status', intent.name)
    if status.succeeded and 'start/running' in status.text:
        return False
    yield run_checked(('initctl', 'start', intent.name))
    return True


@do
def _sysvinit_state(intent, family):
    changed = False
    if intent.enabled:
        links = yield run('find', '/etc/rc2.d', '/etc/rc3.d', '-name',
                          'S??' + intent.name)
        if not links.text.strip():
            if family == 'debian':
                argv = ('update-rc.d', intent.name, 'defaults')
            else:
                argv = ('chkconfig', intent.name, 'on')
            yield run_checked(argv)
            changed = True
    if intent.running:
        status = yield run('service', intent.name, 'status')
        if not status.succeeded:
            yield run_checked(('service', intent.name, 'start'))
            changed = True
    return changed


def set_service_state(intent, family):
    """
    Converge one service.

    :return: Effect of bool, True if the service was enabled or started.
    """
    if intent.provider is InitStyle.UPSTART:
        return _upstart_state(intent)
    if intent.provider is InitStyle.SYSVINIT:
        return _sysvinit_state(intent, family)
    return _systemd_state(intent)


def restart_service(intent):
    """Return an Effect restarting a service."""
    argv = {
        InitStyle.UPSTART: ('initctl', 'restart', intent.name),
        InitStyle.SYSVINIT: ('service', intent.name, 'restart'),
    }.get(intent.provider, ('systemctl', 'restart', intent.name))
    return run_checked(argv).on(lambda _: True)


def get_system_dispatcher(family):
    """
    Return dispatcher for package and service intents on a node of the
    given platform family.
    """
    return TypeDispatcher({
        EnsurePackage: sync_performer(
            lambda d, i: ensure_package(i, family)),
        SetServiceState: sync_performer(
            lambda d, i: set_service_state(i, family)),
        RestartService: sync_performer(lambda d, i: restart_service(i)),
    })
