"""
The manager role.
"""

from effect import Effect

from cephconverge.cluster import CephAdmin
from cephconverge.config import cluster_config, mgr_config
from cephconverge.constants import CEPH_LIB_DIR, MGR_CAPS, InitStyle
from cephconverge.guards import NonEmptyFile
from cephconverge.model import Action, ResourceKind, Timing, notify
from cephconverge.recipes.common import finalize
from cephconverge.resources import Block, Directory, Execute, Service
from cephconverge.util.fileio import ChangeOwner


def mgr_service(hostname, init_style):
    """Return ``(service name, provider)`` of the manager daemon."""
    if init_style is InitStyle.UPSTART:
        return 'ceph-mgr-all-starter', InitStyle.UPSTART
    return 'ceph-mgr@{0}'.format(hostname), InitStyle.SYSTEMD


def mgr_resources(store, log):
    mgr = mgr_config(store)
    if not mgr.enable:
        return []
    cluster = cluster_config(store)
    admin = CephAdmin(cluster.name, cluster.admin_keyring)
    mgrdir = '{0}/mgr/{1}-{2}'.format(CEPH_LIB_DIR, cluster.name,
                                      cluster.hostname)
    keyring = '{0}/keyring'.format(mgrdir)
    service, provider = mgr_service(cluster.hostname, mgr.init_style)
    own_keyring = ChangeOwner(keyring, cluster.owner, cluster.group)

    return [
        Directory(name=mgrdir, owner=cluster.owner, group=cluster.group,
                  mode=cluster.mode),
        Execute(name='format ceph-mgr-secret as keyring',
                command=admin.auth_get_or_create(
                    'mgr.{0}'.format(cluster.hostname), MGR_CAPS, keyring),
                not_if=[NonEmptyFile(keyring)],
                notifies=[notify(ResourceKind.BLOCK, 'own ceph-mgr keyring',
                                 Timing.IMMEDIATE)],
                sensitive=True),
        # the daemon runs as the ceph user, the command as root
        Block(name='own ceph-mgr keyring',
              block=lambda: Effect(own_keyring).on(lambda _: True),
              action=Action.NOTHING),
        finalize('mgr-finalize', mgrdir, mgr.init_style),
        Service(name=service, provider=provider),
    ]
