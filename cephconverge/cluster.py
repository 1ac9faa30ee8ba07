"""
Typed access to the cluster's administration tools.

:obj:`CephAdmin` wraps ``ceph``, ``ceph-authtool``, ``radosgw-admin``,
``ceph-disk`` and ``sgdisk``. Query methods return Effects of parsed values
and never change anything; command methods return argv tuples for
:obj:`cephconverge.resources.Execute` resources, so every mutation stays a
resource in the graph.
"""

import json
import re

import attr

from effect import Effect

from cephconverge.constants import (
    GPT_UUID_TYPE_CEPH_OSD_DMCRYPT,
    GPT_UUID_TYPE_CEPH_OSD_PLAIN,
    PARTITION_LABEL_SLOTS)
from cephconverge.util.fileio import read_file
from cephconverge.util.process import Run, run


def caps_args(caps):
    """Flatten ``((entity, cap), ...)`` into ``--cap`` arguments."""
    args = ()
    for entity, cap in caps:
        args += ('--cap', entity, cap)
    return args


def _json(result):
    """
    Parse the JSON object printed by a successful command. A failed command,
    or one printing anything but an object, gives an empty mapping.
    """
    if not result.succeeded:
        return {}
    parsed = json.loads(result.text)
    if not isinstance(parsed, dict):
        return {}
    return parsed


@attr.s(frozen=True)
class CephAdmin(object):
    """
    Administration client for one cluster.

    :ivar str cluster: Cluster name.
    :ivar str admin_keyring: Keyring used to register new clients.
    """
    cluster = attr.ib(default='ceph')
    admin_keyring = attr.ib(default=None)

    def ceph(self, *args):
        return ('ceph', '--cluster', self.cluster) + args

    def radosgw_admin(self, client, *args):
        return ('radosgw-admin', '--cluster', self.cluster,
                '--name={0}'.format(client)) + args

    # Queries

    def get_key(self, client):
        """
        Return Effect of the key the cluster holds for ``client``, or None
        if the cluster does not know the client.
        """
        def parse(result):
            key = result.text.strip()
            return key if result.succeeded and key else None
        return Effect(Run(self.ceph('auth', 'get-key', client))).on(parse)

    def auth_exists(self, client):
        """Return Effect of whether ``client`` is in the auth listing."""
        return run(*self.ceph('auth', 'list')).on(
            lambda result: result.succeeded and
            re.search(r'^{0}$'.format(re.escape(client)), result.text,
                      re.MULTILINE) is not None)

    def print_key(self, keyring, client):
        """Return Effect of the key for ``client`` stored in ``keyring``."""
        def parse(result):
            key = result.text.strip()
            return key if result.succeeded and key else None
        return run('ceph-authtool', keyring, '--name={0}'.format(client),
                   '--print-key').on(parse)

    def keyring_has_client(self, keyring, client):
        """Return Effect of whether ``keyring`` has a section for client."""
        section = '[{0}]'.format(client).encode('utf-8')
        return read_file(keyring).on(
            lambda content: content is not None and section in content)

    def realm_list(self, client):
        """Return Effect of the list of realm names."""
        return run(*self.radosgw_admin(client, 'realm', 'list')).on(
            lambda result: _json(result).get('realms', []))

    def realm_exists(self, client, realm):
        return self.realm_list(client).on(lambda realms: realm in realms)

    def zonegroup_name(self, client, zonegroup=None):
        """
        Return Effect of the name reported by ``zonegroup get``, or None.
        Without ``zonegroup`` the default zonegroup is queried.
        """
        args = ('zonegroup', 'get')
        if zonegroup is not None:
            args += ('--rgw-zonegroup={0}'.format(zonegroup),)
        return run(*self.radosgw_admin(client, *args)).on(
            lambda result: _json(result).get('name'))

    def zonegroup_exists(self, client, zonegroup):
        return self.zonegroup_name(client, zonegroup).on(
            lambda name: name == zonegroup)

    def is_default_zonegroup(self, client, zonegroup):
        return self.zonegroup_name(client).on(lambda name: name == zonegroup)

    def zone_exists(self, client, zone):
        return run(*self.radosgw_admin(
            client, 'zone', 'get', '--rgw-zone={0}'.format(zone))).on(
                lambda result: _json(result).get('name') == zone)

    def disk_list(self, device):
        """
        Return Effect of the ``ceph-disk list`` output for ``device`` (a
        name without ``/dev/``).
        """
        return run('ceph-disk', 'list', device).on(lambda result: result.text)

    def has_osd_partition(self, device, dmcrypt=False):
        """
        Return Effect of whether one of the partition slots of ``device``
        has the OSD data type GUID of the requested encryption mode.
        """
        guid = (GPT_UUID_TYPE_CEPH_OSD_DMCRYPT if dmcrypt
                else GPT_UUID_TYPE_CEPH_OSD_PLAIN)
        slots = tuple('-i{0}'.format(i)
                      for i in range(1, PARTITION_LABEL_SLOTS + 1))
        return run('sgdisk', *(slots + (device,))).on(
            lambda result: guid in result.text.lower())

    def has_ceph_label(self, device):
        """Return Effect of whether a partition of ``device`` is labelled
        as belonging to ceph."""
        return run('sgdisk', '--print', device).on(
            lambda result: re.search(r'^ .*ceph', result.text,
                                     re.MULTILINE) is not None)

    # Commands

    def gen_keyring(self, keyring, client, caps):
        return ('ceph-authtool', '--create-keyring', keyring,
                '--name={0}'.format(client), '--gen-key') + caps_args(caps)

    def gen_key(self, keyring, client, caps):
        return ('ceph-authtool', keyring, '--name={0}'.format(client),
                '--gen-key') + caps_args(caps)

    def add_key(self, keyring, client, key, caps, create=False):
        argv = ('ceph-authtool', keyring)
        if create:
            argv += ('--create-keyring',)
        return argv + ('--name={0}'.format(client),
                       '--add-key={0}'.format(key)) + caps_args(caps)

    def auth_add(self, client, keyring):
        return self.ceph('-k', self.admin_keyring, 'auth', 'add', client,
                         '-i', keyring)

    def auth_get_or_create(self, entity, caps, keyring):
        args = ()
        for subsystem, cap in caps:
            args += (subsystem, cap)
        return self.ceph('auth', 'get-or-create', entity, *args) + (
            '-o', keyring)

    def realm_create(self, client, realm):
        return self.radosgw_admin(client, 'realm', 'create',
                                  '--rgw-realm={0}'.format(realm),
                                  '--default')

    def zonegroup_set(self, client, zonegroup, infile):
        return self.radosgw_admin(client, 'zonegroup', 'set',
                                  '--infile={0}'.format(infile),
                                  '--rgw-zonegroup={0}'.format(zonegroup))

    def zone_set(self, client, zone, infile):
        return self.radosgw_admin(client, 'zone', 'set',
                                  '--rgw-zone={0}'.format(zone),
                                  '--infile', infile)

    def zonegroup_default(self, client, zonegroup):
        return self.radosgw_admin(client, 'zonegroup', 'default',
                                  '--rgw-zonegroup={0}'.format(zonegroup))

    def disk_prepare(self, data, journal, fs_type, store_flag='',
                     dmcrypt=False):
        argv = ('ceph-disk', '-v', 'prepare', '--cluster', self.cluster)
        if store_flag:
            argv += (store_flag,)
        if dmcrypt:
            argv += ('--dmcrypt',)
        return argv + ('--fs-type', fs_type, data, journal)

    def disk_activate(self, device):
        return ('ceph-disk', '-v', 'activate', device)

