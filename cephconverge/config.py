"""
Typed views of the attribute store.

Recipes never walk raw attribute paths; they get one record per subsystem,
built from the resolved attributes at the time the graph is built. The only
untyped part is :attr:`ClusterConfig.tuning`, which holds open-ended cluster
tuning parameters.
"""

import attr

from constantly import NamedConstant, Names

from pyrsistent import PMap, pmap, thaw

from cephconverge.constants import DEFAULT_REALM, init_style_named
from cephconverge.schemas import device, validation_errors, zone_instance


class DeviceStatus(Names):
    """
    Discovered status of an OSD device descriptor.
    """
    EMPTY = NamedConstant()
    DEPLOYED = NamedConstant()


def device_status(value):
    """Interpret the ``status`` attribute of a device descriptor."""
    if value == 'deployed':
        return DeviceStatus.DEPLOYED
    return DeviceStatus.EMPTY


def _strings(value):
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@attr.s(frozen=True)
class ClusterConfig(object):
    """
    Settings shared by every role.

    :ivar str name: Cluster name, ``ceph`` unless overridden.
    :ivar init_style: :obj:`InitStyle` of the node.
    :ivar PMap tuning: Free-form cluster tuning parameters.
    """
    name = attr.ib()
    hostname = attr.ib()
    platform_family = attr.ib(default='unknown')
    owner = attr.ib(default='ceph')
    group = attr.ib(default='ceph')
    mode = attr.ib(default=0o750)
    init_style = attr.ib(default=None)
    tuning = attr.ib(default=pmap())

    @property
    def admin_keyring(self):
        return '/etc/ceph/{0}.client.admin.keyring'.format(self.name)


@attr.s(frozen=True)
class InstallConfig(object):
    packages = attr.ib(converter=tuple)
    radosgw_packages = attr.ib(converter=tuple, default=())
    versioned_packages = attr.ib(converter=frozenset, default=frozenset())
    exactversion = attr.ib(default=None)
    package_action = attr.ib(default='install')
    install_debug = attr.ib(default=False)


@attr.s(frozen=True)
class DeviceDescriptor(object):
    """
    One entry of the desired OSD device list.

    :ivar int index: Position in ``ceph.osd.devices``, used to address the
        status attribute of this entry.
    """
    index = attr.ib()
    data = attr.ib()
    journal = attr.ib()
    backendstore = attr.ib(default=None)
    encrypted = attr.ib(default=False)
    status = attr.ib(default=DeviceStatus.EMPTY)

    @property
    def status_path(self):
        return ('ceph', 'osd', 'devices', self.index, 'status')


@attr.s(frozen=True)
class OSDConfig(object):
    """
    :ivar devices: Valid :obj:`DeviceDescriptor` entries.
    :ivar rejected: ``(index, problems)`` for entries that failed validation.
    """
    devices = attr.ib(converter=tuple, default=())
    rejected = attr.ib(converter=tuple, default=())
    dmcrypt = attr.ib(default=False)
    fs_type = attr.ib(default='xfs')


@attr.s(frozen=True)
class ZoneInstance(object):
    """
    One replication endpoint of a federated object gateway.
    """
    index = attr.ib()
    name = attr.ib()
    zonegroup = attr.ib()
    url = attr.ib()
    port = attr.ib()
    realm = attr.ib(default=DEFAULT_REALM)
    s3hostnames = attr.ib(converter=_strings, default=())
    s3hostnames_website = attr.ib(converter=_strings, default=())

    @property
    def combined_name(self):
        """The ``zonegroup-name`` identity used for clients and paths."""
        return '{0}-{1}'.format(self.zonegroup, self.name)

    @property
    def endpoint(self):
        return 'http://{0}:{1}/'.format(self.url, self.port)


@attr.s(frozen=True)
class FederationConfig(object):
    enabled = attr.ib(default=False)
    multisite_replication = attr.ib(default=False)
    enable_zonegroups_zones = attr.ib(default=True)
    manual_federation = attr.ib(default=False)
    zonegroups = attr.ib(converter=tuple, default=())
    master_zone = attr.ib(default='')
    instances = attr.ib(converter=tuple, default=())
    rejected = attr.ib(converter=tuple, default=())
    s3hostnames = attr.ib(converter=_strings, default=())
    s3hostnames_website = attr.ib(converter=_strings, default=())
    raw_instances = attr.ib(converter=tuple, default=())


@attr.s(frozen=True)
class MgrConfig(object):
    enable = attr.ib(default=False)
    init_style = attr.ib(default=None)


def cluster_config(store):
    """Build :obj:`ClusterConfig` from the resolved attributes."""
    return ClusterConfig(
        name=store.get('ceph.cluster', 'ceph'),
        hostname=store.get('node.hostname', 'localhost'),
        platform_family=store.get('node.platform_family', 'unknown'),
        owner=store.get('ceph.owner', 'ceph'),
        group=store.get('ceph.group', 'ceph'),
        mode=store.get('ceph.mode', 0o750),
        init_style=init_style_named(store.get('ceph.init_style')),
        tuning=store.get('ceph.tuning', pmap()))


def install_config(store):
    """Build :obj:`InstallConfig` from the resolved attributes."""
    return InstallConfig(
        packages=store.get('ceph.packages', ()),
        radosgw_packages=store.get('ceph.radosgw.packages', ()),
        versioned_packages=store.get('ceph.versioned_packages', ()),
        exactversion=store.get('ceph.exactversion'),
        package_action=store.get('ceph.package_action', 'install'),
        install_debug=bool(store.get('ceph.install_debug', False)))


def _entries(value):
    """
    Enumerate a list of units, which may also be given as a map keyed by
    index.
    """
    if value is None:
        return []
    if isinstance(value, PMap):
        return sorted((int(k), v) for k, v in value.items())
    return list(enumerate(value))


def osd_config(store):
    """
    Build :obj:`OSDConfig`, validating each device descriptor on its own.
    """
    devices, rejected = [], []
    for index, entry in _entries(store.get('ceph.osd.devices')):
        problems = validation_errors(entry, device)
        if problems:
            rejected.append((index, problems))
            continue
        devices.append(DeviceDescriptor(
            index=index,
            data=entry['data'],
            journal=entry['journal'],
            backendstore=entry.get('backendstore'),
            encrypted=entry.get('encrypted') is True,
            status=device_status(entry.get('status'))))
    return OSDConfig(
        devices=devices, rejected=rejected,
        dmcrypt=bool(store.get('ceph.osd.dmcrypt', False)),
        fs_type=store.get('ceph.osd.fs_type', 'xfs'))


def federation_config(store):
    """
    Build :obj:`FederationConfig`, validating each zone instance on its own.
    """
    base = 'ceph.pools.radosgw.'
    instances, rejected, raw = [], [], []
    for index, entry in _entries(store.get(base + 'federated_zone_instances')):
        problems = validation_errors(entry, zone_instance)
        if problems:
            rejected.append((index, problems))
            continue
        raw.append(thaw(entry))
        instances.append(ZoneInstance(
            index=index,
            name=entry['name'],
            zonegroup=entry['zonegroup'],
            url=entry['url'],
            port=entry['port'],
            realm=entry.get('realm') or DEFAULT_REALM,
            s3hostnames=entry.get('s3hostnames'),
            s3hostnames_website=entry.get('s3hostnames_website')))
    return FederationConfig(
        enabled=bool(store.get(base + 'federated_enable', False)),
        multisite_replication=bool(
            store.get(base + 'federated_multisite_replication', False)),
        enable_zonegroups_zones=bool(
            store.get(base + 'federated_enable_zonegroups_zones', True)),
        manual_federation=store.get('ceph.radosgw.manual_federation') is True,
        zonegroups=store.get(base + 'federated_zonegroups', ()),
        master_zone=store.get(base + 'federated_master_zone', ''),
        instances=instances,
        rejected=rejected,
        s3hostnames=store.get(base + 's3hostnames'),
        s3hostnames_website=store.get(base + 's3hostnames_website'),
        raw_instances=raw)


def mgr_config(store):
    """Build :obj:`MgrConfig` from the resolved attributes."""
    return MgrConfig(
        enable=store.get('ceph.mgr.enable') is True,
        init_style=init_style_named(
            store.get('ceph.mgr.init_style', store.get('ceph.init_style'))))
