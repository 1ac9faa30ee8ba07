"""
Default tier of the attribute store.

Anything here may be overridden by role attributes, the environment
document or values discovered while converging.
"""

from pyrsistent import freeze


VERSIONED_PACKAGES = (
    'ceph', 'ceph-base', 'ceph-common', 'ceph-fuse', 'ceph-mds', 'ceph-mgr',
    'ceph-mon', 'ceph-osd', 'ceph-resource-agents', 'ceph-test',
    'libcephfs2', 'libcephfs-dev', 'libcephfs-java', 'libcephfs-jni',
    'librados2', 'librados-dev', 'libradosstriper1', 'libradosstriper-dev',
    'librbd1', 'librbd-dev', 'librgw2', 'librgw-dev',
    'python3-ceph-argparse', 'python3-cephfs', 'python3-rados',
    'python3-rbd', 'python3-rgw', 'python-ceph', 'python-cephfs',
    'python-rados', 'python-rbd', 'python-rgw', 'radosgw',
    'rados-objclass-dev', 'rbd-fuse', 'rbd-mirror', 'rbd-nbd',
)

_PACKAGES = {
    'debian': ['ceph-common', 'python-pycurl'],
    'rhel': ['ceph', 'yum-plugin-priorities.noarch', 'python-pycurl'],
    'fedora': ['ceph', 'yum-plugin-priorities.noarch', 'python-pycurl'],
}

_RADOSGW_PACKAGES = {
    'debian': ['radosgw', 'radosgw-agent', 'python-boto'],
    'rhel': ['ceph-radosgw', 'mailcap'],
    'fedora': ['ceph-radosgw', 'mailcap'],
    'suse': ['ceph-radosgw', 'mailcap'],
}


def debug_ext(family):
    """Suffix of debug symbol packages on a platform family."""
    return {'debian': '-dbg', 'rhel': '-debug', 'fedora': '-debug'}.get(
        family, '')


def debug_packages(packages, family):
    return [name + debug_ext(family) for name in packages]


def default_attributes(facts):
    """
    Build the default tier for a node described by ``facts``.

    :param facts: Node facts from :func:`cephconverge.facts.gather_facts`.
    :return: frozen attribute tree
    """
    family = facts.get('platform_family', 'unknown')
    init_style = 'upstart' if facts.get('platform') == 'ubuntu' else (
        'sysvinit')

    return freeze({
        'node': facts,
        'ceph': {
            'cluster': 'ceph',
            'keyring': {
                'global': '/etc/ceph/$cluster.$name.keyring',
                'mon': '/etc/ceph/$cluster.$name.keyring',
                'mds': '/etc/ceph/$cluster.$name.keyring',
                'rgw': '/etc/ceph/$cluster.client.radosgw',
                'res': '/etc/ceph/$cluster.client.restapi',
                'adm': '/etc/ceph/$cluster.client.admin.keyring',
                'osd': '/var/lib/ceph/osd/$cluster-$id/keyring',
            },
            'tuning': {
                'osd_op_threads': 8,
                'osd_recovery_op_priority': 1,
                'osd_recovery_max_active': 1,
                'osd_max_backfills': 1,
            },
            'branch': 'stable',
            'package_action': 'install',
            'exactversion': None,
            'install_debug': False,
            'packages': _PACKAGES.get(family, []),
            'versioned_packages': list(VERSIONED_PACKAGES),
            'init_style': init_style,
            'owner': 'ceph',
            'group': 'ceph',
            'mode': 0o750,
            'osd': {
                'devices': [],
                'dmcrypt': False,
                'fs_type': 'xfs',
            },
            'mon': {'init_style': init_style},
            'mgr': {'enable': False, 'init_style': init_style},
            'radosgw': {
                'init_style': init_style,
                'packages': _RADOSGW_PACKAGES.get(family, []),
                'manual_federation': False,
                'secrets': {},
            },
            'pools': {
                'radosgw': {
                    'federated_enable': False,
                    'federated_multisite_replication': False,
                    'federated_enable_zonegroups_zones': True,
                    'federated_zonegroups': [],
                    'federated_master_zone': '',
                    'federated_zone_instances': [],
                    's3hostnames': [],
                    's3hostnames_website': [],
                },
            },
        },
    })
