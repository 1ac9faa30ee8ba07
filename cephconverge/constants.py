"""Constants."""

from constantly import NamedConstant, Names


CEPH_CONF_DIR = '/etc/ceph'
CEPH_LIB_DIR = '/var/lib/ceph'
RADOSGW_LOG_DIR = '/var/log/radosgw'

# GPT partition type GUIDs written by ceph-disk.
GPT_UUID_TYPE_CEPH_OSD_PLAIN = '4fbd7e29-9d25-41b8-afd0-062c0ceff05d'
GPT_UUID_TYPE_CEPH_OSD_DMCRYPT = '4fbd7e29-9d25-41b8-afd0-5ec00ceff05d'
GPT_UUID_TYPE_CEPH_JOURNAL_PLAIN = '45b0969e-9b03-4f30-b4c6-b4b80ceff106'
GPT_UUID_TYPE_CEPH_JOURNAL_DMCRYPT = '45b0969e-9b03-4f30-b4c6-5ec00ceff106'

# Number of partition slots probed with `sgdisk -i<n>` when looking for an
# already prepared OSD.
PARTITION_LABEL_SLOTS = 31

CEPH_DATA_LABEL = 'ceph data'

RADOSGW_KEY_LENGTH = 40

RADOSGW_CAPS = (('osd', 'allow rwx'), ('mon', 'allow rwx'))

MGR_CAPS = (('mon', 'allow profile mgr'), ('osd', 'allow *'),
            ('mds', 'allow *'))

DEFAULT_REALM = 'gold'


class InitStyle(Names):
    """
    Init systems a daemon instance may be brought up under. The lowercase
    name is also the name of the marker file written next to ``done``.
    """
    SYSTEMD = NamedConstant()
    UPSTART = NamedConstant()
    SYSVINIT = NamedConstant()


def init_style_named(name):
    """
    Look up an :obj:`InitStyle` by its lowercase name, defaulting to
    ``SYSVINIT`` for anything unknown.
    """
    try:
        return InitStyle.lookupByName((name or '').upper())
    except ValueError:
        return InitStyle.SYSVINIT
