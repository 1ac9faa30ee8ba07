"""
The OSD role: prepares and activates the data devices of a storage node.

Every device descriptor that is not yet ``deployed`` and names both a data
and a journal device gets a prepare-and-activate resource. The resource is
guarded by the on-disk partition table: a device that already carries an OSD
data partition (of the requested encryption mode) or any ceph labelled
partition is never prepared again. After a successful activation a deferred
notification records the ``deployed`` status of the descriptor in the
attribute store, so later runs skip it without probing the disk.
"""

from effect import Effect
from effect.do import do

from cephconverge.attributes import Scope, set_attribute
from cephconverge.cluster import CephAdmin
from cephconverge.config import DeviceStatus, cluster_config, osd_config
from cephconverge.constants import CEPH_CONF_DIR, CEPH_DATA_LABEL
from cephconverge.guards import Attribute, Check, IsFile
from cephconverge.model import Action, ResourceKind, notify
from cephconverge.resources import Block, Directory, Package, Template
from cephconverge.util.fileio import ResolvePath, stat_path
from cephconverge.util.process import run_checked


def osd_objectstore(store, log):
    """
    Return the ``ceph-disk prepare`` flag selecting the object store.

    Without a store, or with the default one, no flag is passed so the
    cluster's compiled-in default applies. Unknown stores are passed through
    as ``--<store>``.
    """
    if store in (None, '', 'default', 'bluestore'):
        return ''
    if store != 'filestore':
        log.warn('Unknown OSD objectstore {store}, passing it through',
                 store=store)
    return '--{0}'.format(store)


def new_data_partition(before, after):
    """
    Find the single line of a ``ceph-disk list`` listing that is new in
    ``after`` and describes an OSD data partition.

    :return: The partition's device path, or None if there is no such line
        or more than one.
    """
    old = set(before.splitlines())
    found = [line.split()[0] for line in after.splitlines()
             if CEPH_DATA_LABEL in line and line not in old]
    if len(found) == 1:
        return found[0]
    return None


@do
def prepare_and_activate(admin, data, journal, fs_type, store_flag='',
                         dmcrypt=False):
    """
    Prepare ``data`` as an OSD and activate the data partition that
    appeared. The name of that partition depends on the kernel (``sdb1``,
    ``nvme0n1p1``, ``loop0p1``) so the partition listing is compared before
    and after preparing. Without a single new data partition the whole
    device is activated.

    :return: Effect of the activated device path.
    """
    device = yield Effect(ResolvePath(data))
    nodev = device[len('/dev/'):] if device.startswith('/dev/') else device
    block = yield stat_path('/sys/block/{0}'.format(nodev))
    before = ''
    if block.exists:
        before = yield admin.disk_list(nodev)
    yield run_checked(admin.disk_prepare(device, journal, fs_type,
                                         store_flag, dmcrypt))
    partition = None
    if block.exists:
        after = yield admin.disk_list(nodev)
        partition = new_data_partition(before, after)
    target = partition or device
    yield run_checked(admin.disk_activate(target))
    return target


def save_status_name(index):
    return 'save osd_device status {0}'.format(index)


def device_resources(admin, device, fs_type, store_flag):
    """
    Return the prepare-and-activate resource of one device descriptor and
    the block recording its status.
    """
    def prepare():
        return prepare_and_activate(admin, device.data, device.journal,
                                    fs_type, store_flag, device.encrypted)

    def save():
        return set_attribute(device.status_path, 'deployed', Scope.NODE)

    return [
        Block(
            name='ceph-disk-prepare on {0}'.format(device.data),
            block=prepare,
            not_if=[
                Check(lambda: admin.has_osd_partition(device.data,
                                                      device.encrypted),
                      'osd partition on {0}'.format(device.data)),
                Check(lambda: admin.has_ceph_label(device.data),
                      'ceph label on {0}'.format(device.data))],
            notifies=[notify(ResourceKind.BLOCK,
                             save_status_name(device.index))]),
        Block(name=save_status_name(device.index), block=save,
              action=Action.NOTHING),
    ]


def osd_resources(store, log):
    cluster = cluster_config(store)
    osd = osd_config(store)
    admin = CephAdmin(cluster.name, cluster.admin_keyring)
    log = log.bind(role='osd')
    scripts = '{0}/scripts'.format(CEPH_CONF_DIR)
    journal_script = '{0}/ceph_journal.sh'.format(scripts)

    resources = [
        Package(name='gdisk', action=Action.UPGRADE),
        Package(name='cryptsetup', action=Action.UPGRADE,
                only_if=[Attribute('ceph.osd.dmcrypt')]),
        Directory(name=scripts, mode=cluster.mode),
        # installed once, local edits are kept
        Template(name=journal_script, source='ceph_journal.sh.j2',
                 variables={'cluster': cluster.name}, mode=0o755,
                 not_if=[IsFile(journal_script)]),
    ]

    if not osd.devices and not osd.rejected:
        log.msg('ceph.osd.devices empty')
    for index, problems in osd.rejected:
        log.warn('OSD device {index} missing data & journal attributes, '
                 'skipping', index=index, problems=problems)
    for device in osd.devices:
        if device.status is DeviceStatus.DEPLOYED:
            log.msg('OSD device {data} has already been set up',
                    data=device.data, index=device.index)
            continue
        store_flag = osd_objectstore(device.backendstore, log)
        resources.extend(
            device_resources(admin, device, osd.fs_type, store_flag))
    return resources
