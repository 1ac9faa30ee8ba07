"""
Tests for :mod:`cephconverge.cluster`
"""

import json

from effect.testing import perform_sequence

from twisted.trial.unittest import SynchronousTestCase

from cephconverge.cluster import CephAdmin, caps_args
from cephconverge.constants import (
    GPT_UUID_TYPE_CEPH_OSD_DMCRYPT, GPT_UUID_TYPE_CEPH_OSD_PLAIN)
from cephconverge.test.utils import const, failed, ok
from cephconverge.util.fileio import ReadFile
from cephconverge.util.process import Run


CLIENT = 'client.radosgw.us-east'


def rgw(*args):
    return Run(('radosgw-admin', '--cluster', 'ceph',
                '--name=' + CLIENT) + args)


class QueryTests(SynchronousTestCase):
    """
    Tests for the read-only queries of :obj:`CephAdmin`
    """

    def setUp(self):
        self.admin = CephAdmin()

    def test_get_key(self):
        seq = [(Run(('ceph', '--cluster', 'ceph', 'auth', 'get-key', CLIENT)),
                const(ok('AQBkey==\n')))]
        self.assertEqual(perform_sequence(seq, self.admin.get_key(CLIENT)),
                         'AQBkey==')

    def test_get_key_unknown_client(self):
        seq = [(Run(('ceph', '--cluster', 'ceph', 'auth', 'get-key', CLIENT)),
                const(failed(2, stderr='Error ENOENT')))]
        self.assertIsNone(perform_sequence(seq, self.admin.get_key(CLIENT)))

    def test_auth_exists(self):
        """
        The client must be listed on a line of its own
        """
        seq = [(Run(('ceph', '--cluster', 'ceph', 'auth', 'list')),
                const(ok('{0}\n\tkey: x\n'.format(CLIENT))))]
        self.assertTrue(perform_sequence(seq, self.admin.auth_exists(CLIENT)))
        seq = [(Run(('ceph', '--cluster', 'ceph', 'auth', 'list')),
                const(ok('{0}-2\n'.format(CLIENT))))]
        self.assertFalse(perform_sequence(seq,
                                          self.admin.auth_exists(CLIENT)))

    def test_print_key(self):
        seq = [(Run(('ceph-authtool', '/etc/ceph/k', '--name=' + CLIENT,
                     '--print-key')), const(ok('A' * 40 + '\n')))]
        self.assertEqual(
            perform_sequence(seq, self.admin.print_key('/etc/ceph/k', CLIENT)),
            'A' * 40)

    def test_keyring_has_client(self):
        seq = [(ReadFile('/etc/ceph/k'),
                const(b'[client.admin]\n[' + CLIENT.encode('ascii') + b']\n'))]
        self.assertTrue(perform_sequence(
            seq, self.admin.keyring_has_client('/etc/ceph/k', CLIENT)))
        seq = [(ReadFile('/etc/ceph/k'), const(None))]
        self.assertFalse(perform_sequence(
            seq, self.admin.keyring_has_client('/etc/ceph/k', CLIENT)))

    def test_realm_exists(self):
        seq = [(rgw('realm', 'list'),
                const(ok(json.dumps({'default_info': '',
                                     'realms': ['gold']}))))]
        self.assertTrue(perform_sequence(
            seq, self.admin.realm_exists(CLIENT, 'gold')))

    def test_realm_list_failure(self):
        """
        A failing listing is an empty listing
        """
        seq = [(rgw('realm', 'list'), const(failed()))]
        self.assertEqual(perform_sequence(seq, self.admin.realm_list(CLIENT)),
                         [])

    def test_listing_not_an_object(self):
        """
        JSON output that is not an object is treated as an empty listing
        """
        seq = [(rgw('realm', 'list'), const(ok(json.dumps(['gold']))))]
        self.assertFalse(perform_sequence(
            seq, self.admin.realm_exists(CLIENT, 'gold')))
        seq = [(rgw('zonegroup', 'get', '--rgw-zonegroup=us'),
                const(ok('null')))]
        self.assertFalse(perform_sequence(
            seq, self.admin.zonegroup_exists(CLIENT, 'us')))

    def test_zonegroup_exists(self):
        seq = [(rgw('zonegroup', 'get', '--rgw-zonegroup=us'),
                const(ok(json.dumps({'name': 'us'}))))]
        self.assertTrue(perform_sequence(
            seq, self.admin.zonegroup_exists(CLIENT, 'us')))

    def test_is_default_zonegroup(self):
        """
        The default zonegroup is the one reported without a name
        """
        seq = [(rgw('zonegroup', 'get'),
                const(ok(json.dumps({'name': 'default'}))))]
        self.assertFalse(perform_sequence(
            seq, self.admin.is_default_zonegroup(CLIENT, 'us')))

    def test_zone_exists(self):
        seq = [(rgw('zone', 'get', '--rgw-zone=us-east'),
                const(failed(2)))]
        self.assertFalse(perform_sequence(
            seq, self.admin.zone_exists(CLIENT, 'us-east')))

    def test_has_osd_partition(self):
        """
        Partition slots are probed for the data GUID of the requested
        encryption mode, whatever the exit status
        """
        argv = ('sgdisk',) + tuple('-i{0}'.format(i)
                                   for i in range(1, 32)) + ('/dev/sdb',)
        output = 'Partition GUID code: {0} (Unknown)'.format(
            GPT_UUID_TYPE_CEPH_OSD_PLAIN.upper())
        seq = [(Run(argv), const(failed(stdout=output)))]
        self.assertTrue(perform_sequence(
            seq, self.admin.has_osd_partition('/dev/sdb')))
        seq = [(Run(argv), const(ok(output)))]
        self.assertFalse(perform_sequence(
            seq, self.admin.has_osd_partition('/dev/sdb', dmcrypt=True)))
        output = GPT_UUID_TYPE_CEPH_OSD_DMCRYPT
        seq = [(Run(argv), const(ok(output)))]
        self.assertTrue(perform_sequence(
            seq, self.admin.has_osd_partition('/dev/sdb', dmcrypt=True)))

    def test_has_ceph_label(self):
        table = ('Number  Start (sector)    End (sector)  Size       Code  '
                 'Name\n   1         2048        20971486   10.0 GiB    '
                 'FFFF  ceph data\n')
        seq = [(Run(('sgdisk', '--print', '/dev/sdb')), const(ok(table)))]
        self.assertTrue(perform_sequence(
            seq, self.admin.has_ceph_label('/dev/sdb')))
        seq = [(Run(('sgdisk', '--print', '/dev/sdb')),
                const(ok('Number  Start\n   1  2048  8300  Linux\n')))]
        self.assertFalse(perform_sequence(
            seq, self.admin.has_ceph_label('/dev/sdb')))


class CommandTests(SynchronousTestCase):
    """
    Tests for the command builders of :obj:`CephAdmin`
    """

    def setUp(self):
        self.admin = CephAdmin('backup',
                               '/etc/ceph/backup.client.admin.keyring')

    def test_caps_args(self):
        self.assertEqual(caps_args((('osd', 'allow rwx'), ('mon', 'allow r'))),
                         ('--cap', 'osd', 'allow rwx', '--cap', 'mon',
                          'allow r'))

    def test_keyring_commands(self):
        caps = (('osd', 'allow rwx'),)
        self.assertEqual(
            self.admin.gen_keyring('/k', CLIENT, caps),
            ('ceph-authtool', '--create-keyring', '/k', '--name=' + CLIENT,
             '--gen-key', '--cap', 'osd', 'allow rwx'))
        self.assertEqual(
            self.admin.add_key('/k', CLIENT, 'S', caps, create=True),
            ('ceph-authtool', '/k', '--create-keyring', '--name=' + CLIENT,
             '--add-key=S', '--cap', 'osd', 'allow rwx'))

    def test_auth_add(self):
        """
        New clients are registered with the admin keyring of the cluster
        """
        self.assertEqual(
            self.admin.auth_add(CLIENT, '/k'),
            ('ceph', '--cluster', 'backup', '-k',
             '/etc/ceph/backup.client.admin.keyring', 'auth', 'add', CLIENT,
             '-i', '/k'))

    def test_auth_get_or_create(self):
        self.assertEqual(
            self.admin.auth_get_or_create('mgr.a', (('mon', 'allow *'),),
                                          '/k'),
            ('ceph', '--cluster', 'backup', 'auth', 'get-or-create', 'mgr.a',
             'mon', 'allow *', '-o', '/k'))

    def test_disk_prepare(self):
        self.assertEqual(
            self.admin.disk_prepare('/dev/sdb', '/dev/sdf', 'xfs',
                                    '--filestore', dmcrypt=True),
            ('ceph-disk', '-v', 'prepare', '--cluster', 'backup',
             '--filestore', '--dmcrypt', '--fs-type', 'xfs', '/dev/sdb',
             '/dev/sdf'))
        self.assertEqual(
            self.admin.disk_prepare('/dev/sdb', '/dev/sdf', 'xfs'),
            ('ceph-disk', '-v', 'prepare', '--cluster', 'backup', '--fs-type',
             'xfs', '/dev/sdb', '/dev/sdf'))

    def test_radosgw_topology(self):
        self.assertEqual(
            self.admin.zone_set(CLIENT, 'us-east', '/etc/ceph/us-east.json'),
            ('radosgw-admin', '--cluster', 'backup', '--name=' + CLIENT,
             'zone', 'set', '--rgw-zone=us-east', '--infile',
             '/etc/ceph/us-east.json'))
        self.assertEqual(
            self.admin.realm_create(CLIENT, 'gold')[-2:],
            ('--rgw-realm=gold', '--default'))
