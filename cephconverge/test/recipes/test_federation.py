"""
Tests for :mod:`cephconverge.recipes.federation`
"""

import json

from effect import sync_perform

from twisted.trial.unittest import SynchronousTestCase

from cephconverge.attributes import AttributeStore
from cephconverge.config import federation_config
from cephconverge.constants import RADOSGW_CAPS
from cephconverge.executor import converge
from cephconverge.model import ResourceKind
from cephconverge.recipes import build_graph
from cephconverge.recipes.federation import (
    federation_resources,
    keyring_path,
    topology_names,
    valid_secret,
    zonegroup_variables)
from cephconverge.test.utils import (
    FakeNode, failed, mock_log, node_dispatcher, ok)


CLIENT = 'client.radosgw.us-east'
KEYRING = '/etc/ceph/ceph.client.radosgw.us-east.keyring'
ADMIN_KEYRING = '/etc/ceph/ceph.client.admin.keyring'
SECRET = 'AQD' + 'k' * 37
NEW_SECRET = 'AQD' + 'n' * 37


def ceph(*args):
    return ('ceph', '--cluster', 'ceph') + args


def rgw(*args):
    return ('radosgw-admin', '--cluster', 'ceph', '--name=' + CLIENT) + args


def caps():
    args = ()
    for entity, cap in RADOSGW_CAPS:
        args += ('--cap', entity, cap)
    return args


class FakeCluster(FakeNode):
    """
    A node whose ceph tools act on an in-memory cluster.
    """

    def __init__(self, key=None):
        FakeNode.__init__(self)
        self.key = key
        self.auth = set()
        self.realms = []
        self.zonegroups = set()
        self.zones = set()
        self.default_zonegroup = 'default'
        self.topology = []
        self.commands.update({
            ceph('auth', 'get-key', CLIENT): lambda n: (
                ok(n.key) if n.key else failed(2)),
            ceph('auth', 'list'): lambda n: ok(''.join(
                c + '\n' for c in sorted(n.auth))),
            ceph('-k', ADMIN_KEYRING, 'auth', 'add', CLIENT, '-i', KEYRING):
                lambda n: n._auth_add(),
            ('ceph-authtool', '--create-keyring', KEYRING, '--name=' + CLIENT,
             '--gen-key') + caps(): lambda n: n._keyring(NEW_SECRET),
            ('ceph-authtool', KEYRING, '--create-keyring', '--name=' + CLIENT,
             '--add-key=' + SECRET) + caps(): lambda n: n._keyring(SECRET),
            ('ceph-authtool', KEYRING, '--name=' + CLIENT, '--print-key'):
                lambda n: n._print_key(),
            rgw('realm', 'list'): lambda n: ok(json.dumps(
                {'realms': n.realms})),
            rgw('realm', 'create', '--rgw-realm=gold', '--default'):
                lambda n: n._create('realm', n.realms.append, 'gold'),
            rgw('zonegroup', 'get'): lambda n: ok(json.dumps(
                {'name': n.default_zonegroup})),
            rgw('zonegroup', 'get', '--rgw-zonegroup=us'): lambda n: (
                ok(json.dumps({'name': 'us'})) if 'us' in n.zonegroups
                else failed(2)),
            rgw('zonegroup', 'set',
                '--infile=/etc/ceph/us-east-zonegroup.json',
                '--rgw-zonegroup=us'):
                lambda n: n._create('zonegroup', n.zonegroups.add, 'us'),
            rgw('zone', 'get', '--rgw-zone=us-east'): lambda n: (
                ok(json.dumps({'name': 'us-east'})) if 'us-east' in n.zones
                else failed(2)),
            rgw('zone', 'set', '--rgw-zone=us-east', '--infile',
                '/etc/ceph/us-east-zone.json'):
                lambda n: n._create('zone', n.zones.add, 'us-east'),
            rgw('zonegroup', 'default', '--rgw-zonegroup=us'):
                lambda n: n._create('default', n._set_default, 'us'),
        })

    def _auth_add(self):
        self.auth.add(CLIENT)
        self.key = self._print_key().text.strip()
        return ok()

    def _keyring(self, key):
        self.write(KEYRING, '[{0}]\n\tkey = {1}\n'.format(
            CLIENT, key).encode('ascii'))
        return ok()

    def _print_key(self):
        content = self.files.get(KEYRING, b'').decode('ascii')
        for line in content.splitlines():
            if 'key = ' in line:
                return ok(line.split('key = ')[1])
        return failed(1)

    def _set_default(self, name):
        self.default_zonegroup = name

    def _create(self, kind, add, name):
        self.topology.append(kind)
        add(name)
        return ok()

    def gen_keys(self):
        return [argv for argv in self.ran
                if argv[0] == 'ceph-authtool' and '--gen-key' in argv]


def federation_store(**radosgw):
    pools = dict({
        'federated_enable': True,
        'federated_multisite_replication': False,
        'federated_zone_instances': [
            {'name': 'east', 'zonegroup': 'us', 'url': 'rgw1',
             'port': 8080}],
    }, **radosgw)
    return AttributeStore(default={
        'node': {'platform_family': 'debian', 'hostname': 'rgw1'},
        'ceph': {'cluster': 'ceph', 'pools': {'radosgw': pools},
                 'radosgw': {'manual_federation': False}}})


class HelperTests(SynchronousTestCase):

    def test_valid_secret(self):
        self.assertTrue(valid_secret(SECRET))
        self.assertFalse(valid_secret('short'))
        self.assertFalse(valid_secret(None))

    def test_keyring_path(self):
        """
        Multisite instances share one keyring
        """
        instance = federation_config(federation_store()).instances[0]
        self.assertEqual(keyring_path('ceph', instance, False), KEYRING)
        self.assertEqual(keyring_path('ceph', instance, True),
                         '/etc/ceph/ceph.client.radosgw.keyring')

    def test_topology_names(self):
        store = federation_store()
        federation = federation_config(store)
        self.assertEqual(topology_names(federation, federation.instances[0]),
                         ('us', 'us-east', 'us-east'))
        federation = federation_config(federation_store(
            federated_multisite_replication=True,
            federated_zonegroups=['us']))
        self.assertEqual(topology_names(federation, federation.instances[0]),
                         ('us', 'east', 'us'))

    def test_multisite_variables(self):
        federation = federation_config(federation_store(
            federated_multisite_replication=True,
            federated_zonegroups=['us'],
            federated_master_zone='east',
            federated_zone_instances=[
                {'name': 'east', 'zonegroup': 'us', 'url': 'rgw1',
                 'port': 8080},
                {'name': 'west', 'zonegroup': 'us', 'url': 'rgw2',
                 'port': 8080}]))
        variables = zonegroup_variables(federation, federation.instances[1])
        self.assertEqual(variables['name'], 'us')
        self.assertEqual(variables['master_zone'], 'us-east')
        self.assertEqual(variables['endpoints'], ['http://rgw1:8080/'])
        self.assertEqual(len(variables['zones']), 2)


class FederationResourcesTests(SynchronousTestCase):
    """
    Tests for :func:`federation_resources`
    """

    def test_disabled(self):
        self.assertEqual(
            federation_resources(
                federation_store(federated_enable=False), mock_log()),
            [])

    def test_multisite_without_zonegroups(self):
        log = mock_log()
        self.assertEqual(
            federation_resources(federation_store(
                federated_multisite_replication=True), log),
            [])
        self.assertTrue(log.msg.called)

    def test_incomplete_instance_skipped(self):
        log = mock_log()
        resources = federation_resources(federation_store(
            federated_zone_instances=[
                {'name': 'east', 'zonegroup': 'us'},
                {'name': 'east', 'zonegroup': 'us', 'url': 'rgw1',
                 'port': 8080}]), log)
        self.assertIn((ResourceKind.EXECUTE, 'zone-set-us-east'),
                      [r.identity for r in resources])
        self.assertEqual(log.msg.call_count, 1)
        args, kwargs = log.msg.call_args
        self.assertEqual(
            args, ('Zone instance {index} is incomplete, skipping',))
        self.assertEqual((kwargs['index'], kwargs['role']), (0, 'radosgw'))

    def test_shared_zonegroup_declared_once(self):
        """
        Instances of one zonegroup do not declare its resources twice
        """
        resources = federation_resources(federation_store(
            federated_multisite_replication=True,
            federated_zonegroups=['us'],
            federated_zone_instances=[
                {'name': 'east', 'zonegroup': 'us', 'url': 'rgw1',
                 'port': 8080},
                {'name': 'west', 'zonegroup': 'us', 'url': 'rgw2',
                 'port': 8080}]), mock_log())
        identities = [r.identity for r in resources]
        self.assertEqual(len(identities), len(set(identities)))
        self.assertEqual(identities.count(
            (ResourceKind.EXECUTE, 'zonegroup-set-us')), 1)
        self.assertIn((ResourceKind.EXECUTE, 'zone-set-west'), identities)


class FederationConvergeTests(SynchronousTestCase):
    """
    Converging the radosgw role against a fake cluster
    """

    def converge(self, store, node):
        graph = build_graph(['radosgw'], store, mock_log())
        return sync_perform(node_dispatcher(node, store), converge(graph))

    def test_fresh_cluster(self):
        """
        A new key is generated and persisted at cluster scope, the client is
        registered, and the topology is applied in order
        """
        store = federation_store()
        node = FakeCluster()
        report = self.converge(store, node)
        self.assertTrue(report.succeeded)
        self.assertEqual(len(node.gen_keys()), 1)
        self.assertEqual(
            store.get(('ceph', 'radosgw', 'secrets', 'ceph', 'us-east')),
            NEW_SECRET)
        self.assertIn(('ceph', 'radosgw', 'secrets', 'ceph', 'us-east'),
                      store.cluster_paths)
        self.assertEqual(node.auth, {CLIENT})
        self.assertEqual(node.topology,
                         ['realm', 'zonegroup', 'zone', 'default'])
        zonegroup = json.loads(
            node.files['/etc/ceph/us-east-zonegroup.json'].decode('utf-8'))
        self.assertEqual(zonegroup['name'], 'us-east')
        self.assertEqual(zonegroup['zones'][0]['endpoints'],
                         ['http://rgw1:8080/'])
        zonegroup_map = json.loads(
            node.files['/etc/ceph/us-east-zonegroup-map.json'].decode(
                'utf-8'))
        self.assertEqual(zonegroup_map['zonegroups'][0]['val'], zonegroup)
        self.assertIn('/var/lib/ceph/radosgw/ceph-radosgw.us-east/done',
                      node.files)

    def test_rerun_changes_nothing(self):
        store = federation_store()
        node = FakeCluster()
        self.converge(store, node)
        node.ran = []
        report = self.converge(store, node)
        self.assertTrue(report.succeeded)
        self.assertEqual(report.mutations, 0)
        self.assertEqual(node.gen_keys(), [])

    def test_reuses_cluster_key(self):
        """
        A key the cluster already holds is persisted and written to the
        keyring instead of generating a new one
        """
        store = federation_store()
        node = FakeCluster(key=SECRET)
        node.auth.add(CLIENT)
        report = self.converge(store, node)
        self.assertTrue(report.succeeded)
        self.assertEqual(node.gen_keys(), [])
        self.assertTrue(node.has_run(
            'ceph-authtool', KEYRING, '--create-keyring', '--name=' + CLIENT,
            '--add-key=' + SECRET, *caps()))
        self.assertEqual(
            store.get(('ceph', 'radosgw', 'secrets', 'ceph', 'us-east')),
            SECRET)
        self.assertFalse(node.has_run(
            *ceph('-k', ADMIN_KEYRING, 'auth', 'add', CLIENT, '-i', KEYRING)))

    def test_reuses_persisted_key(self):
        """
        A key persisted by another node is used on a node without keyring
        """
        store = federation_store()
        store.set_override(('ceph', 'radosgw', 'secrets', 'ceph', 'us-east'),
                           SECRET)
        node = FakeCluster()
        self.converge(store, node)
        self.assertEqual(node.gen_keys(), [])
        self.assertTrue(node.has_run(
            'ceph-authtool', KEYRING, '--create-keyring', '--name=' + CLIENT,
            '--add-key=' + SECRET, *caps()))
        self.assertEqual(node.auth, {CLIENT})

    def test_existing_keyring_key_persisted(self):
        """
        A key found only in the node's keyring is persisted in the run that
        registers it, so the next run changes nothing
        """
        store = federation_store()
        node = FakeCluster()
        node._keyring(SECRET)
        report = self.converge(store, node)
        self.assertTrue(report.succeeded)
        self.assertEqual(node.gen_keys(), [])
        self.assertEqual(
            store.get(('ceph', 'radosgw', 'secrets', 'ceph', 'us-east')),
            SECRET)
        self.assertEqual(node.auth, {CLIENT})
        self.assertEqual(node.key, SECRET)

        node.ran = []
        report = self.converge(store, node)
        self.assertTrue(report.succeeded)
        self.assertEqual(report.mutations, 0)

    def test_manual_federation(self):
        """
        With manual federation no topology document or command is applied
        """
        store = federation_store()
        store.set_override('ceph.radosgw.manual_federation', True)
        node = FakeCluster()
        report = self.converge(store, node)
        self.assertTrue(report.succeeded)
        self.assertEqual(node.topology, [])
        self.assertNotIn('/etc/ceph/us-east-zonegroup.json', node.files)
        self.assertNotIn('/etc/ceph/us-east-zone.json', node.files)
        self.assertEqual(node.auth, {CLIENT})
