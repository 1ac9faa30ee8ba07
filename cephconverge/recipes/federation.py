"""
Federated object gateway topology: keys, realm, zonegroups and zones for
every declared zone instance.

With multisite replication all instances share one zonegroup document and
one keyring, and each instance is a zone of that zonegroup. Without it every
instance is its own zonegroup and zone, both named ``<zonegroup>-<name>``.

The secret of an instance is acquired in this order, and only the last step
creates new key material:

1. the key the cluster already holds for the client, persisted if found;
2. a key persisted by an earlier run (on any node), written to the keyring;
3. a key already in the keyring file;
4. a newly generated key, persisted right after generation.

Topology documents and radosgw-admin commands are skipped entirely when
``ceph.radosgw.manual_federation`` is set.
"""

from effect.do import do

from pyrsistent import thaw

from cephconverge.attributes import Scope, set_attribute
from cephconverge.cluster import CephAdmin
from cephconverge.config import cluster_config, federation_config
from cephconverge.constants import (
    CEPH_CONF_DIR,
    CEPH_LIB_DIR,
    DEFAULT_REALM,
    RADOSGW_CAPS,
    RADOSGW_KEY_LENGTH,
    RADOSGW_LOG_DIR,
    init_style_named)
from cephconverge.guards import Attribute, Check, NonEmptyFile
from cephconverge.model import Action, ResourceKind, Timing, notify
from cephconverge.recipes.common import finalize, not_manual, unique
from cephconverge.resources import Block, Directory, Execute, File, Template


def valid_secret(value):
    return (isinstance(value, str) and
            len(value.strip()) == RADOSGW_KEY_LENGTH)


def secret_path(cluster, instance):
    """Cluster scoped attribute path of the secret of ``instance``."""
    return ('ceph', 'radosgw', 'secrets', cluster, instance.combined_name)


def client_name(instance):
    return 'client.radosgw.{0}'.format(instance.combined_name)


def keyring_path(cluster, instance, multisite):
    if multisite:
        return '{0}/{1}.client.radosgw.keyring'.format(CEPH_CONF_DIR, cluster)
    return '{0}/{1}.{2}.keyring'.format(CEPH_CONF_DIR, cluster,
                                        client_name(instance))


def instance_dir(cluster, instance):
    return '{0}/radosgw/{1}-radosgw.{2}'.format(CEPH_LIB_DIR, cluster,
                                                instance.combined_name)


def topology_names(federation, instance):
    """
    Return ``(zonegroup, zone, document prefix)`` of an instance.
    """
    if federation.multisite_replication:
        return instance.zonegroup, instance.name, instance.zonegroup
    combined = instance.combined_name
    return instance.zonegroup, combined, combined


def zonegroup_variables(federation, instance):
    """
    Variables of the zonegroup and zonegroup-map documents of ``instance``.
    """
    if federation.multisite_replication:
        name = federation.zonegroups[0]
        first = federation.instances[0]
        return {
            'name': name,
            'master_zone': '{0}-{1}'.format(name, federation.master_zone),
            'zones': thaw(federation.raw_instances),
            'endpoints': [first.endpoint],
            's3hostnames': list(federation.s3hostnames),
            's3hostnames_website': list(federation.s3hostnames_website),
        }
    return {
        'name': instance.combined_name,
        'master_zone': instance.combined_name,
        'zones': thaw(federation.raw_instances),
        'endpoints': [instance.endpoint],
        's3hostnames': list(instance.s3hostnames),
        's3hostnames_website': list(instance.s3hostnames_website),
    }


def secret_resources(admin, store, cluster, instance, keyring):
    """
    Resources acquiring the key of one instance, persisting it at cluster
    scope and registering the client with the cluster.
    """
    client = client_name(instance)
    path = secret_path(cluster.name, instance)
    save_name = 'save-radosgw-secret-{0}'.format(instance.combined_name)
    save = notify(ResourceKind.BLOCK, save_name, Timing.IMMEDIATE)
    known = Attribute(path, valid_secret)

    @do
    def check_secret():
        key = yield admin.get_key(client)
        if key is None:
            return False
        changed = yield set_attribute(path, key, Scope.CLUSTER)
        return changed

    @do
    def save_secret():
        key = yield admin.print_key(keyring, client)
        if not valid_secret(key):
            raise ValueError(
                'No valid key for {0} in {1}'.format(client, keyring))
        changed = yield set_attribute(path, key, Scope.CLUSTER)
        return changed

    def add_key(create):
        return lambda: admin.add_key(keyring, client, store.get(path),
                                     RADOSGW_CAPS, create=create)

    has_client = Check(lambda: admin.keyring_has_client(keyring, client),
                       '{0} in {1}'.format(client, keyring))

    return [
        Block(name='check-radosgw-secret-{0}'.format(instance.combined_name),
              block=check_secret),
        Execute(name='write-radosgw-secret-{0}'.format(
                    instance.combined_name),
                command=add_key(True),
                only_if=[known],
                not_if=[NonEmptyFile(keyring)],
                sensitive=True),
        Execute(name='update-radosgw-secret-{0}'.format(
                    instance.combined_name),
                command=add_key(False),
                only_if=[known, NonEmptyFile(keyring)],
                not_if=[has_client],
                sensitive=True),
        Execute(name='generate-radosgw-secret-{0}'.format(
                    instance.combined_name),
                command=admin.gen_keyring(keyring, client, RADOSGW_CAPS),
                not_if=[known, NonEmptyFile(keyring)],
                notifies=[save],
                sensitive=True),
        Execute(name='add-client-radosgw-secret-{0}'.format(
                    instance.combined_name),
                command=admin.gen_key(keyring, client, RADOSGW_CAPS),
                only_if=[NonEmptyFile(keyring)],
                not_if=[known, has_client],
                notifies=[save],
                sensitive=True),
        Block(name=save_name, block=save_secret, action=Action.NOTHING),
        # keyring written by an earlier run or by hand
        Block(name='persist-radosgw-secret-{0}'.format(
                  instance.combined_name),
              block=save_secret,
              only_if=[NonEmptyFile(keyring), has_client],
              not_if=[known]),
        Execute(name='update-{0}-auth'.format(client),
                command=admin.auth_add(client, keyring),
                not_if=[Check(lambda: admin.auth_exists(client),
                              '{0} in auth list'.format(client))],
                sensitive=True),
    ]


def topology_resources(admin, store, federation, instance):
    """
    Resources creating the realm and applying the zonegroup and zone
    documents of one instance.
    """
    client = client_name(instance)
    realm = instance.realm or DEFAULT_REALM
    zonegroup, zone, prefix = topology_names(federation, instance)
    zonegroup_file = '{0}/{1}-zonegroup.json'.format(CEPH_CONF_DIR, prefix)
    zonegroup_map_file = '{0}/{1}-zonegroup-map.json'.format(CEPH_CONF_DIR,
                                                             prefix)
    zone_file = '{0}/{1}-zone.json'.format(CEPH_CONF_DIR, zone)

    def variables():
        return zonegroup_variables(federation_config(store), instance)

    resources = [
        Execute(name='realm-create-{0}'.format(zonegroup),
                command=admin.realm_create(client, realm),
                only_if=[not_manual()],
                not_if=[Check(lambda: admin.realm_exists(client, realm),
                              'realm {0} listed'.format(realm))]),
        Template(name=zonegroup_file, source='radosgw-zonegroup.json.j2',
                 variables=variables,
                 only_if=[not_manual()],
                 not_if=[NonEmptyFile(zonegroup_file)]),
        Template(name=zonegroup_map_file,
                 source='radosgw-zonegroup-map.json.j2',
                 variables=variables,
                 only_if=[not_manual()],
                 not_if=[NonEmptyFile(zonegroup_map_file)]),
    ]
    if not federation.enable_zonegroups_zones:
        return resources

    return resources + [
        Template(name=zone_file, source='radosgw-federated-zone.json.j2',
                 variables={'zonegroup': zonegroup, 'zone': zone,
                            'secret_key': '', 'access_key': ''},
                 only_if=[not_manual()],
                 not_if=[NonEmptyFile(zone_file)]),
        Execute(name='zonegroup-set-{0}'.format(zonegroup),
                command=admin.zonegroup_set(client, zonegroup,
                                            zonegroup_file),
                only_if=[not_manual()],
                not_if=[Check(
                    lambda: admin.zonegroup_exists(client, zonegroup),
                    'zonegroup {0} exists'.format(zonegroup))]),
        Execute(name='zone-set-{0}'.format(zone),
                command=admin.zone_set(client, zone, zone_file),
                only_if=[not_manual()],
                not_if=[Check(lambda: admin.zone_exists(client, zone),
                              'zone {0} exists'.format(zone))]),
        Execute(name='create-zonegroup-defaults-{0}'.format(zonegroup),
                command=admin.zonegroup_default(client, zonegroup),
                only_if=[not_manual()],
                not_if=[Check(
                    lambda: admin.is_default_zonegroup(client, zonegroup),
                    'zonegroup {0} is default'.format(zonegroup))]),
    ]


def instance_resources(admin, store, cluster, federation, instance):
    keyring = keyring_path(cluster.name, instance,
                           federation.multisite_replication)
    directory = instance_dir(cluster.name, instance)
    init_style = init_style_named(store.get('ceph.mon.init_style'))
    log_file = '{0}/{1}.{2}.log'.format(RADOSGW_LOG_DIR, cluster.name,
                                        client_name(instance))
    return (
        [File(name=log_file, owner=cluster.owner, group=cluster.group),
         Directory(name=directory, owner=cluster.owner, group=cluster.group,
                   mode=cluster.mode)] +
        secret_resources(admin, store, cluster, instance, keyring) +
        topology_resources(admin, store, federation, instance) +
        [finalize('radosgw-finalize-{0}'.format(instance.combined_name),
                  directory, init_style)])


def federation_resources(store, log):
    """
    Return the resources of every valid zone instance, or nothing unless
    federation is enabled.
    """
    federation = federation_config(store)
    if not federation.enabled:
        return []
    log = log.bind(role='radosgw')
    for index, problems in federation.rejected:
        log.warn('Zone instance {index} is incomplete, skipping',
                 index=index, problems=problems)
    if federation.multisite_replication and not federation.zonegroups:
        log.warn('Multisite replication needs federated_zonegroups, '
                 'skipping federation')
        return []

    cluster = cluster_config(store)
    admin = CephAdmin(cluster.name, cluster.admin_keyring)
    resources = []
    for instance in federation.instances:
        resources.extend(
            instance_resources(admin, store, cluster, federation, instance))
    return list(unique(resources))
