"""
Command line entry point: converge this node for the given roles.
"""

import json
import sys

from effect import sync_perform

from twisted.python import log as twisted_log
from twisted.python import usage

from cephconverge.attributes import AttributeStore, JSONFileBackend
from cephconverge.defaults import default_attributes
from cephconverge.dispatcher import get_dispatcher
from cephconverge.errors import DuplicateResource, UnknownNotificationTarget
from cephconverge.executor import converge
from cephconverge.facts import gather_facts
from cephconverge.log import log, observer_factory, observer_factory_debug
from cephconverge.recipes import ROLES, UnknownRole, build_graph


def _load_json(path):
    with open(path) as f:
        return json.load(f)


class Options(usage.Options):
    """
    Options for a convergence run.
    """
    synopsis = 'Usage: cephconverge --role ROLE [--role ROLE ...] [options]'

    optFlags = [
        ['dry-run', 'n',
         'Build and print the resource graph, change nothing.'],
        ['debug', 'd', 'Log pretty printed JSON.'],
    ]

    optParameters = [
        ['environment', 'e', None,
         'Path to the JSON document of the environment tier.'],
        ['role-attributes', None, None,
         'Path to the JSON document of the role tier.'],
        ['node-state', None, '/var/lib/cephconverge/node.json',
         'Path where values discovered on this node are kept.'],
        ['cluster-state', None, None,
         'Path of the document shared by all nodes of the cluster.'],
        ['command-timeout', None, None,
         'Seconds after which a command is killed.', float],
        ['os-release', None, '/etc/os-release',
         'Path to the os-release file describing the platform.'],
    ]

    def __init__(self):
        usage.Options.__init__(self)
        self['roles'] = []

    def opt_role(self, role):
        """
        Role of this node, one of install, osd, mgr, radosgw. Repeatable.
        """
        if role not in ROLES:
            raise usage.UsageError(str(UnknownRole(role)))
        self['roles'].append(role)

    opt_r = opt_role

    def postOptions(self):
        if not self['roles']:
            raise usage.UsageError('At least one --role is required.')
        for name in ('environment', 'role-attributes'):
            if self[name] is not None:
                try:
                    self[name] = _load_json(self[name])
                except (OSError, ValueError) as e:
                    raise usage.UsageError(
                        'Cannot load --{0}: {1}'.format(name, e))


def make_store(options, facts):
    """Build the attribute store of a run and load persisted values."""
    store = AttributeStore(
        default=default_attributes(facts),
        role=options['role-attributes'],
        environment=options['environment'])
    backend = JSONFileBackend(options['node-state'], options['cluster-state'])
    backend.load(store)
    return store, backend


def run(options, stdout=None):
    """
    Converge this node.

    :return: process exit status, 0 if the node converged.
    """
    stdout = stdout or sys.stdout
    store, backend = make_store(options, gather_facts(options['os-release']))
    run_log = log.bind(roles=','.join(options['roles']))
    try:
        graph = build_graph(options['roles'], store, run_log)
    except (DuplicateResource, UnknownNotificationTarget) as e:
        run_log.err(e, 'Invalid resource graph')
        return 1

    if options['dry-run']:
        for line in graph.describe():
            stdout.write(line + '\n')
        return 0

    dispatcher = get_dispatcher(store, run_log, options['command-timeout'])
    try:
        report = sync_perform(dispatcher, converge(graph))
    finally:
        backend.save(store)
    return 0 if report.succeeded else 1


def main(argv=None):
    options = Options()
    try:
        options.parseOptions(argv)
    except usage.UsageError as e:
        sys.stderr.write('{0}\n{1}\n'.format(options, e))
        sys.exit(1)

    factory = observer_factory_debug if options['debug'] else observer_factory
    twisted_log.startLoggingWithObserver(factory(sys.stderr),
                                         setStdout=False)
    sys.exit(run(options))
