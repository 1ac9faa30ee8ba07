"""
Role recipes. Each recipe turns the resolved attributes of a node into a
list of resources; :func:`build_graph` strings the requested roles together.
"""

from cephconverge.graph import ResourceGraph
from cephconverge.log import log as default_log
from cephconverge.recipes.install import install_resources
from cephconverge.recipes.mgr import mgr_resources
from cephconverge.recipes.osd import osd_resources
from cephconverge.recipes.radosgw import radosgw_resources


RECIPES = (
    ('install', install_resources),
    ('osd', osd_resources),
    ('mgr', mgr_resources),
    ('radosgw', radosgw_resources),
)

ROLES = tuple(name for name, _ in RECIPES)


class UnknownRole(Exception):
    """A role was requested that no recipe implements."""
    def __init__(self, role):
        super(UnknownRole, self).__init__(
            'Unknown role {0!r}, expected one of {1}'.format(
                role, ', '.join(ROLES)))
        self.role = role


def build_graph(roles, store, log=None):
    """
    Build the resource graph of a node.

    :param roles: Names of the roles of the node. ``install`` is implied by
        every other role.
    :param store: The :obj:`AttributeStore` of the run.
    :param log: Bound log for warnings about incomplete units.
    :return: A validated :obj:`ResourceGraph`.
    """
    log = log or default_log
    roles = set(roles)
    for role in roles:
        if role not in ROLES:
            raise UnknownRole(role)
    if roles:
        roles.add('install')
    graph = ResourceGraph()
    for name, recipe in RECIPES:
        if name in roles:
            graph.extend(recipe(store, log.bind(recipe=name)))
    return graph.validate()
