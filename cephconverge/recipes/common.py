"""
Helpers shared by the role recipes.
"""

from effect import Effect

from pyrsistent import pvector

from cephconverge.guards import Attribute, IsFile
from cephconverge.model import Action
from cephconverge.resources import Block
from cephconverge.util.fileio import TouchFiles


def package_action(name):
    """Map the ``package_action`` attribute to an :obj:`Action`."""
    if name == 'upgrade':
        return Action.UPGRADE
    return Action.INSTALL


def finalize(name, directory, init_style):
    """
    Return the resource writing the bootstrap markers of a daemon
    instance: an empty ``done`` file and an empty file named after the init
    system. Their presence means the first-time bootstrap is complete.
    """
    done = '{0}/done'.format(directory)
    markers = (done, '{0}/{1}'.format(directory, init_style.name.lower()))
    return Block(
        name=name,
        block=lambda: Effect(TouchFiles(markers)).on(lambda _: True),
        not_if=[IsFile(done)])


def _disabled(value):
    return value is not True


def not_manual():
    """Guard holding unless federation is configured by hand."""
    return Attribute(('ceph', 'radosgw', 'manual_federation'), _disabled)


def unique(resources):
    """
    Drop resources whose identity was already declared, keeping the first.
    Instances sharing a zonegroup declare the same zonegroup resources.
    """
    seen = set()
    kept = []
    for resource in resources:
        if resource.identity not in seen:
            seen.add(resource.identity)
            kept.append(resource)
    return pvector(kept)
