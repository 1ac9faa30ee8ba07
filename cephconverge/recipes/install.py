"""
Package installation for every role.
"""

import re

from pyrsistent import PMap

from cephconverge.config import install_config
from cephconverge.defaults import debug_packages
from cephconverge.recipes.common import package_action
from cephconverge.resources import Package


def exact_version(name, install):
    """
    Return the version to pin package ``name`` to, or None.

    Only packages listed in ``versioned_packages`` (debug variants count as
    their base package) are pinned. ``exactversion`` is either one version
    for all of them, or a map with per-package versions and an optional
    ``default``.
    """
    if re.sub(r'-(dbg|debug)$', '', name) not in install.versioned_packages:
        return None
    exact = install.exactversion
    if not exact:
        return None
    if isinstance(exact, (dict, PMap)):
        return exact.get(name, exact.get('default'))
    return exact


def package_resources(names, install, family):
    """Return :obj:`Package` resources for ``names`` and, when debug
    symbols are wanted, their debug packages."""
    names = list(names)
    if install.install_debug:
        names += [debug for debug in debug_packages(names, family)
                  if debug not in names]
    action = package_action(install.package_action)
    return [Package(name=name, version=exact_version(name, install),
                    action=action)
            for name in names]


def install_resources(store, log):
    install = install_config(store)
    family = store.get('node.platform_family', 'unknown')
    return package_resources(install.packages, install, family)
