"""
The object gateway role: gateway packages and, when enabled, the federated
topology of its zone instances.
"""

from cephconverge.config import install_config
from cephconverge.recipes.federation import federation_resources
from cephconverge.recipes.install import package_resources


def radosgw_resources(store, log):
    install = install_config(store)
    family = store.get('node.platform_family', 'unknown')
    return (package_resources(install.radosgw_packages, install, family) +
            federation_resources(store, log))
