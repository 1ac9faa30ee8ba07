"""
Facts about the node convergence runs on.
"""

import platform
import socket

from pyrsistent import pmap


PLATFORM_FAMILIES = {
    'ubuntu': 'debian', 'debian': 'debian',
    'centos': 'rhel', 'rhel': 'rhel', 'redhat': 'rhel', 'rocky': 'rhel',
    'almalinux': 'rhel', 'fedora': 'fedora',
    'sles': 'suse', 'opensuse-leap': 'suse', 'suse': 'suse',
}


def parse_os_release(text):
    """
    Parse the content of ``/etc/os-release`` into a dict.
    """
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        values[key] = value.strip().strip('"\'')
    return values


def platform_family(platform_id):
    """Map an os-release ``ID`` onto the family used for package choice."""
    return PLATFORM_FAMILIES.get(platform_id, 'unknown')


def gather_facts(os_release_path='/etc/os-release'):
    """
    Collect node facts, to be placed under ``node`` in the default tier.
    """
    try:
        with open(os_release_path) as f:
            release = parse_os_release(f.read())
    except OSError:
        release = {}
    platform_id = release.get('ID', '')
    return pmap({
        'hostname': socket.gethostname().split('.')[0],
        'fqdn': socket.getfqdn(),
        'os': platform.system().lower(),
        'platform': platform_id,
        'platform_version': release.get('VERSION_ID', ''),
        'platform_family': platform_family(platform_id),
        'kernel': pmap({'release': platform.release()}),
    })
