import os
from setuptools import setup

NAME = 'cephconverge'
TEMPLATE_DIR = 'templates'


def getPackages(base):
    """
    Recursively find python packages.
    """
    packages = []

    for directory, _, files in os.walk(base):
        if '__init__.py' in files:
            packages.append(directory.replace(os.sep, '.'))

    return packages

packages = getPackages(NAME)


def getTemplates(base):
    """
    Find template files shipped with the package
    """
    return [filename
            for filename in os.listdir(os.path.join(base, TEMPLATE_DIR))
            if filename.endswith('.j2')]

package_data = {
    NAME: [os.path.join(TEMPLATE_DIR, name) for name in getTemplates(NAME)]}


setup(
    name=NAME,
    version='0.0.0',
    packages=packages,
    package_data=package_data,
    license="Apache 2.0",
    python_requires='>=3.6',
    install_requires=[
        'attrs',
        'constantly',
        'effect',
        'jinja2',
        'jsonschema',
        'pyrsistent',
        'toolz',
        'twisted',
        'zope.interface',
    ],
    extras_require={
        'test': ['mock', 'pytest', 'testtools'],
    },
    entry_points={
        'console_scripts': ['cephconverge = cephconverge.cli:main'],
    },
)
