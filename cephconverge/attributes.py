"""
Hierarchical attribute store holding desired and discovered node state.

Attributes live in four tiers, lowest precedence first::

    DEFAULT < ROLE < ENVIRONMENT < OVERRIDE

Reads always resolve through all tiers. Maps are merged key by key, lists
and scalars in a higher tier replace the lower value wholesale. Writes made
while converging only ever go to the OVERRIDE tier.

Paths are dotted strings (``"ceph.osd.devices.1.status"``) or sequences of
keys. An integer segment (or an all-digit string segment) indexes a list.
Writing through a list index stores a *sparse patch* in the override tier,
a map keyed by the index, which updates only that element of the list found
in lower tiers. Sibling elements, and elements added to the list later on,
are left alone.
"""

import json
import os
import tempfile

import attr

from constantly import NamedConstant, Names

from effect import Effect, TypeDispatcher, sync_performer

from pyrsistent import PMap, PVector, freeze, pmap, thaw

from cephconverge.util.fp import set_in


class Tier(Names):
    """
    Precedence tiers of the attribute store.
    """
    DEFAULT = NamedConstant()
    ROLE = NamedConstant()
    ENVIRONMENT = NamedConstant()
    OVERRIDE = NamedConstant()


TIERS = (Tier.DEFAULT, Tier.ROLE, Tier.ENVIRONMENT, Tier.OVERRIDE)


class Scope(Names):
    """
    Visibility of a value written during convergence.
    """
    NODE = NamedConstant()
    """Only this node reads it back on later runs."""

    CLUSTER = NamedConstant()
    """Persisted to the document shared by all nodes of the cluster."""


_absent = object()


def parse_path(path):
    """
    Normalize a dotted string or sequence into a tuple of keys, turning
    all-digit segments into list indices.
    """
    if isinstance(path, str):
        path = path.split('.') if path else ()
    return tuple(int(k) if isinstance(k, str) and k.isdigit() else k
                 for k in path)


def _is_patch(value):
    return (isinstance(value, PMap) and len(value) > 0 and
            all(isinstance(k, int) for k in value))


def deep_merge(lower, higher):
    """
    Merge ``higher`` over ``lower``: maps merge recursively, a sparse patch
    over a list updates the addressed elements, anything else replaces.
    """
    if isinstance(higher, PMap):
        if isinstance(lower, PVector) and _is_patch(higher):
            for index, value in sorted(higher.items()):
                if index < len(lower):
                    lower = lower.set(index, deep_merge(lower[index], value))
            return lower
        if isinstance(lower, PMap):
            merged = lower
            for key, value in higher.items():
                merged = merged.set(key, deep_merge(lower.get(key, _absent),
                                                    value))
            return merged
    return higher


def get_in(keys, tree, default=None):
    """
    Look up ``keys`` in a frozen tree of maps and vectors.
    """
    for key in keys:
        if isinstance(tree, PMap):
            tree = tree.get(key, _absent)
        elif (isinstance(tree, PVector) and isinstance(key, int) and
                -len(tree) <= key < len(tree)):
            tree = tree[key]
        else:
            tree = _absent
        if tree is _absent:
            return default
    return tree


def normalize_keys(tree):
    """
    Turn all-digit map keys (as they come back from JSON) into integers so
    that persisted sparse patches merge over lists again.
    """
    if isinstance(tree, PMap):
        return pmap({(int(k) if isinstance(k, str) and k.isdigit() else k):
                     normalize_keys(v) for k, v in tree.items()})
    if isinstance(tree, PVector):
        return freeze([normalize_keys(v) for v in tree])
    return tree


def _jsonable(tree):
    """Thaw a tree and stringify integer keys for JSON."""
    tree = thaw(tree)
    if isinstance(tree, dict):
        return {str(k): _jsonable(v) for k, v in tree.items()}
    if isinstance(tree, list):
        return [_jsonable(v) for v in tree]
    return tree


class AttributeStore(object):
    """
    Tiered attribute store for one node.

    The store is created once per convergence run and passed explicitly to
    everything that reads or writes attributes.

    :ivar node_paths: Paths written with :obj:`Scope.NODE`, in write order.
    :ivar cluster_paths: Paths written with :obj:`Scope.CLUSTER`, in
        write order.
    """

    def __init__(self, default=None, role=None, environment=None,
                 override=None):
        self._layers = {
            Tier.DEFAULT: freeze(default or {}),
            Tier.ROLE: freeze(role or {}),
            Tier.ENVIRONMENT: freeze(environment or {}),
            Tier.OVERRIDE: normalize_keys(freeze(override or {}))}
        self._merged = None
        self.node_paths = []
        self.cluster_paths = []

    def layer(self, tier):
        """Return the raw content of one tier."""
        return self._layers[tier]

    def set_layer(self, tier, data):
        """Replace the content of one tier."""
        self._layers[tier] = normalize_keys(freeze(data))
        self._merged = None

    def merged(self, path=()):
        """
        Resolve ``path`` through all tiers, low to high.

        :return: The merged value, or None when absent in every tier.
        """
        if self._merged is None:
            merged = pmap()
            for tier in TIERS:
                merged = deep_merge(merged, self._layers[tier])
            self._merged = merged
        return get_in(parse_path(path), self._merged)

    def get(self, path, default=None):
        """
        Return the resolved value of ``path``, or ``default`` if absent.
        """
        value = self.merged(path)
        return default if value is None else value

    def set_override(self, path, value, scope=Scope.NODE):
        """
        Write ``value`` at ``path`` into the override tier.

        :return: True if the resolved value changed.
        """
        keys = parse_path(path)
        paths = (self.cluster_paths if scope is Scope.CLUSTER
                 else self.node_paths)
        if keys not in paths:
            paths.append(keys)
        if self.merged(keys) == freeze(value):
            return False
        self._layers[Tier.OVERRIDE] = set_in(
            self._layers[Tier.OVERRIDE], keys, value)
        self._merged = None
        return True

    def written(self, paths, tree=pmap()):
        """
        Return ``tree`` with the override values at ``paths`` set on it.
        """
        for keys in paths:
            value = get_in(keys, self._layers[Tier.OVERRIDE], _absent)
            if value is not _absent:
                tree = set_in(tree, keys, value)
        return tree

    def cluster_overrides(self):
        """
        Return the override values written at cluster scope as a tree.
        """
        return self.written(self.cluster_paths)


@attr.s(frozen=True)
class GetAttribute(object):
    """
    Intent to read a resolved attribute.
    """
    path = attr.ib(converter=parse_path)


@attr.s(frozen=True)
class SetAttribute(object):
    """
    Intent to write an attribute into the override tier.
    """
    path = attr.ib(converter=parse_path)
    value = attr.ib(converter=freeze)
    scope = attr.ib(default=Scope.NODE)


def get_attribute(path):
    """Return Effect of the resolved value of ``path``."""
    return Effect(GetAttribute(path))


def set_attribute(path, value, scope=Scope.NODE):
    """Return Effect of writing ``value`` at ``path``."""
    return Effect(SetAttribute(path, value, scope))


def get_attribute_dispatcher(store):
    """
    Return dispatcher performing attribute intents against ``store``.
    """
    return TypeDispatcher({
        GetAttribute: sync_performer(lambda d, i: store.get(i.path)),
        SetAttribute: sync_performer(
            lambda d, i: store.set_override(i.path, i.value, i.scope)),
    })


def _write_json(path, data):
    directory, name = os.path.split(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=directory or '.', prefix='.' + name + '.')
    try:
        with os.fdopen(fd, 'w') as f:
            json.dump(_jsonable(data), f, indent=2, sort_keys=True)
        os.replace(tmp, path)
    except BaseException:
        os.unlink(tmp)
        raise


def _read_json(path):
    try:
        with open(path) as f:
            return freeze(json.load(f))
    except FileNotFoundError:
        return pmap()


@attr.s
class JSONFileBackend(object):
    """
    Durable home of the override tier.

    Node scoped values are saved to ``node_path``. Values written with
    :obj:`Scope.CLUSTER` are saved to ``cluster_path``, a document that
    every node of the cluster reads, or to ``node_path`` when there is no
    cluster document. Both documents are re-read on save and only the keys
    written during this run are set, so values loaded from the cluster
    document never end up in the node document where they would hide later
    writes by other nodes. Concurrent runs on other nodes lose at most the
    keys both wrote (last write wins, no locking).
    """
    node_path = attr.ib()
    cluster_path = attr.ib(default=None)

    def load(self, store):
        """Load persisted overrides into ``store``, cluster values first."""
        override = pmap()
        if self.cluster_path is not None:
            override = deep_merge(override, _read_json(self.cluster_path))
        override = deep_merge(override, _read_json(self.node_path))
        store.set_layer(Tier.OVERRIDE, override)
        return store

    def save(self, store):
        """Persist the values written to ``store`` during the run."""
        node_paths = store.node_paths
        if self.cluster_path is None:
            node_paths = node_paths + store.cluster_paths
        _write_json(self.node_path, store.written(
            node_paths, normalize_keys(_read_json(self.node_path))))
        if self.cluster_path is not None and store.cluster_paths:
            _write_json(self.cluster_path, store.written(
                store.cluster_paths,
                normalize_keys(_read_json(self.cluster_path))))
