"""
The resource graph: resources in caller-declared order plus the
notification edges between them.
"""

from pyrsistent import pvector

from cephconverge.errors import DuplicateResource, UnknownNotificationTarget


class ResourceGraph(object):
    """
    An ordered collection of resources, unique by identity.

    There is no implicit topological sort: resources run in the order they
    were added. Notification targets may be declared after the resources
    that notify them; :meth:`validate` checks that every target exists.
    """

    def __init__(self, resources=()):
        self._resources = pvector()
        self._by_identity = {}
        for resource in resources:
            self.add(resource)

    def add(self, resource):
        """
        Append ``resource``.

        :raises DuplicateResource: if the identity is already taken.
        :return: the resource, for chaining in recipes.
        """
        if resource.identity in self._by_identity:
            raise DuplicateResource(resource.identity)
        self._by_identity[resource.identity] = resource
        self._resources = self._resources.append(resource)
        return resource

    def extend(self, resources):
        for resource in resources:
            self.add(resource)
        return self

    def lookup(self, identity):
        """Return the resource with ``identity`` or raise KeyError."""
        return self._by_identity[tuple(identity)]

    def __contains__(self, identity):
        return tuple(identity) in self._by_identity

    def __iter__(self):
        return iter(self._resources)

    def __len__(self):
        return len(self._resources)

    @property
    def resources(self):
        return self._resources

    def validate(self):
        """
        :raises UnknownNotificationTarget: if a resource notifies a target
            that is not part of the graph.
        """
        for resource in self._resources:
            for notification in resource.notifies:
                if notification.target not in self._by_identity:
                    raise UnknownNotificationTarget(resource.identity,
                                                    notification.target)
        return self

    def describe(self):
        """One line per resource, for dry runs."""
        return [resource.describe() for resource in self._resources]
