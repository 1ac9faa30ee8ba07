"""
Data classes for representing bits of information that need to share a
representation across graph building and execution.
"""

import attr
from attr.validators import instance_of

from constantly import NamedConstant, Names


class ResourceKind(Names):
    """
    Kinds of resources a graph may contain.
    """
    PACKAGE = NamedConstant()
    DIRECTORY = NamedConstant()
    FILE = NamedConstant()
    TEMPLATE = NamedConstant()
    EXECUTE = NamedConstant()
    SERVICE = NamedConstant()
    BLOCK = NamedConstant()


class Action(Names):
    """
    Action verbs of resources.
    """
    INSTALL = NamedConstant()
    UPGRADE = NamedConstant()
    CREATE = NamedConstant()
    RUN = NamedConstant()
    ENABLE_AND_START = NamedConstant()
    RESTART = NamedConstant()

    NOTHING = NamedConstant()
    """
    The resource is skipped by the main pass and only acts when notified.
    """


class Timing(Names):
    """
    When a notified resource runs.
    """
    IMMEDIATE = NamedConstant()
    """
    Synchronously after the notifying resource, before the next resource of
    the main pass. Every immediate notification runs the target again.
    """

    DEFERRED = NamedConstant()
    """
    Once, after the main pass. Repeated notifications collapse.
    """


class ResourceState(Names):
    """
    States of a resource within one convergence run.
    """
    PENDING = NamedConstant()
    GUARDED_SKIP = NamedConstant()
    RUNNING = NamedConstant()
    SUCCEEDED = NamedConstant()
    FAILED = NamedConstant()


@attr.s(frozen=True)
class Notification(object):
    """
    An edge from a resource to the resource identified by ``target``.

    :ivar tuple target: ``(ResourceKind, name)`` of the resource to run.
    :ivar timing: A :obj:`Timing` constant.
    :ivar action: The action to run the target with, or None for the
        target's own default action.
    """
    target = attr.ib(converter=tuple)
    timing = attr.ib(default=Timing.DEFERRED)
    action = attr.ib(default=None)


def notify(kind, name, timing=Timing.DEFERRED, action=None):
    """Shorthand for building a :obj:`Notification`."""
    return Notification((kind, name), timing, action)


@attr.s(frozen=True)
class ResourceOutcome(object):
    """
    The terminal state of one execution of a resource.

    :ivar tuple identity: ``(ResourceKind, name)``.
    :ivar state: :obj:`ResourceState.GUARDED_SKIP`, ``SUCCEEDED`` or
        ``FAILED``.
    :ivar bool updated: True if the action changed something outside of
        this process.
    :ivar error: The exception of a failed action.
    :ivar bool notified: True if this execution was triggered by a
        notification rather than the main pass.
    """
    identity = attr.ib()
    state = attr.ib()
    updated = attr.ib(default=False, validator=instance_of(bool))
    error = attr.ib(default=None)
    notified = attr.ib(default=False)


@attr.s
class RunReport(object):
    """
    What happened during one convergence run.

    :ivar list outcomes: :obj:`ResourceOutcome` in execution order.
    :ivar bool aborted: True if a fatal failure stopped the run.
    :ivar failure: The :obj:`ResourceOutcome` that aborted the run.
    """
    outcomes = attr.ib(default=attr.Factory(list))
    aborted = attr.ib(default=False)
    failure = attr.ib(default=None)

    @property
    def succeeded(self):
        return not self.aborted

    @property
    def mutations(self):
        """Number of executions that changed external state."""
        return len([o for o in self.outcomes if o.updated])

    def executed(self, identity):
        """Number of times ``identity`` ran its action."""
        return len([o for o in self.outcomes
                    if o.identity == identity and
                    o.state is not ResourceState.GUARDED_SKIP])
