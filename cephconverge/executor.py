"""
The convergence executor.

One run walks the graph in declared order. For each resource the guards are
evaluated, then the action is performed. A resource that succeeded and
changed something fires its notifications: immediate ones run the target
right away (every time), deferred ones are queued and drained once after the
main pass, in first-registered order, each target at most once.

Failures abort the run unless the resource is best effort.
"""

from collections import OrderedDict

from effect.do import do

from cephconverge.errors import ActionFailed, present_error
from cephconverge.guards import should_run
from cephconverge.log.intents import err, msg, warn, with_log
from cephconverge.model import (
    Action, ResourceOutcome, ResourceState, RunReport, Timing)


class NotificationQueue(object):
    """
    Deferred notifications, deduplicated by target identity. The first
    notification registered for a target decides its action.
    """

    def __init__(self):
        self._pending = OrderedDict()
        self._fired = set()

    def defer(self, notification):
        target = notification.target
        if target in self._fired or target in self._pending:
            return False
        self._pending[target] = notification
        return True

    def pop(self):
        """Return the next pending notification, or None."""
        if not self._pending:
            return None
        target, notification = self._pending.popitem(last=False)
        self._fired.add(target)
        return notification

    def __len__(self):
        return len(self._pending)


@do
def run_resource(graph, resource, report, queue, action=None,
                 notified=False):
    """
    Run one resource and the immediate notifications it fires.

    :return: Effect of bool, False if the run must abort.
    """
    identity = resource.identity
    fields = {'resource': resource.describe()}
    run, reason = yield should_run(resource.only_if, resource.not_if,
                                   **fields)
    if not run:
        report.outcomes.append(ResourceOutcome(
            identity, ResourceState.GUARDED_SKIP, notified=notified))
        yield msg('Skipping {resource}: {reason}', reason=reason, **fields)
        return True

    try:
        updated = yield with_log(resource.as_effect(action), **fields)
    except Exception as e:
        outcome = ResourceOutcome(identity, ResourceState.FAILED, error=e,
                                  notified=notified)
        report.outcomes.append(outcome)
        if resource.best_effort:
            yield warn('{resource} failed, continuing: {error}',
                       error=present_error(e), **fields)
            return True
        report.aborted = True
        report.failure = outcome
        yield err(ActionFailed(identity, e), 'Convergence aborted',
                  error=present_error(e), **fields)
        return False

    updated = bool(updated)
    report.outcomes.append(ResourceOutcome(
        identity, ResourceState.SUCCEEDED, updated=updated,
        notified=notified))
    if not updated:
        return True
    yield msg('Updated {resource}', **fields)

    for notification in resource.notifies:
        if notification.timing is Timing.IMMEDIATE:
            proceed = yield run_resource(
                graph, graph.lookup(notification.target), report, queue,
                action=notification.action, notified=True)
            if not proceed:
                return False
        else:
            queue.defer(notification)
    return True


@do
def converge(graph):
    """
    Converge the node to the state described by ``graph``.

    :param graph: A :obj:`ResourceGraph`.
    :return: Effect of :obj:`RunReport`.
    """
    graph.validate()
    report = RunReport()
    queue = NotificationQueue()
    yield msg('Converging {count} resources', count=len(graph))

    for resource in graph:
        if resource.action is Action.NOTHING:
            continue
        proceed = yield run_resource(graph, resource, report, queue)
        if not proceed:
            return report

    notification = queue.pop()
    while notification is not None:
        proceed = yield run_resource(
            graph, graph.lookup(notification.target), report, queue,
            action=notification.action, notified=True)
        if not proceed:
            return report
        notification = queue.pop()

    yield msg('Converged with {mutations} changes',
              mutations=report.mutations)
    return report
