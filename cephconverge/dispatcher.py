"""Effect dispatchers for cephconverge."""

from effect import ComposedDispatcher, base_dispatcher

from .attributes import get_attribute_dispatcher
from .log.intents import get_log_dispatcher
from .system import get_system_dispatcher
from .templating import get_template_dispatcher
from .util.fileio import get_fileio_dispatcher
from .util.process import get_process_dispatcher


def get_simple_dispatcher(timeout=None):
    """
    Get a dispatcher for effects that only touch the local node: commands,
    files and templates.
    """
    return ComposedDispatcher([
        base_dispatcher,
        get_process_dispatcher(timeout),
        get_fileio_dispatcher(),
        get_template_dispatcher(),
    ])


def get_dispatcher(store, log, timeout=None):
    """
    Return a dispatcher that can perform all of the effects of a
    convergence run.

    :param store: The :obj:`AttributeStore` of the run.
    :param log: A bound log for logging intents.
    :param timeout: Default command timeout in seconds, None for no limit.
    """
    return ComposedDispatcher([
        get_simple_dispatcher(timeout),
        get_system_dispatcher(store.get('node.platform_family', 'unknown')),
        get_attribute_dispatcher(store),
        get_log_dispatcher(log, {}),
    ])
