"""
Rendering of configuration file templates with Jinja2.

Templates ship inside the package under ``templates/``. Rendering is strict:
a variable missing from the context is an error rather than an empty string,
since a half-filled zonegroup document would be accepted by radosgw-admin.
"""

import attr

from effect import Effect, TypeDispatcher, sync_performer

from jinja2 import (
    Environment, PackageLoader, StrictUndefined, TemplateError as JinjaError)

from pyrsistent import thaw

from cephconverge.errors import TemplateError


@attr.s(frozen=True)
class RenderTemplate(object):
    """
    Intent to render template ``source`` with ``variables``.

    :return: the rendered text as bytes.
    """
    source = attr.ib()
    variables = attr.ib()


def render_template(source, variables):
    """Return Effect of the rendered bytes of ``source``."""
    return Effect(RenderTemplate(source, variables))


def template_environment(loader=None):
    return Environment(
        loader=loader or PackageLoader('cephconverge', 'templates'),
        undefined=StrictUndefined, keep_trailing_newline=True,
        autoescape=False)


def render(env, source, variables):
    """Render ``source`` in ``env``, raising :obj:`TemplateError`."""
    try:
        template = env.get_template(source)
        return template.render(**thaw(variables)).encode('utf-8')
    except JinjaError as e:
        raise TemplateError(source, str(e))


def get_template_dispatcher(env=None):
    """Return dispatcher performing :obj:`RenderTemplate`."""
    env = env or template_environment()
    return TypeDispatcher({
        RenderTemplate: sync_performer(
            lambda d, i: render(env, i.source, i.variables))})
