import logging

from .errors import ConfigurationError
from .options import get_global_options
from .transform import transform_tree

log = logging.getLogger(__name__)

# run before other html transforms (base href, url rewriting, ...)
TRANSFORM_PRIORITY = -1


def image_transform_plugin(site, directories=None, generator=None, **options):
    """Register the <img> rewriting transform on a site's html transformer.

    ``directories`` defaults to ``site.directories``. Raises ConfigurationError
    straight away when the site has no html transformer to register with.
    """
    options = dict({'extensions': 'html'}, **options)

    transformer = getattr(site, 'html_transformer', None)
    if transformer is None or not hasattr(transformer, 'add_transform'):
        raise ConfigurationError(
            '`image_transform_plugin` needs a site exposing `html_transformer.add_transform`.'
        )

    directories = directories or getattr(site, 'directories', None)
    if directories is None:
        raise ConfigurationError('`image_transform_plugin` needs the site input/output directories.')

    opts = get_global_options(directories, options)

    async def page_transform(page, tree):
        return await transform_tree(tree, page, opts, generator)

    transformer.add_transform(opts['extensions'], page_transform, priority=TRANSFORM_PRIORITY)
    log.debug('registered image transform for %s (output root %s)', opts['extensions'], directories.output)
    return opts
