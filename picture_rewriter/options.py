"""Global options and the per-build/per-page context objects."""
import os
from dataclasses import dataclass

URL_PATH_ENV = 'PICTURE_REWRITER_URL_PATH'

DEFAULT_OPTIONS = {
    'extensions': 'html',
    'url_path': None,
    'output_dir': None,
    'widths': ['auto'],
    'formats': ['webp', 'jpeg'],
    'quality': 80,
    'sizes': '100vw',
    'loading': 'lazy',
    'decoding': 'async',
}


@dataclass(frozen=True)
class SiteDirectories:
    """Content root (input) and build output root (output) for one build."""

    input: str
    output: str


@dataclass(frozen=True)
class PageContext:
    """The page being transformed: source file, destination file and public route."""

    input_path: str
    output_path: str
    url: str


def parse_list(value):
    """Accept either a comma separated string or an iterable; return a list of stripped strings."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(',')
    else:
        items = value
    return [str(v).strip() for v in items if str(v).strip()]


def get_global_options(directories, options=None):
    """Merge caller options over the defaults and attach the site directories.

    When no url_path is given, PICTURE_REWRITER_URL_PATH may supply one. A
    url_path without an explicit output_dir writes under the output root.
    """
    opts = dict(DEFAULT_OPTIONS)
    opts.update(options or {})

    if not opts.get('url_path'):
        opts['url_path'] = os.environ.get(URL_PATH_ENV) or None

    opts['widths'] = parse_list(opts.get('widths')) or ['auto']
    opts['formats'] = [f.lower() for f in parse_list(opts.get('formats'))] or ['auto']
    opts['directories'] = directories

    if opts['url_path'] and not opts.get('output_dir'):
        opts['output_dir'] = os.path.join(directories.output, opts['url_path'].lstrip('/'))

    return opts
