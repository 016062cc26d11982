"""A minimal static site host: copy a content directory to an output directory,
running registered html transforms over every page on the way.
"""
import asyncio
import logging
import os
import posixpath
import shutil

from werkzeug.utils import safe_join

from .errors import ConfigurationError, PageBuildError
from .options import PageContext, SiteDirectories, parse_list
from .transform import parse_html, serialize_html

log = logging.getLogger(__name__)

PAGE_EXTS = ('.html', '.htm')
# source rasters are replaced by generated variants, so they are not copied as-is
RASTER_EXTS = {'.png', '.jpg', '.jpeg', '.gif', '.webp', '.avif', '.tif', '.tiff', '.bmp'}
INDEX_NAMES = ('index.html', 'index.htm')


class HtmlTransformer:
    """Registry of async ``callback(page, tree) -> tree`` transforms keyed by file extension.

    Transforms run in ascending priority order over a single parsed tree.
    """

    def __init__(self):
        self.transforms = []

    def add_transform(self, extensions, callback, priority=0):
        exts = tuple(e.lstrip('.').lower() for e in parse_list(extensions))
        self.transforms.append({'extensions': exts, 'callback': callback, 'priority': priority})
        self.transforms.sort(key=lambda t: t['priority'])

    def transforms_for(self, path):
        ext = os.path.splitext(path)[1].lstrip('.').lower()
        return [t['callback'] for t in self.transforms if ext in t['extensions']]

    async def transform(self, page, text):
        callbacks = self.transforms_for(page.output_path)
        if not callbacks or not text.strip():
            return text
        tree = parse_html(text)
        for callback in callbacks:
            tree = await callback(page, tree)
        return serialize_html(tree, text)


class Site:
    def __init__(self, input_dir, output_dir):
        input_dir = os.path.abspath(input_dir)
        output_dir = os.path.abspath(output_dir)
        if input_dir == output_dir or input_dir.startswith(output_dir + os.sep):
            raise ConfigurationError(f'Output directory {output_dir} must not contain the input directory')
        self.directories = SiteDirectories(input=input_dir, output=output_dir)
        self.html_transformer = HtmlTransformer()

    def _walk(self):
        for root, dirs, files in os.walk(self.directories.input):
            # never descend into the output directory when it lives inside the input
            dirs[:] = sorted(d for d in dirs if os.path.join(root, d) != self.directories.output)
            for name in sorted(files):
                yield os.path.join(root, name)

    def pages(self):
        return [p for p in self._walk() if p.lower().endswith(PAGE_EXTS)]

    def assets(self):
        out = []
        for p in self._walk():
            ext = os.path.splitext(p)[1].lower()
            if p.lower().endswith(PAGE_EXTS) or ext in RASTER_EXTS:
                continue
            out.append(p)
        return out

    def page_context(self, input_path):
        """Pretty URLs: 'blog/index.html' -> /blog/, 'about.html' -> about/index.html at /about/."""
        input_path = os.path.abspath(input_path)
        rel = os.path.relpath(input_path, self.directories.input)
        rel_url = rel.replace(os.sep, '/')
        name = posixpath.basename(rel_url)
        if name in INDEX_NAMES:
            route = posixpath.dirname(rel_url)
            out_rel = rel_url
        else:
            route = posixpath.join(posixpath.dirname(rel_url), posixpath.splitext(name)[0])
            out_rel = posixpath.join(route, 'index' + posixpath.splitext(name)[1])
        url = '/' + route + '/' if route else '/'
        output_path = os.path.join(self.directories.output, *out_rel.split('/'))
        return PageContext(input_path=input_path, output_path=output_path, url=url)

    def find_page(self, route):
        """Map a request path ('', 'about/', 'blog/post/index.html') back to its source page."""
        route = route.strip('/')
        if route.lower().endswith(PAGE_EXTS):
            candidates = [route]
        else:
            candidates = [posixpath.join(route, n) for n in INDEX_NAMES]
            if route:
                candidates += [route + ext for ext in PAGE_EXTS]
        for cand in candidates:
            full = safe_join(self.directories.input, cand)
            if full is not None and os.path.isfile(full):
                return os.path.abspath(full)
        return None

    async def render_page(self, input_path):
        page = self.page_context(input_path)
        with open(page.input_path, 'r', encoding='utf-8') as fh:
            text = fh.read()
        return page, await self.html_transformer.transform(page, text)

    async def build_page(self, input_path):
        try:
            page, text = await self.render_page(input_path)
            os.makedirs(os.path.dirname(page.output_path), exist_ok=True)
            with open(page.output_path, 'w', encoding='utf-8') as fh:
                fh.write(text)
        except Exception as e:
            raise PageBuildError(input_path, e) from e
        log.info('wrote %s', page.output_path)
        return page.output_path

    def copy_assets(self):
        copied = []
        for src in self.assets():
            dst = os.path.join(self.directories.output, os.path.relpath(src, self.directories.input))
            os.makedirs(os.path.dirname(dst), exist_ok=True)
            shutil.copy2(src, dst)
            copied.append(dst)
        log.debug('copied %d asset(s)', len(copied))
        return copied

    async def build(self):
        """Wipe the output directory, then write every page and copy the remaining assets."""
        if os.path.exists(self.directories.output):
            shutil.rmtree(self.directories.output)
        os.makedirs(self.directories.output)

        self.copy_assets()
        written = []
        for input_path in self.pages():
            written.append(await self.build_page(input_path))
        log.info('built %d page(s) into %s', len(written), self.directories.output)
        return written


def build_site(input_dir, output_dir, **options):
    """Build input_dir into output_dir with the image transform installed."""
    from .plugin import image_transform_plugin

    site = Site(input_dir, output_dir)
    image_transform_plugin(site, **options)
    return asyncio.run(site.build())
