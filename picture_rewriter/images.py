"""Default image generator: resize a source image with Pillow and build <picture>/<img> markup.

The transform only needs an awaitable ``generator(attrs, placement, options)``
that returns an lxml element; this module is the one used unless another is
passed in. Remote images are never fetched, they keep their original markup.
"""
import asyncio
import hashlib
import logging
import os
import posixpath
import shutil
from dataclasses import dataclass

from lxml import html
from PIL import Image

from .attrs import FORMATS, WIDTHS, strip_directives
from .errors import ImageGenerationError, MissingSourceError
from .options import parse_list
from .paths import is_full_url

log = logging.getLogger(__name__)

FORMAT_ALIASES = {'jpg': 'jpeg', 'mpo': 'jpeg'}
PIL_FORMATS = {'jpeg': 'JPEG', 'png': 'PNG', 'webp': 'WEBP', 'gif': 'GIF', 'avif': 'AVIF'}
MIME_TYPES = {
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'webp': 'image/webp',
    'gif': 'image/gif',
    'avif': 'image/avif',
    'svg': 'image/svg+xml',
}
HASH_LENGTH = 10


@dataclass(frozen=True)
class Variant:
    format: str
    width: int
    height: int
    url: str
    path: str


def normalize_format(fmt):
    fmt = (fmt or '').lower()
    return FORMAT_ALIASES.get(fmt, fmt)


def resolve_widths(widths, original_width):
    """Turn ['auto', '320', ...] into sorted pixel widths, never upscaling."""
    out = set()
    for w in widths:
        if w in (None, 'auto'):
            out.add(original_width)
            continue
        try:
            value = int(w)
        except (TypeError, ValueError):
            raise ImageGenerationError('<widths>', f'invalid width {w!r}')
        if 0 < value <= original_width:
            out.add(value)
    return sorted(out) or [original_width]


def resolve_formats(formats, source_format):
    out = []
    for fmt in formats:
        fmt = source_format if fmt == 'auto' else normalize_format(fmt)
        if fmt not in PIL_FORMATS:
            raise ImageGenerationError('<formats>', f'unsupported output format {fmt!r}')
        if fmt not in out:
            out.append(fmt)
    return out


def needs_processing(src, dst):
    if not os.path.exists(dst):
        return True
    return os.path.getmtime(src) > os.path.getmtime(dst)


def source_hash(src, options):
    digest = hashlib.sha256()
    with open(src, 'rb') as fh:
        for chunk in iter(lambda: fh.read(65536), b''):
            digest.update(chunk)
    digest.update(repr(options.get('quality')).encode('utf-8'))
    return digest.hexdigest()[:HASH_LENGTH]


def _prepare_mode(im, fmt):
    if fmt == 'jpeg' and im.mode not in ('RGB', 'L'):
        return im.convert('RGB')
    if fmt in ('webp', 'avif') and im.mode not in ('RGB', 'RGBA'):
        return im.convert('RGBA' if 'A' in im.mode or 'transparency' in im.info else 'RGB')
    return im


def _write_variant(im, src, dst, width, height, fmt, quality):
    if not needs_processing(src, dst):
        log.debug('up to date: %s', dst)
        return
    os.makedirs(os.path.dirname(dst), exist_ok=True)
    if width == im.width:
        out = im.copy()
    else:
        out = im.resize((width, height), Image.Resampling.LANCZOS)
    out = _prepare_mode(out, fmt)
    save_kwargs = {}
    if fmt in ('jpeg', 'webp', 'avif'):
        save_kwargs['quality'] = quality
    out.save(dst, PIL_FORMATS[fmt], **save_kwargs)
    log.info('wrote %s (%sx%s)', dst, width, height)


def generate_variants(src, output_dir, url_path, widths, formats, options):
    """Write every width x format variant of src; return {format: [Variant, ...]} ordered by width."""
    try:
        digest = source_hash(src, options)
        with Image.open(src) as im:
            im.load()
            source_format = normalize_format(im.format) or 'png'
            pixel_widths = resolve_widths(widths, im.width)
            out_formats = resolve_formats(formats, source_format)
            variants = {}
            for fmt in out_formats:
                variants[fmt] = []
                for width in pixel_widths:
                    height = max(1, round(im.height * width / im.width))
                    name = f'{digest}-{width}.{fmt}'
                    dst = os.path.join(output_dir, name)
                    _write_variant(im, src, dst, width, height, fmt, int(options.get('quality') or 80))
                    variants[fmt].append(Variant(fmt, width, height, posixpath.join(url_path, name), dst))
    except OSError as e:
        raise ImageGenerationError(src, str(e), e) from e
    return variants


def copy_svg(src, output_dir, url_path, options):
    try:
        name = f'{source_hash(src, options)}.svg'
        dst = os.path.join(output_dir, name)
        if needs_processing(src, dst):
            os.makedirs(output_dir, exist_ok=True)
            shutil.copy2(src, dst)
    except OSError as e:
        raise ImageGenerationError(src, str(e), e) from e
    return posixpath.join(url_path, name)


def _srcset(variants):
    if len(variants) == 1:
        return variants[0].url
    return ', '.join(f'{v.url} {v.width}w' for v in variants)


def build_markup(variants, attrs, options):
    """Build <img>, or <picture> with one <source> per extra format, from generated variants."""
    formats = list(variants)
    fallback = variants[formats[-1]]
    largest = fallback[-1]
    several = len(fallback) > 1
    sizes = attrs.get('sizes') or (options.get('sizes') if several else None)

    img_attrs = {'src': largest.url}
    for k, v in attrs.items():
        if k not in ('src', 'srcset', 'sizes', 'width', 'height'):
            img_attrs[k] = v
    if several:
        img_attrs['srcset'] = _srcset(fallback)
    if sizes:
        img_attrs['sizes'] = sizes
    img_attrs['width'] = str(largest.width)
    img_attrs['height'] = str(largest.height)
    for key in ('loading', 'decoding'):
        if options.get(key) and key not in img_attrs:
            img_attrs[key] = options[key]
    img = html.Element('img', img_attrs)

    if len(formats) == 1:
        return img

    picture = html.Element('picture')
    for fmt in formats[:-1]:
        source_attrs = {'type': MIME_TYPES[fmt], 'srcset': _srcset(variants[fmt])}
        if sizes:
            source_attrs['sizes'] = sizes
        picture.append(html.Element('source', source_attrs))
    picture.append(img)
    return picture


def _target(placement, options):
    if placement is not None:
        return placement.output_dir, placement.url_path or '/'
    if not options.get('output_dir'):
        # only reachable when a custom rule list returns None without a global url_path
        raise ImageGenerationError('<options>', 'no placement and no global output_dir/url_path')
    return options['output_dir'], options.get('url_path') or '/'


def _generate(attrs, placement, options):
    src = attrs['src']
    passthrough = strip_directives(attrs)
    output_dir, url_path = _target(placement, options)

    if os.path.splitext(src)[1].lower() == '.svg':
        img_attrs = dict(passthrough)
        img_attrs['src'] = copy_svg(src, output_dir, url_path, options)
        img_attrs.pop('srcset', None)
        return html.Element('img', img_attrs)

    widths = parse_list(attrs.get(WIDTHS)) or options.get('widths') or ['auto']
    formats = [f.lower() for f in parse_list(attrs.get(FORMATS))] or options.get('formats') or ['auto']
    variants = generate_variants(src, output_dir, url_path, widths, formats, options)
    return build_markup(variants, passthrough, options)


async def generate_picture(attrs, placement, options):
    """Generate optimized images for one <img> and return its replacement element."""
    if not attrs.get('src'):
        raise MissingSourceError()
    if is_full_url(attrs['src']):
        log.debug('leaving remote image untouched: %s', attrs['src'])
        return html.Element('img', strip_directives(attrs))
    return await asyncio.to_thread(_generate, attrs, placement, options)
