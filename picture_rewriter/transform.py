"""Rewrite every <img> of a page so it points at generated, optimized images."""
import asyncio
import copy
import logging
import re

from lxml import html

from .attrs import clean_tag, get_output_directory, is_ignored
from .errors import MissingSourceError
from .images import generate_picture
from .paths import normalize_image_source, normalize_image_srcset
from .placement import PlacementRequest, resolve_placement

log = logging.getLogger(__name__)

FULL_DOCUMENT_RE = re.compile(r'^\s*(<!doctype|<html)', re.IGNORECASE)
DOCTYPE_RE = re.compile(r'^\s*(<!doctype[^>]*>)', re.IGNORECASE)
FRAGMENT_WRAPPER = 'div'


async def rewrite_node(page, node, options, generator=None):
    """Generate images for one <img> and return the element that should replace it.

    The node itself is not modified; the generator receives a copy of its
    attributes with src/srcset resolved to absolute paths.
    """
    generator = generator or generate_picture
    original_src = node.get('src')
    original_srcset = node.get('srcset')
    if not original_src:
        raise MissingSourceError(page.input_path)

    content_dir = options['directories'].input
    attrs = dict(node.attrib)
    attrs['src'] = normalize_image_source(page.input_path, content_dir, original_src)
    if original_srcset:
        attrs['srcset'] = normalize_image_srcset(page.input_path, content_dir, original_srcset)

    placement = resolve_placement(PlacementRequest(
        directive=get_output_directory(attrs),
        original_src=original_src,
        page=page,
        directories=options['directories'],
        url_path=options.get('url_path'),
    ))

    return await generator(attrs, placement, options)


def _replacement_target(node):
    # TODO: keep <source> siblings of an author-written <picture> instead of dropping them with the wrapper
    parent = node.getparent()
    if parent is not None and parent.tag == 'picture':
        return parent
    return node


def _apply(root, target, replacement):
    """Swap target for replacement; return the (possibly new) root."""
    replacement.tail = target.tail
    parent = target.getparent()
    if parent is None:
        # a bare <img> (or <picture>) handed in as the whole tree
        return replacement
    parent.replace(target, replacement)
    return root


async def _gather_all(coros):
    """Run every rewrite to completion, then raise the first failure, if any."""
    results = await asyncio.gather(*coros, return_exceptions=True)
    errors = [r for r in results if isinstance(r, BaseException)]
    for extra in errors[1:]:
        log.error('additional image rewrite failure: %s', extra)
    if errors:
        raise errors[0]
    return results


async def transform_tree(tree, page, options, generator=None):
    """Return a new tree with every <img> rewritten; ``tree`` itself is left untouched.

    Nodes carrying the ignore marker only lose their directive attributes.
    All other nodes are rewritten concurrently. Every rewrite is allowed to
    settle; then the first failure propagates and no tree is returned.
    """
    root = copy.deepcopy(tree)
    nodes = list(root.iter('img'))

    pending = {}
    for index, node in enumerate(nodes):
        if is_ignored(node):
            clean_tag(node)
        else:
            pending[index] = rewrite_node(page, node, options, generator)

    if not pending:
        return root

    log.debug('rewriting %d image(s) in %s', len(pending), page.input_path)
    results = await _gather_all(pending.values())
    replacements = dict(zip(pending.keys(), results))

    replaced = set()
    for index, replacement in replacements.items():
        target = _replacement_target(nodes[index])
        if id(target) in replaced:
            log.warning('skipping second <img> inside one <picture> in %s', page.input_path)
            continue
        replaced.add(id(target))
        root = _apply(root, target, replacement)
    return root


def parse_html(text):
    """Parse a full document or a fragment; fragments get a wrapper element."""
    if FULL_DOCUMENT_RE.match(text):
        return html.document_fromstring(text)
    return html.fragment_fromstring(text, create_parent=FRAGMENT_WRAPPER)


def serialize_html(root, original_text):
    if root.tag == 'html':
        m = DOCTYPE_RE.match(original_text)
        out = html.tostring(root, encoding='unicode')
        return (m.group(1) + '\n' + out) if m else out
    out = html.tostring(root, encoding='unicode')
    open_tag = f'<{FRAGMENT_WRAPPER}>'
    close_tag = f'</{FRAGMENT_WRAPPER}>'
    return out[len(open_tag):-len(close_tag)]


async def transform_html(text, page, options, generator=None):
    if not text.strip():
        return text
    root = parse_html(text)
    root = await transform_tree(root, page, options, generator)
    return serialize_html(root, text)
