"""Decide where generated images are written and which URL they are served from.

Rules are evaluated in order and the first one that applies wins:

1. directive        -- the node carries data-img-output
2. global-url-path  -- a url_path was configured for the whole build
3. shared           -- the original src was root-relative ('/images/a.jpg')
4. colocated        -- the original src was page-relative ('a.jpg')

Root-relative sources all land in one shared /img/ bucket so a logo used on
every page is generated once; page-relative sources travel with their page.
"""
import logging
import os
import posixpath
from dataclasses import dataclass

log = logging.getLogger(__name__)

SHARED_DIRNAME = 'img'
SHARED_URL_PATH = '/img/'


@dataclass(frozen=True)
class Placement:
    output_dir: str
    url_path: str


@dataclass(frozen=True)
class PlacementRequest:
    """Everything the rules look at for one node."""

    directive: str
    original_src: str
    page: object
    directories: object
    url_path: str = None


@dataclass(frozen=True)
class PlacementRule:
    name: str
    applies: object
    resolve: object


def _from_directive(req):
    output_root = req.directories.output
    directive = req.directive
    if posixpath.isabs(directive):
        return Placement(
            output_dir=os.path.join(output_root, directive.lstrip('/')),
            url_path=directive,
        )
    page_url = req.page.url or '/'
    url_path = posixpath.normpath(posixpath.join(page_url, directive))
    if directive.endswith('/') and not url_path.endswith('/'):
        url_path += '/'
    return Placement(
        output_dir=os.path.normpath(os.path.join(output_root, page_url.lstrip('/'), directive)),
        url_path=url_path,
    )


def _shared(req):
    return Placement(
        output_dir=os.path.join(req.directories.output, SHARED_DIRNAME),
        url_path=SHARED_URL_PATH,
    )


def _colocated(req):
    return Placement(
        output_dir=os.path.dirname(req.page.output_path),
        url_path=req.page.url,
    )


PLACEMENT_RULES = [
    PlacementRule('directive', lambda req: bool(req.directive), _from_directive),
    # the generator falls back to the global output_dir/url_path options
    PlacementRule('global-url-path', lambda req: bool(req.url_path), lambda req: None),
    PlacementRule('shared', lambda req: os.path.isabs(req.original_src), _shared),
    PlacementRule('colocated', lambda req: True, _colocated),
]


def match_placement_rule(req, rules=None):
    for rule in rules or PLACEMENT_RULES:
        if rule.applies(req):
            return rule
    raise LookupError(f'No placement rule matched {req.original_src!r}')


def resolve_placement(req, rules=None):
    """Return the Placement for a node, or None when the global options apply."""
    rule = match_placement_rule(req, rules)
    placement = rule.resolve(req)
    log.debug('placement for %s via %s: %s', req.original_src, rule.name, placement)
    return placement
