import pytest

from picture_rewriter.options import PageContext, SiteDirectories
from picture_rewriter.placement import (
    PLACEMENT_RULES,
    Placement,
    PlacementRequest,
    PlacementRule,
    match_placement_rule,
    resolve_placement,
)

DIRS = SiteDirectories(input='/src', output='/dist')
POST = PageContext(input_path='/src/blog/post/index.html', output_path='/dist/blog/post/index.html', url='/blog/post/')
ABOUT = PageContext(input_path='/src/about.html', output_path='/dist/about/index.html', url='/about/')


def _req(original_src, directive=None, page=POST, url_path=None):
    return PlacementRequest(directive=directive, original_src=original_src, page=page, directories=DIRS, url_path=url_path)


def test_rule_order():
    assert [r.name for r in PLACEMENT_RULES] == ['directive', 'global-url-path', 'shared', 'colocated']


def test_absolute_directive():
    p = resolve_placement(_req('photo.jpg', directive='/media/'))
    assert p == Placement(output_dir='/dist/media/', url_path='/media/')


def test_relative_directive_is_under_page_route():
    p = resolve_placement(_req('photo.jpg', directive='images'))
    assert p == Placement(output_dir='/dist/blog/post/images', url_path='/blog/post/images')


def test_directive_beats_global_url_path():
    req = _req('/shared/logo.png', directive='/media/', url_path='/assets/')
    assert match_placement_rule(req).name == 'directive'
    assert resolve_placement(req).url_path == '/media/'


def test_global_url_path_defers_to_options():
    req = _req('/shared/logo.png', url_path='/assets/')
    assert match_placement_rule(req).name == 'global-url-path'
    assert resolve_placement(req) is None


def test_root_relative_sources_share_one_bucket():
    a = resolve_placement(_req('/shared/logo.png', page=POST))
    b = resolve_placement(_req('/shared/logo.png', page=ABOUT))
    assert a == b == Placement(output_dir='/dist/img', url_path='/img/')


def test_page_relative_sources_colocate_with_page():
    p = resolve_placement(_req('photo.jpg'))
    assert p == Placement(output_dir='/dist/blog/post', url_path='/blog/post/')


def test_custom_rules_are_used_in_order():
    rules = [
        PlacementRule('never', lambda req: False, lambda req: Placement('/x', '/x/')),
        PlacementRule('cdn', lambda req: req.original_src.endswith('.png'), lambda req: Placement('/dist/cdn', '/cdn/')),
    ]
    assert resolve_placement(_req('logo.png'), rules) == Placement('/dist/cdn', '/cdn/')
    with pytest.raises(LookupError):
        match_placement_rule(_req('photo.jpg'), rules)


def test_relative_directive_is_normalized():
    p = resolve_placement(_req('photo.jpg', directive='../shared'))
    assert p == Placement(output_dir='/dist/blog/shared', url_path='/blog/shared')
    p = resolve_placement(_req('photo.jpg', directive='../shared/'))
    assert p == Placement(output_dir='/dist/blog/shared', url_path='/blog/shared/')
