import os

from picture_rewriter.paths import (
    is_full_url,
    normalize_image_source,
    normalize_image_srcset,
    split_srcset,
)

PAGE = '/site/pages/index.html'
ROOT = '/site'


def test_is_full_url():
    assert is_full_url('https://example.com/a.jpg')
    assert is_full_url('data:image/png;base64,AAAA')
    assert not is_full_url('photo.jpg')
    assert not is_full_url('/images/photo.jpg')
    assert not is_full_url('../photo.jpg')
    assert not is_full_url('https://')
    assert not is_full_url('')
    # urlparse raises on a broken IPv6 host; that just means "local"
    assert not is_full_url('http://[::1')


def test_page_relative_resolves_next_to_source_file():
    for url in ('photo.jpg', 'img/photo.jpg', '../shared/photo.jpg', './photo.jpg'):
        expected = os.path.abspath(os.path.join(os.path.dirname(PAGE), url))
        assert normalize_image_source(PAGE, ROOT, url) == expected
    assert normalize_image_source(PAGE, ROOT, '../shared/photo.jpg') == '/site/shared/photo.jpg'


def test_absolute_resolves_against_content_root():
    assert normalize_image_source(PAGE, ROOT, '/images/x.jpg') == '/site/images/x.jpg'
    assert normalize_image_source(PAGE, ROOT, '/images/../logo.png') == '/site/logo.png'


def test_external_urls_pass_through_unchanged():
    url = 'https://example.com/a.jpg'
    once = normalize_image_source(PAGE, ROOT, url)
    assert once == url
    assert normalize_image_source(PAGE, ROOT, once) == url


def test_relative_input_path_still_gives_absolute_result():
    out = normalize_image_source('content/blog/post.html', 'content', 'a.jpg')
    assert os.path.isabs(out)
    assert out == os.path.abspath('content/blog/a.jpg')


def test_srcset_keeps_order_and_descriptors():
    out = normalize_image_srcset(PAGE, ROOT, 'a.jpg 1x, b.jpg 2x')
    assert out == '/site/pages/a.jpg 1x, /site/pages/b.jpg 2x'


def test_srcset_mixed_sources_and_missing_descriptor():
    out = normalize_image_srcset(PAGE, ROOT, 'https://cdn.test/a.jpg 480w, /img/b.jpg 800w, c.jpg')
    assert out == 'https://cdn.test/a.jpg 480w, /site/img/b.jpg 800w, /site/pages/c.jpg'


def test_split_srcset_only_splits_on_comma_space():
    # documented limitation: no re-trimming of unusual spacing
    candidates = split_srcset('a.jpg 1x,b.jpg 2x')
    assert len(candidates) == 1
    assert candidates[0].url == 'a.jpg'
    assert candidates[0].descriptor == '1x,b.jpg 2x'
