import os
from collections import namedtuple
from urllib.parse import urlparse

# schemes that are only meaningful with a host, e.g. 'https://' on its own is not a URL
SPECIAL_SCHEMES = ('http', 'https', 'ftp', 'ws', 'wss')

CANDIDATES_DELIMITER = ', '
DESCRIPTOR_DELIMITER = ' '

SrcsetCandidate = namedtuple('SrcsetCandidate', ['url', 'descriptor'])


def is_full_url(url):
    """Return True if url is a fully-qualified URL with a scheme (https:, data:, ...).

    Anything that fails to parse is treated as a local path.
    """
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if not parsed.scheme:
        return False
    if parsed.scheme in SPECIAL_SCHEMES and not parsed.netloc:
        return False
    return True


def normalize_image_source(input_path, content_dir, url):
    """Resolve an image reference to an absolute filesystem path.

    - full URLs are returned unchanged
    - relative paths are resolved next to the page's source file (input_path)
    - absolute paths are resolved against the content directory, not the
      filesystem root, so '/images/a.jpg' means '<content_dir>/images/a.jpg'
    """
    if is_full_url(url):
        return url

    if not os.path.isabs(url):
        base_dir = os.path.dirname(input_path)
        return os.path.abspath(os.path.join(base_dir, url))

    return os.path.abspath(os.path.join(content_dir, url.lstrip('/\\')))


def split_srcset(srcset):
    # candidates are not re-trimmed: 'a.jpg 1x,b.jpg 2x' stays a single candidate
    candidates = []
    for candidate in srcset.split(CANDIDATES_DELIMITER):
        url, sep, descriptor = candidate.partition(DESCRIPTOR_DELIMITER)
        candidates.append(SrcsetCandidate(url, descriptor if sep else None))
    return candidates


def join_srcset(candidates):
    parts = []
    for c in candidates:
        if c.descriptor is None:
            parts.append(c.url)
        else:
            parts.append(c.url + DESCRIPTOR_DELIMITER + c.descriptor)
    return CANDIDATES_DELIMITER.join(parts)


def normalize_image_srcset(input_path, content_dir, srcset):
    """Normalize the URL of every srcset candidate, keeping order and descriptors."""
    normalized = [
        SrcsetCandidate(normalize_image_source(input_path, content_dir, c.url), c.descriptor)
        for c in split_srcset(srcset)
    ]
    return join_srcset(normalized)
