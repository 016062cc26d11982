"""Node-level directive attributes page authors can put on <img>.

    <img src="a.jpg" data-img-ignore>             left alone (directive stripped)
    <img src="a.jpg" data-img-output="/media/">   override output directory
    <img src="a.jpg" data-img-widths="320,auto">  per-image widths
    <img src="a.jpg" data-img-formats="avif,jpeg"> per-image formats
"""

ATTR_PREFIX = 'data-img-'
IGNORE = ATTR_PREFIX + 'ignore'
OUTPUT = ATTR_PREFIX + 'output'
WIDTHS = ATTR_PREFIX + 'widths'
FORMATS = ATTR_PREFIX + 'formats'

DIRECTIVES = (IGNORE, OUTPUT, WIDTHS, FORMATS)


def is_ignored(node):
    return IGNORE in node.attrib


def get_output_directory(attrs):
    return attrs.get(OUTPUT) or None


def strip_directives(attrs):
    """Return a copy of attrs without any directive attribute."""
    return {k: v for k, v in attrs.items() if k not in DIRECTIVES}


def clean_tag(node):
    for name in DIRECTIVES:
        if name in node.attrib:
            del node.attrib[name]
    return node
