import asyncio
import html as htmlmod
import os

from flask import Flask, Response, abort, send_from_directory
from werkzeug.utils import safe_join

from .errors import PictureRewriterError
from .plugin import image_transform_plugin
from .site import Site


def create_app(input_dir, output_dir, **options):
    """Preview server: pages are transformed on request, generated images served from output_dir."""
    app = Flask(__name__, static_folder=None)
    site = Site(input_dir, output_dir)
    image_transform_plugin(site, **options)
    app.config['SITE'] = site

    @app.route('/_pages')
    def index():
        items = []
        for p in site.pages():
            url = site.page_context(p).url
            items.append(f'<li><a href="{htmlmod.escape(url)}">{htmlmod.escape(url)}</a></li>')
        body = '<!doctype html>\n<html><head><meta charset="utf-8"><title>Pages</title></head><body>'
        body += '<h1>Pages</h1><ul>' + ''.join(items) + '</ul></body></html>'
        return Response(body, mimetype='text/html')

    @app.route('/', defaults={'href': ''})
    @app.route('/<path:href>')
    def page(href):
        # href is already percent-decoded by the router
        full = site.find_page(href)
        if full:
            try:
                _, text = asyncio.run(site.render_page(full))
            except PictureRewriterError as e:
                app.logger.error('failed to render %s: %s', full, e)
                abort(500)
            return Response(text, mimetype='text/html')

        # generated images and copied assets
        out_candidate = safe_join(site.directories.output, href)
        if out_candidate is not None and os.path.isfile(out_candidate):
            return send_from_directory(site.directories.output, href)

        # non-image assets straight from the content directory
        in_candidate = safe_join(site.directories.input, href)
        if in_candidate is not None and os.path.isfile(in_candidate) and os.path.abspath(in_candidate) in site.assets():
            return send_from_directory(site.directories.input, href)

        abort(404)

    return app
