import logging
import os
import socket

import click

from picture_rewriter.app import create_app
from picture_rewriter.errors import PictureRewriterError
from picture_rewriter.options import URL_PATH_ENV
from picture_rewriter.site import build_site


@click.command()
@click.option('--input', 'input_dir', required=True, help='Content directory holding the html pages and source images')
@click.option('--output', 'output_dir', default='_site', help='Directory generated images (and built pages) are written to')
@click.option('--url-path', 'url_path', default=None, help=f'Write every generated image under this URL path (overrides {URL_PATH_ENV})')
@click.option('--widths', default=None, help='Comma-separated output widths, e.g. "320,640,auto"')
@click.option('--formats', default=None, help='Comma-separated output formats, e.g. "webp,jpeg"')
@click.option('--build-only', is_flag=True, help='Build the whole site into --output and exit instead of serving')
@click.option('--host', default='127.0.0.1')
@click.option('--port', default=5001)
@click.option('--verbose', '-v', is_flag=True, help='Debug logging')
def serve(input_dir, output_dir, url_path, widths, formats, build_only, host, port, verbose):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    input_dir = os.path.abspath(input_dir)
    if not os.path.isdir(input_dir):
        raise click.ClickException(f'Input directory not found: {input_dir}')

    options = {}
    if url_path:
        options['url_path'] = url_path
    if widths:
        options['widths'] = widths
    if formats:
        options['formats'] = formats

    if build_only:
        try:
            written = build_site(input_dir, output_dir, **options)
        except PictureRewriterError as e:
            raise click.ClickException(str(e))
        click.echo(f'Wrote {len(written)} page(s) to {os.path.abspath(output_dir)}')
        return

    def _port_available(p):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind((host, p))
                return True
            except OSError:
                return False

    chosen = None
    # never try to bind to port 5000; skip it explicitly
    for p in range(port, port + 50):
        if p == 5000:
            continue
        if _port_available(p):
            chosen = p
            break

    if chosen is None:
        raise click.ClickException(f'No free port found in range {port}-{port+49}')

    if chosen != port:
        click.echo(f'Port {port} in use; starting on {chosen} instead')

    try:
        app = create_app(input_dir, output_dir, **options)
    except PictureRewriterError as e:
        raise click.ClickException(str(e))
    click.echo(f'Previewing {input_dir} at http://{host}:{chosen} (images written to {os.path.abspath(output_dir)})')
    app.run(host=host, port=chosen)


if __name__ == '__main__':
    serve()
