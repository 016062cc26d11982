"""Exceptions raised while rewriting image markup."""


class PictureRewriterError(Exception):
    """Base exception for picture_rewriter."""


class ConfigurationError(PictureRewriterError):
    """The host site cannot run the image transform."""


class MissingSourceError(PictureRewriterError):
    """An <img> was handed over for rewriting without a src attribute."""

    def __init__(self, input_path=None):
        self.input_path = input_path
        where = f' in {input_path}' if input_path else ''
        super().__init__(f'Missing `src` attribute on <img>{where}')


class ImageGenerationError(PictureRewriterError):
    """Reading, resizing or writing a source image failed."""

    def __init__(self, src, message, cause=None):
        self.src = src
        self.cause = cause
        super().__init__(f'Image generation failed for {src}: {message}')


class PageBuildError(PictureRewriterError):
    """A page could not be transformed or written during a site build."""

    def __init__(self, input_path, cause):
        self.input_path = input_path
        self.cause = cause
        super().__init__(f'Failed to build {input_path}: {cause}')
