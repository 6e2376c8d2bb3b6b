"""Exceptions raised while converting images to SVG."""


class ConversionError(Exception):
    """Base class for every failure surfaced by a conversion request."""

    status_code = 500
    retriable = False


class NoImageProvided(ConversionError):
    status_code = 400

    def __init__(self, message='No image file provided'):
        super().__init__(message)


class InvalidOptions(ConversionError):
    status_code = 400


class MalformedContentArea(ConversionError):
    """The precomputed crop rectangle could not be parsed."""

    status_code = 400


class PayloadTooLarge(ConversionError):
    status_code = 413


class InvalidSvgError(ConversionError):
    """Canonicalized output is not an embeddable SVG document."""


class DownstreamProcessingError(ConversionError):
    """Image decoding, processing or tracing failed."""


class DecodeError(DownstreamProcessingError):
    pass


class TraceError(DownstreamProcessingError):
    pass


class ConversionTimeout(ConversionError):
    status_code = 503
    retriable = True


class BackendUnavailable(ConversionError):
    status_code = 503
    retriable = True
