# portaria/errors.py
"""
Typed failures raised by the search and tracking services.
Routers map them to HTTP status codes in portaria.main.
"""


class PortariaError(Exception):
    """Base class for every error this package raises on purpose."""

    status_code = 500


class PayloadValidationError(PortariaError):
    """A backend payload does not match the AccessRecord / TrackingToken schema."""

    status_code = 502


class BackendUnavailable(PortariaError):
    """Qdrant / Firestore unreachable, collection missing, or store not configured."""

    status_code = 503


class SearchError(PortariaError):
    """A vector search or scroll call failed."""

    status_code = 502


class EmbeddingError(PortariaError):
    """The embedding provider failed or is not configured."""

    status_code = 502


class ResolutionError(PortariaError):
    """Loading tracking steps for a token failed."""

    status_code = 502


class AmbiguousReference(PortariaError):
    """A token reference matched none of the known shapes (strict mode only)."""

    status_code = 400
