"""
Error taxonomy for COW Movement Analytics.

Only payload-shape and transport failures are fatal to an ingestion run.
Row-level problems are counted in ``IngestionDiagnostics`` instead of raised.
"""


class CowAnalyticsError(Exception):
    """Base class for all errors raised by this package"""


class PayloadShapeError(CowAnalyticsError):
    """The fetched payload is not tabular text (e.g. an HTML error page)"""


class SourceFetchError(CowAnalyticsError):
    """The snapshot source could not be read"""


class SchemaDefinitionError(CowAnalyticsError):
    """A column schema descriptor is internally inconsistent"""
