"""Data source library: paginated order reads for the export worker.

Provides the :class:`DataSource` protocol, the field resolution and consent
decoding strategies used by custom exports, and a SQL reference
implementation over the ``orders`` tables.
"""

from order_exporter.lib.datasource.base import DataSource, Row, TemplateLike, parse_filter_date
from order_exporter.lib.datasource.consent import ConsentDecoder, decode_json_blob, parse_bool
from order_exporter.lib.datasource.fields import FieldResolver, normalize_label, split_virtual
from order_exporter.lib.datasource.sql_source import MARKETING_STATUSES, REPORTING_STATUSES, SqlOrderSource

__all__ = [
    "MARKETING_STATUSES",
    "REPORTING_STATUSES",
    "ConsentDecoder",
    "DataSource",
    "FieldResolver",
    "Row",
    "SqlOrderSource",
    "TemplateLike",
    "decode_json_blob",
    "normalize_label",
    "parse_bool",
    "parse_filter_date",
    "split_virtual",
]
