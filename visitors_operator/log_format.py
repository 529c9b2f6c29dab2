"""
Custom logging formats that carry the identifiers of the resource being
reconciled
"""

# First Party
from alog import AlogJsonFormatter


class VisitorsJsonFormatter(AlogJsonFormatter):
    """Extends AlogJsonFormatter with the reconciliation id and the identity of
    the resource a log line is about. Both are picked up from the record's
    extra fields when present.
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "thread",
        "threadName",
        "kind",
        "apiVersion",
        "resourceName",
        "resourceNamespace",
        "reconciliationId",
    ]

    def format(self, record):
        if resource := getattr(record, "resource", None):
            record.kind = resource.get("kind")
            record.apiVersion = resource.get("apiVersion")
            metadata = resource.get("metadata", {})
            record.resourceName = metadata.get("name")
            record.resourceNamespace = metadata.get("namespace")
        return super().format(record)
