"""Icon asset pipeline -- references, fetching, storage and transforms."""

from __future__ import annotations

from .errors import IconError, IconPipelineError
from .materializer import RemoteMaterializer
from .pipeline import (
    BatchItem,
    BatchItemResult,
    BatchSummary,
    ConversionOutcome,
    FetchOutcome,
    IconPipeline,
    ItemState,
    MaintenanceReport,
    TransformKind,
)
from .reference import (
    Empty,
    IconReference,
    LibraryComponent,
    Local,
    RemoteCatalog,
    format_reference,
    parse_reference,
    provenance,
)
from .resolver import OriginResolver
from .store import AssetStore

__all__ = [
    "AssetStore",
    "BatchItem",
    "BatchItemResult",
    "BatchSummary",
    "ConversionOutcome",
    "Empty",
    "FetchOutcome",
    "IconError",
    "IconPipeline",
    "IconPipelineError",
    "IconReference",
    "ItemState",
    "LibraryComponent",
    "Local",
    "MaintenanceReport",
    "OriginResolver",
    "RemoteCatalog",
    "RemoteMaterializer",
    "TransformKind",
    "format_reference",
    "parse_reference",
    "provenance",
]
