"""Locate the on-disk data of a torrent manifest by piece-hash verification."""

from .config import ConfigOverrides, LocatorConfig, ScanOptions, load_effective_config
from .errors import (
    ConsistencyError,
    LocateError,
    ManifestError,
    ScanError,
    TableFormatError,
)
from .index import FileIndex, FileTable, index, load
from .manifest import Manifest, ManifestFile, build_manifest, encode_manifest, load_manifest

__all__ = [
    "ConfigOverrides",
    "ConsistencyError",
    "FileIndex",
    "FileTable",
    "LocateError",
    "LocatorConfig",
    "Manifest",
    "ManifestError",
    "ManifestFile",
    "ScanError",
    "ScanOptions",
    "TableFormatError",
    "build_manifest",
    "encode_manifest",
    "index",
    "load",
    "load_effective_config",
    "load_manifest",
]
