from .rewriter import MANIFEST_MEDIA_TYPE, ManifestRewriter
from .segments import (
    Directive,
    ManifestLine,
    Passthrough,
    SegmentReference,
    classify,
    manifest_base_dir,
)

__all__ = [
    "Directive",
    "MANIFEST_MEDIA_TYPE",
    "ManifestLine",
    "ManifestRewriter",
    "Passthrough",
    "SegmentReference",
    "classify",
    "manifest_base_dir",
]
