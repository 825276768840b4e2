"""vibe-check: A manager for coding agent instruction files."""

__version__ = "0.1.0"
__author__ = "vibe-check Contributors"
__description__ = "A manager for coding agent instruction files"

from .bom import BillOfMaterials
from .engine import TEMPLATE_MARKER, is_customized, merge
from .manifest import load_manifest, parse
from .models import FileMapping, InsertionPoint, TemplateManifest
from .reconciler import InstallRequest, Reconciler
from .results import FileResult, Outcome, ReconcileReport

__all__ = [
    "TEMPLATE_MARKER",
    "BillOfMaterials",
    "FileMapping",
    "FileResult",
    "InsertionPoint",
    "InstallRequest",
    "Outcome",
    "Reconciler",
    "ReconcileReport",
    "TemplateManifest",
    "is_customized",
    "load_manifest",
    "merge",
    "parse",
]
