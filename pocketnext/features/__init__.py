"""File-tree mutations driven by the user's feature selection."""

from pocketnext.features.applicator import AppliedFeatures, FeatureApplicator
from pocketnext.features.manifest import prune_setup_scripts, update_manifest_name
from pocketnext.features.templates import TemplateRenderer

__all__ = [
    "AppliedFeatures",
    "FeatureApplicator",
    "TemplateRenderer",
    "prune_setup_scripts",
    "update_manifest_name",
]
