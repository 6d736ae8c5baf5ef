"""Template resolution and materialization.

Quick usage::

    from pocketnext.template import TemplateLocator, TreeMaterializer

    locator = TemplateLocator.default(settings)
    location = await locator.locate("default")
    TreeMaterializer().materialize(location.path, target_dir)
"""

from pocketnext.template.locator import (
    ArchiveStrategy,
    GitSparseStrategy,
    LocalStrategy,
    LocateStrategy,
    Provenance,
    TemplateLocation,
    TemplateLocator,
)
from pocketnext.template.materializer import TreeMaterializer
from pocketnext.template.registry import TEMPLATES, TemplateInfo

__all__ = [
    "ArchiveStrategy",
    "GitSparseStrategy",
    "LocalStrategy",
    "LocateStrategy",
    "Provenance",
    "TEMPLATES",
    "TemplateInfo",
    "TemplateLocation",
    "TemplateLocator",
    "TreeMaterializer",
]
