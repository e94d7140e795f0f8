"""Build steps.

Default steps run in this order: configured static directories, configured
javascript bundles, then fonts, images, sass and templates for whichever of
those asset directories exist.
"""

from assetforge.steps.base import BaseStep, BuildContext
from assetforge.steps.fonts import FontsStep
from assetforge.steps.images import ImagesStep
from assetforge.steps.js import JsStep
from assetforge.steps.sass import SassStep
from assetforge.steps.static_dir import StaticDirStep
from assetforge.steps.templates import TemplatesStep

# Directory-driven steps, in execution order.
DIRECTORY_STEPS: tuple[type[BaseStep], ...] = (FontsStep, ImagesStep, SassStep, TemplatesStep)

__all__ = [
    "BaseStep",
    "BuildContext",
    "DIRECTORY_STEPS",
    "FontsStep",
    "ImagesStep",
    "JsStep",
    "SassStep",
    "StaticDirStep",
    "TemplatesStep",
]
