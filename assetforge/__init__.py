"""Assetforge: content-addressed static asset pipeline.

Discovers a web project's asset directories, runs external toolchains
(style compiler, minifiers, image optimisers) over them, and packs the
results into a fingerprinted bundle plus a manifest mapping logical asset
names to their fingerprinted names.
"""

__version__ = "0.1.0"
__description__ = "Content-addressed static asset pipeline"

from assetforge.core.builder import AssetBuilder, BuildResult
from assetforge.core.packer import Packer

__all__ = ["AssetBuilder", "BuildResult", "Packer", "__version__"]
