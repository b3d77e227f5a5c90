"""
Creative Copycat - branded variations of competitor ad creatives.

Selects which regions of a source creative may change, builds an edit mask,
drafts a modification instruction with a vision model, renders the variation
with a generative-image API and forces it to the requested aspect ratio.
"""

__version__ = "0.1.0"
__author__ = "Creative Copycat Team"
