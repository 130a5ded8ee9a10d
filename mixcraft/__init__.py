"""Mix Craft: commission custom audio mixes from song clips and transition notes."""

__version__ = "1.0.0"
