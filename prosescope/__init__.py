"""prosescope: markup normalization and scope tagging for prose linting."""

__version__ = "0.1.0"
