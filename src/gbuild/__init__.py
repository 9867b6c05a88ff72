"""gbuild - incremental builder for Groovy modules in a multi-module build."""

__version__ = "0.1.0"
