"""melte: single-file component compiler with composed source maps."""

__version__ = "1.4.10"

__all__ = ["__version__"]
