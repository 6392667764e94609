"""
Version of the binding generator distribution.

The resolved-model version emitters embed in generated files lives in
`bindgen.common.__version__` and is bumped independently.
"""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"

__all__ = ["__version__"]
