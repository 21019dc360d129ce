"""Routes package for orgtree."""

# Authentication is not handled here. The API is expected to sit behind a
# gateway that authenticates callers and passes the viewer id explicitly.

from .health import health_bp
from .hierarchy import hierarchy_bp

__all__ = ["health_bp", "hierarchy_bp"]
