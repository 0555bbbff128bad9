"""staticweb static site compiler.

This package mirrors a source content tree into an output tree. Each source
directory becomes one page, assembled from a shared layout skeleton, cascading
per-directory configuration and named content blocks written in HTML or
Markdown. A live mode watches the source tree and recompiles only the
directories that change.

Public entry points:
- compile_site: Compile a source tree once.
- start_live: Compile, then keep recompiling on filesystem changes.
"""

__all__ = [
    "CompileError",
    "CompileOptions",
    "InvalidSourceRoot",
    "LiveWatcher",
    "__version__",
    "compile_site",
    "start_live",
]
__version__ = "0.1.0"

from .build import CompileOptions, compile_site  # noqa: E402
from .errors import CompileError, InvalidSourceRoot  # noqa: E402
from .live import LiveWatcher, start_live  # noqa: E402
