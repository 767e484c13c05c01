"""
Back-office Kernel.

Shared primitives for every other layer:
- Structured logging (logging_config)
- Typed exception hierarchy (exceptions)
- Money helpers, injectable clock and workflow declarations (domain)

The kernel imports nothing from engines, modules, services or config.
"""

__version__ = "0.1.0"
