"""Stenciler - stencil render-and-watch engine.

Stenciler submits stencil source files to a rendering service and writes the
rendered output next to a fingerprint of the source it came from. It can run
continuously, re-rendering whenever the watched stencils change.

Core guarantees:
- Idempotent: unchanged stencils are never re-rendered or rewritten
- Isolated failures: one broken stencil never stops its siblings
- Operator control: a `.pause` file in the watched folder suspends rendering
"""

__version__ = "0.1.0"
__author__ = "Stenciler Contributors"
