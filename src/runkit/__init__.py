"""runkit: install and dispatch compose kernels.

Import from submodules:
- version: __version__
- context: RunkitContext, create_context
- operations: resolve, install, auto_update, dispatch, projection
"""

from runkit.version import __version__ as __version__
