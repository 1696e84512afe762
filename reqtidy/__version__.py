"""Version of the reqtidy distribution.

``pyproject.toml`` reads ``__version__`` from here at build time, so this
module must stay importable without any third-party packages.
"""

__version__ = "0.1.0"

#: Banner shown by ``reqtidy --version`` and in debug logs.
VERSION_STRING = f"reqtidy {__version__}"
