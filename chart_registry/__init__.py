"""
Chart registry: metadata and values management for versioned chart archives.

This package is organized as:
* ``domain``   - models, errors and the resolution/mutation core.
* ``services`` - the archive codec, values conversion and registry operations.
* ``storage``  - the storage abstraction and its file-system backend.
* ``api``      - FastAPI endpoints.
"""

__version__ = "0.1.0"
