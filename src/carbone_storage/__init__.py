"""carbone-storage - template and render artifact store.

This package provides:
- A local filesystem cache in front of Azure Blob Storage
- The storage hooks a render service calls around template upload and rendering
- A command line tool for inspecting and moving artifacts by hand
"""

__version__ = "0.1.0"
