"""Core catalog logic.

Submodules:
- identity: path ids
- metadata: tag extraction and duration probing
- filesystem: directory scanning
- library: two-pass catalog builder
- watch: debounced change notifications

Import the builder from ``media_catalog.core.library`` directly; this
package only re-exports the identity helpers to keep the models importable.
"""

from .identity import ID_LENGTH, compute_id, path_to_str

__all__ = [
    "ID_LENGTH",
    "compute_id",
    "path_to_str",
]
