"""
Bundle Aggregator
=================
Folds every semantic vector of a message into one master bundle vector.
"""

from typing import Dict, Optional

from .ternary_hdv import TernaryHDV


def build_master_bundle(id_to_vec: Dict[int, TernaryHDV]) -> Optional[TernaryHDV]:
    """
    Bundle all per-field hypervectors into a single master vector.

    The fold runs in ascending field-id order, seeded with the lowest id, so
    identical messages always yield identical bundles. Returns None if
    `id_to_vec` is empty.
    """
    if not id_to_vec:
        return None
    ordered = [id_to_vec[i] for i in sorted(id_to_vec)]
    master = ordered[0]
    for vec in ordered[1:]:
        master = master.bundle(vec)
    return master
