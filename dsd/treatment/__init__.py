"""Per-tooth treatment protocol helpers."""

from dsd.treatment.protocol_sync import (
    find_contralateral_protocol,
    sync_group_protocols,
    treatment_family,
)

__all__ = ["find_contralateral_protocol", "sync_group_protocols", "treatment_family"]
