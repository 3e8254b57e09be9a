"""
Contralateral protocol lookup and group protocol sync.

Both are optimizations over the evaluation records: a failure here is logged
and reported, never raised, because the underlying evaluations stay valid
without them.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from dsd.errors import RecordStoreError
from dsd.models.results import ContralateralProtocol, EvaluationProtocolRecord, ProtocolSyncReport
from dsd.rules.fdi import get_contralateral_tooth
from dsd.utils.protocols import EvaluationStoreProtocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProtocolFamily:
    """Which column marks a protocol as present, and which columns get copied."""

    key_field: str
    copied_fields: tuple[str, ...]


# Treatment families whose protocols are shared across a session.
# implante, coroa, endodontia, encaminhamento, gengivoplastia,
# recobrimento_radicular and unknown are never synced.
SYNCED_FAMILIES: dict[str, ProtocolFamily] = {
    "resina": ProtocolFamily(
        key_field="stratification_protocol",
        copied_fields=("stratification_protocol", "recommended_resin_id", "recommendation_text"),
    ),
    "porcelana": ProtocolFamily(
        key_field="cementation_protocol",
        copied_fields=("cementation_protocol",),
    ),
}


def treatment_family(treatment_type: Optional[str]) -> str:
    """'resina::classe_iv' -> 'resina'; None or empty -> 'unknown'."""
    if not treatment_type:
        return "unknown"
    family = treatment_type.split("::", 1)[0].strip().lower()
    return family or "unknown"


async def find_contralateral_protocol(
    store: EvaluationStoreProtocol,
    patient_id: str,
    tooth: str,
) -> Optional[ContralateralProtocol]:
    """
    Find a finalized protocol on the mirrored tooth of the same patient.

    Args:
        store: Evaluation record store
        patient_id: Patient whose history is searched
        tooth: Tooth being planned (FDI)

    Returns:
        The most recent matching protocol, or None
    """
    contralateral = get_contralateral_tooth(tooth)
    if contralateral is None:
        return None

    try:
        record = await store.find_latest_protocol(patient_id, contralateral)
    except RecordStoreError as e:
        logger.warning(f"Contralateral lookup for tooth {tooth} failed: {e}")
        return None

    if record is None:
        return None

    logger.info(f"Found protocol for contralateral tooth {contralateral} (evaluation {record.id})")
    return ContralateralProtocol(
        evaluation_id=record.id,
        tooth=contralateral,
        treatment_type=record.treatment_type,
        protocol=record.generic_protocol,
    )


async def _sync_group(
    store: EvaluationStoreProtocol,
    family: str,
    target_ids: list[str],
    fields: dict,
) -> bool:
    try:
        await store.update_evaluations(target_ids, fields)
    except RecordStoreError as e:
        logger.warning(f"Protocol sync for group '{family}' failed: {e}")
        return False
    logger.info(f"Synced '{family}' protocol onto {len(target_ids)} evaluation(s)")
    return True


async def sync_group_protocols(
    store: EvaluationStoreProtocol,
    session_id: str,
    evaluation_ids: list[str],
) -> ProtocolSyncReport:
    """
    Make evaluations of the same treatment family in a session share one protocol.

    Groups with fewer than two members, generic families and groups where no
    member has the protocol populated are left alone. Group updates run
    concurrently; a failed group does not affect the others.

    Args:
        store: Evaluation record store
        session_id: Session whose evaluations were generated together
        evaluation_ids: Evaluations to consider

    Returns:
        Counts of synced and failed groups
    """
    report = ProtocolSyncReport()
    if len(evaluation_ids) < 2:
        return report

    try:
        records = await store.fetch_session_evaluations(session_id, evaluation_ids)
    except RecordStoreError as e:
        logger.warning(f"Could not load session {session_id} for protocol sync: {e}")
        return report

    if len(records) < 2:
        return report

    groups: dict[str, list[EvaluationProtocolRecord]] = defaultdict(list)
    for record in records:
        groups[treatment_family(record.treatment_type)].append(record)

    jobs = []
    targets_per_job = []
    for family, members in groups.items():
        rule = SYNCED_FAMILIES.get(family)
        if rule is None or len(members) < 2:
            continue
        source = next((m for m in members if getattr(m, rule.key_field) is not None), None)
        if source is None:
            continue
        fields = source.model_dump(include=set(rule.copied_fields))
        target_ids = [m.id for m in members if m.id != source.id]
        jobs.append(_sync_group(store, family, target_ids, fields))
        targets_per_job.append(len(target_ids))

    if not jobs:
        return report

    results = await asyncio.gather(*jobs)
    for succeeded, target_count in zip(results, targets_per_job):
        if succeeded:
            report.groups_synced += 1
            report.evaluations_updated += target_count
        else:
            report.groups_failed += 1

    if report.groups_failed:
        logger.warning(
            f"Protocol sync for session {session_id}: {report.groups_failed} group(s) failed, "
            f"{report.groups_synced} synced"
        )
    return report
