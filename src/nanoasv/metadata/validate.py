# src/nanoasv/metadata/validate.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from nanoasv.utils.logger import get_logger

LOG = get_logger("metadata")


class MetadataError(Exception):
    pass


def _preview(ids: List[str], n: int = 5) -> str:
    return f"{ids[:n]}{'...' if len(ids) > n else ''}"


def reconcile_samples(
    samples: Mapping[str, Path],
    metadata: pd.DataFrame,
    *,
    exclude: Iterable[str] = (),
) -> Tuple[Dict[str, Path], pd.DataFrame]:
    """
    Join imported samples with the metadata table on SampleID.

    - IDs in ``exclude`` are dropped from both sides (logged).
    - A sample with a FASTQ but no metadata row raises MetadataError.
    - Metadata rows without a FASTQ are logged and dropped.

    Returns (samples, metadata) restricted to the shared IDs, in sample order.
    """
    excluded = set(exclude)
    for sid in sorted(excluded):
        if sid in samples or sid in metadata.index:
            LOG.info("Excluding sample %s (declared exclusion list)", sid)
        else:
            LOG.warning("Excluded sample %s is not present in files or metadata", sid)

    kept = {sid: p for sid, p in samples.items() if sid not in excluded}
    missing = sorted(sid for sid in kept if sid not in metadata.index)
    if missing:
        raise MetadataError(f"IDs missing from metadata: {_preview(missing)}")

    orphans = sorted(sid for sid in metadata.index if sid not in kept and sid not in excluded)
    if orphans:
        LOG.warning("Metadata rows without FASTQ (ignored): %s", _preview(orphans))

    return kept, metadata.loc[list(kept)]


def validate_metadata_file(
    metadata_path: Path,
    *,
    against_sample_ids: Optional[Iterable[str]] = None,
    id_column: Optional[str] = None,
) -> List[str]:
    """
    Return a list of warnings. Raise MetadataError for hard failures.
    """
    from nanoasv.metadata.read import load_metadata

    md = load_metadata(metadata_path, id_column=id_column)
    warnings: List[str] = []
    if md.shape[1] == 0:
        warnings.append("Metadata has no columns besides SampleID; plots cannot be coloured.")
    constant = [c for c in md.columns if md[c].nunique(dropna=True) < 2]
    if constant:
        warnings.append(f"Columns without variation: {', '.join(map(str, constant))}")

    if against_sample_ids is not None:
        s_meta = set(md.index)
        s_ref = set(against_sample_ids)
        only_in_meta = sorted(s_meta - s_ref)
        only_in_ref = sorted(s_ref - s_meta)
        if only_in_ref:
            raise MetadataError(f"IDs missing from metadata: {_preview(only_in_ref)}")
        if only_in_meta:
            warnings.append(f"IDs only in metadata: {_preview(only_in_meta)}")
    return warnings
