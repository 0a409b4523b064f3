# src/nanoasv/analysis/export.py
from __future__ import annotations

import pickle
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from nanoasv.analysis.container import FEATURE_ID_COL, AmpliconData
from nanoasv.metadata import SAMPLE_ID_COL
from nanoasv.utils.logger import get_logger

LOG = get_logger("export")


def write_fasta(sequences: pd.Series, path: Path) -> int:
    records = (
        SeqRecord(Seq(str(seq)), id=str(fid), description="")
        for fid, seq in sequences.items()
    )
    with path.open("w", encoding="utf-8") as fh:
        return SeqIO.write(records, fh, "fasta")


def read_fasta(path: Path) -> pd.Series:
    """FASTA -> Series(id -> sequence); ';size=N' style annotations are stripped from IDs."""
    with path.open("r", encoding="utf-8") as fh:
        pairs = [(rec.id.split(";", 1)[0], str(rec.seq).upper()) for rec in SeqIO.parse(fh, "fasta")]
    return pd.Series(dict(pairs), dtype=object)


def export_container(
    data: AmpliconData,
    out_dir: Path,
    prefix: str,
    *,
    read_tracking: Optional[pd.DataFrame] = None,
) -> Dict[str, Path]:
    """
    Write the container and its flat-file views:
      - <prefix>.pkl                  (container, reload with load_container)
      - <prefix>_seqs.fasta           (representative sequences)
      - <prefix>_taxonomy.tsv         (rows = feature, columns = ranks)
      - <prefix>_metadata.tsv         (rows = sample)
      - <prefix>_abundance.tsv        (rows = feature, columns = samples)
      - <prefix>_read_tracking.tsv    (optional)
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    paths: Dict[str, Path] = {
        "container": out_dir / f"{prefix}.pkl",
        "sequences": out_dir / f"{prefix}_seqs.fasta",
        "taxonomy": out_dir / f"{prefix}_taxonomy.tsv",
        "metadata": out_dir / f"{prefix}_metadata.tsv",
        "abundance": out_dir / f"{prefix}_abundance.tsv",
    }

    with paths["container"].open("wb") as fh:
        pickle.dump(data, fh, protocol=pickle.HIGHEST_PROTOCOL)

    if len(data.sequences):
        n = write_fasta(data.sequences, paths["sequences"])
        LOG.info("Wrote %d sequences → %s", n, paths["sequences"])
    else:
        del paths["sequences"]
        LOG.warning("No representative sequences for %s; FASTA not written", prefix)

    data.taxonomy.to_csv(paths["taxonomy"], sep="\t", index_label=FEATURE_ID_COL, na_rep="")
    data.metadata.to_csv(paths["metadata"], sep="\t", index_label=SAMPLE_ID_COL, na_rep="")
    data.counts.to_csv(paths["abundance"], sep="\t", index_label=FEATURE_ID_COL)

    if read_tracking is not None:
        paths["read_tracking"] = out_dir / f"{prefix}_read_tracking.tsv"
        read_tracking.to_csv(paths["read_tracking"], sep="\t", index_label=SAMPLE_ID_COL)

    LOG.info(
        "Exported %s: %d features x %d samples → %s",
        prefix, data.shape[0], data.shape[1], out_dir,
    )
    return paths


def load_container(path: Path) -> AmpliconData:
    with path.open("rb") as fh:
        data = pickle.load(fh)
    if not isinstance(data, AmpliconData):
        raise TypeError(f"{path} does not hold an AmpliconData container")
    return data
