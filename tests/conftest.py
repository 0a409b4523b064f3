from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd
import pytest

from nanoasv.analysis.container import RANKS, AmpliconData
from nanoasv.metadata import SAMPLE_ID_COL

SEQ_A = "ACGT" * 10
SEQ_B = "TTGCA" * 8
SEQ_CHL = "GGGCCC" * 7
SEQ_EUK = "ATATGC" * 7
SEQ_NA = "CAGT" * 11
SEQ_CHIM = "ACGT" * 5 + "TTGCA" * 4

TAXONOMY = {
    SEQ_A: ["Bacteria", "Firmicutes", "Bacilli", "Lactobacillales", "Lactobacillaceae", "Lactobacillus", None],
    SEQ_B: ["Archaea", "Euryarchaeota", "Methanobacteria", "Methanobacteriales", None, None, None],
    SEQ_CHL: ["Bacteria", "Cyanobacteria", "Cyanobacteriia", "Chloroplast", None, None, None],
    SEQ_EUK: ["Eukaryota", None, None, None, None, None, None],
    SEQ_NA: [None] * 7,
    SEQ_CHIM: ["Bacteria", None, None, None, None, None, None],
}


class FakeBackend:
    """Stands in for the DADA2 bridge: canned per-sample calls, records every call."""

    def __init__(
        self,
        calls: Dict[str, Dict[str, int]],
        *,
        reads_in: Optional[Dict[str, int]] = None,
        reads_out: Optional[Dict[str, int]] = None,
        chimeras: Iterable[str] = (SEQ_CHIM,),
        taxonomy: Optional[Dict[str, List[Optional[str]]]] = None,
    ):
        self.calls = calls
        self.reads_in = reads_in or {}
        self.reads_out = reads_out or {}
        self.chimeras = set(chimeras)
        self.taxonomy = taxonomy or TAXONOMY
        self.log: List[str] = []

    @staticmethod
    def _sid(path) -> str:
        return Path(path).name.split(".", 1)[0]

    def filter_and_trim(self, inputs, outputs, **kwargs):
        self.log.append("filter_and_trim")
        rows = []
        for src, dest in zip(inputs, outputs):
            sid = self._sid(src)
            total = sum(self.calls.get(sid, {}).values())
            n_in = self.reads_in.get(sid, total + 100)
            n_out = self.reads_out.get(sid, total)
            if n_out:
                Path(dest).write_bytes(b"")
            rows.append({"reads_in": n_in, "reads_out": n_out})
        return pd.DataFrame(rows, index=[str(p) for p in inputs])

    def learn_errors(self, files, **kwargs):
        self.log.append("learn_errors")
        return pd.DataFrame(
            [[0.9, 0.99], [0.01, 0.001]], index=["A2A", "A2C"], columns=["0", "40"]
        )

    def dada(self, fastq, err, **kwargs):
        self.log.append("dada")
        return dict(self.calls[self._sid(fastq)])

    def remove_bimera_denovo(self, seqtab, **kwargs):
        self.log.append("remove_bimera_denovo")
        return [s for s in seqtab.columns if s not in self.chimeras]

    def assign_taxonomy(self, seqs, ref_fasta, **kwargs):
        self.log.append("assign_taxonomy")
        rows = [self.taxonomy.get(s, [None] * len(RANKS)) for s in seqs]
        return pd.DataFrame(rows, index=list(seqs), columns=list(RANKS))


def make_data(counts, taxonomy=None, metadata=None, sequences=None) -> AmpliconData:
    """Container from a features x samples dict-of-dicts ({sample: {feature: n}})."""
    df = pd.DataFrame(counts).fillna(0).astype("int64")
    df.index.name = "feature_id"
    df.columns.name = SAMPLE_ID_COL
    if taxonomy is None:
        taxonomy = {f: ["Bacteria", "Firmicutes", None, None, None, None, None] for f in df.index}
    tax = pd.DataFrame.from_dict(taxonomy, orient="index", columns=list(RANKS)).loc[df.index]
    if metadata is None:
        metadata = pd.DataFrame({"group": ["g"] * df.shape[1]}, index=df.columns)
    metadata = metadata.loc[df.columns]
    metadata.index.name = SAMPLE_ID_COL
    seqs = pd.Series(sequences, dtype=object).loc[df.index] if sequences else pd.Series(dtype=object)
    return AmpliconData(counts=df, taxonomy=tax, metadata=metadata, sequences=seqs)


def write_fastqs(directory: Path, names: Iterable[str]) -> List[Path]:
    directory.mkdir(parents=True, exist_ok=True)
    out = []
    for name in names:
        p = directory / name
        p.write_bytes(b"")
        out.append(p)
    return out


@pytest.fixture
def fake_backend_cls():
    return FakeBackend


@pytest.fixture
def reference_db(tmp_path: Path) -> Path:
    ref = tmp_path / "silva_train_set.fa.gz"
    ref.write_bytes(b"")
    return ref
