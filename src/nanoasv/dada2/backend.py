# src/nanoasv/dada2/backend.py
"""
Thin bridge to the R package DADA2.

Every method converts its R result to plain Python / pandas before returning,
so stage results can be pickled by the stage cache and used without R.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from nanoasv.analysis.container import RANKS
from nanoasv.utils.logger import get_logger

LOG = get_logger("dada2")


def _multithread(threads: int):
    # DADA2 takes TRUE (all cores) or a core count
    return True if threads <= 0 else int(threads)


class Dada2Backend:
    def __init__(self) -> None:
        import rpy2.robjects as robjects
        from rpy2.robjects.packages import importr

        self.ro = robjects
        self.base = importr("base")
        self.dada2 = importr("dada2")
        LOG.debug("Loaded R package dada2 %s", self.version())

    def version(self) -> str:
        return str(self.ro.r('as.character(packageVersion("dada2"))')[0])

    # -- conversions -------------------------------------------------------

    def _is_null(self, x) -> bool:
        return isinstance(x, type(self.ro.NULL))

    def _str(self, values: Sequence[object]):
        return self.ro.StrVector([str(v) for v in values])

    def _matrix_to_frame(self, m, *, dtype=float) -> pd.DataFrame:
        nrow, ncol = (int(x) for x in self.base.dim(m))
        rownames = self.base.rownames(m)
        colnames = self.base.colnames(m)
        values = list(self.base.as_vector(m))
        if dtype is object:
            values = [None if v is self.ro.NA_Character else str(v) for v in values]
        arr = np.asarray(values, dtype=dtype).reshape((nrow, ncol), order="F")
        index = None if self._is_null(rownames) else [str(x) for x in rownames]
        columns = None if self._is_null(colnames) else [str(x) for x in colnames]
        return pd.DataFrame(arr, index=index, columns=columns)

    def _frame_to_matrix(self, df: pd.DataFrame, *, integer: bool = False):
        flat = df.to_numpy().ravel(order="F")
        vec = self.ro.IntVector([int(x) for x in flat]) if integer else self.ro.FloatVector([float(x) for x in flat])
        dimnames = self.ro.r.list(self._str(df.index), self._str(df.columns))
        return self.ro.r.matrix(vec, nrow=df.shape[0], ncol=df.shape[1], dimnames=dimnames)

    # -- stages -----------------------------------------------------------

    def filter_and_trim(
        self,
        inputs: Sequence[Path],
        outputs: Sequence[Path],
        *,
        trunc_len: int = 0,
        min_len: int = 0,
        max_len: int = 0,
        max_ee: Optional[float] = None,
        trunc_q: int = 2,
        max_n: int = 0,
        threads: int = 0,
    ) -> pd.DataFrame:
        res = self.dada2.filterAndTrim(
            self._str(inputs),
            self._str(outputs),
            truncLen=trunc_len,
            minLen=min_len,
            maxLen=max_len if max_len > 0 else float("inf"),
            maxEE=max_ee if max_ee is not None else float("inf"),
            truncQ=trunc_q,
            maxN=max_n,
            rm_phix=False,
            compress=True,
            multithread=_multithread(threads),
        )
        counts = self._matrix_to_frame(res, dtype=float).astype(int)
        counts.columns = ["reads_in", "reads_out"]
        counts.index = [str(p) for p in inputs]
        return counts

    def learn_errors(
        self,
        files: Sequence[Path],
        *,
        nbases: int = 100_000_000,
        randomize: bool = True,
        threads: int = 0,
    ) -> pd.DataFrame:
        err = self.dada2.learnErrors(
            self._str(files),
            nbases=float(nbases),
            randomize=randomize,
            multithread=_multithread(threads),
        )
        return self._matrix_to_frame(self.dada2.getErrors(err), dtype=float)

    def dada(
        self,
        fastq: Path,
        err: pd.DataFrame,
        *,
        band_size: int = 32,
        homopolymer_gap_penalty: int = -1,
        threads: int = 0,
    ) -> Dict[str, int]:
        dd = self.dada2.dada(
            str(fastq),
            err=self._frame_to_matrix(err),
            multithread=_multithread(threads),
            BAND_SIZE=band_size,
            HOMOPOLYMER_GAP_PENALTY=homopolymer_gap_penalty,
        )
        uniques = self.dada2.getUniques(dd)
        names = self.base.names(uniques)
        if self._is_null(names):
            return {}
        return {str(s): int(n) for s, n in zip(names, uniques)}

    def remove_bimera_denovo(
        self,
        seqtab: pd.DataFrame,
        *,
        method: str = "consensus",
        threads: int = 0,
    ) -> List[str]:
        nochim = self.dada2.removeBimeraDenovo(
            self._frame_to_matrix(seqtab, integer=True),
            method=method,
            multithread=_multithread(threads),
            verbose=True,
        )
        return [str(s) for s in self.base.colnames(nochim)]

    def assign_taxonomy(
        self,
        seqs: Sequence[str],
        ref_fasta: Path,
        *,
        species_fasta: Optional[Path] = None,
        min_boot: int = 50,
        threads: int = 0,
    ) -> pd.DataFrame:
        taxa = self.dada2.assignTaxonomy(
            self._str(seqs),
            str(ref_fasta),
            minBoot=min_boot,
            multithread=_multithread(threads),
        )
        if species_fasta is not None:
            taxa = self.dada2.addSpecies(taxa, str(species_fasta))
        df = self._matrix_to_frame(taxa, dtype=object)
        df.index = list(seqs)
        return df.reindex(columns=list(RANKS))
