# src/nanoasv/metadata/read.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pandas as pd

from nanoasv.metadata import SAMPLE_ID_ALIASES, SAMPLE_ID_COL
from nanoasv.metadata.validate import MetadataError


def _unquote(s: str) -> str:
    """
    Strip BOM, surrounding quotes, and outer whitespace from a single cell.
    """
    s = s.replace("\ufeff", "")
    s = s.strip()
    if len(s) >= 2 and ((s[0] == s[-1] == '"') or (s[0] == s[-1] == "'")):
        s = s[1:-1].strip()
    return s


def _find_id_column(header: List[str], id_column: Optional[str]) -> str:
    if id_column:
        if id_column not in header:
            raise MetadataError(f"SampleID column '{id_column}' not found in metadata header")
        return id_column
    for c in header:
        if c.lower() in SAMPLE_ID_ALIASES:
            return c
    # QIIME/phyloseq convention: the first column holds the IDs
    return header[0]


def load_metadata(path: Path, id_column: Optional[str] = None) -> pd.DataFrame:
    """
    Load a tab-separated sample metadata table.

    Returns a DataFrame indexed by SampleID (index name 'sample_id', str values).
    All other columns are kept as read by pandas (numbers are parsed).
    Skips an optional '#q2:types' second row if present.
    """
    df = pd.read_csv(path, sep="\t", dtype=str, keep_default_na=False, comment=None)
    if df.empty and not len(df.columns):
        raise MetadataError(f"Empty metadata file: {path}")
    df.columns = [_unquote(str(c)) for c in df.columns]
    df = df.apply(lambda col: col.map(_unquote))

    sid_col = _find_id_column(list(df.columns), id_column)
    if len(df) and df[sid_col].iloc[0].lower() == "#q2:types":
        df = df.iloc[1:]

    ids = df[sid_col].str.lstrip("#").str.strip()
    if (ids == "").any():
        raise MetadataError(f"Blank SampleID in {path}")
    dupes = sorted(ids[ids.duplicated()].unique())
    if dupes:
        raise MetadataError(f"Duplicate SampleIDs in {path}: {dupes[:5]}")

    out = df.drop(columns=[sid_col])
    out.index = pd.Index(ids.tolist(), name=SAMPLE_ID_COL)
    # restore numeric columns and NA markers after the string-typed read
    out = out.replace({"": None, "NA": None, "NaN": None, "nan": None})
    for col in out.columns:
        converted = pd.to_numeric(out[col], errors="coerce")
        if converted.notna().sum() == out[col].notna().sum():
            out[col] = converted
    return out
