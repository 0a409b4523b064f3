# src/nanoasv/primers/degen.py
from __future__ import annotations
from typing import Dict

COMPLEMENT: Dict[str, str] = {
    "A":"T","C":"G","G":"C","T":"A",
    "R":"Y","Y":"R","S":"S","W":"W","K":"M","M":"K",
    "B":"V","D":"H","H":"D","V":"B","N":"N",
}

def clean(seq: str) -> str:
    return (seq or "").strip().upper().replace("U", "T")

def reverse_complement(seq: str) -> str:
    s = clean(seq)
    bad = sorted({ch for ch in s if ch not in COMPLEMENT})
    if bad:
        raise ValueError(f"Non-IUPAC characters in primer {seq!r}: {''.join(bad)}")
    return "".join(COMPLEMENT[ch] for ch in reversed(s))
