# src/nanoasv/pipeline/trim.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping

from nanoasv.config.schema import Params
from nanoasv.pipeline.layout import ProjectLayout
from nanoasv.tools import commands as tools
from nanoasv.utils.logger import get_logger

LOG = get_logger("trim")


def trim_samples(
    cfg: Params,
    samples: Mapping[str, Path],
    *,
    dry_run: bool = False,
    show_stdout: bool = False,
) -> Dict[str, Path]:
    """
    Adapter (porechop) then primer (cutadapt) trimming, one sample at a time.

    Outputs land in <project>/trimmed/<sample_id>.fastq.gz; porechop
    intermediates in <project>/trimmed/porechop/. Returns sample_id -> output.
    """
    layout = ProjectLayout.from_params(cfg)
    t = cfg.trim
    out_dir = layout.trimmed
    chop_dir = out_dir / "porechop"
    out_dir.mkdir(parents=True, exist_ok=True)
    if t.adapter_tool == "porechop":
        chop_dir.mkdir(parents=True, exist_ok=True)

    trimmed: Dict[str, Path] = {}
    for sid, raw in samples.items():
        reads = raw
        if t.adapter_tool == "porechop":
            reads = chop_dir / f"{sid}.fastq.gz"
            LOG.info("[%s] porechop → %s", sid, reads)
            tools.porechop_trim(
                input_fastq=raw,
                output_fastq=reads,
                threads=cfg.threads,
                discard_middle=t.discard_middle,
                dry_run=dry_run,
                show_stdout=show_stdout,
            )

        dest = out_dir / f"{sid}.fastq.gz"
        LOG.info("[%s] cutadapt → %s", sid, dest)
        tools.cutadapt_trim_linked(
            input_fastq=reads,
            output_fastq=dest,
            forward_primer=t.forward_primer,
            reverse_primer=t.reverse_primer,
            error_rate=t.error_rate,
            min_overlap=t.min_overlap,
            anchored=t.anchored,
            discard_untrimmed=t.discard_untrimmed,
            cores=cfg.threads,
            dry_run=dry_run,
            show_stdout=show_stdout,
        )
        trimmed[sid] = dest

    LOG.info("Trimmed %d sample(s) → %s", len(trimmed), out_dir)
    return trimmed
