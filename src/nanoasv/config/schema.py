# src/nanoasv/config/schema.py
from __future__ import annotations
from pathlib import Path
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

# Full-length 16S primers used by the ONT 16S barcoding kits (27F / 1492R)
PRIMER_27F = "AGAGTTTGATCMTGGCTCAG"
PRIMER_1492R = "CGGTTACCTTGTTACGACTT"

ALPHA_METRICS = ("shannon", "simpson", "chao1", "pielou_e")
BETA_METRICS = ("braycurtis", "jaccard", "euclidean")

class TrimParams(BaseModel):
    # porechop (adapters/barcodes)
    adapter_tool: Literal["porechop", "none"] = "porechop"
    discard_middle: bool = True

    # cutadapt (primers)
    forward_primer: str = PRIMER_27F
    reverse_primer: str = PRIMER_1492R
    error_rate: float = 0.2
    min_overlap: int = 15
    anchored: bool = False
    discard_untrimmed: bool = True

    @field_validator("error_rate")
    @classmethod
    def _check_error_rate(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError("error_rate must be in [0, 1)")
        return v

class FilterParams(BaseModel):
    trunc_len: int = 0
    min_len: int = 1300
    max_len: int = 1700
    max_ee: Optional[float] = None  # None = no expected-error cap
    trunc_q: int = 2
    max_n: int = 0

class DenoiseParams(BaseModel):
    nbases: int = 100_000_000
    randomize: bool = True
    band_size: int = 32
    homopolymer_gap_penalty: int = -1
    chimera_method: Literal["consensus", "pooled", "per-sample"] = "consensus"

class TaxonomyParams(BaseModel):
    reference_db: Optional[Path] = None
    species_db: Optional[Path] = None
    min_boot: int = 50

class ClusteringParams(BaseModel):
    enabled: bool = True
    identity: float = 0.97
    min_unique_size: int = 1
    remove_chimeras: bool = True
    # precomputed clustering output (rows = OTU); skips vsearch when set
    otu_table: Optional[Path] = None
    otu_taxonomy: Optional[Path] = None
    otu_sequences: Optional[Path] = None
    keep_na_kingdom: bool = False

    @field_validator("identity")
    @classmethod
    def _check_identity(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("identity must be in (0, 1]")
        return v

class CompareParams(BaseModel):
    min_sample_depth: int = 10_000
    min_feature_total: int = 9
    diversity_index: str = "shannon"
    distance_metric: str = "braycurtis"
    color_by: Optional[str] = None
    taxa_rank: str = "Phylum"

    @field_validator("diversity_index")
    @classmethod
    def _check_alpha(cls, v: str) -> str:
        if v not in ALPHA_METRICS:
            raise ValueError(f"diversity_index must be one of: {', '.join(ALPHA_METRICS)}")
        return v

    @field_validator("distance_metric")
    @classmethod
    def _check_beta(cls, v: str) -> str:
        if v not in BETA_METRICS:
            raise ValueError(f"distance_metric must be one of: {', '.join(BETA_METRICS)}")
        return v

class Params(BaseModel):
    # paths
    fastq_dir: Optional[Path] = None
    project_dir: Path = Path("nanoasv-project")
    metadata_file: Optional[Path] = None
    metadata_id_column: Optional[str] = None

    # sample selection
    fastq_pattern: str = "*.fastq.gz"
    id_regex: Optional[str] = None
    exclude_samples: List[str] = Field(default_factory=list)
    min_reads_per_sample: int = 1

    # execution
    threads: int = 0
    cache: bool = True

    # primary pipeline taxonomic pruning
    keep_na_kingdom: bool = True

    trim: TrimParams = Field(default_factory=TrimParams)
    filter: FilterParams = Field(default_factory=FilterParams)
    denoise: DenoiseParams = Field(default_factory=DenoiseParams)
    taxonomy: TaxonomyParams = Field(default_factory=TaxonomyParams)
    clustering: ClusteringParams = Field(default_factory=ClusteringParams)
    compare: CompareParams = Field(default_factory=CompareParams)

    @field_validator("threads", "min_reads_per_sample")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v
