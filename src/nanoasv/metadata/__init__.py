# src/nanoasv/metadata/__init__.py
"""Sample metadata: TSV loading, validation against imported samples, templates."""

# Index name used for every metadata DataFrame in the package
SAMPLE_ID_COL = "sample_id"

# Header cells that are recognised as the SampleID column (compared lower-cased)
SAMPLE_ID_ALIASES = {
    "#sampleid", "#sample id", "sampleid", "sample id", "sample-id", "sample_id", "sample_name", "sample",
}
