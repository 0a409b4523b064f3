# src/nanoasv/__init__.py
"""Nanopore full-length 16S amplicon pipeline: DADA2 ASVs vs vsearch OTUs."""

__version__ = "0.1.0"
