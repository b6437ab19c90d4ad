"""PyMuPDF helpers for the extraction pipeline."""
