"""DOI normalisation so lookups match regardless of how the DOI was written."""

from __future__ import annotations

from urllib.parse import unquote

DOI_PREFIXES = (
    "https://doi.org/",
    "http://doi.org/",
    "https://dx.doi.org/",
    "http://dx.doi.org/",
    "doi.org/",
    "doi:",
)


def normalize_doi(value: str) -> str:
    """Return the bare, lowercased DOI.

    >>> normalize_doi("https://doi.org/10.5281%2FZENODO.123 ")
    '10.5281/zenodo.123'
    >>> normalize_doi("doi:10.1000/XYZ")
    '10.1000/xyz'
    """
    doi = unquote(value).strip().lower()
    for prefix in DOI_PREFIXES:
        if doi.startswith(prefix):
            doi = doi[len(prefix):]
            break
    return doi.strip()


def is_doi(value: str) -> bool:
    """Loose check: a normalised DOI starts with the ``10.`` directory prefix."""
    doi = normalize_doi(value)
    return doi.startswith("10.") and "/" in doi
