# =============================================
# File: catalog_scoring/services/errors.py
# Purpose: Error types raised by the scoring core
# =============================================


class ScoringConfigError(ValueError):
    """Structural misuse of the scoring core: unsupported product type, unknown family, missing engine."""
