"""Core runtime pieces: errors, logging, accumulation and collector execution."""
