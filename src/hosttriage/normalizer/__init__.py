"""Normalization of raw subsystem values into Findings.

Every collector funnels its raw records through FindingNormalizer so
all categories share one schema, one clock and one text coercion.
"""

from hosttriage.normalizer.finding import Clock, FindingNormalizer, registry_text, to_text, utc_now

__all__ = [
    "Clock",
    "FindingNormalizer",
    "registry_text",
    "to_text",
    "utc_now",
]
