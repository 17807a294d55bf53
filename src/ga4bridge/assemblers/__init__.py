"""Result assemblers, one module per command family.

Importing this package registers every assembler with the global registry.
"""

from ga4bridge.assemblers import (  # noqa: F401
    analytics,
    cleanup,
    coverage,
    inspect,
    link,
    monitor,
    report,
    setup,
    sitemaps,
    validate,
)
from ga4bridge.assemblers.monitor import combine_inspections

__all__ = ["combine_inspections"]
