"""
Report pipeline for the airdrop research desk.

Import `ReportService` directly from here:

```python
from analysis import ReportService, ReportServiceConfig

service = ReportService(ReportServiceConfig(provider=provider, store=store))
analysis = await service.get_analysis("Monad")
```
"""

from .errors import AggregationError, ParseError, ProviderError, SegmentTimeoutError  # noqa: F401
from .report_service import ReportService, ReportServiceConfig  # noqa: F401

__all__ = [
    "AggregationError",
    "ParseError",
    "ProviderError",
    "ReportService",
    "ReportServiceConfig",
    "SegmentTimeoutError",
]
