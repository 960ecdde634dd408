"""
Service Request Service

Concierge service request pipeline.

Features:
- Explicit status-flow table with audited transitions
- Deterministic credit costing of requests
- Partner assignment and commission tracking
- Response-time SLA metrics per membership tier
"""

__version__ = "1.0.0"
