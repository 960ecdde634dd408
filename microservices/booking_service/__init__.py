"""
Booking Service

Partner service booking for concierge members.

Features:
- Partner service catalog
- Booking = priced service request + credit debit, undone if the debit fails
- Client cancellation within the early pipeline window
- Optional credit refund on cancellation
"""

__version__ = "1.0.0"
