"""
Dispute domain events, sent after commit.

Signals:
    dispute_opened (dispute=, actor=)
    dispute_resolved (dispute=, actor=)
"""

from django.dispatch import Signal

dispute_opened = Signal()
dispute_resolved = Signal()
