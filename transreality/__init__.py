"""
Transreality Copilot Triage Core
================================

A proof-of-concept triage service.  An incoming event is scored into a
preliminary ternary recommendation (``yes`` / ``no`` / ``undefined``) and a
fixed ethics score, operators apply a small set of actions against the
resulting session, and every step lands in an append-only, hash-chained
audit log.

DISCLAIMER: Recommendations are decision-support signals for a human
operator.  Ethics gating is advisory unless the triage policy enables
enforcement, and no action is ever taken against real-world assets.
"""

__version__ = "0.1.0"
