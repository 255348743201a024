"""
YBS referral earnings ledger.

Referral graph, balance ledger, activation and withdrawal state machines
for the YBS referral platform.
"""

__version__ = "1.0.0"
