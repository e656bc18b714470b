"""Finances app package.

This app contains the append-only payment ledger of each booking and the
reconciled payment summary derived from it, together with the mock card
gateway used for online advances.
"""
