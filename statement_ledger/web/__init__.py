"""
HTTP surface for the ledger pipeline
"""
