"""
Quota app: per-user daily build allowance and plan-derived retention.
"""
