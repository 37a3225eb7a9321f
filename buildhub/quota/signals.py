"""
Signals sent by the quota app.

plan_upgraded is sent after a wallet moves to a new plan; receivers get
user_id, plan and file_retention_days.
"""
from django.dispatch import Signal

plan_upgraded = Signal()
