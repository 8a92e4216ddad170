"""Campus roster → Canvas account reconciliation.

To run a pass:
    from rostersync.core.reconciler import reconcile_roster
    from rostersync.core.change_applicator import ChangeApplicator

To talk to Canvas:
    from rostersync.core.canvas import CanvasClient, CanvasDirectory

The batch job CLI lives in scripts/sync_users.py.
"""
