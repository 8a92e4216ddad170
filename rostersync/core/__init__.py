"""Core reconciliation logic.

Module Structure:
    - models.py             : Campus rows, Canvas accounts, login-id state convention
    - sis_id_policy.py      : Canonical SIS user id derivation
    - account_equivalence.py: Skip-update gate with credential-tolerant names
    - categorizer.py        : Per-identity state machine and instruction accumulators
    - reconciler.py         : Sync pass driver (roster x accounts -> SyncResult)
    - change_applicator.py  : SIS user id renames and email channel purges
    - csv_io.py             : Roster / provisioning report / SIS import CSV adapters
    - canvas/               : Canvas REST API client
    - exceptions.py         : Error taxonomy

Usage Pattern:
    Modules are not auto-imported; import explicitly when needed:
        from rostersync.core.reconciler import reconcile_roster
        from rostersync.core.sis_id_policy import derive_sis_user_id
"""
