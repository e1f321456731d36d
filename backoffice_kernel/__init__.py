"""
Back-office Kernel

Shared infrastructure for the purchase and reimbursement workflows:
- Locked-counter document numbering
- Approver auto-assignment with deterministic load balancing
- Idempotent finance expense synchronization
- Append-only workflow log
- Explicit transaction boundaries
"""

__version__ = "0.1.0"
