"""
Kernel services -- imperative shell over the database.

Every service here is flush-only: it works inside the caller's session and
never commits.  Transaction boundaries belong to ``TransactionCoordinator``
(``backoffice_kernel.services.transaction``) and to the module services that
use it.
"""
