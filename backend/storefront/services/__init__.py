"""Service layer: use-case orchestration over units of work and ports.

Subpackages
-----------
- ``_shared``: base service, error taxonomy, ports (hexagonal interfaces).
- ``auth``: session lifecycle (issue, resolve, rotate, revoke).
- ``account``: registration, OTP email verification and password reset.
- ``checkout``: order placement, payment verification, abandonment.
- ``orders``: order lookups scoped to the owner.
- ``addresses``: address book with a single default per user.
- ``cart``: cart line management.

Nothing is re-exported here so that infrastructure modules can import the
ports without pulling in the persistence layer.
"""
