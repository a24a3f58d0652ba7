"""Business ID generation.

Ledger entities use UUID4 strings: ids are minted by the owning service
(never by the database) so a domain object is complete before it is persisted.
"""

import uuid


def new_id() -> str:
    """Generate a new random UUID4 string id."""
    return str(uuid.uuid4())
