"""
Module ORM Registry (``supply_modules._orm_registry``).

Responsibility
--------------
Ensure kernel and module SQLAlchemy models are imported so that
``Base.metadata`` holds every table (and every ``protect()`` registration
has run) before tables are created or immutability listeners attached.

Architecture position
---------------------
**Modules layer** -- utility.  ``supply_kernel.db.engine.create_tables``
imports it lazily; nothing else in the kernel may.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``supply_modules.*.orm`` module.

    Kernel tables first: module tables reference materials, vendors and
    batches.  Idempotent.
    """
    # fmt: off
    import supply_kernel.models  # noqa: F401
    import supply_kernel.services.sequence_service  # noqa: F401  # sequence_counters
    import supply_modules.procurement.orm  # noqa: F401
    import supply_modules.receiving.orm  # noqa: F401
    import supply_modules.payments.orm  # noqa: F401
    # fmt: on
