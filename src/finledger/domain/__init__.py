"""Domain layer for finledger: entities, errors and the engine services.

Services are imported from their own modules (``finledger.domain.budget``
and so on) so that the database layer can import entities without pulling
every service in.
"""
