"""
SchoolDesk Backend — Services Layer
=====================================

What:  Business logic between routes (HTTP) and the database.
How:   Services receive an AsyncSession per call and hold no state.

Service Inventory:
    - authorization: AuthorizationScope decisions (pure, no I/O)
    - TermService:   term lifecycle, one Active term per school
    - SchoolService: school records (the partitions terms live in)
"""
