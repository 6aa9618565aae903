"""
SchoolDesk Backend — API Routes Package
=========================================

Route Inventory:
    - terms.py:    /api/terms, /api/terms/active, /api/terms/{id}
    - schools.py:  /api/schools, /api/schools/{id} (read, update, delete)
    - health.py:   GET /health

Routes stay thin: resolve the principal, ask the authorization layer,
call a service, shape the response. Business rules live in services.
"""
